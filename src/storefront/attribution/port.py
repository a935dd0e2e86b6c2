"""Campaign attribution port.

Links a placed order back to the marketing visit (session) that produced it.
Adapters are called after the order has committed and must never influence
the order itself.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class AttributionRequest:
    session_id: str
    order_id: str
    customer_id: str
    order_total: str
    tenant_id: str


class AttributionGateway(ABC):
    @abstractmethod
    def attribute_order(self, request: AttributionRequest) -> None:
        """Record that ``request.order_id`` came from ``request.session_id``."""
        ...
