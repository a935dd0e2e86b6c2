"""Attribution gateway factory.

``ATTRIBUTION_ADAPTER`` selects the implementation; ``fake`` (the default)
keeps calls in memory. Tests swap adapters with ``set_gateway``.
"""

import os

from storefront.attribution.port import AttributionGateway

_current_gateway: AttributionGateway | None = None


def get_gateway() -> AttributionGateway:
    global _current_gateway
    if _current_gateway is None:
        adapter = os.environ.get("ATTRIBUTION_ADAPTER", "fake")
        if adapter == "fake":
            from storefront.attribution.fake_adapter import FakeAttributionGateway

            _current_gateway = FakeAttributionGateway()
        else:
            raise ValueError(f"Unknown attribution adapter: {adapter}")
    return _current_gateway


def set_gateway(gateway: AttributionGateway) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
