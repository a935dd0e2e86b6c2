"""In-memory attribution adapter for development and tests.

Records every call and can be told to fail, so the order pipeline's
indifference to attribution outages can be exercised.
"""

from storefront.attribution.port import AttributionGateway, AttributionRequest


class AttributionUnavailable(Exception):
    pass


class FakeAttributionGateway(AttributionGateway):
    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Attribution service unavailable"
        self.calls: list[AttributionRequest] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Attribution service unavailable") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def attribute_order(self, request: AttributionRequest) -> None:
        self.calls.append(request)
        if not self.should_succeed:
            raise AttributionUnavailable(self.failure_reason)
