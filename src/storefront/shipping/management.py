"""Shipping configuration — commands and handler."""

from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.shipping.method import CalculationType, ShippingCarrier, ShippingMethod


@storefront.command(part_of="ShippingMethod")
class CreateShippingMethod:
    tenant_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    display_name = String(max_length=100)
    description = Text()
    carrier = String(choices=ShippingCarrier, default=ShippingCarrier.OTHER.value)
    calculation_type = String(choices=CalculationType, required=True)
    base_rate = String(required=True, max_length=20)
    free_shipping_threshold = String(max_length=20)
    estimated_days_min = Integer(min_value=0)
    estimated_days_max = Integer(min_value=0)
    display_order = Integer(default=0)


@storefront.command(part_of="ShippingMethod")
class AddShippingRateTier:
    tenant_id = Identifier(required=True)
    method_id = Identifier(required=True)
    min_value = String(required=True, max_length=20)
    max_value = String(max_length=20)
    rate = String(required=True, max_length=20)


@storefront.command(part_of="ShippingMethod")
class DeactivateShippingMethod:
    tenant_id = Identifier(required=True)
    method_id = Identifier(required=True)


@storefront.command_handler(part_of=ShippingMethod)
class ShippingMethodHandler:
    @handle(CreateShippingMethod)
    def create_method(self, command):
        method = ShippingMethod.create(
            tenant_id=command.tenant_id,
            name=command.name,
            display_name=command.display_name,
            description=command.description,
            carrier=command.carrier,
            calculation_type=command.calculation_type,
            base_rate=command.base_rate,
            free_shipping_threshold=command.free_shipping_threshold,
            estimated_days_min=command.estimated_days_min,
            estimated_days_max=command.estimated_days_max,
            display_order=command.display_order,
        )
        current_domain.repository_for(ShippingMethod).add(method)
        return str(method.id)

    @handle(AddShippingRateTier)
    def add_rate_tier(self, command):
        repo = current_domain.repository_for(ShippingMethod)
        method = repo.get_for_tenant(command.tenant_id, command.method_id)
        tier = method.add_rate_tier(min_value=command.min_value, rate=command.rate, max_value=command.max_value)
        repo.add(method)
        return str(tier.id)

    @handle(DeactivateShippingMethod)
    def deactivate(self, command):
        repo = current_domain.repository_for(ShippingMethod)
        method = repo.get_for_tenant(command.tenant_id, command.method_id)
        method.deactivate()
        repo.add(method)
