"""Discount configuration — commands and handlers."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.discount.discount import Discount, DiscountCode, DiscountScope, DiscountType, TargetType
from storefront.domain import storefront


@storefront.command(part_of="Discount")
class CreateDiscount:
    tenant_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    description = Text()
    discount_type = String(choices=DiscountType, required=True)
    value = String(required=True, max_length=20)
    scope = String(choices=DiscountScope, required=True)
    priority = Integer(default=0)
    starts_at = DateTime()
    ends_at = DateTime()


@storefront.command(part_of="Discount")
class AddDiscountTargets:
    tenant_id = Identifier(required=True)
    discount_id = Identifier(required=True)
    target_type = String(choices=TargetType, required=True)
    target_ids = Text(required=True)  # JSON array of ids


@storefront.command(part_of="Discount")
class DeactivateDiscount:
    tenant_id = Identifier(required=True)
    discount_id = Identifier(required=True)


@storefront.command_handler(part_of=Discount)
class DiscountHandler:
    @handle(CreateDiscount)
    def create_discount(self, command):
        discount = Discount.create(
            tenant_id=command.tenant_id,
            name=command.name,
            description=command.description,
            discount_type=command.discount_type,
            value=command.value,
            scope=command.scope,
            priority=command.priority,
            starts_at=command.starts_at,
            ends_at=command.ends_at,
        )
        current_domain.repository_for(Discount).add(discount)
        return str(discount.id)

    @handle(AddDiscountTargets)
    def add_targets(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get_for_tenant(command.tenant_id, command.discount_id)
        added = discount.attach_targets(command.target_type, json.loads(command.target_ids))
        repo.add(discount)
        return added

    @handle(DeactivateDiscount)
    def deactivate(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get_for_tenant(command.tenant_id, command.discount_id)
        discount.deactivate()
        repo.add(discount)


@storefront.command(part_of="DiscountCode")
class IssueDiscountCode:
    tenant_id = Identifier(required=True)
    discount_id = Identifier(required=True)
    code = String(required=True, max_length=50)
    usage_limit = Integer(min_value=1)
    minimum_order_value = String(max_length=20)


@storefront.command(part_of="DiscountCode")
class DeactivateDiscountCode:
    tenant_id = Identifier(required=True)
    code_id = Identifier(required=True)


@storefront.command_handler(part_of=DiscountCode)
class DiscountCodeHandler:
    @handle(IssueDiscountCode)
    def issue_code(self, command):
        discount = current_domain.repository_for(Discount).get_for_tenant(command.tenant_id, command.discount_id)
        if discount.scope != DiscountScope.CODE.value:
            raise ValidationError({"discount_id": ["Codes can only be issued for code-scoped discounts"]})

        repo = current_domain.repository_for(DiscountCode)
        if repo.find_by_code(command.tenant_id, command.code) is not None:
            raise ValidationError({"code": [f"Discount code {DiscountCode.normalise(command.code)} already exists"]})

        discount_code = DiscountCode.issue(
            tenant_id=command.tenant_id,
            discount_id=command.discount_id,
            code=command.code,
            usage_limit=command.usage_limit,
            minimum_order_value=command.minimum_order_value,
        )
        repo.add(discount_code)
        return str(discount_code.id)

    @handle(DeactivateDiscountCode)
    def deactivate(self, command):
        repo = current_domain.repository_for(DiscountCode)
        discount_code = repo.get_for_tenant(command.tenant_id, command.code_id)
        discount_code.deactivate()
        repo.add(discount_code)
