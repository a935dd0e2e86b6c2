"""Tax configuration — commands and handlers."""

from protean import handle
from protean.fields import Boolean, DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.tax.jurisdiction import JurisdictionType, ProductTaxSetting, TaxJurisdiction


@storefront.command(part_of="TaxJurisdiction")
class RegisterTaxJurisdiction:
    tenant_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    jurisdiction_type = String(choices=JurisdictionType, required=True)
    country = String(required=True, max_length=2)
    state_code = String(max_length=10)
    county_name = String(max_length=100)
    city_name = String(max_length=100)
    rate = String(required=True, max_length=12)
    effective_from = DateTime()
    effective_to = DateTime()
    description = Text()


@storefront.command(part_of="TaxJurisdiction")
class DeactivateTaxJurisdiction:
    tenant_id = Identifier(required=True)
    jurisdiction_id = Identifier(required=True)


@storefront.command_handler(part_of=TaxJurisdiction)
class TaxJurisdictionHandler:
    @handle(RegisterTaxJurisdiction)
    def register(self, command):
        jurisdiction = TaxJurisdiction.register(
            tenant_id=command.tenant_id,
            name=command.name,
            jurisdiction_type=command.jurisdiction_type,
            country=command.country,
            state_code=command.state_code,
            county_name=command.county_name,
            city_name=command.city_name,
            rate=command.rate,
            effective_from=command.effective_from,
            effective_to=command.effective_to,
            description=command.description,
        )
        current_domain.repository_for(TaxJurisdiction).add(jurisdiction)
        return str(jurisdiction.id)

    @handle(DeactivateTaxJurisdiction)
    def deactivate(self, command):
        repo = current_domain.repository_for(TaxJurisdiction)
        jurisdiction = repo.get_for_tenant(command.tenant_id, command.jurisdiction_id)
        jurisdiction.deactivate()
        repo.add(jurisdiction)


@storefront.command(part_of="ProductTaxSetting")
class SetProductTaxExemption:
    tenant_id = Identifier(required=True)
    product_id = Identifier(required=True)
    is_tax_exempt = Boolean(default=True)
    exemption_category = String(max_length=50)
    exemption_reason = Text()


@storefront.command_handler(part_of=ProductTaxSetting)
class ProductTaxSettingHandler:
    @handle(SetProductTaxExemption)
    def set_exemption(self, command):
        repo = current_domain.repository_for(ProductTaxSetting)
        setting = repo.find_for_product(command.tenant_id, command.product_id)
        if setting is None:
            setting = ProductTaxSetting(tenant_id=command.tenant_id, product_id=command.product_id)

        setting.is_tax_exempt = bool(command.is_tax_exempt)
        setting.exemption_category = command.exemption_category if command.is_tax_exempt else None
        setting.exemption_reason = command.exemption_reason if command.is_tax_exempt else None
        repo.add(setting)
        return str(setting.id)
