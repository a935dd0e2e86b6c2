"""Tax jurisdictions and per-product tax settings."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, String, Text

from storefront.domain import storefront
from storefront.shared.clock import as_utc, utc_now, within_window
from storefront.shared.money import to_decimal
from storefront.shared.tenancy import find_for_tenant, get_for_tenant


class JurisdictionType(Enum):
    COUNTRY = "country"
    STATE = "state"
    COUNTY = "county"
    CITY = "city"


@storefront.aggregate
class TaxJurisdiction:
    tenant_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    jurisdiction_type = String(choices=JurisdictionType, required=True)
    country = String(required=True, max_length=2)
    state_code = String(max_length=10)
    county_name = String(max_length=100)
    city_name = String(max_length=100)
    rate = String(required=True, max_length=12)  # fraction, e.g. "0.0725"
    effective_from = DateTime(required=True)
    effective_to = DateTime()
    is_active = Boolean(default=True)
    description = Text()

    @invariant.post
    def rate_must_be_a_fraction(self):
        rate = to_decimal(self.rate, "rate")
        if rate < 0 or rate > 1:
            raise ValidationError({"rate": ["Tax rate must be between 0 and 1"]})

    @invariant.post
    def effective_window_must_be_ordered(self):
        if self.effective_to and as_utc(self.effective_to) <= as_utc(self.effective_from):
            raise ValidationError({"effective_to": ["effective_to must be after effective_from"]})

    @invariant.post
    def subdivisions_need_a_state_code(self):
        if self.jurisdiction_type != JurisdictionType.COUNTRY.value and not self.state_code:
            raise ValidationError({"state_code": [f"A {self.jurisdiction_type} jurisdiction needs a state code"]})

    @classmethod
    def register(
        cls,
        tenant_id,
        name,
        jurisdiction_type,
        country,
        rate,
        state_code=None,
        county_name=None,
        city_name=None,
        effective_from=None,
        effective_to=None,
        description=None,
    ):
        return cls(
            tenant_id=tenant_id,
            name=name,
            jurisdiction_type=jurisdiction_type,
            country=country.upper(),
            state_code=state_code.upper() if state_code else None,
            county_name=county_name,
            city_name=city_name,
            rate=str(to_decimal(rate, "rate")),
            effective_from=effective_from or utc_now(),
            effective_to=effective_to,
            description=description,
        )

    @property
    def rate_value(self) -> Decimal:
        return to_decimal(self.rate)

    def is_effective(self, at: datetime | None = None) -> bool:
        return bool(self.is_active) and within_window(self.effective_from, self.effective_to, at)

    def deactivate(self) -> None:
        if not self.is_active:
            raise ValidationError({"is_active": ["Jurisdiction is already inactive"]})
        self.is_active = False


@storefront.aggregate
class ProductTaxSetting:
    tenant_id = Identifier(required=True)
    product_id = Identifier(required=True)
    is_tax_exempt = Boolean(default=False)
    exemption_category = String(max_length=50)
    exemption_reason = Text()


@storefront.repository(part_of=TaxJurisdiction)
class TaxJurisdictionRepository:
    def get_for_tenant(self, tenant_id: str, jurisdiction_id: str) -> TaxJurisdiction:
        return get_for_tenant(TaxJurisdiction, tenant_id, jurisdiction_id)

    def active_for_country(self, tenant_id: str, country: str) -> list[TaxJurisdiction]:
        """Every active jurisdiction row of the tenant for the country, any type."""
        return find_for_tenant(TaxJurisdiction, tenant_id, country=country.upper(), is_active=True)


@storefront.repository(part_of=ProductTaxSetting)
class ProductTaxSettingRepository:
    def for_products(self, tenant_id: str, product_ids) -> dict[str, ProductTaxSetting]:
        settings = {}
        for product_id in {str(pid) for pid in product_ids}:
            setting = self.find_for_product(tenant_id, product_id)
            if setting is not None:
                settings[product_id] = setting
        return settings

    def find_for_product(self, tenant_id: str, product_id: str) -> ProductTaxSetting | None:
        matches = find_for_tenant(ProductTaxSetting, tenant_id, product_id=product_id)
        return matches[0] if matches else None
