"""Tax resolution for a shipping destination.

Exactly one jurisdiction applies per resolution: an effective row matching
the destination state wins over the country-level row, and the two are never
combined. When nothing matches the result is a zero-rate "No Tax" outcome,
which is not an error.

The resolver reads through two narrow sources so it can run against fakes:

* ``jurisdictions.active_for_country(tenant_id, country)``
* ``tax_settings.for_products(tenant_id, product_ids)``
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from protean.utils.globals import current_domain

from storefront.shared.clock import as_utc, utc_now
from storefront.shared.money import ZERO, round_money, to_decimal
from storefront.tax.jurisdiction import JurisdictionType, ProductTaxSetting, TaxJurisdiction

NO_TAX = "No Tax"


@dataclass(frozen=True)
class TaxLine:
    """A product's share of the taxable base."""

    product_id: str
    amount: Decimal


@dataclass(frozen=True)
class AppliedExemption:
    product_id: str
    exemption_category: str | None
    amount: Decimal


@dataclass(frozen=True)
class TaxResult:
    jurisdiction_id: str | None
    jurisdiction_name: str
    rate: Decimal
    taxable_amount: Decimal
    exempt_amount: Decimal
    tax_amount: Decimal
    applied_exemptions: tuple[AppliedExemption, ...] = field(default_factory=tuple)

    @classmethod
    def no_tax(cls) -> "TaxResult":
        """Nothing resolved: zero rate and nothing reported as taxable."""
        return cls(None, NO_TAX, Decimal("0"), ZERO, ZERO, ZERO)


def apportion_lines(lines: list[TaxLine], subtotal, discount) -> list[TaxLine]:
    """Scale each line by ``(subtotal - discount) / subtotal``.

    The order-level discount is spread across lines in proportion to their
    value before exemptions are applied. A zero subtotal leaves lines as-is.
    """
    subtotal = to_decimal(subtotal)
    discount = to_decimal(discount)
    if subtotal <= 0 or discount <= 0:
        return list(lines)
    factor = (subtotal - discount) / subtotal
    return [TaxLine(line.product_id, line.amount * factor) for line in lines]


def select_jurisdiction(
    candidates, country: str, state_code: str | None, at: datetime | None = None
) -> TaxJurisdiction | None:
    """Pick the single applicable jurisdiction, state before country."""
    at = as_utc(at) or utc_now()
    country = (country or "").upper()
    effective = [j for j in candidates if j.country == country and j.is_effective(at)]

    if state_code:
        state_code = state_code.upper()
        state_rows = [j for j in effective if (j.state_code or "").upper() == state_code]
        if state_rows:
            return _latest(state_rows)

    country_rows = [j for j in effective if j.jurisdiction_type == JurisdictionType.COUNTRY.value]
    if country_rows:
        return _latest(country_rows)
    return None


def _latest(rows):
    # Overlapping rows of the same level: the most recently effective one applies
    return max(rows, key=lambda j: (as_utc(j.effective_from), str(j.id)))


class TaxResolver:
    def __init__(self, jurisdictions, tax_settings):
        self.jurisdictions = jurisdictions
        self.tax_settings = tax_settings

    @classmethod
    def from_domain(cls) -> "TaxResolver":
        return cls(
            current_domain.repository_for(TaxJurisdiction),
            current_domain.repository_for(ProductTaxSetting),
        )

    def resolve(
        self,
        tenant_id: str,
        country: str | None,
        state_code: str | None,
        lines: list[TaxLine],
        at: datetime | None = None,
    ) -> TaxResult:
        if not country:
            return TaxResult.no_tax()

        candidates = self.jurisdictions.active_for_country(tenant_id, country.upper())
        jurisdiction = select_jurisdiction(candidates, country, state_code, at)
        if jurisdiction is None:
            return TaxResult.no_tax()

        settings = self.tax_settings.for_products(tenant_id, [line.product_id for line in lines])

        taxable = ZERO
        exempt = ZERO
        exemptions = []
        for line in lines:
            setting = settings.get(str(line.product_id))
            if setting is not None and setting.is_tax_exempt:
                exempt += line.amount
                exemptions.append(
                    AppliedExemption(str(line.product_id), setting.exemption_category, round_money(line.amount))
                )
            else:
                taxable += line.amount

        rate = jurisdiction.rate_value
        return TaxResult(
            jurisdiction_id=str(jurisdiction.id),
            jurisdiction_name=jurisdiction.name,
            rate=rate,
            taxable_amount=round_money(taxable),
            exempt_amount=round_money(exempt),
            tax_amount=round_money(taxable * rate),
            applied_exemptions=tuple(exemptions),
        )
