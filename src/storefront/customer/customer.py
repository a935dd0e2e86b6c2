"""Customers and their addresses, as referenced by checkout.

Account management happens in the identity service; checkout only needs to
confirm that a customer exists in the tenant and that the addresses used for
shipping and billing belong to that customer.
"""

from protean.exceptions import ValidationError
from protean.fields import Identifier, String

from storefront.domain import storefront
from storefront.shared.tenancy import get_for_tenant


@storefront.aggregate
class Customer:
    tenant_id = Identifier(required=True)
    email = String(required=True, max_length=254)
    first_name = String(max_length=100)
    last_name = String(max_length=100)


@storefront.aggregate
class Address:
    tenant_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(required=True, max_length=2)

    def ensure_owned_by(self, customer_id, field: str = "address_id") -> None:
        if str(self.customer_id) != str(customer_id):
            raise ValidationError({field: ["Address does not belong to the customer"]})


@storefront.repository(part_of=Customer)
class CustomerRepository:
    def get_for_tenant(self, tenant_id: str, customer_id: str) -> Customer:
        return get_for_tenant(Customer, tenant_id, customer_id)


@storefront.repository(part_of=Address)
class AddressRepository:
    def get_for_tenant(self, tenant_id: str, address_id: str) -> Address:
        return get_for_tenant(Address, tenant_id, address_id)
