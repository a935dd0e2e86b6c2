"""Tenant-scoped repository access.

A record that exists but belongs to another tenant is reported exactly like
a missing one so callers cannot probe for foreign identifiers.
"""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain


def not_found(kind: str, identifier) -> ObjectNotFoundError:
    return ObjectNotFoundError({"_entity": f"{kind} `{identifier}` does not exist"})


def get_for_tenant(aggregate_cls, tenant_id: str, identifier):
    """Load an aggregate by id and make sure it belongs to ``tenant_id``."""
    if not identifier:
        raise not_found(aggregate_cls.__name__, identifier)
    try:
        record = current_domain.repository_for(aggregate_cls).get(identifier)
    except ObjectNotFoundError:
        raise not_found(aggregate_cls.__name__, identifier)
    if str(record.tenant_id) != str(tenant_id):
        raise not_found(aggregate_cls.__name__, identifier)
    return record


def find_for_tenant(aggregate_cls, tenant_id: str, **filters) -> list:
    """All records of ``aggregate_cls`` in the tenant matching ``filters``."""
    repo = current_domain.repository_for(aggregate_cls)
    return repo._dao.query.filter(tenant_id=tenant_id, **filters).all().items
