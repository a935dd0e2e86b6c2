from protean.domain import Domain
from sqlalchemy import create_engine

_SQL_PROVIDERS = ("sqlite", "postgresql")


def _touch_daos(domain: Domain, provider_name: str) -> None:
    """Instantiate every DAO bound to the provider so its tables land in the metadata."""
    records = list(domain.registry.aggregates.values()) + list(domain.registry.entities.values())
    for record in records:
        if record.cls.meta_.provider == provider_name:
            domain.repository_for(record.cls)._dao  # noqa: B018

    if hasattr(domain, "_outbox_repos") and provider_name in domain._outbox_repos:
        domain._outbox_repos[provider_name]._dao  # noqa: B018


def setup_db(domain: Domain) -> None:
    """Create tables for every SQL provider configured on the domain."""
    with domain.domain_context():
        for name, provider in domain.providers.items():
            if provider.conn_info["provider"] not in _SQL_PROVIDERS:
                continue
            engine = create_engine(provider.conn_info["database_uri"])
            _touch_daos(domain, name)
            provider._metadata.create_all(engine)


def drop_db(domain: Domain) -> None:
    """Drop tables for every SQL provider configured on the domain."""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] not in _SQL_PROVIDERS:
                continue
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)
