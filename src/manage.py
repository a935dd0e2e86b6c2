"""Storefront database management CLI.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
    python src/manage.py abandon-carts  # Run the cart expiry sweep once
"""

import argparse
import sys


def _init():
    from storefront.domain import storefront

    print("Initializing storefront domain...")
    storefront.init()
    return storefront


def setup_database():
    from storefront.utils.db import setup_db

    domain = _init()
    print("Creating storefront database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    from storefront.utils.db import drop_db

    domain = _init()
    print("Dropping storefront database schema...")
    drop_db(domain)
    print("Done.")


def abandon_carts():
    from storefront.cart.abandonment import AbandonExpiredCarts

    domain = _init()
    with domain.domain_context():
        count = domain.process(AbandonExpiredCarts(), asynchronous=False)
    print(f"Abandoned {count} cart(s).")


def main():
    parser = argparse.ArgumentParser(description="Storefront database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("abandon-carts", help="Mark expired active carts as abandoned")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "abandon-carts":
        abandon_carts()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
