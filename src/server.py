"""Protean Engine runner for the storefront domain.

Starts the Engine workers that process events asynchronously in production,
most notably the order attribution handler.

Usage:
    python src/server.py
"""

import asyncio

from protean.server.engine import Engine


async def run():
    from storefront.domain import storefront
    from storefront.utils.logging import configure_logging

    configure_logging()
    storefront.init()
    await Engine(storefront).run()


def main():
    asyncio.run(run())


if __name__ == "__main__":
    main()
