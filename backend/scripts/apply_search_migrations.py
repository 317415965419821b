"""CLI entrypoint applying the search schema migrations to POSTGRES_URL."""

from __future__ import annotations

import asyncio
import sys

from academyhub.infra.migrate import apply_migrations
from academyhub.infra.postgres import close_pool, get_pool


async def _run() -> None:
	pool = await get_pool()
	try:
		async with pool.acquire() as conn:
			applied = await apply_migrations(conn)
	finally:
		await close_pool()
	if applied:
		for version in applied:
			print(f"applied {version}")
	else:
		print("schema up to date")


def main() -> None:
	if sys.platform == "win32":
		asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
	asyncio.run(_run())


if __name__ == "__main__":
	main()
