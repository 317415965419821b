"""CLI entrypoint to provision the OpenSearch indexes used by search."""

from __future__ import annotations

import asyncio

from academyhub.domain.search.bootstrap import SearchBootstrapper
from academyhub.infra.opensearch import close_transport


async def _run() -> None:
	try:
		installed = await SearchBootstrapper().install_all()
	finally:
		await close_transport()
	for name in installed:
		print(f"index ready: {name}")


def main() -> None:
	asyncio.run(_run())


if __name__ == "__main__":
	main()
