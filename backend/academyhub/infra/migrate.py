"""Apply the packaged SQL migrations in order, recording each one applied."""

from __future__ import annotations

import logging
from importlib import resources

import asyncpg

_LOG = logging.getLogger(__name__)


def migration_files() -> list[tuple[str, str]]:
	"""Return (version, sql) pairs sorted by file name."""
	root = resources.files("academyhub.infra").joinpath("migrations")
	entries = sorted((entry for entry in root.iterdir() if entry.name.endswith(".sql")), key=lambda entry: entry.name)
	return [(entry.name.removesuffix(".sql"), entry.read_text(encoding="utf-8")) for entry in entries]


async def apply_migrations(conn: asyncpg.Connection) -> list[str]:
	await conn.execute(
		"""
		CREATE TABLE IF NOT EXISTS schema_migrations (
			version TEXT PRIMARY KEY,
			applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
		)
		"""
	)
	done = {row["version"] for row in await conn.fetch("SELECT version FROM schema_migrations")}
	applied: list[str] = []
	for version, sql in migration_files():
		if version in done:
			continue
		async with conn.transaction():
			await conn.execute(sql)
			await conn.execute("INSERT INTO schema_migrations (version) VALUES ($1)", version)
		_LOG.info("migrations.applied", extra={"version": version})
		applied.append(version)
	return applied


__all__ = ["apply_migrations", "migration_files"]
