"""Apply pending SQL files from ``backend/migrations`` in name order."""

import asyncio
import pathlib
import sys

BACKEND_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from studymatch.infra import postgres

MIGRATIONS_DIR = BACKEND_ROOT / "migrations"


async def apply_migrations() -> list[str]:
	paths = sorted(MIGRATIONS_DIR.glob("*.sql"))
	if not paths:
		raise SystemExit("no migration files found")
	applied_now: list[str] = []
	pool = await postgres.init_pool()
	try:
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				CREATE TABLE IF NOT EXISTS schema_migrations (
					version TEXT PRIMARY KEY,
					applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
				)
				"""
			)
			applied = {row["version"] for row in await conn.fetch("SELECT version FROM schema_migrations")}
			for path in paths:
				version = path.name.split("_", 1)[0]
				if version in applied:
					continue
				async with conn.transaction():
					await conn.execute(path.read_text())
					await conn.execute("INSERT INTO schema_migrations (version) VALUES ($1)", version)
				applied_now.append(path.name)
				print(f"Applied {path.name}")
	finally:
		await postgres.close_pool()
	return applied_now


if __name__ == "__main__":
	if sys.platform == "win32":
		asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
	asyncio.run(apply_migrations())
