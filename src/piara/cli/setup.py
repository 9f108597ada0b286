"""Setup command to verify configuration and store access."""

import asyncio
import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from piara.core import client
from piara.core.config import settings
from piara.core.store import BOARS_TABLE, EVENTS_TABLE, INCIDENTS_TABLE, SOWS_TABLE

TABLES = [SOWS_TABLE, EVENTS_TABLE, INCIDENTS_TABLE, BOARS_TABLE]


def check_mark(success: bool) -> str:
    """Return a check mark or X based on success."""
    return "[OK]" if success else "[MISSING]"


async def check_env_vars() -> dict[str, bool]:
    """Check which environment variables are configured."""
    print("Checking environment variables...")
    print("-" * 50)

    checks = {
        "SUPABASE_KEY": bool(os.getenv("SUPABASE_KEY")),
        "SUPABASE_URL": bool(os.getenv("SUPABASE_URL")),
        "SUPABASE_ACCESS_TOKEN": bool(os.getenv("SUPABASE_ACCESS_TOKEN")),
        "FARM_TZ": bool(os.getenv("FARM_TZ")),
    }

    required = ["SUPABASE_KEY"]
    optional = ["SUPABASE_URL", "SUPABASE_ACCESS_TOKEN", "FARM_TZ"]

    for var in required:
        status = check_mark(checks[var])
        print(f"  {status} {var} (required)")

    for var in optional:
        status = check_mark(checks[var])
        print(f"  {status} {var} (optional)")

    print()
    return checks


def check_timezone() -> bool:
    """Verify the configured farm timezone is a known IANA zone."""
    try:
        ZoneInfo(settings.farm_tz)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


async def test_store_connection() -> dict[str, bool]:
    """Read one row from each table to confirm the key and row-level access."""
    print("Testing store connection...")
    print("-" * 50)
    print(f"  URL: {settings.supabase_url}")

    results = {}
    for table in TABLES:
        try:
            await client.select_with_retry(table, {"limit": "1"})
            print(f"  [OK] {table}")
            results[table] = True
        except client.StoreError as e:
            print(f"  [FAILED] {table}: {e}")
            results[table] = False

    print()
    return results


async def main() -> None:
    """Run setup checks."""
    print("=" * 50)
    print("Piara Setup")
    print("=" * 50)
    print()

    env_checks = await check_env_vars()
    if not env_checks["SUPABASE_KEY"] and not settings.supabase_key:
        print("ERROR: Missing required environment variable SUPABASE_KEY")
        print()
        print("Create a .env file or set it as an environment variable.")
        return

    tz_ok = check_timezone()
    tables = await test_store_connection()

    print("=" * 50)
    print("Summary")
    print("=" * 50)
    print()

    print(f"  Timezone: {settings.farm_tz}" + ("" if tz_ok else "  (UNKNOWN ZONE)"))
    reachable = [t for t, ok in tables.items() if ok]
    print(f"  Tables:   {len(reachable)}/{len(tables)} readable")

    print()
    if tz_ok and len(reachable) == len(tables):
        print("Setup complete! The store is reachable.")
    else:
        print("Setup incomplete. See errors above.")


def cli() -> None:
    """CLI entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
