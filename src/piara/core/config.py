import sys
from datetime import date, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

# .env file is in the project root (parent of src/)
# Only use if it exists (CI uses environment variables directly)
# Path: core/config.py -> piara -> src -> project root -> .env
_ENV_FILE = Path(__file__).parent.parent.parent.parent / ".env"
_ENV_FILE = _ENV_FILE if _ENV_FILE.exists() else None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Supabase project (PostgREST lives under {supabase_url}/rest/v1)
    # Default matches the local stack started by `supabase start`
    supabase_url: str = "http://localhost:54321"
    supabase_key: str | None = None  # anon or service_role key
    supabase_access_token: str | None = None  # user JWT, for row-level security

    # Farm timezone (IANA format, e.g., "Europe/Madrid")
    # Decides what "today" is when an event date is not given
    farm_tz: str = "UTC"

    # HTTP timeout for store requests (seconds)
    request_timeout: float = 30.0

    # Print full error context to stderr
    debug: bool = False


settings = Settings()


def log_error(context: str, error: BaseException | str) -> None:
    """Print an error with its context to stderr when debug output is on."""
    if settings.debug:
        print(f"[{context}] {error!r}", file=sys.stderr)


def get_farm_today() -> date:
    """Today's date in the farm's timezone."""
    return datetime.now(ZoneInfo(settings.farm_tz)).date()
