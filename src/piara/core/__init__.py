"""Core module - configuration, records and the store client."""

from piara.core import client, models
from piara.core.client import (
    ConstraintViolationError,
    NotFoundError,
    RetryableError,
    StoreError,
    SupabaseAPIError,
    mutate,
    rest,
    select_with_retry,
)
from piara.core.config import get_farm_today, log_error, settings
from piara.core.models import (
    Boar,
    Event,
    EventType,
    FarrowingPayload,
    HistoricalAverages,
    Incident,
    NotesPayload,
    ServicePayload,
    Sow,
    SowState,
    WeaningPayload,
)
from piara.core.store import Store, SupabaseStore

__all__ = [
    "client",
    "models",
    "settings",
    "get_farm_today",
    "log_error",
    "rest",
    "select_with_retry",
    "mutate",
    "StoreError",
    "RetryableError",
    "SupabaseAPIError",
    "ConstraintViolationError",
    "NotFoundError",
    "Store",
    "SupabaseStore",
    # Records
    "Sow",
    "SowState",
    "Event",
    "EventType",
    "HistoricalAverages",
    "ServicePayload",
    "FarrowingPayload",
    "WeaningPayload",
    "NotesPayload",
    "Incident",
    "Boar",
]
