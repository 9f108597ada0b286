"""Breeding sow record-keeping.

This package tracks each sow's reproductive state, records lifecycle events
(service, farrowing, weaning), keeps an incident log and aggregates herd
statistics, against a Supabase (PostgREST) store.

Subpackages:
- piara.core: Configuration, records and the store client
- piara.lifecycle: State machine, running averages, date projections, event recording
- piara.data: Herd registry, incidents, boars, dashboard and agenda
- piara.cli: Command-line tools
"""

# Re-export common items for convenience
from piara.core import (
    Event,
    EventType,
    Sow,
    SowState,
    SupabaseStore,
    settings,
)

__all__ = [
    "settings",
    "SupabaseStore",
    "Sow",
    "SowState",
    "Event",
    "EventType",
]

__version__ = "0.1.0"
