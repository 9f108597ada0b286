"""Reproductive lifecycle engine - state machine, averages, date projections."""

from piara.lifecycle import averages, projection, recorder, state
from piara.lifecycle.averages import fold_litter, replay_history, round10, viability
from piara.lifecycle.projection import (
    CHECKUP_DAYS,
    GESTATION_DAYS,
    ScheduledEvent,
    checkups_due,
    expected_checkup_date,
    expected_farrowing_date,
    farrowings_due,
)
from piara.lifecycle.recorder import (
    InvalidInputError,
    PartialWriteError,
    Recorded,
    edit_event,
    parse_input_date,
    rebuild_sow,
    record_event,
    record_farrowing,
    record_service,
    record_weaning,
)
from piara.lifecycle.state import LifecycleError, NoFarrowingOnRecord, next_state, transition

__all__ = [
    "averages",
    "projection",
    "recorder",
    "state",
    # State machine
    "next_state",
    "transition",
    "LifecycleError",
    "NoFarrowingOnRecord",
    # Averages
    "fold_litter",
    "replay_history",
    "round10",
    "viability",
    # Projections
    "GESTATION_DAYS",
    "CHECKUP_DAYS",
    "ScheduledEvent",
    "expected_farrowing_date",
    "expected_checkup_date",
    "farrowings_due",
    "checkups_due",
    # Recording
    "Recorded",
    "InvalidInputError",
    "PartialWriteError",
    "record_service",
    "record_farrowing",
    "record_weaning",
    "record_event",
    "edit_event",
    "parse_input_date",
    "rebuild_sow",
]
