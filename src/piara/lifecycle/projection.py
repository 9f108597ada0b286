"""Expected farrowing and pregnancy-check dates projected from service events.

A sow served on day S is expected to farrow on S + 114 and to be checked for
pregnancy (ultrasound) on S + 21. "What is due on day D" matches a service
when the projected date lies within a window around D:

    farrowing: |S + 114 - D| <= 3 days   (7-day window)
    checkup:   |S + 21 - D|  <= 2 days   (5-day window, sow still `cubierta`)

The matchers are generators over (service event, sow) pairs that the caller
has already restricted to active sows. They do not deduplicate; a sow with
two qualifying services yields two matches.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date, timedelta

from piara.core.models import Event, Sow, SowState, parse_date

GESTATION_DAYS = 114
CHECKUP_DAYS = 21

FARROWING_WINDOW_DAYS = 3
CHECKUP_WINDOW_DAYS = 2


@dataclass
class ScheduledEvent:
    """A projected event for one sow, relative to the queried day."""

    sow: Sow
    service: Event
    expected_date: date
    days_until: int  # negative when the expected date has passed

    @property
    def when(self) -> str:
        if self.days_until == 0:
            return "today"
        if self.days_until > 0:
            return f"in {self.days_until} days"
        return f"{-self.days_until} days ago"


def expected_farrowing_date(service_date: date | str) -> date:
    """Expected farrowing: service date plus the gestation length."""
    return parse_date(service_date) + timedelta(days=GESTATION_DAYS)


def expected_checkup_date(service_date: date | str) -> date:
    """Expected pregnancy check: 21 days after service."""
    return parse_date(service_date) + timedelta(days=CHECKUP_DAYS)


def _within(expected: date, day: date, window_days: int) -> bool:
    return abs((expected - day).days) <= window_days


def farrowings_due(services: Iterable[tuple[Event, Sow]], day: date | str) -> Iterator[ScheduledEvent]:
    """Yield services whose expected farrowing falls within 3 days of `day`."""
    day = parse_date(day)
    for service, sow in services:
        expected = expected_farrowing_date(service.fecha)
        if _within(expected, day, FARROWING_WINDOW_DAYS):
            yield ScheduledEvent(sow, service, expected, (expected - day).days)


def checkups_due(services: Iterable[tuple[Event, Sow]], day: date | str) -> Iterator[ScheduledEvent]:
    """Yield services of still-`cubierta` sows whose pregnancy check falls within 2 days of `day`."""
    day = parse_date(day)
    for service, sow in services:
        if sow.estado != SowState.CUBIERTA:
            continue
        expected = expected_checkup_date(service.fecha)
        if _within(expected, day, CHECKUP_WINDOW_DAYS):
            yield ScheduledEvent(sow, service, expected, (expected - day).days)
