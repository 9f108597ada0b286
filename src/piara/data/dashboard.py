"""Herd dashboard statistics and the day agenda.

Both are recomputed in full from the store on every call.
"""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

from piara.core.config import get_farm_today
from piara.core.models import Incident, Sow, SowState
from piara.core.store import Store
from piara.lifecycle.averages import round_half_up
from piara.lifecycle.projection import ScheduledEvent, checkups_due, farrowings_due
from piara.lifecycle.recorder import parse_input_date

# A dry sow whose record has not changed for this long is flagged
PROLONGED_DRY_DAYS = 60


@dataclass
class HerdStats:
    total_sows: int
    by_state: dict[str, int] = field(default_factory=dict)
    open_incidents: int = 0
    incidents_last_24h: int = 0
    mean_born_alive: float = 0.0
    mean_weaned: float = 0.0
    mean_viability: float = 0.0
    prolonged_dry: int = 0


@dataclass
class Agenda:
    """What needs attention on a given day."""

    day: date
    farrowings: list[ScheduledEvent]
    checkups: list[ScheduledEvent]
    ready_for_service: list[Sow]
    pending_weaning: list[Sow]


def _mean1(total: float, count: int) -> float:
    """Mean to one decimal place, 0 for an empty set."""
    if count == 0:
        return 0.0
    return round_half_up(total / count * 10) / 10


def herd_stats(sows: Iterable[Sow], open_incidents: Iterable[Incident], now: datetime | None = None) -> HerdStats:
    """
    Aggregate statistics over the active herd.

    Means are taken over sows whose averages show at least one born-alive
    piglet. Prolonged-dry sows are `seca` sows not updated for 60 days.

    Args:
        sows: Active sows
        open_incidents: Unresolved incidents
        now: Reference time (default: now, UTC)

    Returns:
        HerdStats
    """
    now = now or datetime.now(UTC)
    dry_cutoff = now - timedelta(days=PROLONGED_DRY_DAYS)
    day_ago = now - timedelta(hours=24)

    sows = list(sows)
    open_incidents = list(open_incidents)

    by_state: dict[str, int] = {}
    born_total = weaned_total = viability_total = 0.0
    with_averages = 0
    prolonged_dry = 0

    for sow in sows:
        state = sow.estado.value
        by_state[state] = by_state.get(state, 0) + 1

        averages = sow.medios_historicos
        if averages and averages.nacidos_vivos > 0:
            born_total += averages.nacidos_vivos
            weaned_total += averages.destetados
            viability_total += averages.viabilidad
            with_averages += 1

        if sow.estado == SowState.SECA and sow.updated_at and sow.updated_at < dry_cutoff:
            prolonged_dry += 1

    recent = [i for i in open_incidents if i.fecha_hora and i.fecha_hora >= day_ago]

    return HerdStats(
        total_sows=len(sows),
        by_state=by_state,
        open_incidents=len(open_incidents),
        incidents_last_24h=len(recent),
        mean_born_alive=_mean1(born_total, with_averages),
        mean_weaned=_mean1(weaned_total, with_averages),
        mean_viability=_mean1(viability_total, with_averages),
        prolonged_dry=prolonged_dry,
    )


async def get_dashboard_stats(store: Store, now: datetime | None = None) -> HerdStats:
    """Fetch the active herd and open incidents and aggregate them."""
    sows, incidents = await asyncio.gather(
        store.query_sows(),
        store.query_incidents(resuelta=False),
    )
    return herd_stats(sows, incidents, now)


async def get_agenda(store: Store, day: date | str | None = None) -> Agenda:
    """
    Build the agenda for a day (default: today on the farm).

    Includes expected farrowings (±3 days), pregnancy checks due (±2 days),
    sows ready to be served and sows waiting to be weaned.
    """
    day = parse_input_date(day) if day else get_farm_today()

    services, ready, farrowed = await asyncio.gather(
        store.query_services(),
        store.query_sows(estado=SowState.EN_SERVICIO),
        store.query_sows(estado=SowState.PARTO),
    )

    return Agenda(
        day=day,
        farrowings=sorted(farrowings_due(services, day), key=lambda s: s.expected_date),
        checkups=sorted(checkups_due(services, day), key=lambda s: s.expected_date),
        ready_for_service=ready,
        pending_weaning=farrowed,
    )
