"""
Running reproductive averages across parities (`medios_historicos`).

Each weaning folds one litter into the sow's lifetime means. With `n` the
ordinal of the farrowing being weaned (the sow's current `paridad`):

    mean_n = round10((mean_{n-1} * (n - 1) + value) / n)

for both born-alive and weaned counts, and viability is the weaned mean as a
percentage of the born-alive mean, rounded to a whole number. The first litter
(or a sow with no averages yet) initializes the means from its raw counts.

Rounding is half-up, as the farm has always shown these figures, so
round10(0.25) is 0.3 and not Python's banker's 0.2.

Because each step rounds, the stored means are a function of the whole
sequence of weanings, not just their totals. `replay_history()` rebuilds them
from the event log by folding the weaned litters in order.
"""

import math
from collections.abc import Iterable

from piara.core.models import Event, EventType, FarrowingPayload, HistoricalAverages


def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves away from zero for x >= 0."""
    return math.floor(x + 0.5)


def round10(x: float) -> float:
    """Round to one decimal place, half-up."""
    return round_half_up(x * 10) / 10


def viability(weaned: float, born_alive: float) -> int:
    """Weaned as a whole-number percentage of born alive (0 when nothing was born alive)."""
    if born_alive <= 0:
        return 0
    return round_half_up(100 * weaned / born_alive)


def fold_litter(
    n: int,
    nacidos_vivos: int,
    destetados: int,
    existing: HistoricalAverages | None,
) -> HistoricalAverages:
    """
    Fold one weaned litter into the running averages.

    Args:
        n: Ordinal of the farrowing that produced the litter (sow's paridad, >= 1)
        nacidos_vivos: Born alive in that farrowing
        destetados: Piglets weaned from it
        existing: Current averages, None if the sow was never weaned

    Returns:
        The new averages
    """
    if n <= 1 or existing is None:
        return HistoricalAverages(
            nacidos_vivos=nacidos_vivos,
            destetados=destetados,
            viabilidad=viability(destetados, nacidos_vivos),
        )

    mean_born = round10((existing.nacidos_vivos * (n - 1) + nacidos_vivos) / n)
    mean_weaned = round10((existing.destetados * (n - 1) + destetados) / n)
    return HistoricalAverages(
        nacidos_vivos=mean_born,
        destetados=mean_weaned,
        viabilidad=viability(mean_weaned, mean_born),
    )


def _chronological(events: Iterable[Event]) -> list[Event]:
    return sorted(events, key=lambda e: (e.fecha, e.created_at is None, e.created_at or 0))


def replay_history(events: Iterable[Event]) -> tuple[int, HistoricalAverages | None]:
    """
    Recompute `paridad` and `medios_historicos` from a sow's full event log.

    Farrowings are numbered in date order. Each weaning is folded with the
    ordinal of the farrowing it links to (`parto_id`); a weaning recorded
    before links existed falls back to the latest earlier farrowing.

    Returns:
        Tuple of (paridad, averages or None if never weaned)
    """
    ordered = _chronological(events)

    ordinals: dict[str, int] = {}
    farrowings: dict[str, FarrowingPayload] = {}
    paridad = 0
    latest_farrowing_id = None
    averages = None

    for event in ordered:
        if event.tipo_evento == EventType.PARTO:
            paridad += 1
            ordinals[event.id] = paridad
            farrowings[event.id] = event.datos
            latest_farrowing_id = event.id

        elif event.tipo_evento == EventType.DESTETE:
            farrowing_id = event.datos.parto_id or latest_farrowing_id
            if farrowing_id not in farrowings:
                # Weaning with no farrowing before it contributes nothing
                continue
            averages = fold_litter(
                ordinals[farrowing_id],
                farrowings[farrowing_id].nacidos_vivos,
                event.datos.lechones_destetados,
                averages,
            )

    return paridad, averages
