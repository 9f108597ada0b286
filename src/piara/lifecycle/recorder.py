"""Recording lifecycle events against the store.

Each operation is one sequential pipeline: validate input, compute the derived
sow fields, then write. Input is checked before anything is written.

The writes are separate store calls with no transaction around them. If a
later write fails after an earlier one committed, the operation raises
`PartialWriteError` listing what did commit; `rebuild_sow()` re-derives the
sow's cached `paridad` and `medios_historicos` from the event log afterwards.
"""

from dataclasses import dataclass, replace
from datetime import date

from piara.core.client import StoreError
from piara.core.config import get_farm_today
from piara.core.models import (
    MAX_NOTES_LENGTH,
    Boar,
    Event,
    EventType,
    FarrowingPayload,
    NotesPayload,
    ServicePayload,
    Sow,
    WeaningPayload,
    parse_date,
    payload_to_dict,
)
from piara.core.store import Store
from piara.lifecycle.averages import fold_litter, replay_history
from piara.lifecycle.state import LifecycleError, require_farrowing, transition

# Event kinds that are only logged; the state machine has no transition for them
LOG_ONLY_EVENTS = (EventType.GESTACION, EventType.ECOGRAFIA, EventType.BAJA)


# =============================================================================
# Exceptions
# =============================================================================


class InvalidInputError(LifecycleError, ValueError):
    """Input rejected before any write (negative counts, notes too long)."""

    pass


class PartialWriteError(LifecycleError):
    """A multi-write operation failed after some of its writes committed."""

    def __init__(self, sow_codigo: str, completed: list[str], failed_step: str, cause: Exception):
        self.sow_codigo = sow_codigo
        self.completed = completed
        self.failed_step = failed_step
        self.cause = cause
        super().__init__(
            f"Sow {sow_codigo}: '{failed_step}' failed after {', '.join(completed)} committed "
            f"({cause}). Run `piara rebuild {sow_codigo}` once the store is reachable."
        )


@dataclass
class Recorded:
    """Outcome of recording an event: the stored event and the sow after it."""

    event: Event
    sow: Sow


# =============================================================================
# Validation
# =============================================================================


def _check_count(name: str, value: int) -> int:
    if value is None or value < 0:
        raise InvalidInputError(f"{name} cannot be negative")
    return value


def _clean_notes(notas: str | None) -> str | None:
    if notas is None:
        return None
    notas = notas.strip()
    if len(notas) > MAX_NOTES_LENGTH:
        raise InvalidInputError(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")
    return notas or None


def parse_input_date(fecha: date | str) -> date:
    """Parse a user-supplied date, rejecting anything that is not YYYY-MM-DD."""
    try:
        return parse_date(fecha)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Invalid date: {fecha}") from e


def _event_date(fecha: date | str | None) -> date:
    return parse_input_date(fecha) if fecha else get_farm_today()


# =============================================================================
# Recording
# =============================================================================


async def _insert_and_update(store: Store, sow: Sow, event: Event) -> Recorded:
    """Insert the event, then apply the state machine's changes to the sow."""
    changes = transition(sow, event.tipo_evento)
    event = await store.insert_event(event)
    if not changes:
        return Recorded(event, sow)

    try:
        sow = await store.write_sow(sow.id, changes)
    except StoreError as e:
        raise PartialWriteError(sow.codigo, ["insert event"], "update sow", e) from e
    return Recorded(event, sow)


async def record_service(
    store: Store,
    sow_id: str,
    boar: Boar | None = None,
    fecha: date | str | None = None,
    notas: str | None = None,
    usuario_id: str | None = None,
) -> Recorded:
    """Record a service (cubrición); the sow becomes `cubierta`."""
    notas = _clean_notes(notas)
    sow = await store.read_sow(sow_id)

    payload = ServicePayload()
    if boar is not None:
        payload = ServicePayload(verraco_id=boar.id, verraco_codigo=boar.codigo, verraco_nombre=boar.nombre)

    event = Event(sow.id, EventType.CUBRICION, _event_date(fecha), payload, notas, usuario_id=usuario_id)
    return await _insert_and_update(store, sow, event)


async def record_farrowing(
    store: Store,
    sow_id: str,
    nacidos_vivos: int,
    nacidos_muertos: int = 0,
    momificados: int = 0,
    fecha: date | str | None = None,
    notas: str | None = None,
    usuario_id: str | None = None,
) -> Recorded:
    """Record a farrowing (parto); the sow becomes `parto` and its parity goes up by one."""
    payload = FarrowingPayload(
        nacidos_vivos=_check_count("Born alive", nacidos_vivos),
        nacidos_muertos=_check_count("Stillborn", nacidos_muertos),
        momificados=_check_count("Mummified", momificados),
    )
    notas = _clean_notes(notas)
    sow = await store.read_sow(sow_id)

    event = Event(sow.id, EventType.PARTO, _event_date(fecha), payload, notas, usuario_id=usuario_id)
    return await _insert_and_update(store, sow, event)


async def record_weaning(
    store: Store,
    sow_id: str,
    destetados: int,
    peso_medio_kg: float | None = None,
    fecha: date | str | None = None,
    notas: str | None = None,
    usuario_id: str | None = None,
) -> Recorded:
    """
    Record a weaning (destete) of the sow's latest litter.

    Steps, each a separate store call:
    1. Insert the weaning event, linked to the latest farrowing
    2. Back-annotate that farrowing with the weaned count
    3. Write the sow: `estado = destete` and the refolded averages

    Raises:
        InvalidInputError: Negative counts or weight, notes too long
        NoFarrowingOnRecord: The sow has never farrowed (nothing is written)
        PartialWriteError: Step 2 or 3 failed after step 1 committed
    """
    _check_count("Weaned", destetados)
    if peso_medio_kg is not None and peso_medio_kg < 0:
        raise InvalidInputError("Average weight cannot be negative")
    notas = _clean_notes(notas)

    sow = await store.read_sow(sow_id)
    latest = await store.query_events(sow.id, EventType.PARTO, newest_first=True, limit=1)
    farrowing = require_farrowing(sow, latest[0] if latest else None)

    changes = transition(sow, EventType.DESTETE)
    changes["medios_historicos"] = fold_litter(
        max(sow.paridad, 1),
        farrowing.datos.nacidos_vivos,
        destetados,
        sow.medios_historicos,
    )

    payload = WeaningPayload(lechones_destetados=destetados, parto_id=farrowing.id, peso_medio_kg=peso_medio_kg)
    weaning = await store.insert_event(
        Event(sow.id, EventType.DESTETE, _event_date(fecha), payload, notas, usuario_id=usuario_id)
    )

    completed = ["insert weaning event"]
    step = "annotate farrowing"
    try:
        annotated = replace(farrowing.datos, destetados=destetados, destete_id=weaning.id)
        await store.update_event(farrowing.id, {"datos": payload_to_dict(annotated)})
        completed.append(step)

        step = "update sow"
        sow = await store.write_sow(sow.id, changes)
    except StoreError as e:
        raise PartialWriteError(sow.codigo, completed, step, e) from e

    return Recorded(weaning, sow)


async def record_event(
    store: Store,
    sow_id: str,
    tipo_evento: EventType,
    valores: dict | None = None,
    fecha: date | str | None = None,
    notas: str | None = None,
    usuario_id: str | None = None,
) -> Recorded:
    """Log a gestation, ultrasound or cull event. The sow's state is not changed."""
    if tipo_evento not in LOG_ONLY_EVENTS:
        raise InvalidInputError(f"{tipo_evento.value} events have their own recording operation")
    notas = _clean_notes(notas)
    sow = await store.read_sow(sow_id)

    event = Event(sow.id, tipo_evento, _event_date(fecha), NotesPayload(valores or {}), notas, usuario_id=usuario_id)
    return await _insert_and_update(store, sow, event)


async def edit_event(
    store: Store,
    event_id: str,
    fecha: date | str | None = None,
    notas: str | None = None,
) -> Event:
    """
    Change an event's date and/or notes. Payloads are not editable.

    Pass `notas=""` to clear the notes; None leaves them as they are.
    """
    fields = {}
    if fecha is not None:
        fields["fecha"] = parse_input_date(fecha)
    if notas is not None:
        fields["notas"] = _clean_notes(notas)
    if not fields:
        raise InvalidInputError("Nothing to update: give a date or notes")

    return await store.update_event(event_id, fields)


async def rebuild_sow(store: Store, sow_id: str) -> Sow:
    """
    Re-derive `paridad` and `medios_historicos` from the sow's event log and store them.

    Used to repair a sow after a `PartialWriteError`. `estado` is left alone.
    """
    events = await store.query_events(sow_id, newest_first=False)
    paridad, averages = replay_history(events)
    return await store.write_sow(sow_id, {"paridad": paridad, "medios_historicos": averages})
