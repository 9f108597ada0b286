"""Sow state machine.

Recording an event maps straight to the sow's new `estado`:

    cubricion -> cubierta
    parto     -> parto     (paridad += 1)
    destete   -> destete   (medios_historicos recomputed)

The mapping does not look at the current state; weaning a sow that was never
served is not blocked here. The only guard is that a weaning needs a farrowing
on record. Other event kinds (gestacion, ecografia, baja) are logged without a
state change; moves into `gestante`, `seca` or `baja` and out of `destete`
are administrative overrides.
"""

from piara.core.models import Event, EventType, Sow, SowState

TRANSITIONS: dict[EventType, SowState] = {
    EventType.CUBRICION: SowState.CUBIERTA,
    EventType.PARTO: SowState.PARTO,
    EventType.DESTETE: SowState.DESTETE,
}

# State assigned at registration
INITIAL_STATE = SowState.EN_SERVICIO


# =============================================================================
# Exceptions
# =============================================================================


class LifecycleError(Exception):
    """Base class for failures raised by the lifecycle engine."""

    pass


class NoFarrowingOnRecord(LifecycleError):
    """A weaning was requested for a sow with no farrowing event."""

    def __init__(self, sow_codigo: str):
        self.sow_codigo = sow_codigo
        super().__init__(f"Sow {sow_codigo} has no farrowing on record to wean")


# =============================================================================
# Transitions
# =============================================================================


def next_state(tipo_evento: EventType) -> SowState | None:
    """State a sow moves to when this event is recorded, or None for no change."""
    return TRANSITIONS.get(tipo_evento)


def transition(sow: Sow, tipo_evento: EventType) -> dict:
    """
    Sow fields changed by recording an event, regardless of the sow's prior state.

    Args:
        sow: The sow as currently stored
        tipo_evento: Type of the event being recorded

    Returns:
        Partial field dict for the sow write (empty when nothing changes).
        Averages for weanings are computed separately, see `averages.fold_litter`.
    """
    new_state = next_state(tipo_evento)
    if new_state is None:
        return {}

    changes = {"estado": new_state}
    if tipo_evento == EventType.PARTO:
        changes["paridad"] = sow.paridad + 1
    return changes


def require_farrowing(sow: Sow, farrowing: Event | None) -> Event:
    """Return the farrowing a weaning links to, or fail if there is none."""
    if farrowing is None or farrowing.tipo_evento != EventType.PARTO:
        raise NoFarrowingOnRecord(sow.codigo)
    return farrowing
