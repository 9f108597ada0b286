"""Sow registry helpers.

Provides functions to register, find, list and administer sows:
- Registration (new sows start `en_servicio` with parity 0)
- Lookup by id or herd code
- Filtered listing of the active herd
- Administrative override of state and parity
- Deactivation (sows are never deleted)
- Event history
"""

import uuid
from datetime import UTC, date, datetime, timedelta

from piara.core.client import NotFoundError
from piara.core.config import get_farm_today
from piara.core.models import Event, Sow, SowState
from piara.core.store import Store
from piara.lifecycle.recorder import InvalidInputError, parse_input_date
from piara.lifecycle.state import INITIAL_STATE

# A sow counts as having recent incidents if one was logged within this window
RECENT_INCIDENT_DAYS = 30

# Fields an administrator may overwrite directly
EDITABLE_FIELDS = ("codigo", "nombre", "origen", "nave", "fecha_nacimiento", "paridad", "estado")


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _is_uuid(value: str) -> bool:
    # `id` is a uuid column; PostgREST rejects anything else with 22P02
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


async def find_sow(store: Store, identifier: str) -> Sow:
    """
    Find a sow by id or herd code (case-insensitive).

    Args:
        store: Persistence collaborator
        identifier: Sow id or `codigo`

    Returns:
        The sow, active or not

    Raises:
        NotFoundError: If nothing matches
    """
    if _is_uuid(identifier):
        try:
            return await store.read_sow(identifier)
        except NotFoundError:
            pass

    candidates = await store.query_sows(search=identifier, active_only=False)
    for sow in candidates:
        if sow.codigo.lower() == identifier.lower():
            return sow

    raise NotFoundError(f"No sow found matching '{identifier}'")


async def list_sows(
    store: Store,
    estado: SowState | None = None,
    search: str | None = None,
    with_recent_incidents: bool = False,
    now: datetime | None = None,
) -> list[Sow]:
    """
    List active sows ordered by code.

    Args:
        store: Persistence collaborator
        estado: Only sows in this state
        search: Substring of code or name
        with_recent_incidents: Only sows with an incident in the last 30 days
        now: Reference time for the incident window (default: now, UTC)

    Returns:
        List of sows
    """
    incident_since = None
    if with_recent_incidents:
        incident_since = (now or datetime.now(UTC)) - timedelta(days=RECENT_INCIDENT_DAYS)

    return await store.query_sows(estado=estado, search=_blank_to_none(search), incident_since=incident_since)


async def register_sow(
    store: Store,
    codigo: str,
    nombre: str | None = None,
    origen: str | None = None,
    nave: str | None = None,
    fecha_nacimiento: date | str | None = None,
) -> Sow:
    """
    Register a new sow.

    Raises:
        InvalidInputError: If the code is blank
        ConstraintViolationError: If the code is already taken
    """
    codigo = _blank_to_none(codigo)
    if not codigo:
        raise InvalidInputError("A sow code is required")

    fields = {
        "codigo": codigo,
        "nombre": _blank_to_none(nombre),
        "origen": _blank_to_none(origen),
        "nave": _blank_to_none(nave),
        "estado": INITIAL_STATE,
        "paridad": 0,
        "activa": True,
        "fecha_alta": get_farm_today(),
    }
    if fecha_nacimiento:
        fields["fecha_nacimiento"] = parse_input_date(fecha_nacimiento)

    return await store.insert_sow(fields)


async def update_sow(store: Store, sow_id: str, **changes) -> Sow:
    """
    Administrative override of a sow's details, state or parity.

    This is the only path into `gestante`, `seca` or `baja`, and the only way
    to correct `paridad` by hand (`rebuild_sow` re-derives it from events).

    Raises:
        InvalidInputError: Unknown field, blank code, negative parity
        ConstraintViolationError: If the new code is already taken
    """
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise InvalidInputError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")
    if not changes:
        raise InvalidInputError("Nothing to update")

    fields = dict(changes)
    if "codigo" in fields:
        fields["codigo"] = _blank_to_none(fields["codigo"])
        if not fields["codigo"]:
            raise InvalidInputError("A sow code is required")
    for key in ("nombre", "origen", "nave"):
        if key in fields:
            fields[key] = _blank_to_none(fields[key])
    if "paridad" in fields:
        if fields["paridad"] is None or fields["paridad"] < 0:
            raise InvalidInputError("Parity cannot be negative")
    if "estado" in fields:
        fields["estado"] = SowState(fields["estado"])
    if fields.get("fecha_nacimiento"):
        fields["fecha_nacimiento"] = parse_input_date(fields["fecha_nacimiento"])

    return await store.write_sow(sow_id, fields)


async def deactivate_sow(store: Store, sow_id: str) -> Sow:
    """Take a sow out of the active herd. Its records are kept."""
    return await store.write_sow(sow_id, {"activa": False})


async def sow_history(store: Store, sow_id: str) -> list[Event]:
    """All events for a sow, newest first."""
    return await store.query_events(sow_id, newest_first=True)
