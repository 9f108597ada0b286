"""Incident log: free-text observations about individual sows."""

from datetime import UTC, datetime, timedelta

from piara.core.models import Incident
from piara.core.store import Store
from piara.lifecycle.recorder import InvalidInputError


async def list_incidents(
    store: Store,
    sow_id: str | None = None,
    days: int | None = None,
    open_only: bool = False,
    now: datetime | None = None,
) -> list[Incident]:
    """
    List incidents, newest first.

    Args:
        store: Persistence collaborator
        sow_id: Only this sow's incidents
        days: Only incidents from the last N days
        open_only: Skip resolved incidents
        now: Reference time for `days` (default: now, UTC)
    """
    since = None
    if days is not None:
        since = (now or datetime.now(UTC)) - timedelta(days=days)

    return await store.query_incidents(sow_id=sow_id, since=since, resuelta=False if open_only else None)


async def report_incident(
    store: Store,
    sow_id: str,
    texto: str,
    usuario_id: str | None = None,
    fecha_hora: datetime | None = None,
) -> Incident:
    """Log a new, unresolved incident for a sow."""
    texto = (texto or "").strip()
    if not texto:
        raise InvalidInputError("An incident needs a description")

    fields = {
        "cerda_id": sow_id,
        "texto": texto,
        "resuelta": False,
        "fecha_hora": fecha_hora or datetime.now(UTC),
    }
    if usuario_id:
        fields["usuario_id"] = usuario_id
    return await store.insert_incident(fields)


async def resolve_incident(store: Store, incident_id: str, resuelta: bool = True) -> Incident:
    """Mark an incident resolved (or reopen it with `resuelta=False`)."""
    return await store.update_incident(incident_id, {"resuelta": resuelta})
