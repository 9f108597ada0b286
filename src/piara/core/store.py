"""Persistence collaborator.

The lifecycle engine and the herd helpers only talk to a `Store`. The
production implementation, `SupabaseStore`, maps each call onto one PostgREST
request; each call either succeeds or fails as a unit, and nothing spans
calls (there is no transaction across a read and a later write).
"""

from collections.abc import Sequence
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Protocol

from piara.core.client import NotFoundError, filter_params, mutate, select_one, select_with_retry
from piara.core.models import Boar, Event, EventType, Incident, Sow, SowState

SOWS_TABLE = "cerdas"
EVENTS_TABLE = "eventos"
INCIDENTS_TABLE = "incidencias"
BOARS_TABLE = "verracos"


class Store(Protocol):
    async def read_sow(self, sow_id: str) -> Sow: ...

    async def query_sows(
        self,
        estado: SowState | Sequence[SowState] | None = None,
        search: str | None = None,
        incident_since: datetime | None = None,
        active_only: bool = True,
    ) -> list[Sow]: ...

    async def insert_sow(self, fields: dict) -> Sow: ...

    async def write_sow(self, sow_id: str, fields: dict) -> Sow: ...

    async def read_event(self, event_id: str) -> Event: ...

    async def query_events(
        self,
        sow_id: str,
        tipo_evento: EventType | None = None,
        newest_first: bool = True,
        limit: int | None = None,
    ) -> list[Event]: ...

    async def insert_event(self, event: Event) -> Event: ...

    async def update_event(self, event_id: str, fields: dict) -> Event: ...

    async def query_services(self) -> list[tuple[Event, Sow]]: ...

    async def query_incidents(
        self,
        sow_id: str | None = None,
        since: datetime | None = None,
        resuelta: bool | None = None,
    ) -> list[Incident]: ...

    async def insert_incident(self, fields: dict) -> Incident: ...

    async def update_incident(self, incident_id: str, fields: dict) -> Incident: ...

    async def query_boars(self, active_only: bool = True) -> list[Boar]: ...

    async def read_boar(self, boar_id: str) -> Boar: ...


def to_columns(fields: dict) -> dict:
    """Serialize enums, dates and nested records for a JSON write."""
    columns = {}
    for key, value in fields.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, (date, datetime)):
            value = value.isoformat()
        elif is_dataclass(value):
            value = asdict(value)
        columns[key] = value
    return columns


def _quoted_pattern(search: str) -> str:
    """`*search*` as a double-quoted PostgREST value, so commas and parentheses stay literal."""
    escaped = search.replace("\\", "\\\\").replace('"', '\\"')
    return f'"*{escaped}*"'


def _only_row(rows: list[dict], table: str, row_id: str) -> dict:
    if not rows:
        raise NotFoundError(f"No {table} row with id={row_id}")
    return rows[0]


class SupabaseStore:
    """`Store` backed by the Supabase PostgREST API."""

    # -------------------------------------------------------------------------
    # Sows
    # -------------------------------------------------------------------------

    async def read_sow(self, sow_id: str) -> Sow:
        return Sow.from_row(await select_one(SOWS_TABLE, {"id": sow_id}))

    async def query_sows(
        self,
        estado: SowState | Sequence[SowState] | None = None,
        search: str | None = None,
        incident_since: datetime | None = None,
        active_only: bool = True,
    ) -> list[Sow]:
        filters = {}
        if active_only:
            filters["activa"] = True
        if estado is not None:
            filters["estado"] = estado if isinstance(estado, SowState) else list(estado)

        params = filter_params(filters)
        params["order"] = "codigo.asc"
        if search:
            pattern = _quoted_pattern(search)
            params["or"] = f"(codigo.ilike.{pattern},nombre.ilike.{pattern})"
        if incident_since:
            params["ultima_incidencia_fecha"] = f"gte.{incident_since.isoformat()}"

        rows = await select_with_retry(SOWS_TABLE, params)
        return [Sow.from_row(r) for r in rows]

    async def insert_sow(self, fields: dict) -> Sow:
        rows = await mutate("POST", SOWS_TABLE, json=to_columns(fields))
        return Sow.from_row(rows[0])

    async def write_sow(self, sow_id: str, fields: dict) -> Sow:
        rows = await mutate("PATCH", SOWS_TABLE, params=filter_params({"id": sow_id}), json=to_columns(fields))
        return Sow.from_row(_only_row(rows, SOWS_TABLE, sow_id))

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    async def read_event(self, event_id: str) -> Event:
        return Event.from_row(await select_one(EVENTS_TABLE, {"id": event_id}))

    async def query_events(
        self,
        sow_id: str,
        tipo_evento: EventType | None = None,
        newest_first: bool = True,
        limit: int | None = None,
    ) -> list[Event]:
        filters = {"cerda_id": sow_id}
        if tipo_evento is not None:
            filters["tipo_evento"] = tipo_evento

        direction = "desc" if newest_first else "asc"
        params = filter_params(filters)
        params["order"] = f"fecha.{direction},created_at.{direction}"
        if limit is not None:
            params["limit"] = str(limit)

        rows = await select_with_retry(EVENTS_TABLE, params)
        return [Event.from_row(r) for r in rows]

    async def insert_event(self, event: Event) -> Event:
        rows = await mutate("POST", EVENTS_TABLE, json=event.to_row())
        return Event.from_row(rows[0])

    async def update_event(self, event_id: str, fields: dict) -> Event:
        rows = await mutate("PATCH", EVENTS_TABLE, params=filter_params({"id": event_id}), json=to_columns(fields))
        return Event.from_row(_only_row(rows, EVENTS_TABLE, event_id))

    async def query_services(self) -> list[tuple[Event, Sow]]:
        """All service events of active sows, each with its sow embedded."""
        params = filter_params({"tipo_evento": EventType.CUBRICION, "cerdas.activa": True})
        params["select"] = "*,cerdas!inner(*)"
        params["order"] = "fecha.desc"

        rows = await select_with_retry(EVENTS_TABLE, params)
        return [(Event.from_row(r), Sow.from_row(r["cerdas"])) for r in rows]

    # -------------------------------------------------------------------------
    # Incidents
    # -------------------------------------------------------------------------

    async def query_incidents(
        self,
        sow_id: str | None = None,
        since: datetime | None = None,
        resuelta: bool | None = None,
    ) -> list[Incident]:
        filters = {}
        if sow_id:
            filters["cerda_id"] = sow_id
        if resuelta is not None:
            filters["resuelta"] = resuelta

        params = filter_params(filters)
        params["select"] = "*,cerdas(codigo,nombre)"
        params["order"] = "fecha_hora.desc"
        if since:
            params["fecha_hora"] = f"gte.{since.isoformat()}"

        rows = await select_with_retry(INCIDENTS_TABLE, params)
        return [Incident.from_row(r) for r in rows]

    async def insert_incident(self, fields: dict) -> Incident:
        rows = await mutate("POST", INCIDENTS_TABLE, json=to_columns(fields))
        return Incident.from_row(rows[0])

    async def update_incident(self, incident_id: str, fields: dict) -> Incident:
        rows = await mutate(
            "PATCH", INCIDENTS_TABLE, params=filter_params({"id": incident_id}), json=to_columns(fields)
        )
        return Incident.from_row(_only_row(rows, INCIDENTS_TABLE, incident_id))

    # -------------------------------------------------------------------------
    # Boars
    # -------------------------------------------------------------------------

    async def query_boars(self, active_only: bool = True) -> list[Boar]:
        params = filter_params({"activo": True} if active_only else {})
        params["order"] = "codigo.asc"
        rows = await select_with_retry(BOARS_TABLE, params)
        return [Boar.from_row(r) for r in rows]

    async def read_boar(self, boar_id: str) -> Boar:
        return Boar.from_row(await select_one(BOARS_TABLE, {"id": boar_id}))
