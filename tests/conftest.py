"""Shared test fixtures."""

import itertools
import os
import sys
import uuid
from dataclasses import replace
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

import pytest
import respx

# Settings are read at import time; point them at a fake project before piara loads
os.environ["SUPABASE_URL"] = "https://farm.supabase.co"
os.environ["SUPABASE_KEY"] = "test-anon-key"
os.environ["FARM_TZ"] = "UTC"
os.environ.pop("SUPABASE_ACCESS_TOKEN", None)

# Add src/ to path so tests can import piara
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from piara.core.client import ConstraintViolationError, NotFoundError, SupabaseAPIError  # noqa: E402
from piara.core.models import (  # noqa: E402
    Boar,
    Event,
    EventType,
    HistoricalAverages,
    Incident,
    Sow,
    SowState,
    parse_date,
    payload_from_dict,
)

REST_BASE = "https://farm.supabase.co/rest/v1"


class MemoryStore:
    """In-memory `Store` double.

    Records every call name in `calls`. Put an exception in
    `failures[<method name>]` to make the next call to that method raise it.
    """

    def __init__(self):
        self.sows: dict[str, Sow] = {}
        self.events: dict[str, Event] = {}
        self.incidents: dict[str, Incident] = {}
        self.boars: dict[str, Boar] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[str] = []
        self._ids = itertools.count(1)
        self._clock = datetime(2024, 1, 1, tzinfo=UTC)

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if op in self.failures:
            raise self.failures.pop(op)

    def _next_id(self) -> str:
        return str(uuid.UUID(int=next(self._ids)))

    @staticmethod
    def _check_uuid(row_id: str) -> None:
        # Same error PostgREST gives for `id=eq.<not a uuid>`
        try:
            uuid.UUID(row_id)
        except ValueError:
            raise SupabaseAPIError(
                f'HTTP 400: {{"code":"22P02","message":"invalid input syntax for type uuid: \\"{row_id}\\""}}',
                400,
                "22P02",
            ) from None

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    @property
    def writes(self) -> list[str]:
        return [c for c in self.calls if c.startswith(("insert", "write", "update"))]

    # -- seeding helpers (not part of the Store protocol) ----------------------

    def add_sow(self, codigo: str = "C-001", **fields) -> Sow:
        sow = Sow(id=fields.pop("id", self._next_id()), codigo=codigo, **fields)
        self.sows[sow.id] = sow
        return sow

    def add_event(self, sow: Sow, tipo: EventType, fecha: date | str, datos: dict | None = None) -> Event:
        event = Event(
            cerda_id=sow.id,
            tipo_evento=tipo,
            fecha=parse_date(fecha),
            datos=payload_from_dict(tipo, datos),
            id=self._next_id(),
            created_at=self._tick(),
        )
        self.events[event.id] = event
        return event

    def add_boar(self, codigo: str = "V-01", **fields) -> Boar:
        boar = Boar(id=fields.pop("id", self._next_id()), codigo=codigo, **fields)
        self.boars[boar.id] = boar
        return boar

    # -- sows ------------------------------------------------------------------

    async def read_sow(self, sow_id):
        self._check("read_sow")
        self._check_uuid(sow_id)
        if sow_id not in self.sows:
            raise NotFoundError(f"No cerdas row with id={sow_id}")
        return replace(self.sows[sow_id])

    async def query_sows(self, estado=None, search=None, incident_since=None, active_only=True):
        self._check("query_sows")
        states = None
        if estado is not None:
            states = {estado} if isinstance(estado, SowState) else set(estado)

        found = []
        for sow in self.sows.values():
            if active_only and not sow.activa:
                continue
            if states is not None and sow.estado not in states:
                continue
            if search:
                haystack = f"{sow.codigo} {sow.nombre or ''}".lower()
                if search.lower() not in haystack:
                    continue
            if incident_since and not (sow.ultima_incidencia_fecha and sow.ultima_incidencia_fecha >= incident_since):
                continue
            found.append(replace(sow))
        return sorted(found, key=lambda s: s.codigo)

    def _check_unique_code(self, codigo, sow_id=None):
        for other in self.sows.values():
            if other.codigo == codigo and other.id != sow_id:
                raise ConstraintViolationError(
                    'HTTP 409: duplicate key value violates unique constraint "cerdas_codigo_key"', 409, "23505"
                )

    async def insert_sow(self, fields):
        self._check("insert_sow")
        self._check_unique_code(fields["codigo"])
        sow = Sow(id=self._next_id(), **fields)
        sow.created_at = sow.updated_at = self._tick()
        self.sows[sow.id] = sow
        return replace(sow)

    async def write_sow(self, sow_id, fields):
        self._check("write_sow")
        self._check_uuid(sow_id)
        if sow_id not in self.sows:
            raise NotFoundError(f"No cerdas row with id={sow_id}")
        if "codigo" in fields:
            self._check_unique_code(fields["codigo"], sow_id)
        sow = replace(self.sows[sow_id], **fields)
        sow.updated_at = self._tick()
        self.sows[sow_id] = sow
        return replace(sow)

    # -- events ----------------------------------------------------------------

    async def read_event(self, event_id):
        self._check("read_event")
        self._check_uuid(event_id)
        if event_id not in self.events:
            raise NotFoundError(f"No eventos row with id={event_id}")
        return replace(self.events[event_id])

    async def query_events(self, sow_id, tipo_evento=None, newest_first=True, limit=None):
        self._check("query_events")
        found = [
            e
            for e in self.events.values()
            if e.cerda_id == sow_id and (tipo_evento is None or e.tipo_evento == tipo_evento)
        ]
        found.sort(key=lambda e: (e.fecha, e.created_at), reverse=newest_first)
        if limit is not None:
            found = found[:limit]
        return [replace(e) for e in found]

    async def insert_event(self, event):
        self._check("insert_event")
        stored = replace(event, id=self._next_id(), created_at=self._tick())
        self.events[stored.id] = stored
        return replace(stored)

    async def update_event(self, event_id, fields):
        self._check("update_event")
        self._check_uuid(event_id)
        if event_id not in self.events:
            raise NotFoundError(f"No eventos row with id={event_id}")
        event = self.events[event_id]
        changes = dict(fields)
        if "datos" in changes:
            changes["datos"] = payload_from_dict(event.tipo_evento, changes["datos"])
        if "fecha" in changes:
            changes["fecha"] = parse_date(changes["fecha"])
        self.events[event_id] = replace(event, **changes)
        return replace(self.events[event_id])

    async def query_services(self):
        self._check("query_services")
        return [
            (replace(e), replace(self.sows[e.cerda_id]))
            for e in self.events.values()
            if e.tipo_evento == EventType.CUBRICION and self.sows[e.cerda_id].activa
        ]

    # -- incidents -------------------------------------------------------------

    async def query_incidents(self, sow_id=None, since=None, resuelta=None):
        self._check("query_incidents")
        found = [
            i
            for i in self.incidents.values()
            if (sow_id is None or i.cerda_id == sow_id)
            and (since is None or (i.fecha_hora and i.fecha_hora >= since))
            and (resuelta is None or i.resuelta == resuelta)
        ]
        return sorted(found, key=lambda i: i.fecha_hora, reverse=True)

    async def insert_incident(self, fields):
        self._check("insert_incident")
        incident = Incident(id=self._next_id(), **fields)
        self.incidents[incident.id] = incident
        return replace(incident)

    async def update_incident(self, incident_id, fields):
        self._check("update_incident")
        if incident_id not in self.incidents:
            raise NotFoundError(f"No incidencias row with id={incident_id}")
        self.incidents[incident_id] = replace(self.incidents[incident_id], **fields)
        return replace(self.incidents[incident_id])

    # -- boars -----------------------------------------------------------------

    async def query_boars(self, active_only=True):
        self._check("query_boars")
        found = [b for b in self.boars.values() if b.activo or not active_only]
        return sorted(found, key=lambda b: b.codigo)

    async def read_boar(self, boar_id):
        self._check("read_boar")
        if boar_id not in self.boars:
            raise NotFoundError(f"No verracos row with id={boar_id}")
        return replace(self.boars[boar_id])


@pytest.fixture
def store():
    """Empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def mock_supabase():
    """Mock Supabase PostgREST responses."""
    with respx.mock(base_url=REST_BASE) as mock:
        yield mock


@pytest.fixture
def sample_sow_row():
    """A `cerdas` row as PostgREST returns it."""
    return {
        "id": "0b6c1f2e-5d1a-4e0a-9f6e-2c1d7a4b9e01",
        "codigo": "C-014",
        "nombre": "Rosita",
        "estado": "parto",
        "fecha_alta": "2022-03-10",
        "fecha_nacimiento": "2021-09-02",
        "paridad": 2,
        "origen": "Granja Norte",
        "nave": "N2",
        "medios_historicos": {"nacidos_vivos": 10, "destetados": 8, "viabilidad": 80},
        "ultima_incidencia_fecha": None,
        "activa": True,
        "created_at": "2022-03-10T08:00:00+00:00",
        "updated_at": "2024-02-01T09:30:00.123456+00:00",
        "created_by": None,
    }


@pytest.fixture
def sample_farrowing_row():
    """An `eventos` farrowing row."""
    return {
        "id": "7f3e2a10-0000-4000-8000-000000000002",
        "cerda_id": "0b6c1f2e-5d1a-4e0a-9f6e-2c1d7a4b9e01",
        "tipo_evento": "parto",
        "fecha": "2024-02-01",
        "datos": {"nacidos_vivos": 12, "nacidos_muertos": 1, "momificados": 0, "total": 13},
        "notas": None,
        "usuario_id": "user-1",
        "created_at": "2024-02-01T09:30:00+00:00",
    }


@pytest.fixture
def averages_10_8():
    return HistoricalAverages(nacidos_vivos=10, destetados=8, viabilidad=80)
