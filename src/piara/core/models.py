"""Herd records: sows, events, incidents and boars.

Rows come from the store as plain dicts keyed by column name. The dataclasses
here keep those column names as attributes so a row and its object read the
same; `from_row()` / `to_row()` convert in both directions.

Event payloads (`datos`) are a tagged union keyed by `tipo_evento`:

    cubricion  -> ServicePayload
    parto      -> FarrowingPayload
    destete    -> WeaningPayload
    gestacion  -> NotesPayload
    ecografia  -> NotesPayload
    baja       -> NotesPayload
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import date, datetime
from enum import Enum

MAX_NOTES_LENGTH = 500


class SowState(Enum):
    EN_SERVICIO = "en_servicio"
    SECA = "seca"
    CUBIERTA = "cubierta"
    GESTANTE = "gestante"
    PARTO = "parto"
    DESTETE = "destete"
    BAJA = "baja"


class EventType(Enum):
    CUBRICION = "cubricion"
    PARTO = "parto"
    DESTETE = "destete"
    GESTACION = "gestacion"
    ECOGRAFIA = "ecografia"
    BAJA = "baja"


STATE_LABELS = {
    SowState.EN_SERVICIO: "En Servicio",
    SowState.SECA: "Seca",
    SowState.CUBIERTA: "Cubierta",
    SowState.GESTANTE: "Gestante",
    SowState.PARTO: "Parto",
    SowState.DESTETE: "Destete",
    SowState.BAJA: "Baja",
}

EVENT_LABELS = {
    EventType.CUBRICION: "Cubrición",
    EventType.PARTO: "Parto",
    EventType.DESTETE: "Destete",
    EventType.GESTACION: "Gestación",
    EventType.ECOGRAFIA: "Ecografía",
    EventType.BAJA: "Baja",
}


# =============================================================================
# Parsing Helpers
# =============================================================================


def parse_date(value: date | str) -> date:
    """Accept a date or an ISO date string (YYYY-MM-DD, time part ignored)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    # PostgREST emits "+00:00" offsets; older rows may carry "Z"
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _parse_optional_date(value: str | date | None) -> date | None:
    return parse_date(value) if value else None


def _known_fields(cls, data: dict) -> dict:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


# =============================================================================
# Event Payloads
# =============================================================================


@dataclass
class ServicePayload:
    """Service (cubrición): which boar was used."""

    verraco_id: str | None = None
    verraco_codigo: str | None = None
    verraco_nombre: str | None = None


@dataclass
class FarrowingPayload:
    """Farrowing (parto) litter counts, back-annotated when the litter is weaned."""

    nacidos_vivos: int = 0
    nacidos_muertos: int = 0
    momificados: int = 0
    destetados: int | None = None
    destete_id: str | None = None

    @property
    def total(self) -> int:
        return self.nacidos_vivos + self.nacidos_muertos + self.momificados


@dataclass
class WeaningPayload:
    """Weaning (destete) of the litter from farrowing `parto_id`."""

    lechones_destetados: int = 0
    parto_id: str | None = None
    peso_medio_kg: float | None = None


@dataclass
class NotesPayload:
    """Free-form payload for event kinds the engine only logs."""

    valores: dict = field(default_factory=dict)


Payload = ServicePayload | FarrowingPayload | WeaningPayload | NotesPayload

PAYLOAD_TYPES: dict[EventType, type] = {
    EventType.CUBRICION: ServicePayload,
    EventType.PARTO: FarrowingPayload,
    EventType.DESTETE: WeaningPayload,
    EventType.GESTACION: NotesPayload,
    EventType.ECOGRAFIA: NotesPayload,
    EventType.BAJA: NotesPayload,
}


def payload_from_dict(tipo_evento: EventType, datos: dict | None) -> Payload:
    """Build the payload variant for an event type from its stored `datos`."""
    datos = datos or {}
    payload_type = PAYLOAD_TYPES[tipo_evento]
    if payload_type is NotesPayload:
        return NotesPayload(valores=dict(datos))
    return payload_type(**_known_fields(payload_type, datos))


def payload_to_dict(payload: Payload) -> dict:
    """Serialize a payload to the `datos` JSON stored with the event."""
    if isinstance(payload, NotesPayload):
        return dict(payload.valores)

    data = {k: v for k, v in asdict(payload).items() if v is not None}
    if isinstance(payload, FarrowingPayload):
        data["total"] = payload.total
    return data


# =============================================================================
# Records
# =============================================================================


@dataclass
class HistoricalAverages:
    """Running means across weaned litters (`medios_historicos`)."""

    nacidos_vivos: float
    destetados: float
    viabilidad: int

    @classmethod
    def from_dict(cls, data: dict | None) -> "HistoricalAverages | None":
        # Unweaned sows store null or an empty object
        if not data or data.get("nacidos_vivos") is None:
            return None
        return cls(
            nacidos_vivos=data["nacidos_vivos"],
            destetados=data.get("destetados") or 0,
            viabilidad=data.get("viabilidad") or 0,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Sow:
    """A breeding sow (`cerdas` row)."""

    id: str
    codigo: str
    estado: SowState = SowState.EN_SERVICIO
    paridad: int = 0
    medios_historicos: HistoricalAverages | None = None
    activa: bool = True
    nombre: str | None = None
    origen: str | None = None
    nave: str | None = None
    fecha_alta: date | None = None
    fecha_nacimiento: date | None = None
    ultima_incidencia_fecha: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict) -> "Sow":
        return cls(
            id=row["id"],
            codigo=row["codigo"],
            estado=SowState(row.get("estado") or SowState.EN_SERVICIO.value),
            paridad=row.get("paridad") or 0,
            medios_historicos=HistoricalAverages.from_dict(row.get("medios_historicos")),
            activa=row.get("activa", True),
            nombre=row.get("nombre"),
            origen=row.get("origen"),
            nave=row.get("nave"),
            fecha_alta=_parse_optional_date(row.get("fecha_alta")),
            fecha_nacimiento=_parse_optional_date(row.get("fecha_nacimiento")),
            ultima_incidencia_fecha=_parse_datetime(row.get("ultima_incidencia_fecha")),
            created_at=_parse_datetime(row.get("created_at")),
            updated_at=_parse_datetime(row.get("updated_at")),
        )

    @property
    def label(self) -> str:
        return f"{self.codigo} ({self.nombre})" if self.nombre else self.codigo


@dataclass
class Event:
    """A lifecycle event (`eventos` row)."""

    cerda_id: str
    tipo_evento: EventType
    fecha: date
    datos: Payload
    notas: str | None = None
    id: str | None = None
    usuario_id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict) -> "Event":
        tipo = EventType(row["tipo_evento"])
        return cls(
            id=row.get("id"),
            cerda_id=row["cerda_id"],
            tipo_evento=tipo,
            fecha=parse_date(row["fecha"]),
            datos=payload_from_dict(tipo, row.get("datos")),
            notas=row.get("notas"),
            usuario_id=row.get("usuario_id"),
            created_at=_parse_datetime(row.get("created_at")),
        )

    def to_row(self) -> dict:
        """Columns for an insert; store-assigned columns are left out when unset."""
        row = {
            "cerda_id": self.cerda_id,
            "tipo_evento": self.tipo_evento.value,
            "fecha": self.fecha.isoformat(),
            "datos": payload_to_dict(self.datos),
            "notas": self.notas,
        }
        if self.id:
            row["id"] = self.id
        if self.usuario_id:
            row["usuario_id"] = self.usuario_id
        return row


@dataclass
class Incident:
    """A free-text observation about a sow (`incidencias` row)."""

    id: str
    cerda_id: str
    texto: str
    fecha_hora: datetime | None = None
    resuelta: bool = False
    usuario_id: str | None = None
    cerda_codigo: str | None = None

    @classmethod
    def from_row(cls, row: dict) -> "Incident":
        sow = row.get("cerdas") or {}
        return cls(
            id=row["id"],
            cerda_id=row["cerda_id"],
            texto=row.get("texto") or "",
            fecha_hora=_parse_datetime(row.get("fecha_hora")),
            resuelta=bool(row.get("resuelta")),
            usuario_id=row.get("usuario_id"),
            cerda_codigo=sow.get("codigo"),
        )


@dataclass
class Boar:
    """A boar (`verracos` row) available for service."""

    id: str
    codigo: str
    nombre: str | None = None
    raza: str | None = None
    activo: bool = True

    @classmethod
    def from_row(cls, row: dict) -> "Boar":
        return cls(**_known_fields(cls, row))
