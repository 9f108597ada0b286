"""Tests for the sow state machine."""

from datetime import date

import pytest

from piara.core.models import Event, EventType, FarrowingPayload, ServicePayload, Sow, SowState
from piara.lifecycle.state import (
    INITIAL_STATE,
    NoFarrowingOnRecord,
    next_state,
    require_farrowing,
    transition,
)


class TestNextState:
    """Tests for the event-to-state mapping."""

    @pytest.mark.parametrize(
        "tipo,expected",
        [
            (EventType.CUBRICION, SowState.CUBIERTA),
            (EventType.PARTO, SowState.PARTO),
            (EventType.DESTETE, SowState.DESTETE),
        ],
    )
    def test_lifecycle_events(self, tipo, expected):
        assert next_state(tipo) == expected

    @pytest.mark.parametrize("tipo", [EventType.GESTACION, EventType.ECOGRAFIA, EventType.BAJA])
    def test_logged_events_do_not_move_state(self, tipo):
        assert next_state(tipo) is None

    def test_new_sows_start_in_service(self):
        assert INITIAL_STATE == SowState.EN_SERVICIO


class TestTransition:
    """Tests for the sow changes produced by an event."""

    def test_service(self):
        sow = Sow("s1", "C-001", estado=SowState.EN_SERVICIO)
        assert transition(sow, EventType.CUBRICION) == {"estado": SowState.CUBIERTA}

    def test_farrowing_increments_parity(self):
        sow = Sow("s1", "C-001", estado=SowState.CUBIERTA, paridad=2)
        assert transition(sow, EventType.PARTO) == {"estado": SowState.PARTO, "paridad": 3}

    def test_prior_state_is_not_checked(self):
        """Verify the mapping applies whatever state the sow is in."""
        sow = Sow("s1", "C-001", estado=SowState.EN_SERVICIO)
        assert transition(sow, EventType.DESTETE) == {"estado": SowState.DESTETE}

    def test_logged_event_changes_nothing(self):
        sow = Sow("s1", "C-001", estado=SowState.GESTANTE)
        assert transition(sow, EventType.ECOGRAFIA) == {}


class TestRequireFarrowing:
    """Tests for the weaning precondition."""

    def test_returns_farrowing(self):
        sow = Sow("s1", "C-001")
        farrowing = Event("s1", EventType.PARTO, date(2024, 1, 1), FarrowingPayload(10), id="p1")
        assert require_farrowing(sow, farrowing) is farrowing

    def test_missing_farrowing(self):
        with pytest.raises(NoFarrowingOnRecord, match="C-001"):
            require_farrowing(Sow("s1", "C-001"), None)

    def test_wrong_event_type(self):
        service = Event("s1", EventType.CUBRICION, date(2024, 1, 1), ServicePayload(), id="e1")
        with pytest.raises(NoFarrowingOnRecord):
            require_farrowing(Sow("s1", "C-001"), service)
