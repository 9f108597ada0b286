"""Tests for the Supabase store client module."""

import json

import httpx
import pytest
from tenacity import wait_none

from piara.core import client

# Retries without the exponential backoff sleeps
fast_select = client.select_with_retry.retry_with(wait=wait_none())


class TestFilterParams:
    """Tests for PostgREST filter encoding."""

    def test_scalar_becomes_eq(self):
        """Verify scalars use the eq operator."""
        assert client.filter_params({"codigo": "C-001"}) == {"codigo": "eq.C-001"}

    def test_booleans_are_lowercase(self):
        """Verify booleans are sent as PostgREST literals."""
        assert client.filter_params({"activa": True}) == {"activa": "eq.true"}

    def test_list_becomes_in(self):
        """Verify lists use the in operator."""
        assert client.filter_params({"estado": ["parto", "destete"]}) == {"estado": "in.(parto,destete)"}

    def test_none_becomes_is_null(self):
        """Verify None filters for null."""
        assert client.filter_params({"nave": None}) == {"nave": "is.null"}

    def test_enum_uses_value(self):
        """Verify enums are sent by value."""
        from piara.core.models import SowState

        assert client.filter_params({"estado": SowState.CUBIERTA}) == {"estado": "eq.cubierta"}


class TestRest:
    """Tests for the rest function."""

    async def test_sends_supabase_headers(self, mock_supabase):
        """Verify apikey and bearer token are sent."""
        mock_supabase.get("/cerdas").mock(return_value=httpx.Response(200, json=[]))

        await client.rest("GET", "cerdas")

        request = mock_supabase.calls[0].request
        assert request.headers["apikey"] == "test-anon-key"
        assert request.headers["authorization"] == "Bearer test-anon-key"
        assert "prefer" not in request.headers

    async def test_user_token_overrides_bearer(self, mock_supabase):
        """Verify a user access token is used as the bearer when configured."""
        mock_supabase.get("/cerdas").mock(return_value=httpx.Response(200, json=[]))

        original = client.settings.supabase_access_token
        client.settings.supabase_access_token = "user-jwt"
        try:
            await client.rest("GET", "cerdas")
        finally:
            client.settings.supabase_access_token = original

        request = mock_supabase.calls[0].request
        assert request.headers["authorization"] == "Bearer user-jwt"
        assert request.headers["apikey"] == "test-anon-key"

    async def test_empty_body_returns_empty_list(self, mock_supabase):
        """Verify 204 responses come back as no rows."""
        mock_supabase.patch("/cerdas").mock(return_value=httpx.Response(204))

        assert await client.rest("PATCH", "cerdas", json={"activa": False}) == []

    async def test_missing_key_raises(self):
        """Verify requests are refused without an API key."""
        original = client.settings.supabase_key
        client.settings.supabase_key = None
        try:
            with pytest.raises(client.SupabaseAPIError, match="SUPABASE_KEY"):
                await client.rest("GET", "cerdas")
        finally:
            client.settings.supabase_key = original


class TestSelectWithRetry:
    """Tests for the select_with_retry function."""

    async def test_defaults_to_select_star(self, mock_supabase):
        """Verify select=* is added when no select is given."""
        mock_supabase.get("/cerdas").mock(return_value=httpx.Response(200, json=[{"id": "1"}]))

        rows = await client.select_with_retry("cerdas", {"codigo": "eq.C-001"})

        params = mock_supabase.calls[0].request.url.params
        assert params["select"] == "*"
        assert params["codigo"] == "eq.C-001"
        assert rows == [{"id": "1"}]

    async def test_retries_server_errors(self, mock_supabase):
        """Verify 5xx responses are retried until success."""
        route = mock_supabase.get("/cerdas").mock(
            side_effect=[httpx.Response(503, text="unavailable"), httpx.Response(200, json=[])]
        )

        assert await fast_select("cerdas") == []
        assert route.call_count == 2

    async def test_retries_timeouts_then_gives_up(self, mock_supabase):
        """Verify timeouts are retried MAX_RETRIES times, then raised."""
        route = mock_supabase.get("/cerdas").mock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(client.RetryableError, match="timed out"):
            await fast_select("cerdas")
        assert route.call_count == client.MAX_RETRIES

    async def test_client_errors_are_not_retried(self, mock_supabase):
        """Verify 4xx responses fail immediately with the body attached."""
        route = mock_supabase.get("/cerdas").mock(
            return_value=httpx.Response(400, json={"code": "PGRST100", "message": "bad filter"})
        )

        with pytest.raises(client.SupabaseAPIError) as exc_info:
            await fast_select("cerdas")

        assert route.call_count == 1
        assert exc_info.value.status_code == 400
        assert exc_info.value.code == "PGRST100"
        assert "bad filter" in str(exc_info.value)


class TestMutate:
    """Tests for the mutate function."""

    async def test_asks_for_representation(self, mock_supabase):
        """Verify writes ask for the stored rows back."""
        route = mock_supabase.post("/eventos").mock(return_value=httpx.Response(201, json=[{"id": "e1"}]))

        rows = await client.mutate("POST", "eventos", json={"tipo_evento": "parto"})

        request = route.calls[0].request
        assert request.headers["prefer"] == "return=representation"
        assert json.loads(request.content) == {"tipo_evento": "parto"}
        assert rows == [{"id": "e1"}]

    async def test_unique_violation(self, mock_supabase):
        """Verify duplicate keys raise ConstraintViolationError."""
        mock_supabase.post("/cerdas").mock(
            return_value=httpx.Response(
                409,
                json={"code": "23505", "message": 'duplicate key value violates unique constraint "cerdas_codigo_key"'},
            )
        )

        with pytest.raises(client.ConstraintViolationError) as exc_info:
            await client.mutate("POST", "cerdas", json={"codigo": "C-001"})
        assert exc_info.value.code == "23505"

    async def test_server_error_is_not_retried(self, mock_supabase):
        """Verify a failed write is reported once, never retried."""
        route = mock_supabase.patch("/cerdas").mock(return_value=httpx.Response(500, text="boom"))

        with pytest.raises(client.SupabaseAPIError) as exc_info:
            await client.mutate("PATCH", "cerdas", json={"paridad": 1})

        assert not isinstance(exc_info.value, client.RetryableError)
        assert route.call_count == 1

    async def test_timeout_reports_unknown_outcome(self, mock_supabase):
        """Verify write timeouts raise StoreError without retrying."""
        route = mock_supabase.post("/eventos").mock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(client.StoreError, match="outcome unknown"):
            await client.mutate("POST", "eventos", json={})
        assert route.call_count == 1


class TestSelectOne:
    """Tests for the select_one function."""

    async def test_returns_first_row(self, mock_supabase):
        """Verify the matching row is returned and limit=1 is sent."""
        mock_supabase.get("/cerdas").mock(return_value=httpx.Response(200, json=[{"id": "s1"}]))

        row = await client.select_one("cerdas", {"id": "s1"})

        params = mock_supabase.calls[0].request.url.params
        assert params["id"] == "eq.s1"
        assert params["limit"] == "1"
        assert row == {"id": "s1"}

    async def test_no_row_raises_not_found(self, mock_supabase):
        """Verify an empty result raises NotFoundError."""
        mock_supabase.get("/cerdas").mock(return_value=httpx.Response(200, json=[]))

        with pytest.raises(client.NotFoundError, match="id=missing"):
            await client.select_one("cerdas", {"id": "missing"})
