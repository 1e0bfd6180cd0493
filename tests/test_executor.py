"""Tests for secdirect.executor."""

from __future__ import annotations

import asyncio
import json
import re
from datetime import datetime
from typing import Any

import aiohttp
import pytest
from aioresponses import aioresponses

from secdirect._constants import CALLBY, GRAPHQL_URL, REST_URL
from secdirect.errors import ApiError, ErrorKind
from secdirect.executor import (
    RequestExecutor,
    TransportStyle,
    build_auth_header,
    build_request_id,
    language_for,
)
from secdirect.operations import ARM_PANEL, LIST_INSTALLATIONS, LOGIN, STATUS
from secdirect.session import Session, SessionStore

FIXED_NOW = datetime(2024, 3, 5, 7, 8, 9)

_STATUS_URL = re.compile(rf"^{re.escape(REST_URL)}/status")


def _fixed_clock() -> datetime:
    return FIXED_NOW


def _calls(m: aioresponses) -> list[Any]:
    """All recorded request calls, in registration-key order."""
    return [call for calls in m.requests.values() for call in calls]


def _authenticated_store(token: str = "hash-abc") -> SessionStore:
    store = SessionStore()
    store.install(Session(token, "refresh-abc", 1700000000000))
    return store


# ---------------------------------------------------------------------------
# Pure function tests
# ---------------------------------------------------------------------------


class TestBuildRequestId:
    def test_exact_format(self):
        assert (
            build_request_id("alice", FIXED_NOW)
            == "OWA_______________alice_______________20240305070809"
        )

    def test_pattern(self):
        rid = build_request_id("bob@example.com")
        assert re.fullmatch(r"OWA_{15}bob@example\.com_{15}\d{14}", rid)


class TestLanguageFor:
    def test_known(self):
        assert language_for("ES") == "es"
        assert language_for("it") == "it"

    def test_default(self):
        assert language_for("XX") == "en"


class TestBuildAuthHeader:
    def test_fields(self):
        session = Session("hash-abc", None, 1700000000000)
        header = build_auth_header(session, "alice", "ES", now=FIXED_NOW)
        assert header == {
            "loginTimestamp": 1700000000000,
            "user": "alice",
            "id": "OWA_______________alice_______________20240305070809",
            "country": "ES",
            "lang": "es",
            "callby": CALLBY,
            "hash": "hash-abc",
        }


class TestBuildHeaders:
    def test_no_session_no_auth_header(self):
        executor = RequestExecutor(SessionStore())
        headers = executor.build_headers(STATUS, "alice")
        assert "auth" not in headers
        assert headers["X-APOLLO-OPERATION-NAME"] == "Status"

    def test_session_adds_auth_header(self):
        executor = RequestExecutor(_authenticated_store(), country="GB", clock=_fixed_clock)
        headers = executor.build_headers(STATUS, "alice")
        auth = json.loads(headers["auth"])
        assert auth["hash"] == "hash-abc"
        assert auth["user"] == "alice"
        assert auth["loginTimestamp"] == 1700000000000
        assert auth["id"].endswith("20240305070809")
        assert "Authorization" not in headers

    def test_anonymous_skips_session(self):
        executor = RequestExecutor(_authenticated_store())
        headers = executor.build_headers(LOGIN, "alice", anonymous=True)
        assert "auth" not in headers

    def test_recomputed_per_call(self):
        times = iter([datetime(2024, 1, 1, 0, 0, 0), datetime(2024, 1, 1, 0, 0, 1)])
        executor = RequestExecutor(_authenticated_store(), clock=lambda: next(times))
        first = json.loads(executor.build_headers(STATUS, "alice")["auth"])
        second = json.loads(executor.build_headers(STATUS, "alice")["auth"])
        assert first["id"] != second["id"]
        assert first["hash"] == second["hash"]

    def test_rest_bearer_token(self):
        executor = RequestExecutor(_authenticated_store(), style="rest")
        headers = executor.build_headers(STATUS, "alice")
        assert headers["Authorization"] == "Bearer hash-abc"
        assert "X-APOLLO-OPERATION-NAME" not in headers


class TestBuildRequest:
    def test_graphql_body(self):
        executor = RequestExecutor(SessionStore())
        method, url, kwargs = executor.build_request(STATUS, {"numinst": "I1"})
        assert method == "POST"
        assert url == GRAPHQL_URL
        assert kwargs["json"] == {
            "operationName": "Status",
            "variables": {"numinst": "I1"},
            "query": STATUS.query,
        }

    def test_rest_post(self):
        executor = RequestExecutor(SessionStore(), style=TransportStyle.REST)
        method, url, kwargs = executor.build_request(ARM_PANEL, {"numinst": "I1"})
        assert method == "POST"
        assert url == f"{REST_URL}/arm"
        assert kwargs == {"json": {"numinst": "I1"}}

    def test_rest_get_uses_params(self):
        executor = RequestExecutor(SessionStore(), style=TransportStyle.REST)
        method, url, kwargs = executor.build_request(STATUS, {"numinst": "I1"})
        assert method == "GET"
        assert url == f"{REST_URL}/status"
        assert kwargs == {"params": {"numinst": "I1"}}

    def test_rest_get_without_variables(self):
        executor = RequestExecutor(SessionStore(), style=TransportStyle.REST)
        _, _, kwargs = executor.build_request(LIST_INSTALLATIONS, {})
        assert kwargs == {}

    def test_custom_base_url(self):
        executor = RequestExecutor(SessionStore(), base_url="https://example.test/graphql/")
        assert executor.base_url == "https://example.test/graphql"


# ---------------------------------------------------------------------------
# Dispatch tests (mocked with aioresponses)
# ---------------------------------------------------------------------------


class TestExecute:
    async def test_returns_payload_unmodified(self):
        payload = {"data": {"xSStatus": {"status": "0", "extra": [1, 2]}}}
        executor = RequestExecutor(_authenticated_store())
        with aioresponses() as m:
            m.post(GRAPHQL_URL, payload=payload)
            result = await executor.execute(STATUS, {"numinst": "I1"}, username="alice")
        assert result == payload

    async def test_sends_auth_header(self):
        executor = RequestExecutor(_authenticated_store(), clock=_fixed_clock)
        with aioresponses() as m:
            m.post(GRAPHQL_URL, payload={"data": {}})
            await executor.execute(STATUS, {"numinst": "I1"}, username="alice")
            (call,) = _calls(m)

        headers = call.kwargs["headers"]
        auth = json.loads(headers["auth"])
        assert auth["hash"] == "hash-abc"
        assert auth["id"] == "OWA_______________alice_______________20240305070809"
        assert call.kwargs["json"]["operationName"] == "Status"

    async def test_timeout_is_bounded(self):
        executor = RequestExecutor(SessionStore(), timeout_ms=1500)
        with aioresponses() as m:
            m.post(GRAPHQL_URL, payload={"data": {}})
            await executor.execute(LIST_INSTALLATIONS)
            (call,) = _calls(m)
        assert call.kwargs["timeout"].total == 1.5

    async def test_uses_shared_http_session(self):
        async with aiohttp.ClientSession() as session:
            executor = RequestExecutor(SessionStore(), http_session=session)
            with aioresponses() as m:
                m.post(GRAPHQL_URL, payload={"data": {"ok": True}})
                result = await executor.execute(LIST_INSTALLATIONS)
            assert not session.closed
        assert result == {"data": {"ok": True}}

    async def test_graphql_errors_with_200(self):
        executor = RequestExecutor(_authenticated_store())
        with aioresponses() as m:
            m.post(
                GRAPHQL_URL,
                payload={"errors": [{"message": "Invalid session. Please, try again later."}]},
            )
            with pytest.raises(ApiError) as exc_info:
                await executor.execute(STATUS, {"numinst": "I1"})

        err = exc_info.value
        assert err.kind is ErrorKind.PROTOCOL_ERROR
        assert err.message == "Invalid session. Please, try again later."
        assert err.status_code == 200

    @pytest.mark.parametrize(
        ("status", "kind"),
        [
            (400, ErrorKind.INVALID_REQUEST),
            (401, ErrorKind.INVALID_CREDENTIALS),
            (404, ErrorKind.NOT_FOUND),
            (500, ErrorKind.SERVER_ERROR),
        ],
    )
    async def test_http_status(self, status, kind):
        executor = RequestExecutor(SessionStore())
        with aioresponses() as m:
            m.post(GRAPHQL_URL, status=status, payload={"message": "nope"})
            with pytest.raises(ApiError) as exc_info:
                await executor.execute(LIST_INSTALLATIONS)

        assert exc_info.value.kind is kind
        assert exc_info.value.status_code == status
        assert exc_info.value.message == "nope"

    async def test_timeout(self):
        executor = RequestExecutor(SessionStore())
        with aioresponses() as m:
            m.post(GRAPHQL_URL, exception=asyncio.TimeoutError())
            with pytest.raises(ApiError) as exc_info:
                await executor.execute(LIST_INSTALLATIONS)

        err = exc_info.value
        assert err.kind is ErrorKind.NETWORK_ERROR
        assert err.message == "Request timeout"
        assert err.status_code == 0

    async def test_connection_error(self):
        executor = RequestExecutor(SessionStore())
        with aioresponses() as m:
            m.post(GRAPHQL_URL, exception=aiohttp.ClientConnectionError("Connection refused"))
            with pytest.raises(ApiError) as exc_info:
                await executor.execute(LIST_INSTALLATIONS)

        assert exc_info.value.kind is ErrorKind.NETWORK_ERROR
        assert exc_info.value.message == "Connection refused"

    async def test_malformed_body(self):
        executor = RequestExecutor(SessionStore())
        with aioresponses() as m:
            m.post(GRAPHQL_URL, body="<html>maintenance</html>")
            with pytest.raises(ApiError) as exc_info:
                await executor.execute(LIST_INSTALLATIONS)

        assert exc_info.value.kind is ErrorKind.PROTOCOL_ERROR

    async def test_non_utf8_error_page(self):
        executor = RequestExecutor(SessionStore())
        with aioresponses() as m:
            m.post(
                GRAPHQL_URL,
                status=502,
                body=b"\xff\xfe bad gateway",
                content_type="text/html",
            )
            with pytest.raises(ApiError) as exc_info:
                await executor.execute(LIST_INSTALLATIONS)

        assert exc_info.value.kind is ErrorKind.SERVER_ERROR
        assert exc_info.value.status_code == 502

    async def test_session_store_untouched_on_failure(self):
        store = _authenticated_store()
        before = store.current()
        executor = RequestExecutor(store)
        with aioresponses() as m:
            m.post(GRAPHQL_URL, exception=asyncio.TimeoutError())
            with pytest.raises(ApiError):
                await executor.execute(STATUS, {"numinst": "I1"})
        assert store.current() is before


class TestExecuteRest:
    async def test_get_with_params(self):
        executor = RequestExecutor(_authenticated_store(), style="rest")
        with aioresponses() as m:
            m.get(_STATUS_URL, payload={"status": "0"})
            result = await executor.execute(STATUS, {"numinst": "I1"}, username="alice")
            (call,) = _calls(m)

        assert result == {"status": "0"}
        assert call.kwargs["params"] == {"numinst": "I1"}
        assert call.kwargs["headers"]["Authorization"] == "Bearer hash-abc"

    async def test_errors_key_is_not_special(self):
        executor = RequestExecutor(SessionStore(), style="rest")
        with aioresponses() as m:
            m.post(f"{REST_URL}/login", payload={"errors": ["ignored"], "res": "OK"})
            result = await executor.execute(LOGIN, {"user": "alice"})
        assert result["res"] == "OK"

    async def test_status_mapping(self):
        executor = RequestExecutor(SessionStore(), style="rest")
        with aioresponses() as m:
            m.post(f"{REST_URL}/login", status=401, payload={"message": "Bad credentials"})
            with pytest.raises(ApiError) as exc_info:
                await executor.execute(LOGIN, {"user": "alice"})
        assert exc_info.value.kind is ErrorKind.INVALID_CREDENTIALS
        assert exc_info.value.message == "Bad credentials"
