from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from core.errors import MissingConfigurationError, RosterStoreError
from core.roster_store import RosterStoreClient
from core.settings import Settings

BASE_URL = "https://script.example.com/macros/s/abc/exec"


def _client(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> RosterStoreClient:
    return RosterStoreClient(BASE_URL, retry_delay=0, transport=httpx.MockTransport(handler), **kwargs)


def test_get_students_reads_student_names() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "studentNames": ["Charan", " Jane Doe ", "", None]})

    with _client(handler) as client:
        assert client.get_students() == ["Charan", "Jane Doe"]

    assert seen[0].method == "GET"
    assert seen[0].url.params["action"] == "getStudents"


def test_get_students_falls_back_to_students_objects() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"students": [{"name": "Charan"}, {"name": "John Smith"}]})

    with _client(handler) as client:
        assert client.get_students() == ["Charan", "John Smith"]


def test_get_students_raises_on_backend_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "error": "Sheet not found"})

    with _client(handler) as client, pytest.raises(RosterStoreError, match="Sheet not found"):
        client.get_students()


def test_timeouts_are_retried_then_succeed() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] < 3:
            raise httpx.ConnectTimeout("timed out", request=request)
        return httpx.Response(200, json={"success": True, "message": "ok"})

    with _client(handler) as client:
        assert client.test_connection() == {"success": True, "message": "ok"}

    assert calls["n"] == 3


def test_network_errors_give_up_after_retries() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        raise httpx.ConnectError("fetch failed", request=request)

    with _client(handler, retries=2) as client, pytest.raises(RosterStoreError, match="Network error"):
        client.test_connection()

    assert calls["n"] == 3


def test_internal_server_error_is_not_retried() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(500, text="boom")

    with _client(handler) as client, pytest.raises(RosterStoreError, match="500"):
        client.get_students()

    assert calls["n"] == 1


def test_gateway_errors_are_retried() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(503, text="busy")
        return httpx.Response(200, json={"success": True, "studentNames": ["Charan"]})

    with _client(handler) as client:
        assert client.get_students() == ["Charan"]

    assert calls["n"] == 2


def test_save_timeout_is_not_retried() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        raise httpx.ReadTimeout("timed out", request=request)

    with _client(handler) as client, pytest.raises(RosterStoreError, match="Request timeout after 120 seconds"):
        client.save_attendance(["Charan"], "2026-10-19")

    assert calls["n"] == 1


def test_non_json_response_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>login</html>", headers={"content-type": "text/html"})

    with _client(handler) as client:
        data = client.test_connection()

    assert data["success"] is False
    assert data["error"] == "Invalid response format"
    assert "login" in data["rawResponse"]


def test_save_attendance_posts_payload() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "saved": 2})

    with _client(handler) as client:
        resp = client.save_attendance(["Charan", " Jane Doe ", ""], "2026-10-19")

    assert resp == {"success": True, "saved": 2}
    assert bodies == [{"action": "saveAttendance", "students": ["Charan", "Jane Doe"], "date": "2026-10-19"}]


def test_mark_individual_uses_save_attendance() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True})

    with _client(handler) as client:
        client.mark_individual("Charan", "19.10.2026")

    assert bodies[0]["students"] == ["Charan"]
    assert bodies[0]["date"] == "2026-10-19"


def test_save_attendance_requires_students() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no request expected")

    with _client(handler) as client, pytest.raises(ValueError):
        client.save_attendance(["", "  "], "2026-10-19")


def test_from_settings_requires_script_url() -> None:
    with pytest.raises(MissingConfigurationError):
        RosterStoreClient.from_settings(Settings(script_url=""))


def test_from_settings_uses_timeouts() -> None:
    client = RosterStoreClient.from_settings(
        Settings(script_url=BASE_URL, request_timeout=5, save_timeout=60)
    )
    try:
        assert client.base_url == BASE_URL
        assert client.timeout == 5
        assert client.save_timeout == 60
    finally:
        client.close()
