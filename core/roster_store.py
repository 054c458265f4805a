from __future__ import annotations
import time
import logging
from typing import Any, Dict, List, Optional, Sequence
import httpx
from httpx_retries import Retry, RetryTransport
from .errors import RosterStoreError
from .settings import Settings, load_settings
from .utils import today_str, try_parse_date

log = logging.getLogger(__name__)

ACTION_TEST = "test"
ACTION_GET_STUDENTS = "getStudents"
ACTION_SAVE_ATTENDANCE = "saveAttendance"

# повторяем только чтение: saveAttendance дописывает строки в журнал
_RETRY_METHODS = ("GET",)
_RETRY_STATUSES = (429, 502, 503, 504)
_RETRY_EXCEPTIONS = (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)


class RosterStoreClient:
    """
    Клиент Google Apps Script (таблица с мастер-списком и журналом посещаемости).

    GET  ?action=test / ?action=getStudents
    POST {"action": "saveAttendance", "students": [...], "date": "YYYY-MM-DD"}

    GET-запросы повторяются до `retries` раз (таймауты, сетевые ошибки, 429/502/503/504),
    пауза растёт от `retry_delay`. POST сохранения не повторяется: после таймаута
    строки могли уже попасть в таблицу, повтор записал бы их дважды.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        save_timeout: float = 120.0,
        retries: int = 3,
        retry_delay: float = 1.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.save_timeout = save_timeout
        self.retries = max(0, int(retries))
        self.retry_delay = retry_delay
        retry = Retry(
            total=self.retries,
            backoff_factor=retry_delay,
            allowed_methods=_RETRY_METHODS,
            status_forcelist=_RETRY_STATUSES,
            retry_on_exceptions=_RETRY_EXCEPTIONS,
        )
        # Apps Script отвечает редиректом на googleusercontent
        self._client = httpx.Client(
            transport=RetryTransport(transport=transport, retry=retry),
            follow_redirects=True,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs: Any) -> "RosterStoreClient":
        settings = settings or load_settings()
        return cls(
            settings.require_script_url(),
            timeout=settings.request_timeout,
            save_timeout=settings.save_timeout,
            **kwargs,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RosterStoreClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # -------------------------
    # transport
    # -------------------------
    def _request(self, method: str, *, params: Optional[Dict[str, str]] = None,
                 json: Any = None, timeout: Optional[float] = None) -> Dict[str, Any]:
        timeout = self.timeout if timeout is None else timeout
        # повторы делает RetryTransport, здесь только перевод ошибок
        try:
            resp = self._client.request(method, self.base_url, params=params, json=json, timeout=timeout)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error("roster store returned HTTP %s for %s", e.response.status_code, method)
            raise RosterStoreError(f"HTTP error! status: {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise RosterStoreError(
                f"Request timeout after {int(timeout)} seconds - server took too long to respond"
            ) from e
        except httpx.TransportError as e:
            raise RosterStoreError(f"Network error: {e}") from e

        content_type = resp.headers.get("content-type", "")
        try:
            data = resp.json()
        except ValueError:
            log.warning("non-JSON response received (%s): %s", content_type, resp.text[:200])
            return {"success": False, "error": "Invalid response format", "rawResponse": resp.text}

        if not isinstance(data, dict):
            return {"success": True, "data": data}
        return data

    # -------------------------
    # API
    # -------------------------
    def test_connection(self) -> Dict[str, Any]:
        started = time.monotonic()
        data = self._request("GET", params={"action": ACTION_TEST})
        log.info("connection test finished in %.0f ms", (time.monotonic() - started) * 1000)
        return data

    def get_students(self) -> List[str]:
        # studentNames - основной формат, students - запасной
        data = self._request("GET", params={"action": ACTION_GET_STUDENTS})
        if data.get("success") is False and data.get("error"):
            raise RosterStoreError(f"Roster store error: {data.get('error')}")

        raw = data.get("studentNames")
        if raw is None:
            raw = data.get("students", [])
        if not isinstance(raw, list):
            raise RosterStoreError("Roster store returned an unexpected student list format")

        names: List[str] = []
        for item in raw:
            if isinstance(item, dict):
                item = item.get("name", item.get("studentName", ""))
            s = "" if item is None else str(item).strip()
            if s:
                names.append(s)

        log.info("fetched %d students from roster store", len(names))
        return names

    def save_attendance(self, students: Sequence[str], date: Any = None) -> Dict[str, Any]:
        students = [str(s).strip() for s in students if s is not None and str(s).strip()]
        if not students:
            raise ValueError("Students list is required and must not be empty")

        day = try_parse_date(date) if date else today_str()
        if not day:
            raise ValueError(f"Cannot parse attendance date: {date!r}")

        log.info("saving attendance for %d students on %s", len(students), day)
        return self._request(
            "POST",
            json={"action": ACTION_SAVE_ATTENDANCE, "students": students, "date": day},
            timeout=self.save_timeout,
        )

    def mark_individual(self, student_name: str, date: Any = None) -> Dict[str, Any]:
        return self.save_attendance([student_name], date)
