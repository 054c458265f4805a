from __future__ import annotations
import time
import logging
from pathlib import Path
from typing import List, Optional
from .utils import load_json, save_json, roster_cache_path

log = logging.getLogger(__name__)


def load_cached_roster(ttl_seconds: float, now: Optional[float] = None, path: Optional[Path] = None) -> Optional[List[str]]:
    # Мастер-список из локального кэша; None если кэша нет, он битый или устарел
    path = path or roster_cache_path()
    obj = load_json(path, None)
    if not isinstance(obj, dict):
        return None

    students = obj.get("students")
    try:
        saved_at = float(obj.get("saved_at"))
    except (TypeError, ValueError):
        return None
    if not isinstance(students, list):
        return None

    now = time.time() if now is None else now
    if now - saved_at >= ttl_seconds:
        log.debug("roster cache expired (age %.0f s)", now - saved_at)
        return None

    return [str(s) for s in students if s is not None and str(s).strip()]


def save_cached_roster(students: List[str], now: Optional[float] = None, path: Optional[Path] = None) -> None:
    path = path or roster_cache_path()
    save_json(path, {
        "saved_at": time.time() if now is None else now,
        "students": list(students),
    })


def clear_cached_roster(path: Optional[Path] = None) -> None:
    path = path or roster_cache_path()
    path.unlink(missing_ok=True)


def get_master_roster(client, ttl_seconds: float, force_refresh: bool = False,
                      path: Optional[Path] = None) -> List[str]:
    """
    Сначала кэш (если свежий), иначе запрос в таблицу и запись в кэш.
    Ошибки клиента (RosterStoreError) пробрасываются.
    """
    if not force_refresh:
        cached = load_cached_roster(ttl_seconds, path=path)
        if cached is not None:
            log.info("using cached roster (%d students)", len(cached))
            return cached

    students = client.get_students()
    save_cached_roster(students, path=path)
    return students
