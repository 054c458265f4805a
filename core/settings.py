from __future__ import annotations
import os
import logging
from dataclasses import dataclass
from typing import Mapping, Optional
from .errors import ConfigurationError, MissingConfigurationError
from .models import DEFAULT_POLICY, MatchPolicy
from .utils import load_json, rules_path

log = logging.getLogger(__name__)

ENV_SCRIPT_URL = "GOOGLE_SCRIPT_URL"
ENV_REQUEST_TIMEOUT = "ATTENDANCE_REQUEST_TIMEOUT"
ENV_SAVE_TIMEOUT = "ATTENDANCE_SAVE_TIMEOUT"
ENV_CACHE_TTL = "ATTENDANCE_CACHE_TTL"
ENV_LOG_LEVEL = "ATTENDANCE_LOG_LEVEL"

DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_SAVE_TIMEOUT = 120.0   # запись в таблицу бывает медленной
DEFAULT_CACHE_TTL = 3600.0     # 1 час


@dataclass(frozen=True)
class Settings:
    script_url: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    save_timeout: float = DEFAULT_SAVE_TIMEOUT
    cache_ttl: float = DEFAULT_CACHE_TTL
    log_level: str = "INFO"

    def require_script_url(self) -> str:
        if not self.script_url:
            raise MissingConfigurationError(
                f"{ENV_SCRIPT_URL} is not set. Deploy the Apps Script web app and export its /exec URL."
            )
        return self.script_url


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = str(env.get(name, "") or "").strip()
    if not raw:
        return default
    try:
        value = float(raw.replace(",", "."))
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    # Настройки из переменных окружения (как APPDATA в utils)
    if env is None:
        env = os.environ

    return Settings(
        script_url=str(env.get(ENV_SCRIPT_URL, "") or "").strip(),
        request_timeout=_env_float(env, ENV_REQUEST_TIMEOUT, DEFAULT_REQUEST_TIMEOUT),
        save_timeout=_env_float(env, ENV_SAVE_TIMEOUT, DEFAULT_SAVE_TIMEOUT),
        cache_ttl=_env_float(env, ENV_CACHE_TTL, DEFAULT_CACHE_TTL),
        log_level=str(env.get(ENV_LOG_LEVEL, "") or "INFO").strip().upper() or "INFO",
    )


def load_policy(rules: Optional[Mapping] = None) -> MatchPolicy:
    """
    Пороги сопоставления из rules.json ("matching": {"fuzzy_floor", "high_confidence"}).
    Некорректные значения - пороги по умолчанию.
    """
    if rules is None:
        rules = load_json(rules_path(), {})
    m = rules.get("matching", {}) if isinstance(rules, Mapping) else {}
    if not isinstance(m, Mapping):
        return DEFAULT_POLICY

    try:
        floor = float(m.get("fuzzy_floor", DEFAULT_POLICY.fuzzy_floor))
        high = float(m.get("high_confidence", DEFAULT_POLICY.high_confidence))
    except (TypeError, ValueError):
        log.warning("rules.json: matching thresholds are not numbers, using defaults")
        return DEFAULT_POLICY

    if not (0.0 <= floor <= high < 1.0):
        log.warning("rules.json: invalid thresholds floor=%s high=%s, using defaults", floor, high)
        return DEFAULT_POLICY
    return MatchPolicy(fuzzy_floor=floor, high_confidence=high)
