import os
import re
import json
import math
from pathlib import Path
from typing import Any, Optional
from datetime import date as _date
from dateutil import parser as dtparser

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DATA_DIR = BASE_DIR / "data"

APPDATA = os.environ.get("APPDATA")
if APPDATA:
    USER_DATA_DIR = Path(APPDATA) / "AttendanceChecker" / "data"
else:
    USER_DATA_DIR = DEFAULT_DATA_DIR  # fallback

def load_json(path: Path, default: Any):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        return default

def save_json(path: Path, obj: Any):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)

_NBSP_RE = re.compile(r"[\u00A0\u2007\u202F]")  # NBSP варианты
_WS_RE = re.compile(r"\s+")
_NON_KEY_RE = re.compile(r"[^a-z0-9]")


def norm_text(s: Any) -> str:
    """
    Лёгкая нормализация текста ячейки/строки:
    - BOM/неразрывные пробелы
    - схлопывание пробелов
    - lower
    """
    if s is None:
        return ""

    s = str(s)
    s = s.replace("\ufeff", "")
    s = _NBSP_RE.sub(" ", s)
    s = _WS_RE.sub(" ", s).strip()
    return s.lower()


def clean_cell(s: Any) -> str:
    # Значение ячейки для списка имён: trim, None и float NaN -> "".
    # Текст "NA", "Nat", "None" - это имена, их не трогаем
    if s is None or (isinstance(s, float) and math.isnan(s)):
        return ""
    return str(s).replace("\ufeff", "").strip()


def normalize_name(name: Any) -> str:
    """
    Ключ сравнения имени:
    - lower
    - удаляем все пробелы
    - удаляем всё, что не [a-z0-9]

    Разные написания ("Charan - G4 VLSI" и "charan g4vlsi") дают один ключ.
    Функция чистая и идемпотентная.
    """
    if name is None:
        return ""
    s = str(name).lower()
    s = _WS_RE.sub("", s)
    return _NON_KEY_RE.sub("", s)


def try_parse_date(s: Any) -> Optional[str]:
    # дата отметки посещаемости -> YYYY-MM-DD
    if s is None:
        return None

    # datetime.date / datetime.datetime / pandas.Timestamp
    if hasattr(s, "year") and hasattr(s, "month") and hasattr(s, "day"):
        try:
            return f"{int(s.year):04d}-{int(s.month):02d}-{int(s.day):02d}"
        except (TypeError, ValueError):
            pass

    txt = norm_text(s)
    if not txt:
        return None

    # yyyy-mm-dd
    if re.match(r"^\d{4}[./-]\d{1,2}[./-]\d{1,2}$", txt):
        try:
            return dtparser.parse(txt, dayfirst=False).strftime("%Y-%m-%d")
        except (ValueError, OverflowError):
            return None

    # dd.mm.yyyy и текстовые варианты ("19 oct 2026")
    try:
        return dtparser.parse(txt, dayfirst=True).strftime("%Y-%m-%d")
    except (ValueError, OverflowError):
        return None


def today_str() -> str:
    return _date.today().strftime("%Y-%m-%d")


def rules_path() -> Path:
    return DEFAULT_DATA_DIR / "rules.json"

def roster_cache_path() -> Path:
    USER_DATA_DIR.mkdir(parents=True, exist_ok=True)
    return USER_DATA_DIR / "roster_cache.json"
