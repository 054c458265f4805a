from __future__ import annotations
import csv
import re
import logging
from io import BytesIO, StringIO
from typing import List, Any, Optional, Iterable
import pandas as pd
import pdfplumber
from openpyxl import load_workbook
from .errors import UnsupportedUploadError, UploadParseError
from .models import RosterEntry
from .utils import clean_cell, norm_text

log = logging.getLogger(__name__)


# =========================
# Excel: читаем лист как матрицу, разворачиваем merged cells
# =========================
def _sheet_to_matrix_with_merged(wb, sheet_name: str) -> List[List[Any]]:
    ws = wb[sheet_name]
    merged_map = {}
    for r in ws.merged_cells.ranges:
        min_col, min_row, max_col, max_row = r.bounds
        top_val = ws.cell(min_row, min_col).value
        for rr in range(min_row, max_row + 1):
            for cc in range(min_col, max_col + 1):
                merged_map[(rr, cc)] = top_val

    rows = []
    for r in range(1, ws.max_row + 1):
        row_vals = []
        for c in range(1, ws.max_column + 1):
            v = ws.cell(r, c).value
            if (r, c) in merged_map and (v is None or str(v).strip() == ""):
                v = merged_map[(r, c)]
            row_vals.append(v)
        rows.append(row_vals)

    return rows


def _read_excel_bytes(data: bytes) -> List[List[Any]]:
    # все листы подряд, как одна матрица
    try:
        wb = load_workbook(BytesIO(data), read_only=False, data_only=True)
    except Exception as e:  # openpyxl бросает разные ошибки на битых файлах
        raise UploadParseError(f"Cannot read Excel workbook: {type(e).__name__}: {e}") from e

    rows: List[List[Any]] = []
    for sheet in wb.sheetnames:
        rows.extend(_sheet_to_matrix_with_merged(wb, sheet))
    return rows


# =========================
# CSV: устойчивое чтение из bytes (выгрузки Meet/Zoom/Forms)
# =========================
def _guess_delimiter(sample_text: str) -> str:
    # разделитель: ',' (en-US) или ';' (другие локали), иногда табы
    try:
        dialect = csv.Sniffer().sniff(sample_text, delimiters=";,\t|")
        if dialect.delimiter:
            return dialect.delimiter
    except csv.Error:
        pass

    # fallback по количеству в первых строках
    candidates = [";", ",", "\t", "|"]
    lines = [ln for ln in sample_text.splitlines() if ln.strip()][:20]
    if not lines:
        return ","

    scores = {}
    for d in candidates:
        # среднее количество разделителей на строку
        cnts = [ln.count(d) for ln in lines]
        scores[d] = sum(cnts) / max(1, len(cnts))

    # выбираем лучший, но если все 0 - пусть будет ','
    best = max(scores.items(), key=lambda x: x[1])[0]
    return best if scores.get(best, 0) > 0 else ","


_CSV_ERRORS = (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError, csv.Error, ValueError)


def _frame_from_text(text: str) -> pd.DataFrame:
    delim = _guess_delimiter(text[:65536])
    # ширина по самой длинной строке: в выгрузках Meet/Zoom строки разной длины
    width = max((len(r) for r in csv.reader(StringIO(text), delimiter=delim)), default=0)
    if width == 0:
        return pd.DataFrame()
    return pd.read_csv(
        StringIO(text),
        header=None,
        names=list(range(width)),
        sep=delim,
        engine="python",
        dtype=str,
        skip_blank_lines=True,
        keep_default_na=False,
        na_filter=False,
    )


def _read_csv_bytes(data: bytes) -> pd.DataFrame:
    # читаем CSV БЕЗ header: первая строка тоже может быть именем
    if not data.strip():
        return pd.DataFrame()

    encodings = ["utf-8-sig", "utf-8", "cp1251"]
    last_err: Exception | None = None

    for enc in encodings:
        try:
            return _frame_from_text(data.decode(enc))
        except _CSV_ERRORS as e:
            last_err = e
            continue

    # Декодируем как текст с заменой и читаем
    try:
        return _frame_from_text(data.decode("utf-8", errors="replace"))
    except _CSV_ERRORS as e:
        raise UploadParseError(f"Cannot read CSV: {type(last_err or e).__name__}: {last_err or e}") from e


# =========================
# PDF: текст страниц -> строки, похожие на имена
# =========================
_GROUP_TOKEN_RE = re.compile(r"-G|\sG|Group")
_TWO_CAPS_RE = re.compile(r"\b[A-Z][a-z]+\s+[A-Z][a-z]+\b")
_ONLY_DIGITS_RE = re.compile(r"^\d+$")


def extract_names_from_text(text: str) -> List[str]:
    """
    Эвристика для текста из PDF: оставляем строки длиннее 3 символов,
    не из одних цифр, без слова "page", и в которых есть
    токен группы (-G, " G", Group) или два подряд слова с заглавной буквы.
    """
    names: List[str] = []
    for line in (text or "").splitlines():
        s = re.sub(r"\s+", " ", line).strip()
        if len(s) <= 3:
            continue
        if _ONLY_DIGITS_RE.match(s) or "page" in s.lower():
            continue
        if _GROUP_TOKEN_RE.search(s) or _TWO_CAPS_RE.search(s):
            names.append(s)
    return names


def _pdf_text(data: bytes) -> str:
    try:
        with pdfplumber.open(BytesIO(data)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:  # pdfminer бросает свои типы ошибок
        raise UploadParseError(f"Cannot read PDF: {type(e).__name__}: {e}") from e
    return "\n".join(pages)


# =========================
# Main: upload -> список имён
# =========================
def flatten_cells(rows: Iterable[Iterable[Any]]) -> List[str]:
    # построчно, слева направо; пустые ячейки выбрасываем, повторы остаются
    out: List[str] = []
    for row in rows:
        for v in row:
            s = clean_cell(v)
            if s:
                out.append(s)
    return out


def load_names_from_upload(name: str, data: bytes) -> List[str]:
    """
    Возвращает плоский список строк-кандидатов в имена (с повторами и шумом).
    CSV/TXT и XLSX - все непустые ячейки, PDF - строки по эвристике.
    """
    low = (name or "").lower()

    if low.endswith(".csv") or low.endswith(".txt"):
        df = _read_csv_bytes(data)
        names = flatten_cells(df.itertuples(index=False, name=None))
    elif low.endswith(".xlsx") or low.endswith(".xlsm"):
        names = flatten_cells(_read_excel_bytes(data))
    elif low.endswith(".pdf"):
        names = extract_names_from_text(_pdf_text(data))
    else:
        raise UnsupportedUploadError(f"Unsupported file type: {name}")

    log.info("loaded %d raw names from %s", len(names), name)
    return names


def load_names_from_uploads(uploads) -> List[str]:
    # uploads: объекты с .name и .getvalue() (streamlit UploadedFile)
    names: List[str] = []
    for up in uploads or []:
        names.extend(load_names_from_upload(up.name, up.getvalue()))
    return names


# =========================
# Мастер-список из файла (если таблица недоступна)
# =========================
_NAME_COL_HINTS = ["name", "фио", "имя"]
_PERSON_COL_HINTS = ["student", "participant", "студент"]
_GROUP_COL_HINTS = ["group", "batch", "course", "группа"]
_ID_COL_HINTS = ["id", "roll", "reg", "номер"]


def _pick_col(cols: List[Any], hints: List[str]) -> Optional[Any]:
    for c in cols:
        t = norm_text(c)
        if any(h in t for h in hints):
            return c
    return None


def load_roster_from_upload(name: str, data: bytes) -> List[RosterEntry]:
    """
    Читает мастер-список из CSV/XLSX с заголовком.
    Колонка имени ищется по заголовку; если не нашли - берётся первая колонка.
    """
    low = (name or "").lower()
    if not (low.endswith(".csv") or low.endswith(".xlsx") or low.endswith(".xlsm")):
        raise UnsupportedUploadError(f"Unsupported roster file type: {name}")
    try:
        if low.endswith(".csv"):
            df = pd.read_csv(BytesIO(data), dtype=str, encoding="utf-8-sig", keep_default_na=False, na_filter=False)
        else:
            df = pd.read_excel(BytesIO(data), dtype=str, keep_default_na=False, na_filter=False)
    except Exception as e:  # pandas/openpyxl: разные типы ошибок для битых файлов
        raise UploadParseError(f"Cannot read roster {name}: {type(e).__name__}: {e}") from e

    if df.empty or not len(df.columns):
        return []

    cols = list(df.columns)
    name_col = _pick_col(cols, _NAME_COL_HINTS) or _pick_col(cols, _PERSON_COL_HINTS) or cols[0]
    group_col = _pick_col([c for c in cols if c != name_col], _GROUP_COL_HINTS)
    id_col = _pick_col([c for c in cols if c not in (name_col, group_col)], _ID_COL_HINTS)

    out: List[RosterEntry] = []
    for _, row in df.iterrows():
        fio = clean_cell(row.get(name_col))
        if not fio:
            continue
        out.append(RosterEntry(
            name=fio,
            group=clean_cell(row.get(group_col)) if group_col is not None else "",
            student_id=clean_cell(row.get(id_col)) if id_col is not None else "",
        ))
    return out
