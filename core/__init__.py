"""
Этот пакет содержит:
- нормализацию имён и сопоставление с мастер-списком (точное + fuzzy)
- сверку посещаемости: present / absent / unknown
- загрузку списков из CSV/XLSX/PDF
- клиент таблицы (Apps Script) и локальный кэш мастер-списка
- экспорт результата
"""
from .utils import normalize_name
from .models import MatchPolicy, MatchResult, ReconciliationResult, RosterEntry, DEFAULT_POLICY
from .matcher import build_index, find_best_match
from .reconcile import reconcile, dedupe_uploaded_names
from .ingest import load_names_from_upload, load_names_from_uploads, load_roster_from_upload, extract_names_from_text
from .roster_store import RosterStoreClient
from .cache import get_master_roster
from .export import export_to_excel_bytes, filter_display_unknowns, copy_block

__all__ = [
    "normalize_name",
    "MatchPolicy",
    "MatchResult",
    "ReconciliationResult",
    "RosterEntry",
    "DEFAULT_POLICY",
    "build_index",
    "find_best_match",
    "reconcile",
    "dedupe_uploaded_names",
    "load_names_from_upload",
    "load_names_from_uploads",
    "load_roster_from_upload",
    "extract_names_from_text",
    "RosterStoreClient",
    "get_master_roster",
    "export_to_excel_bytes",
    "filter_display_unknowns",
    "copy_block",
]
