from __future__ import annotations
import re
import pandas as pd
from io import BytesIO
from typing import Iterable, List, Optional, Tuple
from .models import ReconciliationResult

# Заголовки выгрузок Meet/Zoom, которые попадают в unknowns
_MEETING_HEADERS = {
    h.lower() for h in [
        "SNo", "Participant Name", "Attendance Started at", "Joined at(beta)",
        "Attendance Stopped at", "Attended Duration", "Meeting code", "Not captured", "MERGED AUDIO",
    ]
}

_NUMBER_RE = re.compile(r"^\d+[.,:]?\d*$")
_TIME_RE = re.compile(r"^\d{1,2}:\d{1,2}(:\d{1,2})?(\s?[AP]M)?$", re.I)
_DURATION_RE = re.compile(r"^(\d+\s*hr)?\s*\d+\s*min(\s*\d+s)?$", re.I)
_TIME_PREFIX_RE = re.compile(r"^time[:：]", re.I)
_MEETING_CODE_RE = re.compile(r"^[a-z]{3}-[a-z]{4}-[a-z]{3}$", re.I)


def _is_display_noise(s: str) -> bool:
    if len(s) < 3:
        return True
    if _NUMBER_RE.match(s) or _TIME_RE.match(s) or _DURATION_RE.match(s):
        return True
    if _TIME_PREFIX_RE.match(s) or _MEETING_CODE_RE.match(s):
        return True
    return s.lower() in _MEETING_HEADERS


def filter_display_unknowns(unknowns: Iterable[str]) -> List[str]:
    # Только для показа: числа, время, длительности, шапки и коды встреч скрываем
    out = []
    for u in unknowns:
        s = str(u or "").strip()
        if s and not _is_display_noise(s):
            out.append(s)
    return out


def copy_block(names: Iterable[str]) -> str:
    # текст для копирования: одно имя на строку
    return "\n".join(str(n) for n in names)


def result_frames(result: ReconciliationResult) -> Tuple[pd.DataFrame, pd.DataFrame]:
    summary_df = pd.DataFrame([
        {"Metric": "Total processed", "Value": result.total_processed},
        {"Metric": "Present", "Value": len(result.present)},
        {"Metric": "Absent", "Value": len(result.absentees)},
        {"Metric": "Unknown", "Value": len(result.unknowns)},
        {"Metric": "Accuracy (%)", "Value": result.accuracy},
    ])

    details = [m.to_dict() for m in result.match_details]
    details_df = pd.DataFrame(details, columns=["input", "match", "confidence", "method", "tier"])
    details_df = details_df.rename(columns={
        "input": "Uploaded name",
        "match": "Matched student",
        "confidence": "Confidence",
        "method": "Method",
        "tier": "Tier",
    })
    return summary_df, details_df


def export_to_excel_bytes(result: ReconciliationResult, date: Optional[str] = None) -> bytes:
    summary_df, details_df = result_frames(result)
    if date:
        summary_df = pd.concat([pd.DataFrame([{"Metric": "Date", "Value": date}]), summary_df], ignore_index=True)

    lists = {
        "Present": pd.DataFrame({"Student": list(result.present)}),
        "Absent": pd.DataFrame({"Student": list(result.absentees)}),
        "Unknown": pd.DataFrame({"Uploaded name": list(result.unknowns)}),
    }

    bio = BytesIO()

    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        summary_df.to_excel(writer, index=False, sheet_name="Summary")
        for name, df in lists.items():
            df.to_excel(writer, index=False, sheet_name=name)
        details_df.to_excel(writer, index=False, sheet_name="Match details")

        wb = writer.book

        fmt_header = wb.add_format({"bold": True, "bg_color": "#F2F2F2", "border": 1, "valign": "vcenter"})
        fmt_lvl_err = wb.add_format({"border": 1, "valign": "top", "bg_color": "#FCE8E6"})
        fmt_lvl_warn = wb.add_format({"border": 1, "valign": "top", "bg_color": "#FEF7E0"})
        fmt_lvl_ok = wb.add_format({"border": 1, "valign": "top", "bg_color": "#E6F4EA"})

        def format_df_sheet(sheet_name: str, df: pd.DataFrame, default_width: int = 22, max_width: int = 60):
            ws = writer.sheets.get(sheet_name)
            if ws is None:
                return
            ws.freeze_panes(1, 0)
            ws.autofilter(0, 0, max(1, len(df)), max(0, len(df.columns) - 1))
            for col, name in enumerate(df.columns):
                ws.write(0, col, name, fmt_header)
                w = max(10, min(max_width, int(len(str(name)) * 1.2) + 10))
                ws.set_column(col, col, max(default_width, w))

        format_df_sheet("Summary", summary_df, default_width=20, max_width=30)
        for name, df in lists.items():
            format_df_sheet(name, df, default_width=36, max_width=60)
        format_df_sheet("Match details", details_df, default_width=24, max_width=48)

        # подсветка уровня совпадения
        wsd = writer.sheets.get("Match details")
        if wsd is not None and len(details_df):
            jt = list(details_df.columns).index("Tier")
            last_row = len(details_df)
            for value, fmt in (("high", fmt_lvl_ok), ("medium", fmt_lvl_warn), ("none", fmt_lvl_err)):
                wsd.conditional_format(1, jt, last_row, jt, {
                    "type": "cell",
                    "criteria": "==",
                    "value": f'"{value}"',
                    "format": fmt,
                })

    return bio.getvalue()
