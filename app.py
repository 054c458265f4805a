from __future__ import annotations
import time
import logging
import datetime as dt
import streamlit as st
import pandas as pd
from core.cache import get_master_roster, clear_cached_roster
from core.errors import AttendanceError
from core.export import export_to_excel_bytes, filter_display_unknowns, copy_block, result_frames
from core.ingest import load_names_from_upload, load_roster_from_upload
from core.logging_setup import configure_logging
from core.reconcile import reconcile, dedupe_uploaded_names
from core.roster_store import RosterStoreClient
from core.settings import load_settings, load_policy

SETTINGS = load_settings()
POLICY = load_policy()
configure_logging(SETTINGS.log_level)
log = logging.getLogger("attendance.app")

st.set_page_config(page_title="Attendance Checker", layout="wide")
st.title("Attendance checker: uploaded list vs master roster")


# =========================
# Helpers
# =========================
def _client() -> RosterStoreClient:
    return RosterStoreClient.from_settings(SETTINGS)


def _load_master(force: bool = False) -> list[str]:
    with _client() as client:
        return get_master_roster(client, SETTINGS.cache_ttl, force_refresh=force)


def _names_block(title: str, names: list[str]) -> None:
    st.markdown(f"#### {title} ({len(names)})")
    if not names:
        st.caption("(none)")
        return
    st.dataframe(pd.DataFrame({"Name": names}), width="stretch", hide_index=True)
    # st.code даёт кнопку копирования
    with st.expander("Copy list", expanded=False):
        st.code(copy_block(names), language=None)


# =========================
# Master roster
# =========================
st.subheader("Master roster")
for k in ["master_roster", "master_source", "result", "processing_ms"]:
    st.session_state.setdefault(k, None)

m1, m2 = st.columns([3, 1])
with m2:
    refresh = st.button("Refresh from sheet")
    if st.button("Clear local cache"):
        clear_cached_roster()
        st.session_state["master_roster"] = None
        st.success("Cache cleared.")

if st.session_state["master_roster"] is None or refresh:
    if SETTINGS.script_url:
        try:
            st.session_state["master_roster"] = _load_master(force=refresh)
            st.session_state["master_source"] = "sheet"
        except AttendanceError as e:
            log.error("failed to load master roster: %s", e)
            st.error(f"Could not load the master roster from the sheet: {e}")
    else:
        st.info("GOOGLE_SCRIPT_URL is not set: upload the master roster as a file instead.")

roster_file = st.file_uploader(
    "Master roster file (CSV/XLSX, optional: replaces the sheet roster)",
    type=["csv", "xlsx"],
    accept_multiple_files=False,
)
if roster_file is not None:
    try:
        entries = load_roster_from_upload(roster_file.name, roster_file.getvalue())
        st.session_state["master_roster"] = [e.name for e in entries]
        st.session_state["master_source"] = roster_file.name
    except AttendanceError as e:
        st.error(f"Roster file skipped: {e}")

master = st.session_state["master_roster"] or []
with m1:
    if master:
        st.success(f"Master roster loaded: {len(master)} students (source: {st.session_state['master_source']}).")
    else:
        st.warning("Master roster is empty: every uploaded name will be reported as unknown.")


# =========================
# Uploads
# =========================
st.subheader("Attendance file")
uploads = st.file_uploader(
    "Upload CSV/XLSX/PDF attendance files (several allowed)",
    type=["csv", "txt", "xlsx", "pdf"],
    accept_multiple_files=True,
)

if not uploads:
    st.warning("Upload an attendance file.")
    st.stop()

raw_names: list[str] = []
bad_files: list[dict] = []
for up in uploads:
    try:
        raw_names.extend(load_names_from_upload(up.name, up.getvalue()))
    except AttendanceError as e:
        bad_files.append({"File": up.name, "Error": f"{type(e).__name__}: {e}"})

if bad_files:
    st.error("Some files were skipped (the rest were processed):")
    st.dataframe(pd.DataFrame(bad_files), width="stretch")

unique_names = dedupe_uploaded_names(raw_names)
st.info(f"Names found: {len(raw_names)} raw, {len(unique_names)} unique.")
with st.expander("Uploaded names", expanded=False):
    st.dataframe(pd.DataFrame({"Name": unique_names}), width="stretch", hide_index=True)


# =========================
# Reconcile
# =========================
st.divider()
if st.button("Compare attendance", type="primary"):
    started = time.monotonic()
    st.session_state["result"] = reconcile(unique_names, master, POLICY)
    st.session_state["processing_ms"] = int((time.monotonic() - started) * 1000)

result = st.session_state.get("result")
if result is None:
    st.stop()

c1, c2, c3, c4, c5 = st.columns(5)
c1.metric("Processed", result.total_processed)
c2.metric("Present", len(result.present))
c3.metric("Absent", len(result.absentees))
c4.metric("Unknown", len(result.unknowns))
c5.metric("Accuracy", f"{result.accuracy}%")
st.caption(f"Processing time: {st.session_state.get('processing_ms') or 0} ms")

l1, l2, l3 = st.columns(3)
with l1:
    _names_block("Present", list(result.present))
with l2:
    _names_block("Absent", list(result.absentees))
with l3:
    shown = filter_display_unknowns(result.unknowns)
    _names_block("Unknown", shown)
    if shown:
        st.caption("These names were not found in the master roster.")

with st.expander("Match details", expanded=False):
    _, details_df = result_frames(result)
    st.dataframe(details_df, width="stretch", hide_index=True)

att_date = st.date_input("Attendance date", value=dt.date.today())
day = att_date.strftime("%Y-%m-%d")

st.download_button(
    "Download Excel report",
    data=export_to_excel_bytes(result, date=day),
    file_name=f"attendance_{day}.xlsx",
    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
)


# =========================
# Save to sheet
# =========================
st.subheader("Save to sheet")
if not SETTINGS.script_url:
    st.caption("Saving requires GOOGLE_SCRIPT_URL.")
    st.stop()

if st.button("Save present students", disabled=not result.present):
    try:
        with _client() as client:
            resp = client.save_attendance(list(result.present), day)
        if resp.get("success") is False:
            st.error(f"Sheet rejected the save: {resp.get('error', 'unknown error')}")
        else:
            st.success(f"Saved attendance for {len(result.present)} students on {day}.")
    except AttendanceError as e:
        st.error(f"Save failed: {e}. The sheet may still have been updated, please check it.")

with st.form("mark_individual", clear_on_submit=True):
    who = st.selectbox("Mark one student present", [""] + list(result.absentees))
    if st.form_submit_button("Mark present") and who:
        try:
            with _client() as client:
                client.mark_individual(who, day)
            st.success(f"{who} marked present on {day}.")
        except AttendanceError as e:
            st.error(f"Could not mark {who}: {e}")
