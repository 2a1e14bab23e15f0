"""
Main Streamlit application for Reqman.
Browse, filter, create, edit and delete records of a schema-validated TOML database.
"""

import streamlit as st
import pandas as pd
import logging
from typing import Any, Callable, Dict, List, Optional

from reqman.config_loader import load_config, get_config_value, configure_logging, validate_config
from reqman.exceptions import ReqmanError, describe_error
from reqman.field_values import FormValue
from reqman.formatting import format_field_label, format_value, details_text, form_placeholder
from reqman.schema_loader import FieldSchema, FieldType
from reqman.session import DatabaseSession, OperationResult, open_session

config = load_config()
configure_logging(config)
logger = logging.getLogger(__name__)

page_title = get_config_value(config, 'ui', 'page_title', 'Reqman')
page_size = get_config_value(config, 'ui', 'page_size', 50)
app_version = get_config_value(config, 'app', 'version', 'Unknown')

st.set_page_config(
    page_title=page_title,
    page_icon="🗂️",
    layout="wide",
    initial_sidebar_state="expanded"
)


def main():
    """Main application entry point."""
    for problem in validate_config(config):
        st.sidebar.warning(f"⚠️ {problem}")

    session = get_session()
    init_session_state()

    render_header(session)
    mode = render_sidebar()

    if mode == "List":
        render_list_view(session)
    elif mode == "New":
        render_form_view(session, editing_index=None)
    else:
        render_form_view(session, editing_index=st.session_state.selected_index)

    render_status()


def get_session() -> DatabaseSession:
    """Open the configured database once per browser session; stop on fatal errors."""
    if 'db_session' in st.session_state:
        return st.session_state.db_session

    db_path = get_config_value(config, 'database', 'path', 'data/records.toml')
    schema_path = get_config_value(config, 'database', 'schema_path')

    try:
        session = open_session(db_path, schema_path)
    except ReqmanError as e:
        logger.error(f"Failed to open database: {e}")
        st.error("❌ **Cannot open database**")
        st.error(describe_error(e))
        for suggestion in e.recovery_suggestions:
            st.info(f"• {suggestion}")
        st.stop()

    st.session_state.db_session = session
    return session


def init_session_state():
    """Initialize session state variables."""
    if 'selected_index' not in st.session_state:
        st.session_state.selected_index = None

    if 'filter_text' not in st.session_state:
        st.session_state.filter_text = ""

    if 'form_version' not in st.session_state:
        st.session_state.form_version = 0

    if 'status_message' not in st.session_state:
        st.session_state.status_message = ""


def set_status(message: str):
    st.session_state.status_message = message


def render_header(session: DatabaseSession):
    """Render application header."""
    description = f" — {session.schema.description}" if session.schema.description else ""
    st.title(f"{page_title} v{app_version} · {session.schema.name}{description}")
    st.caption(f"Schema: {session.schema_source}  \nDB: {session.path}")


def render_sidebar() -> str:
    """Render navigation and return the selected mode."""
    st.sidebar.header("Navigation")
    return st.sidebar.radio("Mode", ["List", "New", "Edit"], key="mode")


def render_list_view(session: DatabaseSession):
    """Render filter box, record table, details pane and delete button."""
    filter_text = st.text_input(
        "Filter",
        key="filter_text",
        placeholder="field:value or search term"
    )
    indices = session.query(filter_text)

    left, right = st.columns(2)

    with left:
        st.subheader("Records")
        if not indices:
            st.info("No records found.")
            st.session_state.selected_index = None
        else:
            st.dataframe(build_records_frame(session, indices[:page_size]), hide_index=True)
            if len(indices) > page_size:
                st.caption(f"Showing {page_size} of {len(indices)} matching records")

            labels = {index: title for index, (title, _) in zip(indices, session.summaries(indices))}
            current = st.session_state.selected_index
            st.session_state.selected_index = st.selectbox(
                "Selected record",
                options=indices,
                index=indices.index(current) if current in indices else 0,
                format_func=lambda index: labels[index]
            )

    with right:
        st.subheader("Details")
        st.text(details_text(session.schema, session.record(st.session_state.selected_index)))

        if st.button("🗑️ Delete", disabled=st.session_state.selected_index is None):
            result = run_operation(session.delete, st.session_state.selected_index)
            if result is not None:
                handle_result(result)
                st.session_state.selected_index = None
                st.rerun()

    stale = session.stale_records()
    if stale:
        with st.expander(f"⚠️ {len(stale)} records do not match the current schema"):
            for index, errors in stale.items():
                st.write(f"#{index + 1}: {' '.join(errors)}")


def build_records_frame(session: DatabaseSession, indices: List[int]) -> pd.DataFrame:
    """Tabular view of the given records, formatted for display."""
    rows = []
    for index in indices:
        record = session.records[index]
        row: Dict[str, Any] = {"#": index + 1}
        for field in session.schema.fields:
            row[field.name] = format_value(field, record.get(field.name))
        rows.append(row)
    return pd.DataFrame(rows, columns=["#"] + session.schema.field_names)


def render_form_view(session: DatabaseSession, editing_index: Optional[int]):
    """Render the create/edit form built from the schema."""
    if editing_index is not None and session.record(editing_index) is None:
        editing_index = None

    if st.session_state.mode == "Edit" and editing_index is None:
        st.info("Select a record in the list to edit it.")
        return

    st.subheader("New record" if editing_index is None else f"Editing record #{editing_index + 1}")
    initial = session.form_values(editing_index)
    version = st.session_state.form_version

    with st.form(key=f"record_form_v{version}"):
        values = {field.name: render_field_input(field, initial.get(field.name), version)
                  for field in session.schema.fields}
        submitted = st.form_submit_button("💾 Save")

    if submitted:
        if editing_index is None:
            result = run_operation(session.create, values)
        else:
            result = run_operation(session.update, editing_index, values)
        if result is None:
            return
        handle_result(result)
        if result.success:
            st.session_state.selected_index = result.index
            st.session_state.form_version += 1
            st.rerun()


def render_field_input(field: FieldSchema, initial: FormValue, version: int) -> FormValue:
    """Render one input widget and return its raw value."""
    key = f"field_{field.name}_v{version}"
    label = format_field_label(field)

    if field.type is FieldType.BOOLEAN:
        return st.checkbox(label, value=bool(initial), key=key)

    if field.type is FieldType.CHOICE:
        options = [""] + list(field.options or ())
        current = initial if initial in options else ""
        return st.selectbox(label, options=options, index=options.index(current), key=key)

    return st.text_input(label, value=str(initial or ""), placeholder=form_placeholder(field), key=key)


def run_operation(operation: Callable[..., OperationResult], *args) -> Optional[OperationResult]:
    """Run a session operation; show document errors instead of raising them."""
    try:
        return operation(*args)
    except ReqmanError as e:
        logger.error(f"Operation failed: {e}")
        set_status(describe_error(e))
        st.error(f"❌ {describe_error(e)}")
        return None


def handle_result(result):
    """Show an operation result and remember it as the status line."""
    set_status(result.message)
    if not result.success:
        for error in result.errors:
            st.error(error)


def render_status():
    if st.session_state.status_message:
        st.caption(st.session_state.status_message)


if __name__ == "__main__":
    main()
