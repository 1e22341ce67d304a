import logging

import streamlit as st

from alerts import AlertCenter
from app_controller import SafetyReportController, build_client_context
from config_management import load_app_config
from error_handling import configure_logging
from dashboards.report_dashboard import ReportDashboardView
from dashboards.shared_components import (
    inject_styles,
    show_alert_banner,
    show_config_required_screen,
    show_connection_debug_panel,
    show_footer,
    show_header,
    show_loading_spinner,
    show_permission_error_screen,
    show_rate_limited_screen,
)
from dashboards.submission_form import SubmissionFormView

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION AND CLIENT CONTEXT
# =============================================================================

@st.cache_resource(show_spinner=False)
def get_app_config():
    """Resolve configuration once per process; the result is immutable"""
    app_config = load_app_config()
    log_settings = app_config.logging
    configure_logging(
        level=log_settings.get("level", "INFO"),
        log_format=log_settings.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
        file_path=log_settings.get("file_path"),
        max_file_size_mb=log_settings.get("max_file_size_mb", 10),
        backup_count=log_settings.get("backup_count", 5),
    )
    logger.info(f"Application initialized (app_id={app_config.app_id})")
    return app_config


def get_controller(app_config) -> SafetyReportController:
    """One controller per browser session, holding that session's identity and subscriptions"""
    if "controller" not in st.session_state:
        alerts = AlertCenter(timeout_seconds=app_config.alert_timeout_seconds)
        controller = SafetyReportController(build_client_context(app_config, alerts), alerts)
        with st.spinner("로그인 중..."):
            controller.start()
        st.session_state.controller = controller
    return st.session_state.controller


# =============================================================================
# PAGE
# =============================================================================

app_config = get_app_config()

st.set_page_config(
    page_title=app_config.page_title,
    page_icon=app_config.page_icon,
    layout=app_config.layout
)

inject_styles()
show_header(app_config.page_title)

controller = get_controller(app_config)
controller.refresh()
snapshot = controller.snapshot()

show_alert_banner(controller.alerts)
show_connection_debug_panel(snapshot, app_config.app_id)

if snapshot.rate_limited:
    show_rate_limited_screen(controller)
elif snapshot.permission_error:
    show_permission_error_screen(controller)
elif snapshot.config_error:
    show_config_required_screen()
elif snapshot.loading and not snapshot.auth_ready:
    show_loading_spinner()
else:
    # Both tabs render every run; the inactive one is hidden, so unsaved form input survives
    form_tab, dashboard_tab = st.tabs(["보고서 제출", "내 보고서 관리"])
    with form_tab:
        SubmissionFormView(controller, app_config).show()
    with dashboard_tab:
        ReportDashboardView(controller, app_config).show()

show_footer(snapshot.user_id, app_config.app_id)
