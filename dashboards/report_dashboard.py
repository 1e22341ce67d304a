"""
Report Dashboard View - live list of the current user's weekly reports
"""
import streamlit as st
import streamlit.components.v1 as components

from dashboards.shared_components import show_loading_spinner
from excel_report_generator import XLSX_MIME, generate_filename, generate_weekly_excel_report
from print_layout import TABLE_STYLESHEET, build_print_document, render_report_table
from report_views import (
    ALL_WEEKS,
    ALL_WEEKS_LABEL,
    DeleteConfirmation,
    WeekFilter,
    available_weeks,
    format_created_at,
    period_label,
    summary_text,
)

WEEK_SELECT_KEY = "dashboard_week"
PRINT_DOCUMENT_KEY = "dashboard_print_document"


def _session_object(key, factory):
    if key not in st.session_state:
        st.session_state[key] = factory()
    return st.session_state[key]


class ReportDashboardView:
    def __init__(self, controller, app_config):
        self.controller = controller
        self.app_config = app_config
        self.week_filter = _session_object("dashboard_week_filter", WeekFilter)
        self.confirmation = _session_object("dashboard_delete_confirmation", DeleteConfirmation)

    def show(self):
        # Snapshots arrive on a background thread; poll for them on a timer
        live = st.fragment(run_every=self.app_config.refresh_interval_seconds)(_render_live_dashboard)
        live(self)

    def heading(self) -> str:
        return f"주간 안전보건 점검 보고서 ({period_label(self.week_filter.selected)})"

    def confirm_delete(self):
        self.confirmation.confirm(self.controller)

    def request_print(self, shown):
        """Freeze the printable document at click time; later snapshots must not re-trigger printing"""
        st.session_state[PRINT_DOCUMENT_KEY] = build_print_document(shown, self.heading())

    def close_print(self):
        st.session_state.pop(PRINT_DOCUMENT_KEY, None)

    def excel_export(self, shown):
        """Workbook bytes cached per (week, report ids)"""
        cache_key = (self.week_filter.selected, tuple(r.id for r in shown))
        cached = st.session_state.get("dashboard_excel_cache")
        if cached is None or cached[0] != cache_key:
            buffer = generate_weekly_excel_report(shown, self.heading(), self.app_config.timezone)
            cached = (cache_key, buffer.getvalue())
            st.session_state.dashboard_excel_cache = cached
        return cached[1]

    def render(self):
        self.controller.refresh()
        snapshot = self.controller.snapshot()

        # Session-level failures replace the whole page
        if snapshot.permission_error or snapshot.rate_limited:
            st.rerun()

        if snapshot.loading:
            show_loading_spinner("보고서를 불러오는 중...")
            return

        st.markdown("## 내 보고서 관리")
        st.caption("내가 제출한 보고서만 조회 및 관리할 수 있습니다.")

        if snapshot.submissions is None:
            st.info("표시할 보고서가 없습니다. 연결 상태를 확인하세요.")
            return

        reports = snapshot.submissions
        weeks = available_weeks(reports)
        options = [ALL_WEEKS] + weeks

        if self.week_filter.sync(weeks) or st.session_state.get(WEEK_SELECT_KEY) not in options:
            st.session_state[WEEK_SELECT_KEY] = self.week_filter.selected if self.week_filter.selected in options else ALL_WEEKS

        col1, col2, col3 = st.columns([3, 1, 1])
        with col1:
            selected = st.selectbox(
                "주차 선택:",
                options=options,
                format_func=lambda week: week or ALL_WEEKS_LABEL,
                key=WEEK_SELECT_KEY
            )
        self.week_filter.select(selected)
        shown = self.week_filter.apply(reports)

        with col2:
            st.button("🖨️ 현재 뷰 인쇄", on_click=self.request_print, args=(shown,), use_container_width=True)
        with col3:
            st.download_button(
                "📊 Excel 다운로드",
                data=self.excel_export(shown),
                file_name=generate_filename(self.week_filter.selected, self.app_config.timezone),
                mime=XLSX_MIME,
                use_container_width=True
            )

        st.markdown(summary_text(self.week_filter.selected, len(shown)))

        st.markdown(
            f"<style>{TABLE_STYLESHEET}</style>"
            f"<div style='overflow-x: auto;'>"
            f"{render_report_table(shown, include_created_column=True, tz_name=self.app_config.timezone)}"
            f"</div>",
            unsafe_allow_html=True
        )

        print_document = st.session_state.get(PRINT_DOCUMENT_KEY)
        if print_document:
            with st.container(border=True):
                st.button("인쇄 미리보기 닫기", on_click=self.close_print)
                components.html(print_document, height=420, scrolling=True)

        self.render_delete_actions(shown)

    def render_delete_actions(self, shown):
        if not shown:
            return

        st.markdown("#### 관리")
        for report in shown:
            col1, col2 = st.columns([6, 1])
            with col1:
                st.write(
                    f"{report.site_name} · {report.reporting_week} · "
                    f"{format_created_at(report, self.app_config.timezone)}"
                )
            with col2:
                st.button(
                    "삭제",
                    key=f"delete_{report.id}",
                    on_click=self.confirmation.request,
                    args=(report.id,),
                    disabled=self.confirmation.is_open
                )

        if self.confirmation.is_open:
            with st.container(border=True):
                st.markdown("**삭제 확인**")
                st.write(DeleteConfirmation.PROMPT)
                col1, col2 = st.columns(2)
                with col1:
                    st.button("취소", key="delete_cancel", on_click=self.confirmation.cancel,
                              use_container_width=True)
                with col2:
                    st.button("삭제", key="delete_confirm", on_click=self.confirm_delete,
                              type="primary", use_container_width=True)


def _render_live_dashboard(view: ReportDashboardView):
    view.render()
