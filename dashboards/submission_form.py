"""
Submission Form View
"""
import streamlit as st

from report_form import SubmissionFormModel, widget_key
from safety_taxonomy import CATEGORIES, FIELD_PLACEHOLDERS, LEAF_FIELDS, SITES

MODEL_KEY = "submission_form_model"
RESET_PENDING_KEY = "submission_form_reset_pending"


class SubmissionFormView:
    def __init__(self, controller, app_config):
        self.controller = controller
        self.app_config = app_config
        self.model = self.get_model()

    def get_model(self) -> SubmissionFormModel:
        if MODEL_KEY not in st.session_state:
            st.session_state[MODEL_KEY] = SubmissionFormModel(tz_name=self.app_config.timezone)
        return st.session_state[MODEL_KEY]

    def sync_widget_state(self):
        """
        Seed widget keys from the model before any widget is created.
        Streamlit drops a widget's state after a run that did not render it
        (the error screens replace the tabs), so missing keys are restored
        every run; after a successful submit all keys are overwritten.
        """
        overwrite = st.session_state.pop(RESET_PENDING_KEY, False)
        for key, value in self.model.widget_state().items():
            if overwrite or key not in st.session_state:
                st.session_state[key] = value

    def handle_submit(self):
        """Submit-button callback: validate and mark submitting; the write happens in the next run"""
        self.model.load_widget_state(st.session_state)
        self.model.begin_submit(self.controller)

    def complete_submit(self):
        """Runs after the disabled form has been drawn"""
        with st.spinner("제출 중..."):
            report_id = self.model.finish_submit(self.controller)
        if report_id:
            st.session_state[RESET_PENDING_KEY] = True
        st.rerun()

    def show(self):
        self.sync_widget_state()
        disabled = self.model.is_submitting

        with st.form("weekly_report_form", clear_on_submit=False):
            col1, col2, col3 = st.columns(3)
            with col1:
                st.text_input(
                    "보고 주차 (예: 2025-W30)",
                    key="form_reportingWeek",
                    placeholder="2025-W30",
                    disabled=disabled
                )
            with col2:
                st.selectbox("현장 이름", options=SITES, key="form_siteName", disabled=disabled)
            with col3:
                st.text_input("제출일자", value=self.model.today_display, disabled=True)

            for cat in CATEGORIES:
                with st.container(border=True):
                    st.markdown(f"### {cat['name']}")
                    for sub in cat['subCategories']:
                        st.markdown(f"**{sub['name']}**")
                        columns = st.columns(len(LEAF_FIELDS))
                        for column, field in zip(columns, LEAF_FIELDS):
                            with column:
                                st.text_area(
                                    FIELD_PLACEHOLDERS[field],
                                    key=widget_key(cat['id'], sub['id'], field),
                                    placeholder=FIELD_PLACEHOLDERS[field],
                                    height=100,
                                    label_visibility="collapsed",
                                    disabled=disabled
                                )

            st.text_input(
                "증빙 자료 링크 (구글 드라이브 등)",
                key="form_proofLink",
                placeholder="https://docs.google.com/...",
                disabled=disabled
            )

            st.form_submit_button(
                "제출 중..." if disabled else "주간 보고서 제출",
                on_click=self.handle_submit,
                disabled=disabled,
                type="primary"
            )

        if disabled:
            self.complete_submit()
