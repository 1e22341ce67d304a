from unittest import mock

import pytest
from streamlit.testing.v1 import AppTest

from report_form import widget_key
from weekly_report import WeeklyReport

PATH = 'artifacts/test-app/users/user-1/weeklyReports'
LEAF_KEY = widget_key('tbm', 'tbm_inspection', 'plan')


def _form_script():
    import streamlit as st
    from config_management import AppConfig, FirebaseSettings
    from dashboards.submission_form import SubmissionFormView

    # Stands in for the error screens, which replace the tabs
    if st.session_state.get('show_form', True):
        config = AppConfig(firebase=FirebaseSettings(api_key='test-key'), app_id='test-app')
        SubmissionFormView(st.session_state.controller, config).show()


def _dashboard_script():
    import streamlit as st
    from config_management import AppConfig, FirebaseSettings
    from dashboards.report_dashboard import ReportDashboardView

    config = AppConfig(firebase=FirebaseSettings(api_key='test-key'), app_id='test-app')
    ReportDashboardView(st.session_state.controller, config).show()


def _app(script, controller):
    at = AppTest.from_function(script, default_timeout=30)
    at.session_state['controller'] = controller
    return at.run()


def _button(at, label):
    return next(button for button in at.button if button.label == label)


@pytest.fixture
def started(controller):
    controller.start()
    return controller


def test_form_state_survives_a_hidden_run(started):
    at = _app(_form_script, started)
    week = at.text_input(key='form_reportingWeek').value
    assert week

    at.session_state['show_form'] = False
    at.run()
    at.session_state['show_form'] = True
    at.run()

    assert at.text_input(key='form_reportingWeek').value == week


def test_failed_submit_input_survives_a_hidden_run(started, firestore_client):
    at = _app(_form_script, started)
    firestore_client.denied.add(PATH)

    at.text_area(key=LEAF_KEY).set_value('매일 08:00')
    _button(at, '주간 보고서 제출').click()
    at.run()

    at.session_state['show_form'] = False
    at.run()
    at.session_state['show_form'] = True
    at.run()

    assert at.text_area(key=LEAF_KEY).value == '매일 08:00'
    assert at.text_input(key='form_reportingWeek').value


def test_successful_submit_writes_and_resets_form(started, firestore_client):
    at = _app(_form_script, started)

    at.text_area(key=LEAF_KEY).set_value('매일 08:00')
    _button(at, '주간 보고서 제출').click()
    at.run()

    stored = list(firestore_client.collections[PATH].documents.values())
    assert len(stored) == 1
    assert stored[0]['categories']['tbm']['tbm_inspection']['plan'] == '매일 08:00'
    assert at.text_area(key=LEAF_KEY).value == ''
    assert not _button(at, '주간 보고서 제출').disabled


def test_form_is_drawn_disabled_before_the_write(started):
    at = _app(_form_script, started)
    started.create_report = mock.Mock(side_effect=RuntimeError('write interrupted'))

    _button(at, '주간 보고서 제출').click()
    at.run()

    # The write failed mid-run, leaving the tree exactly as drawn before it
    assert at.exception
    assert _button(at, '제출 중...').disabled
    assert at.text_input(key='form_reportingWeek').disabled
    started.create_report.assert_called_once()


def test_print_document_is_frozen_at_click_time(started):
    started.create_report(WeeklyReport(reporting_week='2025-W30', site_name='현장 A'))
    at = _app(_dashboard_script, started)

    _button(at, '🖨️ 현재 뷰 인쇄').click()
    at.run()
    document = at.session_state['dashboard_print_document']
    assert '현장 A' in document

    started.create_report(WeeklyReport(reporting_week='2025-W30', site_name='현장 K'))
    at.run()

    assert at.session_state['dashboard_print_document'] == document
    assert '현장 K' not in document

    _button(at, '인쇄 미리보기 닫기').click()
    at.run()
    assert 'dashboard_print_document' not in at.session_state

