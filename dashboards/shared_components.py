"""
Shared components used by the shell and both views
"""
import streamlit as st

APP_STYLES = """
<style>
    .main-header {
        padding: 1.25rem 1.5rem;
        background: linear-gradient(135deg, #2563eb 0%, #1e40af 100%);
        color: white;
        border-radius: 10px;
        margin-bottom: 1.5rem;
    }

    .main-header h1 {
        color: white;
        margin: 0;
        font-size: 1.8rem;
    }

    .state-panel {
        text-align: center;
        padding: 2.5rem;
        border-radius: 10px;
        margin: 1rem 0;
    }

    .state-panel.warning { background: #fefce8; border: 1px solid #fde68a; color: #854d0e; }
    .state-panel.danger { background: #fef2f2; border: 1px solid #fecaca; color: #991b1b; }
    .state-panel.fatal { background: #fee2e2; border: 1px solid #f87171; color: #991b1b; }

    .loading-spinner {
        margin: 3rem auto;
        width: 64px;
        height: 64px;
        border-radius: 50%;
        border-top: 3px solid #3b82f6;
        border-bottom: 3px solid #3b82f6;
        border-left: 3px solid transparent;
        border-right: 3px solid transparent;
        animation: spin 1s linear infinite;
    }

    @keyframes spin { to { transform: rotate(360deg); } }

    .app-footer {
        text-align: center;
        color: #6b7280;
        font-size: 0.75rem;
        margin-top: 2rem;
    }
</style>
"""

ALERT_RENDERERS = {
    'success': st.success,
    'warning': st.warning,
    'error': st.error,
}


def inject_styles():
    st.markdown(APP_STYLES, unsafe_allow_html=True)


def show_header(title: str):
    st.markdown(f"""
    <div class="main-header">
        <h1>🛡️ {title}</h1>
    </div>
    """, unsafe_allow_html=True)


def show_loading_spinner(message: str = ""):
    st.markdown('<div class="loading-spinner"></div>', unsafe_allow_html=True)
    if message:
        st.caption(message)


@st.fragment(run_every=1)
def show_alert_banner(alerts):
    """Current alert with a close button; re-checked every second so it expires on time"""
    alert = alerts.current()
    if alert is None:
        return

    col1, col2 = st.columns([12, 1])
    with col1:
        ALERT_RENDERERS.get(alert.alert_type, st.error)(alert.message)
    with col2:
        st.button("X", key="alert_close", on_click=alerts.dismiss, help="닫기")


def show_state_panel(kind: str, title: str, body: str):
    st.markdown(f"""
    <div class="state-panel {kind}">
        <h2>{title}</h2>
        <p>{body}</p>
    </div>
    """, unsafe_allow_html=True)


def show_rate_limited_screen(controller):
    show_state_panel("warning", "로그인 요청 과다", "잠시 후 다시 시도해주세요.")
    st.button("재시도", key="retry_rate_limited", on_click=controller.retry, use_container_width=True)


def show_permission_error_screen(controller):
    show_state_panel(
        "danger",
        "데이터 접근 권한 오류",
        "개인 데이터 공간에 접근할 수 없습니다.<br/>아래 버튼으로 세션 복구를 시도하세요."
    )
    st.button("세션 복구 및 재시도", key="retry_permission", on_click=controller.retry,
              type="primary", use_container_width=True)


def show_config_required_screen():
    show_state_panel(
        "fatal",
        "설정값 입력 필요",
        "config.json 또는 FIREBASE_* 환경 변수에 Firebase 설정값을 입력해주세요."
    )


def show_connection_debug_panel(snapshot, app_id: str):
    """Sidebar connection info; opened automatically while a permission error is active"""
    label = "⚠️ 연결 상태 확인" if snapshot.permission_error else "연결 정보"
    with st.sidebar.expander(label, expanded=snapshot.permission_error):
        st.markdown(f"**로그인 상태:** {'✅ 로그인 됨' if snapshot.user_id else '❌ 로그인 안됨'}")
        st.markdown(f"**App ID:** {app_id}")
        st.markdown("**저장소:** 개인용 (Private)")
        if snapshot.permission_error:
            st.error("권한 오류 발생")
        if snapshot.last_error:
            st.caption(
                f"최근 오류: {snapshot.last_error.get('context')} "
                f"[{snapshot.last_error.get('error_code')}] {snapshot.last_error.get('error_message')}"
            )


def show_footer(user_id, app_id: str):
    st.markdown(f"""
    <div class="app-footer">
        <p>UserID: {user_id or '연결 안 됨'} | AppID: {app_id}</p>
        <p>© 2025 Construction Safety Management System | 안전보건팀</p>
    </div>
    """, unsafe_allow_html=True)
