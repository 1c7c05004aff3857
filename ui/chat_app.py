"""
Conversational Chat UI for the Wonderland Account Assistant.

Run with:
    streamlit run ui/chat_app.py
"""

import logging
import sys
from pathlib import Path

import streamlit as st

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Setup Google Cloud environment (MUST be called before importing orchestrator)
from config.settings import setup_environment, validate_config, VERSION, PRODUCT_NAME
setup_environment()

from core.conversational_orchestrator import ConversationalOrchestrator
from core.tracing import TraceStore, set_tracer
from models.schemas import Message, MessageRole
from models.session_state import SessionContext, STAGE_DESCRIPTION, STAGE_LINKS, STAGE_TALKING_POINTS

logger = logging.getLogger(__name__)

STAGE_LABELS = {
    STAGE_LINKS: "Links",
    STAGE_DESCRIPTION: "Description",
    STAGE_TALKING_POINTS: "Talking points",
}


def init_session_state():
    """Initialize chat session state."""
    if "messages" not in st.session_state:
        st.session_state.messages = []

    # Log trail per assistant message index
    if "turn_logs" not in st.session_state:
        st.session_state.turn_logs = {}

    if "account_session" not in st.session_state:
        st.session_state.account_session = SessionContext()

    if "tracer" not in st.session_state:
        st.session_state.tracer = TraceStore()
    set_tracer(st.session_state.tracer)

    if "orchestrator" not in st.session_state:
        try:
            st.session_state.orchestrator = ConversationalOrchestrator(tracer=st.session_state.tracer)
        except Exception as e:
            logger.error("Failed to initialize orchestrator: %s", e, exc_info=True)
            st.session_state.orchestrator = None


def reset_conversation():
    st.session_state.messages = []
    st.session_state.turn_logs = {}
    st.session_state.account_session = SessionContext()
    st.session_state.tracer.clear()


def render_sidebar():
    """Render account status and configuration sidebar."""
    with st.sidebar:
        st.header("📇 Active Account")
        session: SessionContext = st.session_state.account_session
        if session.active_record_id:
            st.success(session.active_record_name or "Unnamed account")
            st.caption(f"Record ID: `{session.active_record_id}`")
            if session.creation_progress is not None:
                stage = STAGE_LABELS.get(session.creation_progress, str(session.creation_progress))
                st.info(f"Collecting details: {stage} ({session.creation_progress + 1}/3)")
        else:
            st.info("No account selected")

        st.divider()

        st.header("⚙️ Configuration")
        config = validate_config()
        for key, ok in config.items():
            if key != "all_ok":
                st.text(f"{'✅' if ok else '❌'} {key}")

        st.divider()

        st.header("📊 LLM Usage")
        tracer: TraceStore = st.session_state.tracer
        col1, col2 = st.columns(2)
        with col1:
            st.metric("Calls", tracer.total_calls)
        with col2:
            st.metric("Cost", f"${tracer.total_cost:.4f}")
        if tracer.total_calls:
            with st.expander("Trace", expanded=False):
                st.code(tracer.format_for_export(), language=None)

        st.divider()
        if st.button("🔄 New conversation", use_container_width=True):
            reset_conversation()
            st.rerun()


def render_logs(logs: list[str]):
    """Render the log trail of one turn."""
    if not logs:
        return
    with st.expander("🧾 Log trail", expanded=False):
        for entry in logs:
            if "Error" in entry or "Failed" in entry or "mismatch" in entry:
                st.warning(entry)
            else:
                st.caption(entry)


def render_chat():
    """Render chat history and handle new input."""
    for idx, message in enumerate(st.session_state.messages):
        with st.chat_message(message.role.value):
            st.markdown(message.content)
            if message.role == MessageRole.ASSISTANT:
                render_logs(st.session_state.turn_logs.get(idx, []))

    user_input = st.chat_input("Type your message...")
    if not user_input:
        return

    if st.session_state.orchestrator is None:
        st.error("⚠️ Orchestrator failed to initialize. Check configuration and restart.")
        return

    history = st.session_state.messages + [Message(role=MessageRole.USER, content=user_input)]
    with st.chat_message("user"):
        st.markdown(user_input)

    with st.chat_message("assistant"):
        with st.status("🤖 Processing...", expanded=False) as status:
            result = st.session_state.orchestrator.process_turn(
                history, st.session_state.account_session
            )
            failed = any("Error in process_turn" in entry for entry in result.logs)
            status.update(label="❌ Error" if failed else "✅ Complete", state="error" if failed else "complete")

        reply = result.messages[-1]
        st.markdown(reply.content)
        render_logs(result.logs)

    st.session_state.messages = result.messages
    st.session_state.turn_logs[len(result.messages) - 1] = result.logs
    st.session_state.account_session = result.session
    st.rerun()


def main():
    """Main app entry point."""
    st.set_page_config(
        page_title=f"{PRODUCT_NAME} Account Assistant",
        page_icon="🤖",
        layout="wide",
        initial_sidebar_state="expanded"
    )

    init_session_state()

    st.title(f"🤖 {PRODUCT_NAME} Account Assistant")
    st.caption(f"Create, update and manage {PRODUCT_NAME} accounts by chatting · v{VERSION}")

    render_sidebar()
    render_chat()

    st.divider()
    st.caption(f"💬 {len(st.session_state.messages)} messages")


if __name__ == "__main__":
    main()
