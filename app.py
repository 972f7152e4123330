"""Web interface using Streamlit."""

import datetime
import tempfile
from pathlib import Path

import streamlit as st

from docstream import DocStream, InputError, PipelineError
from docstream.config import config
from docstream.models import ConversationTurn, format_chat_history

MAX_SOURCE_PREVIEW_LENGTH = 300

config.setup_logging()
logger = config.get_logger(__name__)


class SessionState:
    """Centralized session state management."""

    @staticmethod
    def initialize() -> None:
        """Initialize all session state variables."""
        defaults = {
            "docstream": None,
            "documents_ingested": 0,
            "conversation": [],
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

    @staticmethod
    def clear_conversation() -> None:
        st.session_state.conversation = []

    @staticmethod
    def is_system_ready() -> bool:
        """Check if the system is properly initialized.

        Returns:
            bool: True once the DocStream service has been built.
        """
        return st.session_state.get("docstream") is not None


def validate_configuration() -> bool:
    """Validate application configuration and show user feedback.

    Returns:
        bool: True if configuration is valid, False otherwise.
    """
    try:
        config.validate()
    except ValueError as e:
        st.error(f"Configuration Error: {e}")
        return False
    else:
        return True


def initialize_system() -> bool:
    """Build providers, vector index and pipelines.

    Returns:
        bool: True if initialization succeeds, False otherwise.
    """
    try:
        with st.spinner("Initializing system..."):
            st.session_state.docstream = DocStream()

        logger.info("DocStream initialized successfully")
        st.success("System initialized successfully!")

    except (ValueError, RuntimeError, OSError) as e:
        logger.exception("Failed to initialize system")
        if config.is_production():
            st.error("Failed to initialize system.")
        else:
            st.error(f"Failed to initialize system: {e}")
        return False
    else:
        return True


def ingest_uploaded_file(uploaded_file) -> bool:  # noqa: ANN001
    """Write the upload to a temporary file and ingest it.

    Returns:
        bool: True if ingestion succeeds, False otherwise.
    """
    suffix = Path(uploaded_file.name).suffix
    with tempfile.TemporaryDirectory() as tmp_dir:
        # keep the original name so chunk metadata points at the real source
        tmp_file_path = Path(tmp_dir) / f"{Path(uploaded_file.name).stem}{suffix}"
        tmp_file_path.write_bytes(uploaded_file.getbuffer())

        try:
            with st.spinner(f"Ingesting '{uploaded_file.name}'..."):
                written = st.session_state.docstream.ingest_files([tmp_file_path])
        except PipelineError as e:
            logger.exception("Document ingestion failed")
            st.error(f"{e}")
            return False

    st.session_state.documents_ingested += 1
    st.success(f"'{uploaded_file.name}' ingested: {written} chunks written.")
    return True


def render_sidebar() -> None:
    """Render the sidebar with configuration and system status."""
    with st.sidebar:
        st.header("System Configuration")

        if (
            st.button("Initialize System", use_container_width=True)
            and validate_configuration()
            and initialize_system()
        ):
            st.rerun()

        st.divider()
        st.subheader("System Status")
        config_status = "Valid" if validate_configuration() else "Invalid"
        st.write(f"**Configuration:** {config_status}")
        if SessionState.is_system_ready():
            st.write("**System:** Ready")
            st.write(
                f"**Indexed chunks:** {st.session_state.docstream.vector_index.count()}"
            )
        else:
            st.write("**System:** Not Initialized")

        if config.is_development():
            st.caption(
                f"Environment: {config.ENVIRONMENT} | "
                f"top_k={config.RETRIEVAL_TOP_K} | "
                f"duplicates={config.INGEST_DUPLICATE_POLICY}"
            )

        if SessionState.is_system_ready():
            st.divider()
            st.subheader("Conversation")
            if st.button("Clear History", use_container_width=True):
                SessionState.clear_conversation()
                st.success("Conversation cleared!")
                st.rerun()


def render_document_upload() -> None:
    """Render document upload section."""
    st.header("Document Upload")
    uploaded_file = st.file_uploader(
        "Upload a PDF or TXT document",
        type=["pdf", "txt"],
        help="Chunks are embedded and added to the shared vector index",
    )
    if (
        uploaded_file
        and st.button("Ingest Document", use_container_width=True)
        and ingest_uploaded_file(uploaded_file)
    ):
        st.rerun()


def render_sources(sources: list[str]) -> None:
    if not sources:
        st.caption("No sources were retrieved for this answer.")
        return
    for i, source in enumerate(sources, start=1):
        with st.expander(f"Source {i}", expanded=False):
            st.code(
                source[:MAX_SOURCE_PREVIEW_LENGTH] + "..."
                if len(source) > MAX_SOURCE_PREVIEW_LENGTH
                else source
            )


def render_chat_interface() -> None:
    """Render past turns and stream the answer to a new question."""
    st.header("Ask Questions About Your Documents")

    for turn in st.session_state.conversation:
        with st.chat_message("user"):
            st.write(turn.user_question)
        with st.chat_message("assistant"):
            st.write(turn.bot_response)
            render_sources(turn.sources)

    question = st.chat_input("Ask anything about your documents...")
    if not question:
        return

    with st.chat_message("user"):
        st.write(question)

    chat_history = format_chat_history(st.session_state.conversation)
    with st.chat_message("assistant"):
        try:
            answer = st.session_state.docstream.answer(question, chat_history)
            response = st.write_stream(answer.iter_text())
        except InputError as e:
            st.warning(f"{e}")
            return
        except PipelineError as e:
            logger.exception("Question processing failed")
            st.error(f"{e}")
            return

        sources = answer.metadata["sources"] if answer.metadata else []
        render_sources(sources)

    st.session_state.conversation.append(
        ConversationTurn(
            user_question=question,
            bot_response=str(response),
            sources=sources,
            timestamp=datetime.datetime.now(tz=datetime.UTC).isoformat(),
        )
    )


def render_system_info() -> None:
    """Render system information footer."""
    st.markdown("---")
    st.subheader("System Overview")

    col1, col2, col3 = st.columns(3)
    with col1:
        st.markdown("**Embedding Model**")
        st.markdown(f"**{config.EMBEDDING_MODEL}**")
    with col2:
        st.markdown("**Chat Model**")
        st.markdown(f"**{config.CHAT_MODEL}**")
    with col3:
        st.markdown("**Vector Backend**")
        st.markdown(f"**{config.VECTOR_BACKEND}**")

    with st.expander("How answers are produced", expanded=False):
        st.markdown("""
        1. **Rewrite**: a follow-up question is rewritten into a standalone
           question using the conversation so far
        2. **Retrieve**: the standalone question is embedded and the closest
           chunks are pulled from the vector index
        3. **Answer**: the model answers from those chunks only, streaming
           tokens as they are produced
        4. **Sources**: once the answer is complete, the two best chunks are
           shown as sources
        """)


def main() -> None:
    """Main entry point for the Streamlit web application."""
    st.set_page_config(
        page_title="DocStream - Document Q&A",
        layout="wide",
    )

    SessionState.initialize()

    st.title("DocStream - Document Q&A")
    st.markdown("---")

    render_sidebar()

    if not SessionState.is_system_ready():
        st.info("Please initialize the system using the sidebar to get started.")
        return

    render_document_upload()
    render_chat_interface()
    render_system_info()


if __name__ == "__main__":
    main()
