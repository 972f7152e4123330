"""Command-line entry point: ingest documents, ask questions, or launch the UI."""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from docstream import DocStream, InputError, PipelineError
from docstream.config import config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from logging import Logger
    from typing import TextIO

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_APP = PROJECT_ROOT / "app.py"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Build the CLI parser and read command-line arguments."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        description="Streamed question answering over your documents.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest_parser = subparsers.add_parser(
        "ingest", help="Embed PDF/TXT files and write them into the vector index."
    )
    ingest_parser.add_argument("paths", nargs="+", type=Path)

    ask_parser = subparsers.add_parser(
        "ask", help="Ask a question and stream the answer to stdout."
    )
    ask_parser.add_argument("question")
    ask_parser.add_argument(
        "--history",
        default="",
        help="Prior conversation, serialized as plain text.",
    )

    ui_parser = subparsers.add_parser("ui", help="Launch the Streamlit web app.")
    ui_parser.add_argument(
        "--app",
        type=Path,
        default=DEFAULT_APP,
        help="Path to the Streamlit script (default: app.py).",
    )
    ui_parser.add_argument(
        "--port",
        type=int,
        default=8501,
        help="Port for the Streamlit server (default: 8501).",
    )
    ui_parser.add_argument(
        "--address",
        default="localhost",
        help="Bind address for the Streamlit server (default: localhost).",
    )
    ui_parser.add_argument(
        "--show",
        dest="headless",
        action="store_false",
        help="Open Streamlit in a browser window instead of headless mode.",
    )
    ui_parser.set_defaults(headless=True)
    return parser.parse_args(argv)


def build_streamlit_command(
    script_path: Path,
    *,
    port: int,
    headless: bool,
    address: str,
) -> list[str]:
    """Construct the streamlit CLI invocation."""  # noqa: DOC201
    return [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(script_path),
        "--server.port",
        str(port),
        "--server.address",
        address,
        "--server.headless",
        "true" if headless else "false",
    ]


def run_streamlit(command: Sequence[str], logger: Logger) -> int:
    """Execute the configured streamlit command and return its exit code."""  # noqa: DOC201
    try:
        result = subprocess.run(  # noqa: S603
            command,
            check=False,
            cwd=PROJECT_ROOT,
        )
    except KeyboardInterrupt:
        logger.info("DocStream UI stopped by user")
        return 0
    except OSError:
        logger.exception("Unable to launch Streamlit")
        return 1
    return result.returncode


def run_ingest(service: DocStream, paths: Sequence[Path], logger: Logger) -> int:
    """Ingest files and report how many entries were written."""  # noqa: DOC201
    missing = [path for path in paths if not path.exists()]
    if missing:
        logger.error("Files not found: %s", ", ".join(str(p) for p in missing))
        return 1
    try:
        written = service.ingest_files(list(paths))
    except PipelineError:
        logger.exception("Ingestion failed")
        return 1
    logger.info("Wrote %d entries to the vector index", written)
    return 0


def run_ask(
    service: DocStream,
    question: str,
    history: str,
    logger: Logger,
    out: TextIO = sys.stdout,
) -> int:
    """Stream an answer to ``out`` followed by its sources."""  # noqa: DOC201
    try:
        answer = service.answer(question, history)
    except (InputError, PipelineError):
        logger.exception("Could not answer the question")
        return 1

    try:
        for token in answer.iter_text():
            out.write(token)
            out.flush()
    except KeyboardInterrupt:
        answer.cancel()
        logger.info("Answer cancelled by user")
        return 130
    except PipelineError:
        logger.exception("Answer stream broke off")
        return 1
    out.write("\n")

    sources = answer.metadata["sources"] if answer.metadata else []
    for i, source in enumerate(sources, start=1):
        out.write(f"\n[Source {i}]\n{source}\n")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Validate configuration and dispatch the selected command."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)

    try:
        config.validate()
    except ValueError:
        logger.exception("Configuration invalid")
        return 1

    if args.command == "ui":
        script_path = (
            args.app if args.app.is_absolute() else (PROJECT_ROOT / args.app)
        ).resolve()
        if not script_path.exists():
            logger.error("Streamlit script not found: %s", script_path)
            return 1

        logger.info(
            "Starting DocStream app at http://%s:%s (headless=%s)",
            args.address,
            args.port,
            args.headless,
        )
        command = build_streamlit_command(
            script_path,
            port=args.port,
            headless=args.headless,
            address=args.address,
        )
        return_code = run_streamlit(command, logger)
        if return_code != 0:
            logger.error("Streamlit exited with status %s", return_code)
        return return_code

    service = DocStream()
    if args.command == "ingest":
        return run_ingest(service, args.paths, logger)
    return run_ask(service, args.question, args.history, logger)


if __name__ == "__main__":
    sys.exit(main())
