import logging

from rich.logging import RichHandler

from revision_engine.config import settings


def configure_logging(level: str = None) -> None:
    """Route the package's log records through Rich, like the CLI output."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
