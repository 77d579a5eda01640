"""
Nature Journal — Logging Configuration
========================================

What:  Root logger setup plus a per-operation correlation id.
How:   `setup_logging()` configures the root logger once. `operation_scope()`
       stores a short id in a ContextVar for the duration of one pipeline
       run (save, refresh, delete, bootstrap); `OperationIdFilter` copies
       it onto every record so all lines of a run share the same id.
Who:   `setup_logging()` is called by JournalApp on startup; handlers wrap
       their entry points in `operation_scope()`.

Format: %(asctime)s [%(levelname)s] %(name)s [%(operation_id)s]: %(message)s
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# Coroutine-local storage for the id of the running pipeline operation
operation_id_var: ContextVar[str] = ContextVar("operation_id", default="-")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(operation_id)s]: %(message)s"


class OperationIdFilter(logging.Filter):
    """Adds `operation_id` to every record passing through the handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.operation_id = operation_id_var.get()
        return True


@contextmanager
def operation_scope(operation_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind an operation id to the current context for the enclosed block.

    The previous id is restored on exit, so nested scopes are safe.
    """
    oid = operation_id or str(uuid.uuid4())[:8]
    token = operation_id_var.set(oid)
    try:
        yield oid
    finally:
        operation_id_var.reset(token)


def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the whole package.

    What:    Single stdout handler with the operation-id format.
    When:    Called once during app startup, before other initialization.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(OperationIdFilter())

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Third-party libraries log every request/statement at INFO or DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
