"""
Nature Journal — Notices
==========================

What:  Blocking user-facing messages (the headless equivalent of alerts).
How:   Handlers never let a pipeline error escape; they build a Notice and
       pass it to a notifier callable. `Notice.from_error()` names the failed
       step through the exception's `notice_title`.
"""

from enum import Enum
from typing import Awaitable, Callable

from pydantic import BaseModel

from nature_journal.exceptions import JournalError


class NoticeLevel(str, Enum):
    INFO = "info"
    ERROR = "error"


class Notice(BaseModel):
    title: str
    message: str
    level: NoticeLevel = NoticeLevel.INFO

    model_config = {"frozen": True}

    @classmethod
    def info(cls, title: str, message: str) -> "Notice":
        return cls(title=title, message=message, level=NoticeLevel.INFO)

    @classmethod
    def error(cls, title: str, message: str) -> "Notice":
        return cls(title=title, message=message, level=NoticeLevel.ERROR)

    @classmethod
    def from_error(cls, exc: JournalError, prefix: str = "") -> "Notice":
        return cls.error(exc.notice_title, f"{prefix}{exc.message}")


# Receives every notice a handler raises to the user
Notifier = Callable[[Notice], None]

# Asks the user a yes/no question: (title, message) -> confirmed
Confirmer = Callable[[str, str], Awaitable[bool]]
