"""Default notifier and confirmer used when the host does not supply its own."""

import logging
from typing import List, Optional

from nature_journal.schemas.notice import Notice, NoticeLevel

logger = logging.getLogger(__name__)


class NoticeBoard:
    """
    Notifier that logs every notice and keeps them in order.

    Hosts without a display read `notices` (or `latest`); tests assert on it.
    """

    def __init__(self) -> None:
        self.notices: List[Notice] = []

    def __call__(self, notice: Notice) -> None:
        level = logging.WARNING if notice.level is NoticeLevel.ERROR else logging.INFO
        logger.log(level, "Notice [%s] %s", notice.title, notice.message)
        self.notices.append(notice)

    @property
    def latest(self) -> Optional[Notice]:
        return self.notices[-1] if self.notices else None

    def clear(self) -> None:
        self.notices.clear()


async def always_confirm(title: str, message: str) -> bool:
    """Confirmer that accepts every question (for unattended hosts)."""
    logger.info("Auto-confirmed: %s", title)
    return True
