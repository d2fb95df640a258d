"""
services/notifier.py

알림 표시면(토스트)에 보낼 메시지를 보관한다.
표시/자동 닫힘은 브라우저 몫이고, 여기서는 아직 가져가지 않은 알림만 순서대로 쌓아둔다.
"""

import itertools
import logging
from collections import deque
from enum import Enum
from typing import Deque, List, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_ids = itertools.count(1)


class NotificationType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Notification(BaseModel):
    id: int
    message: str
    type: NotificationType


class Notifier:
    """세션별 알림 큐."""

    def __init__(self) -> None:
        self._pending: Deque[Notification] = deque()

    @property
    def pending(self) -> List[Notification]:
        return list(self._pending)

    def show(self, message: str, type: NotificationType = NotificationType.INFO) -> Notification:
        notification = Notification(id=next(_ids), message=message, type=NotificationType(type))
        self._pending.append(notification)
        logger.info(f"알림 [{notification.type.value}] {message}")
        return notification

    def pop(self) -> Optional[Notification]:
        """가장 오래된 알림을 꺼낸다. 없으면 None."""
        return self._pending.popleft() if self._pending else None
