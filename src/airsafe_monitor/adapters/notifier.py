import logging
from typing import Any, Dict

from airsafe_monitor.domain.ports import Notifier

logger = logging.getLogger(__name__)


class LoggingNotifier(Notifier):
    """Notification capability that writes notifications to the log."""

    def __init__(self, level: int = logging.WARNING):
        self.level = level

    def send_notification(self, title: str, body: str, data: Dict[str, Any]) -> None:
        logger.log(self.level, "NOTIFICATION %s: %s %s", title, body, data)
