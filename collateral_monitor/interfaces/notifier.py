"""Notifier protocol — where status-change alerts and refresh logs go."""
from typing import Protocol


class Notifier(Protocol):
    """Abstract interface for an outbound notification channel."""

    async def send_alert(self, message: str, subject: str = "") -> bool: ...

    async def send_log(self, message: str) -> bool: ...
