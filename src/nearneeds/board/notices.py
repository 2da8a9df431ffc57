"""User-facing notifications (alerts and confirmations)."""

from __future__ import annotations

from typing import Protocol


class Notifier(Protocol):
    def alert(self, message: str) -> None: ...

    def confirm(self, message: str) -> bool: ...


class NoticeQueue:
    """Collects alerts until a view drains them.

    Used by the web surface: the page shows drained notices with `alert()` and
    asks its own confirmation before calling the delete endpoint, so `confirm`
    answers with a fixed value.
    """

    def __init__(self, *, auto_confirm: bool = True):
        self._auto_confirm = auto_confirm
        self._messages: list[str] = []

    def alert(self, message: str) -> None:
        self._messages.append(message)

    def confirm(self, message: str) -> bool:
        return self._auto_confirm

    def drain(self) -> list[str]:
        messages, self._messages = self._messages, []
        return messages
