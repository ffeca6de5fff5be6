"""
Wanderlust: Flash Messages
==========================

What:  One-time notifications ("New Listing Created!") carried in the session
       to the next rendered page.
How:   Stored under session["flash"] as {category: [message, ...]}.
       `consume()` returns a category's queue and clears it, so a message is
       displayed exactly once.
"""

from typing import Dict, List

from starlette.requests import Request

from wanderlust.sessions import Session

FLASH_KEY = "flash"


class FlashMessages:
    """Per-request view of the flash queues stored in a session."""

    def __init__(self, session: Session):
        self._session = session

    def _queues(self) -> Dict[str, List[str]]:
        return self._session.get(FLASH_KEY, {})

    def push(self, category: str, message: str) -> None:
        queues = dict(self._queues())
        queues[category] = [*queues.get(category, []), message]
        self._session[FLASH_KEY] = queues

    def peek(self, category: str) -> List[str]:
        return list(self._queues().get(category, []))

    def consume(self, category: str) -> List[str]:
        """Read and clear one category."""
        queues = dict(self._queues())
        messages = queues.pop(category, [])
        if queues:
            self._session[FLASH_KEY] = queues
        else:
            self._session.pop(FLASH_KEY, None)
        return list(messages)


def flash(request: Request, category: str, message: str) -> None:
    """Queue `message` for the next rendered page."""
    request.state.flash.push(category, message)
