from __future__ import annotations

import logging
import secrets
import time
from typing import Callable, Optional

from tracker.core.storage import KeyValueStorage

logger = logging.getLogger(__name__)

SESSION_KEY = "birla_sector71_session"

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _random_base36(length: int = 9) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def new_session_id(now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"session_{now_ms}_{_random_base36()}"


class SessionIdentity:
    """
    One opaque id per browsing session, persisted under SESSION_KEY.

    If the storage raises, a fresh id is returned on every call. Analytics
    then sees one session per event, which is accepted.
    """

    def __init__(self, storage: KeyValueStorage, clock: Callable[[], float] = time.time):
        self.storage = storage
        self.clock = clock

    def get_or_create(self) -> str:
        try:
            sid = self.storage.get_item(SESSION_KEY)
        except Exception as e:
            logger.warning("session storage unavailable, using throwaway id: %r", e)
            return new_session_id(int(self.clock() * 1000))

        if sid:
            return sid

        sid = new_session_id(int(self.clock() * 1000))
        try:
            self.storage.set_item(SESSION_KEY, sid)
        except Exception as e:
            logger.warning("could not persist session id: %r", e)
        return sid
