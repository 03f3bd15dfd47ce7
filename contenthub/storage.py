"""
Per-Browser Storage.

Two kinds of client-side storage back the video consent flow:

- **durable**: survives browser restarts; holds ``video_consent_<id>``
  records.  Served as cookies with a long ``Max-Age``.
- **transient**: lives as long as the browser session; holds the
  anonymous ``video_session_id``.  Served as session cookies.

``CookieStorage`` reads the request's cookies and queues writes until
:meth:`CookieStorage.apply` copies them onto the outgoing response.
Values are base64url-encoded so arbitrary JSON stays cookie-safe.
``MemoryStorage`` is the dict-backed equivalent used outside a request.
"""

from __future__ import annotations

import base64
import binascii
import uuid
from typing import Mapping, Optional, Protocol

from starlette.responses import Response

SESSION_ID_KEY: str = "video_session_id"


class BrowserStorage(Protocol):
    """Key/value storage scoped to one browser."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Dict-backed ``BrowserStorage``."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


def encode_cookie_value(value: str) -> str:
    return base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cookie_value(raw: str) -> Optional[str]:
    """Inverse of :func:`encode_cookie_value`; ``None`` if *raw* is garbage."""
    padded = raw + "=" * (-len(raw) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        return None


class CookieStorage:
    """``BrowserStorage`` over request cookies with queued response writes.

    Parameters
    ----------
    cookies:
        The request's cookie mapping.
    max_age:
        Lifetime in seconds for durable storage; ``None`` writes session
        cookies (transient storage).
    secure:
        Set the ``Secure`` flag on written cookies.
    """

    def __init__(
        self,
        cookies: Mapping[str, str],
        max_age: Optional[int] = None,
        secure: bool = False,
    ) -> None:
        self._cookies = cookies
        self._max_age = max_age
        self._secure = secure
        self._pending: dict[str, Optional[str]] = {}

    def get_item(self, key: str) -> Optional[str]:
        if key in self._pending:
            return self._pending[key]
        raw = self._cookies.get(key)
        if raw is None:
            return None
        return decode_cookie_value(raw)

    def set_item(self, key: str, value: str) -> None:
        self._pending[key] = value

    def remove_item(self, key: str) -> None:
        self._pending[key] = None

    @property
    def has_pending_writes(self) -> bool:
        return bool(self._pending)

    def apply(self, response: Response) -> Response:
        """Copy queued writes onto *response* and return it."""
        for key, value in self._pending.items():
            if value is None:
                response.delete_cookie(key, path="/")
                continue
            response.set_cookie(
                key,
                encode_cookie_value(value),
                max_age=self._max_age,
                path="/",
                secure=self._secure,
                httponly=True,
                samesite="lax",
            )
        self._pending.clear()
        return response


def get_browser_session_id(storage: BrowserStorage) -> str:
    """Return this browser session's anonymous id, creating it on first use."""
    existing = storage.get_item(SESSION_ID_KEY)
    if existing:
        return existing
    session_id = str(uuid.uuid4())
    storage.set_item(SESSION_ID_KEY, session_id)
    return session_id
