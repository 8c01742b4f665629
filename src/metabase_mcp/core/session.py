"""Process-wide Metabase session state.

The session manager owns the single authentication token shared by every
in-flight tool call. With an API key there is nothing to acquire: the key is
attached as a default header at construction. With a username/password pair
the first call performs the ``POST /api/session`` exchange and all concurrent
callers join that same exchange instead of starting their own.

Known gap: an expired or revoked session token is not refreshed; requests
made with it fail as ``RemoteRejectedError`` (HTTP 401).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import httpx

from metabase_mcp.core.client import MetabaseClient
from metabase_mcp.core.credentials import ApiKey, BasicAuth, Credential
from metabase_mcp.core.errors import AuthenticationError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"
SESSION_HEADER = "X-Metabase-Session"
SESSION_ENDPOINT = "/api/session"

# Token recorded for API-key sessions; nothing further to acquire.
API_KEY_SENTINEL = "api_key_used"


class SessionKind(str, Enum):
    API_KEY = "api_key"
    SESSION_TOKEN = "session_token"


@dataclass(frozen=True)
class Session:
    """An established authentication state.

    Attributes:
        token: Session id, or the API-key sentinel
        kind: How the session was established
        acquired_at: When the session became usable (UTC)
    """

    token: str = field(repr=False)
    kind: SessionKind
    acquired_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SessionManager:
    """Single-writer owner of the authentication state.

    ``ensure_authenticated`` is idempotent and coalesced: while an exchange is
    in flight, the pending task is published in ``_pending`` and every caller
    awaits it. The slot clears once the task finishes, whether it succeeded
    or failed.
    """

    def __init__(self, credential: Credential, client: MetabaseClient) -> None:
        self._credential = credential
        self._client = client
        self._session: Optional[Session] = None
        self._pending: Optional[asyncio.Task[Session]] = None

        if isinstance(credential, ApiKey):
            client.set_default_header(API_KEY_HEADER, credential.key)
            self._session = Session(token=API_KEY_SENTINEL, kind=SessionKind.API_KEY)

    @property
    def credential(self) -> Credential:
        return self._credential

    @property
    def session(self) -> Optional[Session]:
        """Current session, or ``None`` before the first exchange completes."""
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    async def ensure_authenticated(self) -> None:
        """Make sure subsequent requests carry valid credentials.

        Raises:
            AuthenticationError: the session exchange failed. The failure is
                shared by every caller that joined the exchange.
        """
        if self._session is not None:
            return

        pending = self._pending
        if pending is None:
            pending = asyncio.get_running_loop().create_task(self._authenticate())
            pending.add_done_callback(self._clear_pending)
            self._pending = pending

        # Shielded so a cancelled caller does not abort the exchange for the others.
        await asyncio.shield(pending)

    def _clear_pending(self, task: "asyncio.Task[Session]") -> None:
        if self._pending is task:
            self._pending = None
        # Mark the exception retrieved when every waiter was cancelled.
        if not task.cancelled():
            task.exception()

    async def _authenticate(self) -> Session:
        credential = self._credential
        if not isinstance(credential, BasicAuth):
            raise AuthenticationError("No username/password credential to exchange")

        logger.info("Authenticating with Metabase using username/password")
        try:
            body = await self._client.post(
                SESSION_ENDPOINT,
                {"username": credential.username, "password": credential.password},
            )
        except httpx.HTTPStatusError as exc:
            logger.error("Authentication failed: HTTP %d", exc.response.status_code)
            raise AuthenticationError(
                f"Failed to authenticate with Metabase: HTTP {exc.response.status_code}",
                original_error=exc,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Authentication failed: %s", exc.__class__.__name__)
            raise AuthenticationError(
                f"Failed to authenticate with Metabase: {exc.__class__.__name__}",
                original_error=exc,
            ) from exc

        token = body.get("id") if isinstance(body, dict) else None
        if not token:
            logger.error("Authentication response did not contain a session id")
            raise AuthenticationError("Failed to authenticate with Metabase: no session id in response")

        self._client.set_default_header(SESSION_HEADER, str(token))
        session = Session(token=str(token), kind=SessionKind.SESSION_TOKEN)
        self._session = session
        logger.info("Successfully authenticated with Metabase")
        return session
