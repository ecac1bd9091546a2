# src/nagbox/connectors/matrix_client.py

"""
Matrix login for the reminder bot.

nagbox only posts plain-text reminders and answers slash commands, so the client
runs without an end-to-end crypto store: no olm account, no device keys, no
verification flow. Rooms the bot posts to must be unencrypted.

The access token lives in <matrix_store_path>/session.json and is checked with
/whoami on startup; a revoked or expired token falls back to a password login,
which writes a fresh session file.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path

from nio import AsyncClient, AsyncClientConfig, JoinError, LoginResponse
from nio.responses import WhoamiError

logger = logging.getLogger(__name__)

SESSION_FILE = "session.json"


@dataclass(frozen=True, slots=True)
class MatrixSession:
    user_id: str
    device_id: str
    access_token: str

    @classmethod
    def load(cls, path: Path) -> MatrixSession | None:
        """Read a saved session. Missing or unreadable files give None."""
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text("utf-8"))
            session = cls(
                user_id=str(data["user_id"]),
                device_id=str(data["device_id"]),
                access_token=str(data["access_token"]),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable Matrix session %s: %r", path, e)
            return None
        if not (session.user_id and session.device_id and session.access_token):
            logger.warning("Ignoring incomplete Matrix session %s", path)
            return None
        return session

    def save(self, path: Path) -> None:
        # The file holds a bearer token: write it atomically and owner-only.
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(asdict(self)), "utf-8")
        os.replace(tmp, path)
        with contextlib.suppress(OSError):
            os.chmod(path, 0o600)

    def apply(self, client: AsyncClient) -> None:
        client.user_id = self.user_id
        client.device_id = self.device_id
        client.access_token = self.access_token


async def _token_still_valid(client: AsyncClient) -> bool:
    resp = await client.whoami()
    if isinstance(resp, WhoamiError):
        logger.warning("Stored Matrix session was rejected: %s", resp.message)
        return False
    return True


async def connect_matrix(settings) -> AsyncClient | None:
    """
    Return a logged-in client for the reminder bot, or None if Matrix is not usable.

    The caller owns the client and must close it.
    """
    homeserver = (getattr(settings, "matrix_homeserver", "") or "").strip()
    user_id = (getattr(settings, "matrix_user_id", "") or "").strip()
    password = (getattr(settings, "matrix_password", "") or "").strip()
    session_path = Path(getattr(settings, "matrix_store_path", Path(".local/nagbox/matrix_store"))) / SESSION_FILE

    if not homeserver or not user_id:
        logger.error("Matrix is not configured: set NAGBOX_MATRIX_HOMESERVER and NAGBOX_MATRIX_USER_ID")
        return None

    client = AsyncClient(
        homeserver,
        user_id,
        config=AsyncClientConfig(encryption_enabled=False, store_sync_tokens=False),
    )

    session = MatrixSession.load(session_path)
    if session is not None:
        session.apply(client)
        if await _token_still_valid(client):
            logger.info("Matrix session restored for %s (device %s)", session.user_id, session.device_id)
            return client
        client.access_token = ""

    if not password:
        logger.error("No usable Matrix session; set NAGBOX_MATRIX_PASSWORD once to log in.")
        await client.close()
        return None

    device_name = f"{getattr(settings, 'app_name', 'nagbox')} reminders"
    logger.info("Logging in to Matrix as %s (device_name=%r)...", user_id, device_name)
    resp = await client.login(password=password, device_name=device_name)
    if not isinstance(resp, LoginResponse):
        logger.error("Matrix login failed: %r", resp)
        await client.close()
        return None

    try:
        MatrixSession(user_id=resp.user_id, device_id=resp.device_id, access_token=resp.access_token).save(
            session_path
        )
        logger.info("Matrix session saved to %s", session_path)
    except OSError as e:
        # Still usable for this run; the next start logs in again.
        logger.warning("Could not save Matrix session to %s: %r", session_path, e)

    return client


async def ensure_joined(client: AsyncClient, room_id: str) -> bool:
    """Join the reminder room if the bot is not in it yet."""
    if not room_id or room_id in client.rooms:
        return True
    resp = await client.join(room_id)
    if isinstance(resp, JoinError):
        logger.warning("Cannot join reminder room %s: %s", room_id, resp.message)
        return False
    logger.info("Joined reminder room %s", room_id)
    return True
