"""
Nature Journal — Firebase Anonymous Identity
==============================================

What:  IdentityService backed by the Firebase Auth REST API, with the session
       persisted to a local file so the same anonymous identity survives
       restarts.
How:   1. Restore: if a persisted session exists, exchange its refresh token
          for fresh tokens (securetoken `token` endpoint).
       2. A refresh rejected with HTTP 4xx means the session was revoked:
          the persisted session is cleared and step 3 runs.
       3. Sign up: issue a new anonymous user (identitytoolkit
          `accounts:signUp`) and persist it.
       Network failures and 5xx responses raise IdentityUnavailableError;
       nothing is retried.
Who:   Built by JournalApp.from_settings(); consumed via SessionBootstrap.

Endpoints:
    POST {auth_url}/accounts:signUp?key=KEY   {"returnSecureToken": true}
        → {"localId", "idToken", "refreshToken", "expiresIn"}
    POST {token_url}/token?key=KEY            grant_type=refresh_token
        → {"user_id", "id_token", "refresh_token", "expires_in"}
    errors → {"error": {"message": "..."}}
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import httpx

from nature_journal.config import Settings, settings as default_settings
from nature_journal.exceptions import IdentityUnavailableError
from nature_journal.schemas.identity import Identity
from nature_journal.services.identity_base import IdentityService

logger = logging.getLogger(__name__)


class SessionStore:
    """
    JSON file holding `{"uid": ..., "refresh_token": ...}` between runs.

    An unreadable or malformed file is treated as "no session"; the next
    successful sign-up overwrites it.
    """

    def __init__(self, path: str):
        self.path = Path(path).expanduser()

    async def load(self) -> Optional[Dict[str, str]]:
        if not self.path.exists():
            return None
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                data = json.loads(await f.read())
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path.name, e)
            return None
        if not isinstance(data, dict) or not data.get("uid") or not data.get("refresh_token"):
            logger.warning("Ignoring incomplete session file %s", self.path.name)
            return None
        return {"uid": str(data["uid"]), "refresh_token": str(data["refresh_token"])}

    async def save(self, identity: Identity) -> None:
        """
        Persist the session. A failed write is logged and the identity stays
        usable for this run; the next start signs up again.
        """
        payload = json.dumps({"uid": identity.uid, "refresh_token": identity.refresh_token})
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
                await f.write(payload)
        except OSError as e:
            logger.warning("Could not persist session to %s: %s", self.path.name, e)

    async def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove session file %s: %s", self.path.name, e)


class FirebaseIdentityService(IdentityService):
    """
    Anonymous Firebase identities over REST.

    Args:
        config:  Settings with the API key and endpoint bases.
        client:  Optional shared httpx.AsyncClient (tests inject a mock).
        store:   Optional SessionStore; defaults to settings.session_store_path.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        store: Optional[SessionStore] = None,
    ):
        super().__init__()
        self.config = config or default_settings
        self.client = client
        self.store = store or SessionStore(self.config.session_store_path)

    async def establish_anonymous_identity(self) -> Identity:
        if self._current is not None:
            return self._current

        if not self.config.firebase_api_key:
            raise IdentityUnavailableError(
                message="Identity service is not configured (FIREBASE_API_KEY missing).",
            )

        persisted = await self.store.load()
        if persisted:
            identity = await self._restore(persisted)
            if identity is not None:
                await self.store.save(identity)
                self._set_current(identity)
                return identity

        identity = await self._sign_up()
        await self.store.save(identity)
        self._set_current(identity)
        return identity

    async def sign_out(self) -> None:
        await self.store.clear()
        self._set_current(None)

    async def _restore(self, persisted: Dict[str, str]) -> Optional[Identity]:
        """Refresh a persisted session; None if the service rejected it."""
        url = f"{self.config.firebase_token_url.rstrip('/')}/token"
        try:
            body = await self._post(
                url,
                data={"grant_type": "refresh_token", "refresh_token": persisted["refresh_token"]},
            )
        except _RejectedError as e:
            logger.warning("Persisted session for %s was rejected: %s", persisted["uid"], e)
            await self.store.clear()
            return None

        uid = body.get("user_id") or persisted["uid"]
        logger.info("Restored anonymous identity %s", uid)
        return Identity(
            uid=uid,
            id_token=body.get("id_token"),
            refresh_token=body.get("refresh_token") or persisted["refresh_token"],
        )

    async def _sign_up(self) -> Identity:
        url = f"{self.config.firebase_auth_url.rstrip('/')}/accounts:signUp"
        try:
            body = await self._post(url, json_body={"returnSecureToken": True})
        except _RejectedError as e:
            raise IdentityUnavailableError(
                message=f"Anonymous sign in failed: {e}",
                context={"status_code": e.status_code},
            ) from e

        uid = body.get("localId")
        if not uid:
            raise IdentityUnavailableError(
                message="Anonymous sign in failed: response did not include a user id",
            )
        logger.info("Anonymous sign in successful: %s", uid)
        return Identity(uid=uid, id_token=body.get("idToken"), refresh_token=body.get("refreshToken"))

    async def _post(
        self,
        url: str,
        json_body: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        POST to an identity endpoint and return the JSON object.

        Raises:
            _RejectedError: 4xx answer (the request itself was refused)
            IdentityUnavailableError: network failure, 5xx or malformed body
        """
        params = {"key": self.config.firebase_api_key}
        try:
            if self.client is not None:
                response = await self.client.post(url, params=params, json=json_body, data=data)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(url, params=params, json=json_body, data=data)
        except httpx.HTTPError as e:
            logger.error("Identity service unreachable: %s", e)
            raise IdentityUnavailableError(
                message=f"Could not reach the identity service: {e}",
                context={"error_type": type(e).__name__},
            ) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_client_error:
            raise _RejectedError(response.status_code, _error_message(body) or response.reason_phrase)
        if not response.is_success:
            raise IdentityUnavailableError(
                message=f"Identity service error: {_error_message(body) or response.reason_phrase}",
                context={"status_code": response.status_code},
            )
        if not isinstance(body, dict):
            raise IdentityUnavailableError(
                message="Identity service returned a malformed response",
                context={"status_code": response.status_code},
            )
        return body


class _RejectedError(Exception):
    """4xx from the identity service; handled inside this module only."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


def _error_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return None
