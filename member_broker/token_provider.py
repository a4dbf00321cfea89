"""
Access token for the Umbraco Management API, obtained with the client-credentials grant.
One provider per process; the single cached token is replaced when absent or expired.
No lock around refresh: two requests racing on an expired token may both fetch one.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable

import httpx
import jwt

from member_broker.errors import AuthError

logger = logging.getLogger(__name__)


@dataclass
class StoredToken:
    access_token: str
    issued_at: float
    expires_in: float | None = None

    def expired(self, now: float, buffer_seconds: float = 0) -> bool:
        """
        True if the token is expired or within buffer_seconds of expiry.
        When the lifetime is not longer than buffer_seconds, only True when actually expired.
        A token without a known lifetime never expires on its own.
        """
        if self.expires_in is None:
            return False
        elapsed = now - self.issued_at
        if elapsed >= self.expires_in:
            return True
        if self.expires_in > buffer_seconds and elapsed >= (self.expires_in - buffer_seconds):
            return True
        return False


def _lifetime_from_jwt(access_token: str) -> float | None:
    """Remaining lifetime from the exp claim when the access token is a JWT; None for opaque tokens."""
    try:
        claims = jwt.decode(access_token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return None
    return max(exp - time.time(), 0)


class AccessTokenProvider:
    """Memoizes one bearer token; grants a new one on first use and after expiry."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_url: str,
        client_id: str,
        client_secret: str,
        *,
        expiry_leeway: float = 10,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._http = http_client
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._leeway = expiry_leeway
        self._clock = clock
        self._token: StoredToken | None = None

    def current(self) -> StoredToken | None:
        return self._token

    async def get_access_token(self) -> str:
        """Cached token if still valid, otherwise a freshly granted one. Raises AuthError."""
        if self._token is None or self._token.expired(self._clock(), self._leeway):
            self._token = await self._grant()
        return self._token.access_token

    async def force_refresh(self) -> str:
        """Drop the cached token and grant a new one."""
        self._token = None
        return await self.get_access_token()

    async def _grant(self) -> StoredToken:
        try:
            r = await self._http.post(
                self._token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                },
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.error("Token endpoint %s unreachable: %s", self._token_url, e)
            raise AuthError() from e

        if r.status_code != 200:
            try:
                err = r.json() if r.headers.get("content-type", "").startswith("application/json") else {}
            except ValueError:
                err = {}
            if not isinstance(err, dict):
                err = {}
            logger.error(
                "Client credentials grant rejected (%s): %s",
                r.status_code,
                err.get("error_description", err.get("error", r.reason_phrase)),
            )
            raise AuthError()

        try:
            data = r.json()
        except ValueError as e:
            logger.error("Token response is not JSON: %s", e)
            raise AuthError() from e
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token or not isinstance(access_token, str):
            logger.error("Token response without access_token")
            raise AuthError()

        expires_in = data.get("expires_in")
        if expires_in is None:
            expires_in = _lifetime_from_jwt(access_token)
        try:
            lifetime = float(expires_in) if expires_in is not None else None
        except (TypeError, ValueError) as e:
            logger.error("Token response has an invalid expires_in: %r", expires_in)
            raise AuthError() from e
        token = StoredToken(access_token=access_token, issued_at=self._clock(), expires_in=lifetime)
        logger.info("The access token was updated (expires_in=%s)", token.expires_in)
        return token
