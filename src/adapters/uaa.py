"""OAuth2 client-credentials token fetcher (UAA).

`POST <oauth_url>/oauth/token` with HTTP basic auth and
`grant_type=client_credentials`. The token is cached until shortly before
it expires.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

import httpx
from pydantic import BaseModel, Field, ValidationError
from pydantic.config import ConfigDict

from core.domain.errors import TokenFetchError

logger = logging.getLogger(__name__)

TOKEN_PATH = "/oauth/token"


class Token(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(..., min_length=1)
    token_type: str = Field(default="bearer")
    expires_in: int = Field(default=0, ge=0)


class UAATokenFetcher:
    """`TokenProvider` backed by a UAA client-credentials grant."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        oauth_url: str,
        client_id: str,
        client_secret: str,
        expiration_buffer_seconds: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._token_url = oauth_url.rstrip("/") + TOKEN_PATH
        self._auth = httpx.BasicAuth(client_id, client_secret)
        self._buffer = expiration_buffer_seconds
        self._clock = clock
        self._token: Token | None = None
        self._expires_at = 0.0

    async def access_token(self) -> str:
        if self._token is not None and self._clock() < self._expires_at:
            return self._token.access_token

        token = await self.fetch_token()
        self._token = token
        self._expires_at = self._clock() + max(token.expires_in - self._buffer, 0)
        return token.access_token

    async def fetch_token(self) -> Token:
        logger.debug("fetching token from %s", self._token_url)
        try:
            response = await self._client.post(
                self._token_url,
                auth=self._auth,
                data={"grant_type": "client_credentials"},
                headers={
                    "Accept": "application/json; charset=utf-8",
                    "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
                },
            )
        except httpx.HTTPError as exc:
            raise TokenFetchError(f"token request failed: {exc}") from exc

        if response.status_code != 200:
            raise TokenFetchError(
                f"token request failed: HTTP {response.status_code}: {response.text.strip()}"
            )
        try:
            return Token.model_validate_json(response.content)
        except ValidationError as exc:
            raise TokenFetchError(f"invalid token response: {exc}") from exc
