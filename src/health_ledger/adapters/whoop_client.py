"""WHOOP API client."""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from urllib.parse import urlencode

import httpx

from health_ledger.config import OAuthCredentials

_PAGE_LIMIT = 25
_MAX_PAGES = 100


class WhoopClient(Protocol):
    """Interface for WHOOP API interactions."""

    def authorization_url(self, state: str) -> str:
        """Return the URL that starts the authorization-code flow."""

    async def fetch_cycles(
        self, access_token: str, start: datetime, end: datetime
    ) -> list[dict[str, object]]:
        """Return raw cycle records overlapping ``[start, end)``."""

    async def exchange_code(self, code: str) -> dict[str, object]:
        """Exchange an authorization code for a token set."""

    async def refresh(self, refresh_token: str) -> dict[str, object]:
        """Mint a new token set from a refresh token."""


@dataclass
class HttpxWhoopClient(WhoopClient):
    """HTTPX-backed WHOOP client."""

    credentials: OAuthCredentials
    redirect_uri: str
    api_base_url: str
    token_url: str
    authorize_url: str
    scopes: str
    http_client: httpx.AsyncClient
    timeout: float = 8.0

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        credentials: OAuthCredentials,
        redirect_uri: str,
        api_base_url: str,
        token_url: str,
        authorize_url: str,
        scopes: str,
        timeout: float = 8.0,
    ) -> "HttpxWhoopClient":
        """Create a WHOOP client with a managed httpx session."""
        return cls(
            credentials=credentials,
            redirect_uri=redirect_uri,
            api_base_url=api_base_url,
            token_url=token_url,
            authorize_url=authorize_url,
            scopes=scopes,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    def authorization_url(self, state: str) -> str:
        """Return the URL that starts the authorization-code flow."""
        query = urlencode(
            {
                "response_type": "code",
                "client_id": self.credentials.client_id,
                "redirect_uri": self.redirect_uri,
                "scope": self.scopes,
                "state": state,
            }
        )
        return f"{self.authorize_url}?{query}"

    async def fetch_cycles(
        self, access_token: str, start: datetime, end: datetime
    ) -> list[dict[str, object]]:
        """Fetch every cycle page for the window."""
        url = f"{self.api_base_url}/cycle"
        params: dict[str, object] = {
            "start": start.isoformat(),
            "end": end.isoformat(),
            "limit": _PAGE_LIMIT,
        }
        records: list[dict[str, object]] = []
        seen_tokens: set[str] = set()
        for _ in range(_MAX_PAGES):
            response = await self.http_client.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
            records.extend(payload.get("records") or [])
            next_token = payload.get("next_token")
            if not next_token:
                return records
            if next_token in seen_tokens:
                raise ValueError(f"Cycle pagination repeated cursor {next_token!r}")
            seen_tokens.add(next_token)
            params["nextToken"] = next_token
        raise ValueError(f"Cycle pagination exceeded {_MAX_PAGES} pages")

    async def exchange_code(self, code: str) -> dict[str, object]:
        """Run the authorization-code grant."""
        return await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            }
        )

    async def refresh(self, refresh_token: str) -> dict[str, object]:
        """Run the refresh-token grant."""
        return await self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "scope": "offline",
            }
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _token_request(self, form: dict[str, str]) -> dict[str, object]:
        response = await self.http_client.post(
            self.token_url,
            data={
                **form,
                "client_id": self.credentials.client_id,
                "client_secret": self.credentials.client_secret,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()
