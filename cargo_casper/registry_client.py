"""Async client for the crates.io sparse index.

Each crate has one index file at ``<index_url>/<prefix>/<name>`` holding one
JSON record per published version, newline-delimited and oldest first.  The
client never raises on network problems: every call returns a
``RegistryResponse`` whose ``success`` flag tells the caller whether the data
can be trusted.

Typical usage::

    client = RegistryClient()
    resp = await client.fetch_versions("casper-types")
    if resp.success:
        print([entry.vers for entry in resp.entries])
"""

from __future__ import annotations

import httpx
from pydantic import BaseModel, Field

from cargo_casper.config import DEFAULT_INDEX_URL


class IndexEntry(BaseModel):
    """One published version as recorded in the sparse index."""

    name: str
    vers: str
    yanked: bool = False


class RegistryResponse(BaseModel):
    """Structured result of an index lookup."""

    crate: str = Field(description="Crate that was queried")
    entries: list[IndexEntry] = Field(default_factory=list)
    success: bool = Field(default=True, description="Whether the request succeeded")
    error: str | None = Field(default=None, description="Error message on failure")


def index_path(crate: str) -> str:
    """Return the sparse-index path of *crate*.

    Follows cargo's layout: ``1/a``, ``2/ab``, ``3/a/abc``, ``ca/sp/casper-types``.
    """
    name = crate.lower()
    if not name:
        raise ValueError("crate name must not be empty")
    if len(name) <= 2:
        return f"{len(name)}/{name}"
    if len(name) == 3:
        return f"3/{name[0]}/{name}"
    return f"{name[0:2]}/{name[2:4]}/{name}"


class RegistryClient:
    """Read-only client for a Cargo sparse registry index."""

    def __init__(
        self,
        index_url: str = DEFAULT_INDEX_URL,
        timeout: float = 10.0,
        user_agent: str = "cargo-casper",
    ) -> None:
        self.index_url = index_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.index_url,
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            headers={"User-Agent": self.user_agent},
            follow_redirects=True,
        )

    @staticmethod
    def _parse_entries(text: str) -> list[IndexEntry]:
        """Parse newline-delimited index records, skipping blank lines.

        Raises:
            pydantic.ValidationError: if a line is not a JSON object with
                ``name`` and ``vers``.
        """
        return [
            IndexEntry.model_validate_json(line)
            for line in (raw.strip() for raw in text.splitlines())
            if line
        ]

    async def fetch_versions(self, crate: str) -> RegistryResponse:
        """Fetch every published version of *crate*.

        Returns:
            A ``RegistryResponse`` with the index entries or an error.
        """
        try:
            async with self._client() as client:
                response = await client.get(f"/{index_path(crate)}")
                response.raise_for_status()
                return RegistryResponse(
                    crate=crate,
                    entries=self._parse_entries(response.text),
                    success=True,
                )
        except httpx.ConnectError:
            return RegistryResponse(
                crate=crate,
                success=False,
                error=f"Cannot connect to the registry index at {self.index_url}.",
            )
        except httpx.TimeoutException:
            return RegistryResponse(
                crate=crate,
                success=False,
                error=f"Registry request for {crate} timed out after {self.timeout}s.",
            )
        except httpx.HTTPStatusError as exc:
            return RegistryResponse(
                crate=crate,
                success=False,
                error=f"Registry returned HTTP {exc.response.status_code} for {crate}.",
            )
        except (httpx.HTTPError, ValueError) as exc:
            return RegistryResponse(
                crate=crate,
                success=False,
                error=f"Unreadable registry response for {crate}: {exc}",
            )
