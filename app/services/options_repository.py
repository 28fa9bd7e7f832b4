"""Options repository: the editor's only view of reference data.

`OptionsRepository` is the contract the editor consumes. `HttpOptionsRepository`
talks to the options API (app.routers.options) with httpx. Every call may fail and
is made at most once; there is no retry here.
"""
from __future__ import annotations

import abc
import logging
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from app.config import get_settings
from app.schemas.options import OptionItem, OptionPayload, OptionTypeItem
from app.services.errors import RepositoryError

logger = logging.getLogger(__name__)


class OptionsRepository(abc.ABC):
    @abc.abstractmethod
    async def list_types(self) -> list[OptionTypeItem]:
        ...

    @abc.abstractmethod
    async def list_options(self, type_tag: str, parent_id: str | None = None) -> list[OptionItem]:
        ...

    @abc.abstractmethod
    async def upsert_option(self, option_id: str | None, payload: OptionPayload) -> OptionItem:
        """Create when option_id is None, else update that option."""

    @abc.abstractmethod
    async def delete_option(self, option_id: str) -> None:
        ...


def _error_message(r: httpx.Response, fallback: str) -> str:
    try:
        body = r.json() or {}
    except ValueError:
        return f"{fallback} (HTTP {r.status_code})"
    detail = (body.get("message") or body.get("detail")) if isinstance(body, dict) else None
    if isinstance(detail, list):
        # pydantic validation errors
        msgs = [str(d.get("msg", "")) for d in detail if isinstance(d, dict)]
        detail = "; ".join(m for m in msgs if m)
    return str(detail) if detail else f"{fallback} (HTTP {r.status_code})"


def _parse(fallback: str, build):
    """Run a response-model build, reporting malformed payloads as RepositoryError."""
    try:
        return build()
    except ValidationError as e:
        logger.warning("%s: unexpected response shape: %s", fallback, e)
        raise RepositoryError(f"{fallback}: unexpected response from server") from e


class HttpOptionsRepository(OptionsRepository):
    """Options API client. Pass `client` to share a connection pool (or an ASGI transport in tests)."""

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url if base_url is not None else settings.options_api_base_url).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.options_api_timeout_seconds,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpOptionsRepository":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, fallback: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            r = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Options API %s %s failed: %s", method, path, e)
            raise RepositoryError(f"{fallback}: {e}") from e
        if r.status_code >= 400:
            message = _error_message(r, fallback)
            logger.warning("Options API %s %s returned %s: %s", method, path, r.status_code, message)
            raise RepositoryError(message, status_code=r.status_code)
        if not r.content:
            return {}
        try:
            return r.json() or {}
        except ValueError as e:
            raise RepositoryError(f"{fallback}: invalid JSON response", status_code=r.status_code) from e

    async def list_types(self) -> list[OptionTypeItem]:
        body = await self._request("GET", "/options/types", "Failed to load option types")
        return _parse("Failed to load option types", lambda: [OptionTypeItem.model_validate(t) for t in body.get("data") or []])

    async def list_options(self, type_tag: str, parent_id: str | None = None) -> list[OptionItem]:
        params = {"type": type_tag}
        if parent_id:
            params["parent"] = parent_id
        body = await self._request("GET", "/options", "Failed to load options", params=params)
        return _parse("Failed to load options", lambda: [OptionItem.model_validate(o) for o in body.get("data") or []])

    async def upsert_option(self, option_id: str | None, payload: OptionPayload) -> OptionItem:
        data = payload.model_dump(by_alias=True, exclude_none=True)
        if option_id:
            body = await self._request(
                "PUT", f"/options/{quote(option_id, safe='')}", "Failed to save option", json=data,
            )
        else:
            body = await self._request("POST", "/options", "Failed to save option", json=data)
        return _parse("Failed to save option", lambda: OptionItem.model_validate(body.get("data")))

    async def delete_option(self, option_id: str) -> None:
        await self._request("DELETE", f"/options/{quote(option_id, safe='')}", "Failed to delete option")
