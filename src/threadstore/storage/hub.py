"""
Hub DatabaseClient - JSON over HTTP.

Authentication follows the Hub's two key modes:
1. "dev"  - only the API key is sent; the Hub does not check a signature.
2. "prod" - the API key plus an HMAC-SHA256 signature of an expiry message,
            computed with the key secret.

A token is then requested for a public identity and attached to every
subsequent call. Changes are streamed as newline-delimited JSON.

Error mapping:
- 404            -> NotFoundError
- 409            -> ConflictError
- anything else  -> StoreUnavailableError (including transport errors)
Nothing is retried.
"""

import asyncio
import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping
from urllib.parse import quote

import httpx

from threadstore.core.config import get_logger
from threadstore.core.exceptions import (
    ConflictError,
    NotFoundError,
    StoreUnavailableError,
)
from threadstore.core.types import (
    KeyInfo,
    ListenEvent,
    ListenFilter,
    Query,
    ThreadID,
    ThreadInfo,
)
from threadstore.storage.client import DatabaseClient, schema_from_object
from threadstore.storage.subscription import EventCallback, Subscription, dispatch

logger = get_logger("storage.hub")

API_PREFIX = "/api/v1"
SIGNATURE_TTL = timedelta(minutes=30)
SIGNATURE_RENEW_BEFORE = timedelta(minutes=5)


def _segment(value: Any) -> str:
    """Escape one URL path segment."""
    return quote(str(value), safe="")


def create_api_sig(secret: str, expires_at: datetime | None = None) -> tuple[str, str]:
    """
    Sign an expiry message with the key secret.

    Returns (message, signature). The signature is the lowercase unpadded
    base32 HMAC-SHA256 of the message.
    """
    expires_at = expires_at or datetime.now(timezone.utc) + SIGNATURE_TTL
    msg = expires_at.isoformat()
    digest = hmac.new(secret.encode(), msg.encode(), hashlib.sha256).digest()
    sig = base64.b32encode(digest).decode("ascii").rstrip("=").lower()
    return msg, sig


class HubClient(DatabaseClient):
    """
    HTTP client for a remote thread Hub.

    Use ``HubClient.with_key_info`` rather than the constructor so the
    authentication headers are set up.

    Example:
        >>> client = await HubClient.with_key_info(settings.key_info, base_url=settings.hub_url)
        >>> await client.get_token(settings.identity)
        >>> info = await client.get_thread("nasa")
    """

    def __init__(self, http: httpx.AsyncClient, key_info: KeyInfo | None = None):
        self._http = http
        self._key_info = key_info
        self._signature: dict[str, str] = {}
        self.signature_expires_at: datetime | None = None
        self.token: str | None = None

    @classmethod
    async def with_key_info(
        cls,
        key_info: KeyInfo,
        base_url: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "HubClient":
        """Build a client authenticated with an API key (and secret in prod mode)."""
        http = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + API_PREFIX,
            headers={"x-textile-api-key": key_info.key_id},
            timeout=timeout,
            transport=transport,
        )
        logger.debug(f"Hub client for {base_url} in {key_info.mode} mode")
        return cls(http, key_info)

    async def close(self) -> None:
        await self._http.aclose()

    # ==========================================
    # Transport
    # ==========================================

    def _signature_headers(self) -> dict[str, str]:
        """Prod-mode signature, renewed shortly before it expires."""
        if self._key_info is None or self._key_info.mode != "prod":
            return {}

        now = datetime.now(timezone.utc)
        if self.signature_expires_at is None or self.signature_expires_at - now < SIGNATURE_RENEW_BEFORE:
            self.signature_expires_at = now + SIGNATURE_TTL
            msg, sig = create_api_sig(
                self._key_info.key_secret.get_secret_value(),
                self.signature_expires_at,
            )
            self._signature = {"x-textile-api-sig-msg": msg, "x-textile-api-sig": sig}
            logger.debug(f"Signed hub requests until {msg}")
        return self._signature

    def _auth_headers(self) -> dict[str, str]:
        headers = dict(self._signature_headers())
        if self.token:
            headers["authorization"] = f"bearer {self.token}"
        return headers

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        detail = response.text or response.reason_phrase
        if response.status_code == 404:
            raise NotFoundError(detail)
        if response.status_code == 409:
            raise ConflictError(detail)
        raise StoreUnavailableError(f"hub returned {response.status_code}: {detail}")

    async def _request(self, method: str, url: str, payload: Any = None) -> Any:
        try:
            response = await self._http.request(
                method,
                url,
                json=payload,
                headers=self._auth_headers(),
            )
        except httpx.HTTPError as e:
            raise StoreUnavailableError(f"{method} {url} failed: {e}") from e

        self._raise_for_status(response)
        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _instances_url(thread_id: ThreadID, collection_name: str) -> str:
        return f"{HubClient._collection_url(thread_id, collection_name)}/instances"

    @staticmethod
    def _collection_url(thread_id: ThreadID, collection_name: str) -> str:
        return f"/threads/{_segment(thread_id)}/collections/{_segment(collection_name)}"

    # ==========================================
    # DatabaseClient
    # ==========================================

    async def get_token(self, identity: str) -> str:
        data = await self._request("POST", "/token", {"identity": identity})
        self.token = data["token"]
        return self.token

    async def new_db(self, name: str, thread_id: ThreadID | None = None) -> ThreadID:
        payload = {"name": name}
        if thread_id is not None:
            payload["id"] = str(thread_id)
        data = await self._request("POST", "/threads", payload)
        return ThreadID.from_string(data["id"])

    async def new_collection_from_object(
        self,
        thread_id: ThreadID,
        obj: Mapping[str, Any],
        name: str,
    ) -> None:
        await self._request(
            "POST",
            f"/threads/{_segment(thread_id)}/collections",
            {"name": name, "schema": schema_from_object(obj)},
        )

    async def list_collections(self, thread_id: ThreadID) -> list[str]:
        data = await self._request("GET", f"/threads/{_segment(thread_id)}/collections")
        return [c["name"] for c in data.get("collections", [])]

    async def create(
        self,
        thread_id: ThreadID,
        collection_name: str,
        instances: list[dict[str, Any]],
    ) -> list[str]:
        data = await self._request(
            "POST",
            self._instances_url(thread_id, collection_name),
            {"instances": instances},
        )
        return list(data["instanceIds"])

    async def save(
        self,
        thread_id: ThreadID,
        collection_name: str,
        instances: list[dict[str, Any]],
    ) -> None:
        await self._request(
            "PUT",
            self._instances_url(thread_id, collection_name),
            {"instances": instances},
        )

    async def find_by_id(
        self,
        thread_id: ThreadID,
        collection_name: str,
        instance_id: str,
    ) -> dict[str, Any]:
        data = await self._request(
            "GET",
            f"{self._instances_url(thread_id, collection_name)}/{_segment(instance_id)}",
        )
        return data["instance"]

    async def find(
        self,
        thread_id: ThreadID,
        collection_name: str,
        query: Query,
    ) -> list[dict[str, Any]]:
        data = await self._request(
            "POST",
            f"{self._collection_url(thread_id, collection_name)}/find",
            {"query": query.model_dump(mode="json")},
        )
        return list(data.get("instances", []))

    async def delete(
        self,
        thread_id: ThreadID,
        collection_name: str,
        instance_ids: list[str],
    ) -> None:
        await self._request(
            "POST",
            f"{self._collection_url(thread_id, collection_name)}/delete",
            {"instanceIds": instance_ids},
        )

    async def get_thread(self, name: str) -> ThreadInfo:
        data = await self._request("GET", f"/threads/{_segment(name)}")
        return ThreadInfo.model_validate(data)

    async def listen(
        self,
        thread_id: ThreadID,
        filters: list[ListenFilter],
        callback: EventCallback,
    ) -> Subscription:
        payload = {
            "filters": [f.model_dump(mode="json", by_alias=True) for f in filters],
        }
        url = f"/threads/{_segment(thread_id)}/listen"

        async def deliver() -> None:
            try:
                async with self._http.stream(
                    "POST",
                    url,
                    json=payload,
                    headers=self._auth_headers(),
                    timeout=httpx.Timeout(None),
                ) as response:
                    if not response.is_success:
                        await response.aread()
                    self._raise_for_status(response)
                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        event = ListenEvent.model_validate(json.loads(line))
                        await dispatch(callback, event)
            except httpx.HTTPError as e:
                raise StoreUnavailableError(f"listen on {thread_id} failed: {e}") from e

        task = asyncio.get_running_loop().create_task(deliver())
        logger.debug(f"Listening on thread {thread_id}")
        return Subscription(task)
