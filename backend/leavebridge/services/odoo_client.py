"""Record-store client - read-only JSON-RPC access to Odoo."""
import asyncio
import itertools
import logging
from typing import Any, List, Optional, Sequence

import httpx

from ..errors import AuthenticationError, TransientStoreError

logger = logging.getLogger(__name__)

# Odoo exception names that mean our credentials or session are no good
_AUTH_ERROR_NAMES = (
    "odoo.exceptions.AccessDenied",
    "odoo.http.SessionExpiredException",
)


class OdooClient:
    """Issues search_read/read calls against named Odoo models.

    The uid returned by ``common.authenticate`` is obtained once and reused
    for every subsequent call. An authentication failure reported by any call
    drops it so the next call authenticates again.
    """

    def __init__(
        self,
        url: str,
        db: str,
        username: str,
        password: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url.rstrip("/")
        self.db = db
        self.username = username
        self._password = password
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._uid: Optional[int] = None
        self._auth_lock = asyncio.Lock()
        self._request_ids = itertools.count(1)

    @property
    def uid(self) -> Optional[int]:
        return self._uid

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def reset(self):
        """Forget the cached uid."""
        self._uid = None

    async def _call(self, service: str, method: str, args: list) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": "call",
            "params": {"service": service, "method": method, "args": args},
            "id": next(self._request_ids),
        }

        try:
            response = await self._http().post(f"{self.url}/jsonrpc", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise TransientStoreError(f"Odoo {service}.{method} timed out") from e
        except httpx.HTTPError as e:
            raise TransientStoreError(f"Odoo {service}.{method} failed: {e}") from e
        except ValueError as e:
            raise TransientStoreError(f"Odoo {service}.{method} returned invalid JSON") from e

        error = data.get("error")
        if error:
            name = (error.get("data") or {}).get("name", "")
            message = (error.get("data") or {}).get("message") or error.get("message", "")
            if name in _AUTH_ERROR_NAMES:
                self.reset()
                raise AuthenticationError(f"Odoo rejected credentials: {message}")
            raise TransientStoreError(f"Odoo {service}.{method} error: {name or message}")

        return data.get("result")

    async def authenticate(self) -> int:
        """Return the cached uid, authenticating first if needed.

        Raises:
            AuthenticationError: if Odoo rejects the credentials
            TransientStoreError: on network or protocol failure
        """
        async with self._auth_lock:
            if self._uid is not None:
                return self._uid

            uid = await self._call(
                "common",
                "authenticate",
                [self.db, self.username, self._password, {}],
            )
            if not uid:
                raise AuthenticationError(f"Odoo authentication failed for {self.username}")

            self._uid = uid
            logger.info(f"Authenticated against Odoo (uid={uid})")
            return uid

    async def _execute_kw(self, model: str, method: str, args: list, kwargs: dict) -> Any:
        uid = await self.authenticate()
        return await self._call(
            "object",
            "execute_kw",
            [self.db, uid, self._password, model, method, args, kwargs],
        )

    async def query(
        self,
        collection: str,
        domain: Sequence,
        fields: Sequence[str],
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[dict]:
        """search_read on a model, returning rows in the requested order."""
        kwargs: dict = {"fields": list(fields)}
        if order:
            kwargs["order"] = order
        if limit:
            kwargs["limit"] = limit
        result = await self._execute_kw(collection, "search_read", [list(domain)], kwargs)
        return list(result or [])

    async def read(self, collection: str, ids: Sequence[int], fields: Sequence[str]) -> List[dict]:
        """read specific rows by id."""
        if not ids:
            return []
        result = await self._execute_kw(collection, "read", [list(ids)], {"fields": list(fields)})
        return list(result or [])
