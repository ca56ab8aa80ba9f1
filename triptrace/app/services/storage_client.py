"""
Storage / Auth collaborator client.

Travel records and user sessions live in a remote backend exposing a
PostgREST-style records API. This service only lists, deletes and resolves
the current user; failures are reported upward as StorageError /
AuthenticationError.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx
from pydantic import ValidationError

from triptrace.app.core.config import settings
from triptrace.app.core.exceptions import AuthenticationError, StorageError
from triptrace.app.schemas.travel_record import TravelRecord

logger = logging.getLogger(__name__)

RECORDS_PATH = "/api/database/records/travel_records"
CURRENT_SESSION_PATH = "/api/auth/sessions/current"


class RecordStore(Protocol):
    """What the history service needs from the storage collaborator."""

    async def list_records(self, user_id: str) -> List[TravelRecord]:
        """Records of `user_id`, newest travel date first."""
        ...

    async def delete_record(self, record_id: str) -> None:
        ...

    async def get_current_user(self, token: str) -> str:
        """User id owning the session `token`."""
        ...


class HttpRecordStore:

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = settings.storage_url,
        api_key: Optional[str] = settings.storage_api_key,
        timeout_seconds: float = settings.storage_timeout_seconds,
    ):
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url, headers=headers, timeout=timeout_seconds
        )

    async def list_records(self, user_id: str) -> List[TravelRecord]:
        params = {
            "user_id": f"eq.{user_id}",
            "order": "travel_date.desc",
        }
        rows = await self._send("GET", RECORDS_PATH, params=params)
        if not isinstance(rows, list):
            raise StorageError("Failed to load records", details={"reason": "unexpected payload"})

        try:
            return [self._to_record(row) for row in rows]
        except (KeyError, ValidationError) as e:
            raise StorageError("Failed to load records", details={"reason": str(e)})

    async def delete_record(self, record_id: str) -> None:
        await self._send("DELETE", RECORDS_PATH, params={"id": f"eq.{record_id}"})
        logger.info("Deleted travel record %s", record_id)

    async def get_current_user(self, token: str) -> str:
        try:
            response = await self._client.get(
                CURRENT_SESSION_PATH, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.HTTPError as e:
            raise StorageError("Auth service unreachable", details={"reason": str(e)})

        if response.status_code in (401, 403):
            raise AuthenticationError("You must be logged in to view your travel history")
        if response.is_error:
            raise StorageError(
                "Failed to resolve current user", details={"status": response.status_code}
            )

        user = (response.json() or {}).get("user") or {}
        if not user.get("id"):
            raise AuthenticationError("You must be logged in to view your travel history")
        return str(user["id"])

    async def _send(self, method: str, path: str, params: Dict[str, Any]) -> Any:
        try:
            response = await self._client.request(method, path, params=params)
        except httpx.HTTPError as e:
            logger.warning("Storage %s %s failed: %s", method, path, e)
            raise StorageError("Storage request failed", details={"reason": str(e)})

        if response.is_error:
            message = _error_message(response) or f"Storage request failed ({response.status_code})"
            logger.warning("Storage %s %s returned %s", method, path, response.status_code)
            raise StorageError(message, details={"status": response.status_code})

        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _to_record(row: Dict[str, Any]) -> TravelRecord:
        row = dict(row)
        row["id"] = str(row["id"])
        row["user_id"] = str(row.get("user_id", ""))
        row["location"] = row.get("location") or ""
        row["photo_url"] = row.get("photo_url") or ""
        if (row.get("latitude") is None) != (row.get("longitude") is None):
            # Half a coordinate pair is treated as no location at all
            logger.warning("Record %s has an incomplete coordinate pair, ignoring it", row["id"])
            row["latitude"] = row["longitude"] = None
        return TravelRecord.model_validate(row)

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("message") or body.get("error")
    return None
