"""
HTTP client for communicating with the Inventory service.

``InventoryClient`` offers the same operations as ``InventoryGateway`` over
HTTP, so the controllers in ``inventory_app.controllers`` can drive a remote
service exactly like a local store.
"""
import json
import logging
from typing import AsyncIterator, List, Optional

import httpx

from ..config import INVENTORY_CLIENT_TIMEOUT, INVENTORY_SERVICE_URL
from ..errors import RecordNotFoundError, StoreUnavailableError, ValidationError
from ..schemas import InventoryRecord, InventoryStatistics

logger = logging.getLogger(__name__)


def _record_payload(record: InventoryRecord) -> dict:
    return record.model_dump(mode="json", include={"name", "quantity", "price", "category", "created_at"})


class InventoryClient:
    """
    Async client for the inventory service.

    Args:
        base_url: Service root URL
        timeout: Timeout in seconds for one-shot requests
        transport: Optional httpx transport (used in tests)
    """

    def __init__(
        self,
        base_url: str = INVENTORY_SERVICE_URL,
        timeout: float = INVENTORY_CLIENT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise StoreUnavailableError(f"Inventory service error: {e}") from e

        if response.status_code == 422:
            detail = response.json().get("detail")
            raise ValidationError(detail if isinstance(detail, dict) else {"request": str(detail)})
        if response.status_code >= 500:
            raise StoreUnavailableError(f"Inventory service returned HTTP {response.status_code}")
        return response

    async def list_items(self, category: Optional[str] = None) -> List[InventoryRecord]:
        """
        Retrieve all inventory items, optionally filtered by category.

        Raises:
            StoreUnavailableError: If the service cannot be reached
        """
        params = {"category": category} if category is not None else None
        response = await self._request("GET", "/", params=params)
        response.raise_for_status()
        return [InventoryRecord.model_validate(item) for item in response.json()]

    async def list_categories(self) -> List[str]:
        response = await self._request("GET", "/categories")
        response.raise_for_status()
        return response.json()

    async def get(self, item_id: str) -> Optional[InventoryRecord]:
        """
        Find an inventory item by ID.

        Returns:
            InventoryRecord if found, None otherwise
        """
        response = await self._request("GET", f"/{item_id}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return InventoryRecord.model_validate(response.json())

    async def create(self, record: InventoryRecord) -> str:
        """
        Create an inventory item.

        Returns:
            Identifier assigned by the service
        """
        response = await self._request("POST", "/", json=_record_payload(record))
        response.raise_for_status()
        return response.json()["id"]

    async def update(self, record: InventoryRecord) -> None:
        """
        Overwrite an inventory item. Records without an id are skipped.

        Raises:
            RecordNotFoundError: If the item does not exist
        """
        if record.id is None:
            logger.debug(f"Skipping update of unsaved item '{record.name}'")
            return
        payload = _record_payload(record)
        payload.pop("created_at")
        response = await self._request("PUT", f"/{record.id}", json=payload)
        if response.status_code == 404:
            raise RecordNotFoundError(record.id)
        response.raise_for_status()

    async def delete(self, item_id: str) -> None:
        response = await self._request("DELETE", f"/{item_id}")
        response.raise_for_status()

    async def get_analytics(self, low_stock_threshold: Optional[int] = None) -> InventoryStatistics:
        params = {"low_stock_threshold": low_stock_threshold} if low_stock_threshold is not None else None
        response = await self._request("GET", "/analytics", params=params)
        response.raise_for_status()
        return InventoryStatistics.model_validate(response.json())

    async def subscribe(self) -> AsyncIterator[List[InventoryRecord]]:
        """
        Follow the service's snapshot stream.

        Yields one list of records per ``snapshot`` event until the server
        closes the stream or the iterator is closed.
        """
        try:
            async with self._client.stream("GET", "/stream", timeout=httpx.Timeout(None)) as response:
                response.raise_for_status()
                event, data = None, []
                async for line in response.aiter_lines():
                    if line.startswith("event:"):
                        event = line[len("event:"):].strip()
                    elif line.startswith("data:"):
                        data.append(line[len("data:"):].strip())
                    elif not line:
                        if event == "snapshot" and data:
                            items = json.loads("\n".join(data))
                            yield [InventoryRecord.model_validate(item) for item in items]
                        event, data = None, []
        except httpx.HTTPError as e:
            raise StoreUnavailableError(f"Inventory stream error: {e}") from e
