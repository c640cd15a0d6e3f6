"""
CRUD (Create, Read, Update, Delete) operations for the Inventory service.

``InventoryGateway`` is the single point of access to the inventory
collection. It is constructed with a ``DocumentStore`` and handed to
whatever needs it; there is no module-level connection.
"""
import logging
from typing import AsyncIterator, List, Optional

from fastapi.concurrency import run_in_threadpool

from .errors import MalformedRecordError, MissingIdError
from .schemas import InventoryRecord, deserialize, serialize
from .store import DocumentStore

logger = logging.getLogger(__name__)


def require_id(record: InventoryRecord) -> str:
    """
    Return the record's identifier.

    Raises:
        MissingIdError: If the record was never persisted
    """
    if record.id is None:
        raise MissingIdError(f"Record '{record.name}' has no id")
    return record.id


class InventoryGateway:
    """
    Inventory operations against one document collection.

    Mutations are awaitable; the blocking store call runs in a worker thread.

    Args:
        store: Document store holding the inventory collection
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    async def create(self, record: InventoryRecord) -> str:
        """
        Persist a new inventory record.

        Any ``id`` already on the record is ignored.

        Args:
            record: Record to persist

        Returns:
            Identifier assigned by the store
        """
        doc_id = await run_in_threadpool(self.store.add, serialize(record))
        logger.info(f"Created item '{record.name}' with id {doc_id}")
        return doc_id

    async def update(self, record: InventoryRecord) -> None:
        """
        Overwrite all fields of an existing record.

        A record without an id is skipped silently: there is nothing to
        update yet. Use ``require_id`` where a missing id must fail.

        Args:
            record: Record carrying the id to update and the new values

        Raises:
            RecordNotFoundError: If no record exists at ``record.id``
        """
        if record.id is None:
            logger.debug(f"Skipping update of unsaved item '{record.name}'")
            return
        await run_in_threadpool(self.store.set, record.id, serialize(record))
        logger.info(f"Updated item {record.id}")

    async def delete(self, item_id: str) -> None:
        """
        Remove a record. Deleting an id that does not exist succeeds.

        Args:
            item_id: ID of the record to delete
        """
        removed = await run_in_threadpool(self.store.delete, item_id)
        if removed:
            logger.info(f"Deleted item {item_id}")
        else:
            logger.debug(f"Delete of missing item {item_id} ignored")

    async def get(self, item_id: str) -> Optional[InventoryRecord]:
        """
        Retrieve a single record by ID.

        Returns:
            InventoryRecord or None if not found

        Raises:
            MalformedRecordError: If the stored document is not a valid record
        """
        data = await run_in_threadpool(self.store.get, item_id)
        if data is None:
            return None
        return deserialize(item_id, data)

    async def list_items(self) -> List[InventoryRecord]:
        """
        Retrieve every record in the collection.

        Malformed documents are logged and left out of the result.
        """
        documents = await run_in_threadpool(self.store.list)
        records = []
        for doc_id, data in documents:
            try:
                records.append(deserialize(doc_id, data))
            except MalformedRecordError as e:
                logger.warning(f"Skipping document in '{self.store.collection}': {e}")
        return records

    async def subscribe(self) -> AsyncIterator[List[InventoryRecord]]:
        """
        Live feed of full-collection snapshots.

        Yields the current snapshot straight away and a fresh one after each
        change. Changes made while the consumer is busy collapse into one
        snapshot. Closing the iterator releases the change listener.
        """
        changes = self.store.changes()
        try:
            async for _ in changes:
                yield await self.list_items()
        finally:
            await changes.aclose()
