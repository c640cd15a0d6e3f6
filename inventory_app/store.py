"""
Document store for the Inventory service.

A named collection of schemaless documents keyed by opaque string ids,
persisted in a SQL database through SQLAlchemy. Every successful write
publishes a change notification so live queries can re-read the collection.
"""
import logging
import uuid
from contextlib import contextmanager
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .errors import RecordNotFoundError, StoreUnavailableError

logger = logging.getLogger(__name__)


class DocumentStore:
    """
    One collection of documents in the database.

    Args:
        session_factory: SQLAlchemy session factory
        notifier: LocalNotifier or RedisNotifier used for change feeds
        collection: Collection name
    """

    def __init__(self, session_factory, notifier, collection: str):
        self.session_factory = session_factory
        self.notifier = notifier
        self.collection = collection

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Document store error on '{self.collection}': {e}")
            raise StoreUnavailableError(str(e)) from e
        finally:
            db.close()

    def _get_document(self, db: Session, doc_id: str) -> Optional[models.Document]:
        return db.query(models.Document).filter(
            models.Document.collection == self.collection,
            models.Document.id == doc_id,
        ).first()

    def add(self, data: Dict[str, Any]) -> str:
        """
        Insert a new document.

        Args:
            data: Document fields

        Returns:
            The identifier assigned to the document
        """
        doc_id = uuid.uuid4().hex
        with self._session() as db:
            db.add(models.Document(id=doc_id, collection=self.collection, data=dict(data)))
            db.commit()
        self.notifier.publish(self.collection)
        return doc_id

    def set(self, doc_id: str, data: Dict[str, Any]) -> None:
        """
        Overwrite every field of an existing document.

        Raises:
            RecordNotFoundError: If no document exists at ``doc_id``
        """
        with self._session() as db:
            document = self._get_document(db, doc_id)
            if document is None:
                raise RecordNotFoundError(doc_id)
            document.data = dict(data)
            db.commit()
        self.notifier.publish(self.collection)

    def delete(self, doc_id: str) -> bool:
        """
        Remove a document. Deleting a missing id is not an error.

        Returns:
            True if a document was removed, False if none existed
        """
        with self._session() as db:
            document = self._get_document(db, doc_id)
            if document is None:
                return False
            db.delete(document)
            db.commit()
        self.notifier.publish(self.collection)
        return True

    def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the fields of one document, or None if it does not exist."""
        with self._session() as db:
            document = self._get_document(db, doc_id)
            return None if document is None else document.data

    def list(self) -> List[Tuple[str, Dict[str, Any]]]:
        """Return ``(id, fields)`` for every document, in insertion order."""
        with self._session() as db:
            documents = db.query(models.Document).filter(
                models.Document.collection == self.collection
            ).order_by(models.Document.seq).all()
            return [(document.id, document.data) for document in documents]

    def changes(self) -> AsyncIterator[None]:
        """Async iterator woken after each change to the collection."""
        return self.notifier.changes(self.collection)
