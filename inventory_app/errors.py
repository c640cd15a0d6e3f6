"""
Exception types for the Inventory service.
"""
from typing import Optional


class InventoryError(Exception):
    """Base class for all inventory errors."""
    pass


class ValidationError(InventoryError):
    """
    User-supplied input failed a syntactic check.

    Raised before any store interaction.

    Attributes:
        errors (dict): Field name mapped to a human-readable message
    """

    def __init__(self, errors: dict):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{field}: {message}" for field, message in self.errors.items()))


class MissingIdError(InventoryError):
    """An update was attempted on a record that was never persisted."""
    pass


class MalformedRecordError(InventoryError):
    """A stored document does not have the shape of an inventory record."""

    def __init__(self, doc_id: Optional[str], reason: str):
        self.doc_id = doc_id
        self.reason = reason
        super().__init__(f"Malformed record {doc_id!r}: {reason}")


class RecordNotFoundError(InventoryError):
    """No document exists at the given identifier."""

    def __init__(self, doc_id: str):
        self.doc_id = doc_id
        super().__init__(f"Record {doc_id!r} not found")


class StoreUnavailableError(InventoryError):
    """The document store or its change feed could not be reached."""
    pass
