"""
Pydantic schemas for inventory records and API payloads.

``InventoryRecord`` is the in-memory shape of one stock-keeping unit.
``serialize`` and ``deserialize`` convert it to and from the field map kept
in the document store.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from .errors import MalformedRecordError


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class InventoryRecord(BaseModel):
    """
    Inventory record representing a product in stock.

    Attributes:
        id (str): Store-assigned identifier, None until the record is persisted
        name (str): Item name
        quantity (int): Units on hand
        price (float): Unit price
        category (str): Free-text grouping label
        created_at (datetime): When the record was first created (UTC)
    """
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)
    price: float = Field(..., ge=0)
    category: str = Field(..., min_length=1)
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, value: datetime) -> datetime:
        return _as_utc(value)


# Field name in the stored document -> expected primitive types
_WIRE_FIELDS = {
    "name": (str,),
    "quantity": (int,),
    "price": (int, float),
    "category": (str,),
    "createdAt": (datetime,),
}


def serialize(record: InventoryRecord) -> Dict[str, Any]:
    """
    Convert a record into the field map written to the document store.

    The identifier is omitted; the store keeps it outside the document.

    Args:
        record: Record to convert

    Returns:
        dict with name, quantity, price, category and createdAt
    """
    return {
        "name": record.name,
        "quantity": record.quantity,
        "price": float(record.price),
        "category": record.category,
        "createdAt": _as_utc(record.created_at),
    }


def deserialize(doc_id: str, data: Dict[str, Any]) -> InventoryRecord:
    """
    Rebuild a record from a stored field map.

    Args:
        doc_id: Identifier of the document, supplied by the store
        data: Stored document fields

    Returns:
        InventoryRecord

    Raises:
        MalformedRecordError: If a field is missing, has the wrong type or
            violates a record invariant
    """
    if not isinstance(data, dict):
        raise MalformedRecordError(doc_id, f"expected a mapping, got {type(data).__name__}")

    for field, types in _WIRE_FIELDS.items():
        if field not in data:
            raise MalformedRecordError(doc_id, f"missing field '{field}'")
        value = data[field]
        # bool is an int subclass but never a valid quantity or price
        if isinstance(value, bool) or not isinstance(value, types):
            raise MalformedRecordError(
                doc_id, f"field '{field}' has type {type(value).__name__}"
            )

    try:
        return InventoryRecord(
            id=doc_id,
            name=data["name"],
            quantity=data["quantity"],
            price=float(data["price"]),
            category=data["category"],
            created_at=data["createdAt"],
        )
    except PydanticValidationError as e:
        raise MalformedRecordError(doc_id, str(e)) from e


class InventoryItemBase(BaseModel):
    """Base schema with common inventory item attributes."""
    name: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)
    price: float = Field(..., ge=0)
    category: str = Field(..., min_length=1)


class InventoryItemCreate(InventoryItemBase):
    """Schema for creating a new inventory item. ``created_at`` defaults to now."""
    created_at: Optional[datetime] = None


class InventoryItemUpdate(BaseModel):
    """Schema for updating an existing inventory item. All fields are optional."""
    name: Optional[str] = Field(default=None, min_length=1)
    quantity: Optional[int] = Field(default=None, ge=0)
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = Field(default=None, min_length=1)


class InventoryStatistics(BaseModel):
    """
    Aggregates shown on the inventory dashboard.

    Attributes:
        unique_count (int): Number of records
        total_value (float): Sum of quantity * price over all records
        low_stock_threshold (int): Threshold used for ``low_stock``
        low_stock (list): Records with quantity at or below the threshold
        out_of_stock (list): Records with quantity 0
    """
    unique_count: int
    total_value: float
    low_stock_threshold: int
    low_stock: List[InventoryRecord] = Field(default_factory=list)
    out_of_stock: List[InventoryRecord] = Field(default_factory=list)
