"""
Derived views over an in-memory list of inventory records.

Pure functions: they never touch the store and never mutate their input.
"""
from typing import Iterable, List, Optional

from .config import LOW_STOCK_THRESHOLD
from .schemas import InventoryRecord, InventoryStatistics

# Filter value meaning "no category restriction"
ALL_CATEGORIES = "All"


def filter_by_category(records: List[InventoryRecord], selected: Optional[str]) -> List[InventoryRecord]:
    """
    Keep the records in the selected category.

    Args:
        records: Records to filter
        selected: Category to keep; ``ALL_CATEGORIES`` or None keeps everything

    Returns:
        Matching records in their original order. Matching is exact and
        case-sensitive.
    """
    if selected is None or selected == ALL_CATEGORIES:
        return list(records)
    return [record for record in records if record.category == selected]


def distinct_categories(records: Iterable[InventoryRecord]) -> List[str]:
    """Dropdown values: ``ALL_CATEGORIES`` followed by each category once."""
    categories = dict.fromkeys(record.category for record in records)
    return [ALL_CATEGORIES, *categories]


def compute_statistics(
    records: List[InventoryRecord],
    low_stock_threshold: int = LOW_STOCK_THRESHOLD,
) -> InventoryStatistics:
    """
    Aggregate dashboard figures for a snapshot.

    Args:
        records: Current snapshot
        low_stock_threshold: Records at or below this quantity count as low stock

    Returns:
        InventoryStatistics
    """
    total_value = sum((record.quantity * record.price for record in records), 0.0)
    low_stock = [record for record in records if record.quantity <= low_stock_threshold]
    out_of_stock = [record for record in records if record.quantity == 0]

    return InventoryStatistics(
        unique_count=len(records),
        total_value=total_value,
        low_stock_threshold=low_stock_threshold,
        low_stock=low_stock,
        out_of_stock=out_of_stock,
    )
