"""
View-model controllers for inventory front-ends.

Each controller holds the state one screen needs and exposes ready-to-render
values; rendering itself belongs to whatever UI consumes them. Controllers
that show live data implement ``on_snapshot`` and are driven by ``watch``.
"""
import logging
from contextlib import aclosing
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel

from .config import LOW_STOCK_THRESHOLD
from .crud import InventoryGateway
from .schemas import InventoryRecord, InventoryStatistics
from .validators import parse_item_form
from .views import ALL_CATEGORIES, compute_statistics, distinct_categories, filter_by_category

logger = logging.getLogger(__name__)


class ItemRow(BaseModel):
    """One line of the inventory list."""
    id: Optional[str] = None
    title: str
    subtitle: str
    trailing: str


class StatCard(BaseModel):
    """One statistic tile on the dashboard."""
    title: str
    value: str
    highlight: str = "info"


class InventoryListController:
    """
    Home screen: the inventory list with its category dropdown.
    """

    EMPTY_MESSAGE = "No inventory items. Tap + to add one."

    def __init__(self):
        self.records: List[InventoryRecord] = []
        self.selected_category: str = ALL_CATEGORIES
        self.loaded = False

    def on_snapshot(self, records: List[InventoryRecord]) -> None:
        self.records = list(records)
        self.loaded = True
        # A category that no longer has items drops back to "All"
        if self.selected_category not in self.categories:
            self.selected_category = ALL_CATEGORIES

    def select_category(self, category: Optional[str]) -> None:
        self.selected_category = category or ALL_CATEGORIES

    @property
    def items(self) -> List[InventoryRecord]:
        return filter_by_category(self.records, self.selected_category)

    @property
    def categories(self) -> List[str]:
        return distinct_categories(self.records)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def empty_message(self) -> Optional[str]:
        """Placeholder text when nothing is listed, None otherwise."""
        if not self.records:
            return self.EMPTY_MESSAGE
        if not self.items:
            return f"No items found for category: {self.selected_category}"
        return None

    @staticmethod
    def describe(record: InventoryRecord) -> ItemRow:
        return ItemRow(
            id=record.id,
            title=record.name,
            subtitle=f"Qty: {record.quantity} | Price: ${record.price:.2f}",
            trailing=record.category,
        )

    @property
    def rows(self) -> List[ItemRow]:
        return [self.describe(record) for record in self.items]


class DashboardController:
    """Dashboard screen: aggregate statistics and the out-of-stock list."""

    ALL_IN_STOCK_MESSAGE = "All items are in stock!"

    def __init__(self, low_stock_threshold: int = LOW_STOCK_THRESHOLD):
        self.low_stock_threshold = low_stock_threshold
        self.records: List[InventoryRecord] = []

    def on_snapshot(self, records: List[InventoryRecord]) -> None:
        self.records = list(records)

    @property
    def statistics(self) -> InventoryStatistics:
        return compute_statistics(self.records, self.low_stock_threshold)

    @property
    def cards(self) -> List[StatCard]:
        stats = self.statistics
        return [
            StatCard(title="Total Unique Items", value=str(stats.unique_count)),
            StatCard(title="Total Inventory Value", value=f"${stats.total_value:.2f}"),
            StatCard(
                title="Low Stock Items",
                value=str(len(stats.low_stock)),
                highlight="warning" if stats.low_stock else "ok",
            ),
        ]

    @property
    def out_of_stock_message(self) -> Optional[str]:
        if self.statistics.out_of_stock:
            return None
        return self.ALL_IN_STOCK_MESSAGE


class ItemFormController:
    """
    Add/edit screen for a single item.

    Args:
        gateway: Gateway used to persist the form
        item: Existing record to edit, or None to add a new one
    """

    def __init__(self, gateway: InventoryGateway, item: Optional[InventoryRecord] = None):
        self.gateway = gateway
        self.item = item

    @property
    def is_editing(self) -> bool:
        return self.item is not None

    @property
    def title(self) -> str:
        return "Edit Item" if self.is_editing else "Add New Item"

    @property
    def initial_values(self) -> dict:
        """Text to pre-fill the form fields with."""
        if not self.is_editing:
            return {"name": "", "quantity": "", "price": "", "category": ""}
        return {
            "name": self.item.name,
            "quantity": str(self.item.quantity),
            "price": str(self.item.price),
            "category": self.item.category,
        }

    async def save(self, name: str, quantity: str, price: str, category: str) -> InventoryRecord:
        """
        Validate the form and create or update the item.

        Returns:
            The saved record, carrying its store id

        Raises:
            ValidationError: If any field is invalid; the store is not contacted
        """
        fields = parse_item_form(name, quantity, price, category)

        if self.is_editing:
            record = self.item.model_copy(update=fields)
            await self.gateway.update(record)
        else:
            record = InventoryRecord(created_at=datetime.now(timezone.utc), **fields)
            record = record.model_copy(update={"id": await self.gateway.create(record)})

        self.item = record
        return record

    async def delete(self) -> bool:
        """
        Delete the item being edited.

        Returns:
            True if a delete was issued, False when there is nothing to delete
        """
        if self.item is None or self.item.id is None:
            return False
        await self.gateway.delete(self.item.id)
        return True


async def watch(gateway: InventoryGateway, *controllers) -> None:
    """
    Feed every snapshot of the gateway's live stream to ``controllers``.

    Runs until cancelled; the subscription is released on exit.
    """
    async with aclosing(gateway.subscribe()) as snapshots:
        async for snapshot in snapshots:
            logger.debug(f"Snapshot with {len(snapshot)} items")
            for controller in controllers:
                controller.on_snapshot(snapshot)
