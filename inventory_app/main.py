"""
    Inventory Service API

    This module implements a FastAPI-based service for managing inventory records
    with full CRUD operations. Records live in a document collection persisted
    through SQLAlchemy; every change is pushed to live subscribers.

    The service exposes:
    - CRUD endpoints for inventory management
    - Derived views: category filter, category list and dashboard analytics
    - Stream endpoint: Server-Sent Events carrying full snapshots of the collection
    - Health endpoint: Provides service health status for monitoring and orchestration
"""
from contextlib import aclosing, asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional
import csv
import io
import json
import logging

from fastapi import APIRouter, FastAPI, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, StreamingResponse

from . import config, models, schemas, views
from .crud import InventoryGateway
from .database import build_engine, build_session_factory
from .errors import MalformedRecordError, RecordNotFoundError, StoreUnavailableError, ValidationError
from .notifier import build_notifier
from .store import DocumentStore

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

router = APIRouter()


def create_app(
    database_url: str = config.DATABASE_URL,
    redis_url: Optional[str] = config.REDIS_URL,
    collection: str = config.COLLECTION_NAME,
) -> FastAPI:
    """
    Build the inventory application.

    The gateway is created on startup and kept on ``app.state.gateway``.

    Args:
        database_url: Database holding the document collection
        redis_url: Redis URL for change notifications, or None for in-process
        collection: Name of the inventory collection
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(database_url)
        # Create database tables
        models.Base.metadata.create_all(bind=engine)
        notifier = build_notifier(redis_url)
        store = DocumentStore(build_session_factory(engine), notifier, collection)
        app.state.gateway = InventoryGateway(store)
        logger.info(f"Inventory service ready on collection '{collection}'")
        try:
            yield
        finally:
            await notifier.close()
            engine.dispose()

    app = FastAPI(title="inventory-service", lifespan=lifespan)
    register_exception_handlers(app)
    app.include_router(router)
    return app


def get_gateway(request: Request) -> InventoryGateway:
    """Dependency returning the application's gateway."""
    return request.app.state.gateway


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=422, content={"detail": exc.errors})

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        logger.error(f"Store unavailable: {exc}")
        return JSONResponse(status_code=503, content={"detail": "Inventory store unavailable"})

    @app.exception_handler(MalformedRecordError)
    async def malformed_record_handler(request: Request, exc: MalformedRecordError):
        logger.error(str(exc))
        return JSONResponse(status_code=500, content={"detail": f"Inventory item {exc.doc_id} is malformed"})


@router.get("/healthz", response_model=dict)
def health():
    """
    Health check endpoint for the inventory service.

    This endpoint is typically used by orchestrators (like Kubernetes) or load balancers
    to determine if the service is running and ready to accept requests.

    Returns:
        dict: A dictionary containing the health status of the service.
            - status (str): "healthy" if the service is operational.

    Example:
        GET /healthz
        Response: {"status": "healthy"}
    """
    return {"status": "healthy"}


@router.get("/", response_model=List[schemas.InventoryRecord])
async def list_inventory_items(
    category: Optional[str] = None,
    gateway: InventoryGateway = Depends(get_gateway),
):
    """
    List inventory items, optionally restricted to one category.

    Args:
        category: Category to keep; omit or pass "All" for every item
        gateway: Inventory gateway (injected)

    Returns:
        List of inventory item objects
    """
    items = await gateway.list_items()
    return views.filter_by_category(items, category)


@router.get("/categories", response_model=List[str])
async def list_categories(gateway: InventoryGateway = Depends(get_gateway)):
    """
    Values for the category dropdown: "All" followed by every category in use.
    """
    return views.distinct_categories(await gateway.list_items())


@router.get("/analytics", response_model=schemas.InventoryStatistics)
async def get_analytics(
    low_stock_threshold: int = config.LOW_STOCK_THRESHOLD,
    gateway: InventoryGateway = Depends(get_gateway),
):
    """
    Get inventory analytics.

    Returns:
        InventoryStatistics: unique count, total value, low stock and out of stock items
    """
    items = await gateway.list_items()
    return views.compute_statistics(items, low_stock_threshold)


@router.get("/stream")
async def stream_inventory(request: Request, gateway: InventoryGateway = Depends(get_gateway)):
    """
    Live feed of the inventory collection as Server-Sent Events.

    Each event is named ``snapshot`` and carries the full list of items as
    JSON. A new event is sent whenever the collection changes.
    """
    async def event_stream():
        async with aclosing(gateway.subscribe()) as snapshots:
            async for snapshot in snapshots:
                if await request.is_disconnected():
                    break
                payload = json.dumps([item.model_dump(mode="json") for item in snapshot])
                yield f"event: snapshot\ndata: {payload}\n\n"

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.get("/export/csv")
async def export_inventory_csv(gateway: InventoryGateway = Depends(get_gateway)):
    """
    Export all inventory items to CSV.

    Returns:
        CSV file with columns: id, name, quantity, price, category, created_at
    """
    items = await gateway.list_items()

    output = io.StringIO()
    writer = csv.writer(output)

    # Write header
    writer.writerow(['id', 'name', 'quantity', 'price', 'category', 'created_at'])

    # Write data
    for item in items:
        writer.writerow([
            item.id,
            item.name,
            item.quantity,
            f"{item.price:.2f}",
            item.category,
            item.created_at.isoformat()
        ])

    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=inventory.csv"}
    )


@router.get("/{item_id}", response_model=schemas.InventoryRecord)
async def get_inventory_item(item_id: str, gateway: InventoryGateway = Depends(get_gateway)):
    """
    Get a single inventory item by ID.

    Raises:
        HTTPException: 404 if item not found
    """
    item = await gateway.get(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Inventory item not found")
    return item


@router.post("/", response_model=schemas.InventoryRecord, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    item: schemas.InventoryItemCreate,
    gateway: InventoryGateway = Depends(get_gateway),
):
    """
    Create a new inventory item.

    Args:
        item: Inventory item data to create
        gateway: Inventory gateway (injected)

    Returns:
        Created inventory item object, including its new id
    """
    record = schemas.InventoryRecord(
        **item.model_dump(exclude={"created_at"}),
        created_at=item.created_at or datetime.now(timezone.utc),
    )
    item_id = await gateway.create(record)
    return record.model_copy(update={"id": item_id})


@router.put("/{item_id}", response_model=schemas.InventoryRecord)
async def update_inventory_item(
    item_id: str,
    item: schemas.InventoryItemUpdate,
    gateway: InventoryGateway = Depends(get_gateway),
):
    """
    Update an existing inventory item.

    Fields left out of the request keep their current value; ``created_at``
    never changes.

    Raises:
        HTTPException: 404 if item not found
    """
    existing = await gateway.get(item_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Inventory item not found")

    update_data = item.model_dump(exclude_unset=True, exclude_none=True)
    record = existing.model_copy(update=update_data)
    try:
        await gateway.update(record)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Inventory item not found")
    return record


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_inventory_item(item_id: str, gateway: InventoryGateway = Depends(get_gateway)):
    """
    Delete an inventory item. Deleting an unknown id also returns 204.
    """
    await gateway.delete(item_id)


app = create_app()
