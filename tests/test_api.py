"""
Tests for the inventory HTTP API
"""
import asyncio
import csv
import io
import json

from inventory_app.crud import InventoryGateway
from inventory_app.main import get_gateway, stream_inventory
from tests.factories import make_record

PEN = {"name": "Pen", "quantity": 5, "price": 1.5, "category": "Office"}
CHAIR = {"name": "Chair", "quantity": 0, "price": 40.0, "category": "Furniture"}


def create(client, payload):
    response = client.post("/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_create_and_get(client):
    created = create(client, PEN)

    assert created["id"]
    assert created["created_at"]
    response = client.get(f"/{created['id']}")
    assert response.status_code == 200
    assert response.json() == created


def test_create_rejects_invalid_payload(client):
    for payload in (
        {**PEN, "quantity": -1},
        {**PEN, "price": -0.01},
        {**PEN, "name": ""},
        {**PEN, "quantity": "many"},
        {"name": "Pen"},
    ):
        assert client.post("/", json=payload).status_code == 422

    assert client.get("/").json() == []


def test_list_and_filter(client):
    pen = create(client, PEN)
    chair = create(client, CHAIR)

    assert client.get("/").json() == [pen, chair]
    assert client.get("/", params={"category": "All"}).json() == [pen, chair]
    assert client.get("/", params={"category": "Office"}).json() == [pen]
    assert client.get("/", params={"category": "office"}).json() == []


def test_categories(client):
    create(client, PEN)
    create(client, CHAIR)
    create(client, {**PEN, "name": "Stapler"})

    categories = client.get("/categories").json()

    assert categories[0] == "All"
    assert sorted(categories) == ["All", "Furniture", "Office"]


def test_analytics(client):
    create(client, PEN)
    chair = create(client, CHAIR)

    stats = client.get("/analytics").json()

    assert stats["unique_count"] == 2
    assert stats["total_value"] == 7.5
    assert stats["low_stock_threshold"] == 10
    assert len(stats["low_stock"]) == 2
    assert stats["out_of_stock"] == [chair]

    stats = client.get("/analytics", params={"low_stock_threshold": 0}).json()
    assert stats["low_stock"] == [chair]


def test_update_preserves_created_at(client):
    created = create(client, PEN)

    response = client.put(f"/{created['id']}", json={"quantity": 12, "price": 2.0})

    assert response.status_code == 200
    updated = response.json()
    assert updated["quantity"] == 12
    assert updated["price"] == 2.0
    assert updated["category"] == "Office"
    assert updated["created_at"] == created["created_at"]
    assert client.get(f"/{created['id']}").json() == updated


def test_update_missing_item(client):
    assert client.put("/missing", json={"quantity": 1}).status_code == 404


def test_get_missing_item(client):
    assert client.get("/missing").status_code == 404


def test_delete_is_idempotent(client):
    created = create(client, PEN)

    assert client.delete(f"/{created['id']}").status_code == 204
    assert client.delete(f"/{created['id']}").status_code == 204
    assert client.get(f"/{created['id']}").status_code == 404


def test_export_csv(client):
    pen = create(client, PEN)

    response = client.get("/export/csv")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["id", "name", "quantity", "price", "category", "created_at"]
    assert rows[1][:5] == [pen["id"], "Pen", "5", "1.50", "Office"]


def test_store_unavailable_returns_503(client, broken_store):
    client.app.dependency_overrides[get_gateway] = lambda: InventoryGateway(broken_store)
    try:
        response = client.get("/")
    finally:
        client.app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json() == {"detail": "Inventory store unavailable"}


class StreamRequest:
    """Stands in for the request of a connected stream client"""

    def __init__(self):
        self.disconnected = False

    async def is_disconnected(self):
        return self.disconnected


def snapshot_names(event):
    header, data = event.rstrip("\n").split("\n")
    assert header == "event: snapshot"
    return [item["name"] for item in json.loads(data[len("data: "):])]


def test_stream_sends_snapshot_per_change(gateway, notifier):
    async def scenario():
        response = await stream_inventory(StreamRequest(), gateway)
        events = response.body_iterator
        try:
            first = await events.__anext__()
            assert notifier.listener_count("items") == 1
            await gateway.create(make_record())
            second = await events.__anext__()
        finally:
            await events.aclose()
        return response, first, second

    response, first, second = asyncio.run(scenario())

    assert response.media_type == "text/event-stream"
    assert snapshot_names(first) == []
    assert snapshot_names(second) == ["Pen"]
    assert notifier.listener_count("items") == 0


def test_stream_stops_when_client_disconnects(gateway, notifier):
    async def scenario():
        request = StreamRequest()
        response = await stream_inventory(request, gateway)
        events = response.body_iterator
        await events.__anext__()

        request.disconnected = True
        await gateway.create(make_record())
        remaining = [event async for event in events]
        return remaining

    assert asyncio.run(scenario()) == []
    assert notifier.listener_count("items") == 0
