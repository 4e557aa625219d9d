import pytest
from fastapi.testclient import TestClient

from shopfloor.config import Settings
from shopfloor.web.app import create_app


@pytest.fixture
def client(service):
    settings = Settings(start_poller=False, log_level="WARNING")
    app = create_app(settings, service=service)
    with TestClient(app) as test_client:
        yield test_client


def create_order(client, number, parts):
    response = client.post(
        "/orders",
        json={"order_number": number, "customer_name": "Jansen", "part_ids": parts},
    )
    assert response.status_code == 201
    return response.json()


def test_list_stations(client):
    response = client.get("/stations")
    assert response.status_code == 200
    body = response.json()
    assert [station["code"] for station in body] == [
        "wallsaw",
        "cnc",
        "banding",
        "packaging",
        "complete",
    ]
    assert body[0]["status_label"] == "Cutting"


def test_scan_flow_updates_order_status(client):
    order = create_order(client, "ORD-1", ["P1", "P2"])
    assert order["status"] == "Pending"

    for part_id in ("P1", "P2"):
        response = client.post(
            "/tracking/scan", json={"part_id": part_id, "station": "wallsaw"}
        )
        assert response.status_code == 201
    response = client.post(
        "/tracking/scan",
        json={"part_id": "P1", "station": "CNC", "scanned_by": "op-7", "notes": "ok"},
    )
    body = response.json()
    assert body["station"] == "cnc"
    assert body["previous_station"] == "wallsaw"
    assert body["order_id"] == order["id"]
    assert body["order_status"] == "Cutting"

    detail = client.get(f"/orders/{order['id']}").json()
    assert detail["status"] == "Cutting"
    assert detail["lifecycle_status"] == "Cutting"

    progress = client.get("/tracking/parts/P1").json()
    assert progress["current_station"]["code"] == "cnc"
    history = client.get("/tracking/parts/P1/history").json()
    assert [event["station"] for event in history] == ["wallsaw", "cnc"]
    at_saw = client.get("/tracking/stations/wallsaw/parts").json()
    assert [event["part_id"] for event in at_saw] == ["P2"]
    tracking = client.get(f"/orders/{order['id']}/tracking").json()
    assert [entry["part_id"] for entry in tracking] == ["P1", "P2"]


def test_scan_errors(client):
    order = create_order(client, "ORD-1", ["P1"])
    other = create_order(client, "ORD-2", ["P2"])

    response = client.post("/tracking/scan", json={"part_id": "P1", "station": "paint"})
    assert response.status_code == 400
    assert response.json()["type"] == "InvalidStation"

    response = client.post("/tracking/scan", json={"part_id": "NOPE", "station": "cnc"})
    assert response.status_code == 404
    assert response.json()["type"] == "UnknownPart"

    response = client.post(
        "/tracking/scan",
        json={"part_id": "P1", "station": "cnc", "order_id": other["id"]},
    )
    assert response.status_code == 404

    response = client.post(
        "/tracking/scan",
        json={"part_id": "P1", "station": "cnc", "order_id": "missing"},
    )
    assert response.status_code == 404
    assert response.json()["type"] == "UnknownOrder"
    assert client.get("/tracking/parts/P1/history").json() == []
    assert client.get(f"/orders/{order['id']}").json()["status"] == "Pending"


def test_duplicate_parts_are_rejected(client):
    create_order(client, "ORD-1", ["P1"])
    response = client.post(
        "/orders", json={"order_number": "ORD-2", "part_ids": ["P1"]}
    )
    assert response.status_code == 409
    response = client.post("/orders", json={"order_number": "ORD-3", "part_ids": []})
    assert response.status_code == 400


def test_batch_lifecycle(client):
    first = create_order(client, "ORD-1", ["P1", "P2"])
    second = create_order(client, "ORD-2", ["P3"])

    candidates = client.get("/batches/candidates").json()
    assert {order["id"] for order in candidates} == {first["id"], second["id"]}

    response = client.post("/batches", json={"order_ids": []})
    assert response.status_code == 400
    assert response.json()["type"] == "EmptyBatch"

    response = client.post(
        "/batches", json={"order_ids": [first["id"], second["id"]], "name": "Run A"}
    )
    assert response.status_code == 201
    batch = response.json()
    assert batch["status"] == "Pending"
    assert batch["total_panels"] == 3

    response = client.post("/batches", json={"order_ids": [first["id"]]})
    assert response.status_code == 409
    assert response.json()["type"] == "OrderAlreadyBatched"
    assert client.get("/batches/candidates").json() == []

    response = client.post(f"/batches/{batch['id']}/pause")
    assert response.status_code == 409

    started = client.post(f"/batches/{batch['id']}/start").json()
    assert started["status"] == "Processing"
    assert client.get(f"/orders/{first['id']}").json()["status"] == "Cutting"

    assert client.post(f"/batches/{batch['id']}/pause").json()["status"] == "Paused"
    assert client.post(f"/batches/{batch['id']}/start").json()["status"] == "Processing"

    for part_id in ("P1", "P2", "P3"):
        client.post("/tracking/scan", json={"part_id": part_id, "station": "complete"})
    checked = client.post(f"/batches/{batch['id']}/check").json()
    assert checked["status"] == "Completed"
    assert checked["progress"] == 100
    assert checked["completed_panels"] == 3
    assert checked["completed_at"] is not None

    assert client.delete(f"/batches/{batch['id']}").status_code == 204
    assert client.get(f"/batches/{batch['id']}").status_code == 404
    assert client.get("/batches").json() == []


def test_partial_start_is_reported_per_order(client, service, monkeypatch):
    first = create_order(client, "ORD-1", ["P1"])
    second = create_order(client, "ORD-2", ["P2"])
    batch = client.post(
        "/batches", json={"order_ids": [first["id"], second["id"]]}
    ).json()
    original = service.ledger.record_scan

    def flaky(part_id, *args, **kwargs):
        if part_id == "P2":
            raise RuntimeError("label unreadable")
        return original(part_id, *args, **kwargs)

    monkeypatch.setattr(service.ledger, "record_scan", flaky)
    response = client.post(f"/batches/{batch['id']}/start")
    assert response.status_code == 207
    body = response.json()
    assert body["type"] == "PartialBatchStartFailure"
    assert body["failures"] == {second["id"]: "label unreadable"}
    assert body["batch"]["status"] == "Processing"

    monkeypatch.setattr(service.ledger, "record_scan", original)
    response = client.post(
        f"/batches/{batch['id']}/start", json={"order_ids": [second["id"]]}
    )
    assert response.status_code == 200
    assert client.get(f"/orders/{second['id']}").json()["status"] == "Cutting"


def test_manual_complete(client):
    order = create_order(client, "ORD-1", ["P1"])
    batch = client.post("/batches", json={"order_ids": [order["id"]]}).json()
    completed = client.post(f"/batches/{batch['id']}/complete").json()
    assert completed["status"] == "Completed"
    assert completed["progress"] == 100
    assert client.post(f"/batches/{batch['id']}/start").status_code == 409
