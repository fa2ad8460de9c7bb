import json
from datetime import timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from src.catalog.config import AppConfig, IngestLimits, SchedulerSettings
from src.catalog.main import create_app
from src.catalog.utils.clock import utcnow
from tests.conftest import build_database
from tests.mocks.object_store import FakeObjectStore, make_settings


def build_config(tmp_path: Path, *, max_file_bytes: int = 1024 * 1024) -> AppConfig:
    db_path = tmp_path / "api.db"
    engine, session_factory = build_database(db_path)
    return AppConfig(
        storage=make_settings(),
        ingest_limits=IngestLimits(
            max_workers=2,
            item_deadline_seconds=30,
            max_file_bytes=max_file_bytes,
            max_media_files=10,
            chunk_size_bytes=4096,
        ),
        scheduler=SchedulerSettings(enabled=False, interval_seconds=60),
        database_url=f"sqlite:///{db_path}",
        engine=engine,
        session_factory=session_factory,
    )


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def client(tmp_path: Path, store: FakeObjectStore) -> TestClient:
    app = create_app(build_config(tmp_path), storage=store.client())
    return TestClient(app)


def upload(client: TestClient, items: object, *media: tuple[str, bytes]):
    files = [("jsonFile", ("items.json", json.dumps(items).encode(), "application/json"))]
    files.extend(("media", (name, data, "image/jpeg")) for name, data in media)
    return client.post("/api/catalog/bulk-upload", files=files)


def item(product_id: str) -> dict:
    return {"productId": product_id, "name": product_id, "categoryId": "cat-1", "subCategoryId": "sub-1"}


def test_bulk_upload_reports_success_and_failure(client: TestClient, store: FakeObjectStore) -> None:
    response = upload(
        client,
        [item("A1"), item("B1")],
        ("A1_primary.jpg", b"a"),
        ("A1_red_1.jpg", b"b"),
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body["successful"]) == 1
    success = body["successful"][0]
    assert success["productId"] == "A1"
    assert success["mediaCount"] == 2
    assert success["primaryImageUrl"].startswith("http://s3.test/catalog/")
    assert body["failed"] == [
        {
            "productId": "B1",
            "error": "No primary image found for productId: B1",
            "reason": "validation_error",
        }
    ]

    record = client.get(f"/api/catalog/records/{success['itemId']}").json()
    assert record["external_id"] == "A1"
    assert [asset["priority"] for asset in record["media"]] == [0, 1]


def test_bulk_upload_rejects_non_array_manifest(client: TestClient) -> None:
    response = upload(client, {"productId": "A1"})

    assert response.status_code == 400
    assert response.json()["detail"]["failure_reason"] == "invalid_manifest"


def test_bulk_upload_rejects_oversized_media(tmp_path: Path, store: FakeObjectStore) -> None:
    app = create_app(build_config(tmp_path, max_file_bytes=8), storage=store.client())
    client = TestClient(app)

    response = upload(client, [item("A1")], ("A1_primary.jpg", b"x" * 9))

    assert response.status_code == 413
    assert response.json()["detail"]["failure_reason"] == "payload_too_large"
    assert store.requests == []


def test_schedule_publish_flow(client: TestClient) -> None:
    created = upload(client, [item("A1")], ("A1_primary.jpg", b"a")).json()["successful"][0]
    record_id = created["itemId"]
    future = (utcnow() + timedelta(days=1)).strftime("%Y-%m-%dT%H:%M:%S")

    scheduled = client.post(f"/api/catalog/records/{record_id}/schedule", json={"publishAt": future})
    assert scheduled.status_code == 200
    assert scheduled.json()["status"] == "scheduled"

    past = client.post(
        f"/api/catalog/records/{record_id}/schedule",
        json={"scheduledDate": "2020-01-01", "scheduledTime": "10:00"},
    )
    assert past.status_code == 400
    assert past.json()["detail"]["failure_reason"] == "invalid_schedule"

    cancelled = client.post(f"/api/catalog/records/{record_id}/cancel-schedule")
    assert cancelled.json()["status"] == "draft"
    assert cancelled.json()["publish_at"] is None

    published = client.post(f"/api/catalog/records/{record_id}/publish")
    assert published.json()["status"] == "published"

    conflict = client.post(f"/api/catalog/records/{record_id}/cancel-schedule")
    assert conflict.status_code == 409
    assert conflict.json()["detail"]["failure_reason"] == "invalid_transition"


def test_refresh_media_urls_route(client: TestClient) -> None:
    created = upload(client, [item("A1")], ("A1_primary.jpg", b"a")).json()["successful"][0]

    response = client.post(f"/api/catalog/records/{created['itemId']}/refresh-media-urls")

    assert response.status_code == 200
    assert "X-Amz-Signature=" in response.json()["media"][0]["url"]


def test_unknown_record_is_404(client: TestClient) -> None:
    for response in (
        client.get("/api/catalog/records/missing"),
        client.post("/api/catalog/records/missing/publish"),
        client.post("/api/catalog/records/missing/refresh-media-urls"),
    ):
        assert response.status_code == 404
        assert response.json()["detail"]["failure_reason"] == "record_not_found"


def test_scheduler_routes(client: TestClient) -> None:
    status = client.get("/api/scheduler/status").json()
    assert status["running"] is False
    assert status["last_report"] is None

    sweep = client.post("/api/scheduler/sweep").json()
    assert sweep == {
        "attempted": 0,
        "published": 0,
        "failed": 0,
        "skipped": False,
        "started_at": sweep["started_at"],
    }
    assert client.get("/api/scheduler/status").json()["last_report"]["skipped"] is False


def test_item_details_upload_replaces_color_media(client: TestClient, store: FakeObjectStore) -> None:
    created = upload(client, [item("A1")], ("A1_primary.jpg", b"a"), ("A1_red_1.jpg", b"b")).json()
    record_id = created["successful"][0]["itemId"]
    details = [
        {"productId": "A1", "colors": [{"colorId": "red"}]},
        {"productId": "NOPE", "colors": [{"colorId": "red"}]},
    ]
    files = [
        ("jsonFile", ("details.json", json.dumps(details).encode(), "application/json")),
        ("media", ("A1_red_1.jpg", b"c", "image/jpeg")),
        ("media", ("A1_red_2.jpg", b"d", "image/jpeg")),
    ]

    response = client.post("/api/catalog/item-details/bulk-upload", files=files)

    assert response.status_code == 200
    body = response.json()
    assert body["successful"][0]["itemId"] == record_id
    assert body["successful"][0]["mediaCount"] == 3
    assert body["failed"] == [
        {"productId": "NOPE", "error": "Item not found for productId: NOPE", "reason": "record_not_found"}
    ]
    assert len(store.objects) == 3
