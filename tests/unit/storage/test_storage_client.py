import asyncio
from urllib.parse import parse_qs, urlsplit

import pytest

from src.catalog.storage.storage_client import (
    MAX_SIGNED_URL_TTL_SECONDS,
    MULTIPART_PART_SIZE_BYTES,
    SINGLE_PUT_THRESHOLD_BYTES,
    ObjectStorageClient,
    multipart_part_count,
)
from src.catalog.storage.storage_errors import StorageTransportError
from src.catalog.storage.storage_models import UploadOutcome, UploadPayload
from tests.mocks.object_store import FakeObjectStore, make_settings

MIB = 1024 * 1024


def payload(name: str, size: int, content_type: str | None = None) -> UploadPayload:
    return UploadPayload(filename=name, data=b"x" * size, content_type=content_type)


@pytest.mark.parametrize(
    ("size", "parts"),
    [(1, 1), (5 * MIB, 1), (5 * MIB + 1, 2), (11 * MIB, 3), (15 * MIB, 3)],
)
def test_multipart_part_count(size: int, parts: int) -> None:
    assert multipart_part_count(size) == parts


@pytest.mark.asyncio
async def test_small_payload_uses_single_put(object_store: FakeObjectStore) -> None:
    client = object_store.client()

    outcome = await client.put(payload("A1_primary.jpg", SINGLE_PUT_THRESHOLD_BYTES - 1), "products", "rec-1")

    assert outcome.ok
    assert outcome.object_key is not None
    assert outcome.object_key.startswith("products/rec-1/")
    assert outcome.object_key.endswith("_A1_primary.jpg")
    assert object_store.operations() == ["put_object", "put_object_acl"]
    assert object_store.content_types[outcome.object_key] == "image/jpeg"
    assert object_store.acls[outcome.object_key] == "public-read"
    assert outcome.url is not None and "X-Amz-Signature=" in outcome.url


@pytest.mark.asyncio
async def test_payload_at_threshold_uses_multipart(object_store: FakeObjectStore) -> None:
    client = object_store.client()

    outcome = await client.put(payload("clip.mp4", SINGLE_PUT_THRESHOLD_BYTES), "products", "rec-1")

    assert outcome.ok
    assert object_store.operations() == [
        "create_multipart_upload",
        "upload_part",
        "complete_multipart_upload",
        "put_object_acl",
    ]
    assert object_store.content_types[outcome.object_key] == "video/mp4"


@pytest.mark.asyncio
async def test_multipart_upload_reassembles_parts(object_store: FakeObjectStore) -> None:
    client = object_store.client()
    data = bytes(range(256)) * (11 * MIB // 256)

    outcome = await client.put(UploadPayload("big.bin", data), "products", "rec-1")

    assert outcome.ok
    assert sorted(object_store.part_numbers) == [1, 2, 3]
    assert object_store.objects[outcome.object_key] == data
    assert len(data) > 2 * MULTIPART_PART_SIZE_BYTES


@pytest.mark.asyncio
async def test_failed_part_aborts_upload(object_store: FakeObjectStore) -> None:
    object_store.fail_part_number = 2
    client = object_store.client()

    outcome = await client.put(payload("big.bin", 11 * MIB), "products", "rec-1")

    assert not outcome.ok
    assert outcome.object_key is None
    assert "parts failed" in (outcome.error or "")
    assert len(object_store.aborted) == 1
    assert object_store.uploads == {}
    assert object_store.objects == {}


@pytest.mark.asyncio
async def test_failed_completion_aborts_upload(object_store: FakeObjectStore) -> None:
    object_store.fail_complete = True
    client = object_store.client()

    outcome = await client.put(payload("big.bin", 6 * MIB), "products", "rec-1")

    assert not outcome.ok
    assert "late failure" in (outcome.error or "")
    assert len(object_store.aborted) == 1
    assert object_store.objects == {}


@pytest.mark.asyncio
async def test_cancelled_multipart_upload_is_aborted(object_store: FakeObjectStore) -> None:
    object_store.part_delay_seconds = 5
    client = object_store.client()

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(client.put(payload("big.bin", 6 * MIB), "products", "rec-1"), timeout=0.2)

    assert len(object_store.aborted) == 1
    assert object_store.objects == {}


@pytest.mark.asyncio
async def test_acl_refusal_does_not_fail_upload(object_store: FakeObjectStore) -> None:
    object_store.fail_acl = True
    client = object_store.client()

    outcome = await client.put(payload("A1_primary.png", 10), "products", "rec-1")

    assert outcome.ok
    assert outcome.object_key in object_store.objects
    assert object_store.acls == {}


@pytest.mark.asyncio
async def test_unreachable_endpoint_becomes_failure_outcome(object_store: FakeObjectStore) -> None:
    object_store.unreachable = True
    client = object_store.client()

    outcome = await client.put(payload("A1_primary.png", 10), "products", "rec-1")

    assert not outcome.ok
    assert "Could not connect" in (outcome.error or "")


@pytest.mark.asyncio
async def test_bulk_put_keeps_order_and_reports_each_file(object_store: FakeObjectStore) -> None:
    object_store.fail_put_names = {"A1_red_1.jpg"}
    client = object_store.client()
    files = [payload("A1_primary.jpg", 10), payload("A1_red_1.jpg", 10), payload("A1_red_2.jpg", 10)]

    outcomes = await client.bulk_put(files, "products", "rec-1")

    assert [outcome.filename for outcome in outcomes] == ["A1_primary.jpg", "A1_red_1.jpg", "A1_red_2.jpg"]
    assert [outcome.ok for outcome in outcomes] == [True, False, True]
    assert "SlowDown" in (outcomes[1].error or "")
    assert len(object_store.objects) == 2


@pytest.mark.asyncio
async def test_bulk_put_uses_given_keys(object_store: FakeObjectStore) -> None:
    client = object_store.client()

    outcomes = await client.bulk_put(
        [payload("a.jpg", 1), payload("b.jpg", 1)], "f", "e", object_keys=["f/e/a", "f/e/b"]
    )

    assert [outcome.object_key for outcome in outcomes] == ["f/e/a", "f/e/b"]
    with pytest.raises(ValueError):
        await client.bulk_put([payload("a.jpg", 1)], "f", "e", object_keys=[])


@pytest.mark.asyncio
async def test_delete_is_idempotent(object_store: FakeObjectStore) -> None:
    client = object_store.client()
    outcome = await client.put(payload("A1_primary.jpg", 10), "products", "rec-1")
    assert outcome.object_key is not None

    await client.delete(outcome.object_key)
    await client.delete(outcome.object_key)
    await client.delete("products/rec-1/never-existed.jpg")

    assert object_store.objects == {}


@pytest.mark.asyncio
async def test_delete_raises_on_server_error(object_store: FakeObjectStore) -> None:
    object_store.fail_delete_keys = {"products/rec-1/broken.jpg"}
    client = object_store.client()

    with pytest.raises(StorageTransportError) as excinfo:
        await client.delete("products/rec-1/broken.jpg")

    assert excinfo.value.status_code == 500
    assert excinfo.value.code == "InternalError"


@pytest.mark.asyncio
async def test_delete_many_returns_leftovers(object_store: FakeObjectStore) -> None:
    object_store.fail_delete_keys = {"k/2"}
    object_store.objects.update({"k/1": b"1", "k/2": b"2"})
    client = object_store.client()

    leftovers = await client.delete_many(["k/1", "k/2", "k/3"])

    assert leftovers == ["k/2"]
    assert object_store.objects == {"k/2": b"2"}


@pytest.mark.asyncio
async def test_signed_url_points_at_object() -> None:
    client = ObjectStorageClient(make_settings())

    url = await client.signed_url("products/rec 1/A1_primary.jpg", ttl_seconds=600)

    parts = urlsplit(url)
    query = parse_qs(parts.query)
    assert parts.netloc == "s3.test"
    assert parts.path == "/catalog/products/rec%201/A1_primary.jpg"
    assert query["X-Amz-Expires"] == ["600"]
    assert query["X-Amz-Algorithm"] == ["AWS4-HMAC-SHA256"]
    assert "X-Amz-Signature" in query


@pytest.mark.asyncio
async def test_virtual_hosted_addressing() -> None:
    client = ObjectStorageClient(
        make_settings(endpoint="https://s3.eu-west-1.amazonaws.com", region="eu-west-1", force_path_style=False)
    )

    url = await client.signed_url("a/b.jpg")

    parts = urlsplit(url)
    assert parts.netloc == "catalog.s3.eu-west-1.amazonaws.com"
    assert parts.path == "/a/b.jpg"


@pytest.mark.asyncio
@pytest.mark.parametrize("ttl", [0, MAX_SIGNED_URL_TTL_SECONDS + 1])
async def test_signed_url_rejects_out_of_range_ttl(ttl: int) -> None:
    client = ObjectStorageClient(make_settings())

    with pytest.raises(ValueError):
        await client.signed_url("a/b.jpg", ttl_seconds=ttl)


def test_object_keys_are_never_reused() -> None:
    client = ObjectStorageClient(make_settings())

    keys = {client.object_key_for("products", "rec-1", "A1_primary.jpg") for _ in range(50)}

    assert len(keys) == 50


def test_upload_outcome_rejects_ambiguous_state() -> None:
    with pytest.raises(ValueError):
        UploadOutcome(filename="a.jpg", object_key="k", url="u", error="boom")
    with pytest.raises(ValueError):
        UploadOutcome(filename="a.jpg")
    with pytest.raises(ValueError):
        UploadOutcome(filename="a.jpg", object_key="k")
