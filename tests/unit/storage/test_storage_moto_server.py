import socket
import uuid

import aioboto3
import httpx
import pytest
import pytest_asyncio
from moto.server import ThreadedMotoServer

from src.catalog.storage.storage_client import SINGLE_PUT_THRESHOLD_BYTES, ObjectStorageClient
from src.catalog.storage.storage_models import UploadPayload
from tests.mocks.object_store import make_settings

MIB = 1024 * 1024


def free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture(scope="module")
def moto_endpoint():
    port = free_port()
    server = ThreadedMotoServer(ip_address="127.0.0.1", port=port, verbose=False)
    server.start()
    yield f"http://127.0.0.1:{port}"
    server.stop()


@pytest_asyncio.fixture
async def storage(moto_endpoint: str) -> ObjectStorageClient:
    settings = make_settings(endpoint=moto_endpoint, bucket=f"catalog-{uuid.uuid4().hex[:8]}")
    session = aioboto3.Session()
    async with session.client(
        "s3",
        endpoint_url=moto_endpoint,
        region_name=settings.region,
        aws_access_key_id=settings.access_key_id,
        aws_secret_access_key=settings.secret_access_key,
    ) as s3:
        await s3.create_bucket(Bucket=settings.bucket)
    return ObjectStorageClient(settings, session=session)


async def fetch(url: str) -> httpx.Response:
    async with httpx.AsyncClient() as client:
        return await client.get(url)


@pytest.mark.asyncio
async def test_single_put_is_readable_through_signed_url(storage: ObjectStorageClient) -> None:
    outcome = await storage.put(
        UploadPayload("A1_primary.jpg", b"jpeg-bytes", "image/jpeg"), "products", "rec-1"
    )

    assert outcome.ok
    response = await fetch(outcome.url)
    assert response.status_code == 200
    assert response.content == b"jpeg-bytes"
    assert response.headers["content-type"] == "image/jpeg"


@pytest.mark.asyncio
async def test_multipart_put_is_reassembled(storage: ObjectStorageClient) -> None:
    data = bytes(range(256)) * ((SINGLE_PUT_THRESHOLD_BYTES + MIB) // 256)

    outcome = await storage.put(UploadPayload("clip.mp4", data), "products", "rec-1")

    assert outcome.ok
    response = await fetch(await storage.signed_url(outcome.object_key, ttl_seconds=60))
    assert response.status_code == 200
    assert response.content == data


@pytest.mark.asyncio
async def test_delete_twice_succeeds(storage: ObjectStorageClient) -> None:
    outcome = await storage.put(UploadPayload("A1_red_1.jpg", b"x"), "products", "rec-1")

    await storage.delete(outcome.object_key)
    await storage.delete(outcome.object_key)

    response = await fetch(await storage.signed_url(outcome.object_key))
    assert response.status_code == 404
