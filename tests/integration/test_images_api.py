import httpx
from httpx import AsyncClient
import pytest

from core.deps import image_store
from services.image_store import ImageStore
from tests.factories.identity import OTHER_TOKEN, bearer


@pytest.fixture
def storage_requests(app) -> list[httpx.Request]:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"Key": "ok"})

    store = ImageStore(
        "https://backend.test",
        "service-key",
        "blog-images",
        transport=httpx.MockTransport(handler),
    )
    app.dependency_overrides[image_store] = lambda: store
    try:
        yield requests
    finally:
        app.dependency_overrides.pop(image_store, None)


@pytest.mark.integration
async def test_upload_image(client: AsyncClient, storage_requests, telemetry_events):
    response = await client.post(
        "/api/v1/images",
        files={"image": ("photo.jpeg", b"\xff\xd8\xff\xe0jpeg-bytes", "image/jpeg")},
        headers=bearer(),
    )

    assert response.status_code == 200
    url = response.json()["data"]["url"]
    assert url.startswith("https://backend.test/storage/v1/object/public/blog-images/")
    assert url.endswith(".jpeg")
    [request] = storage_requests
    assert request.content == b"\xff\xd8\xff\xe0jpeg-bytes"
    assert telemetry_events[0][0] == "blog_image_uploaded"


@pytest.mark.integration
async def test_upload_rejects_non_image(client: AsyncClient, storage_requests, telemetry_events):
    response = await client.post(
        "/api/v1/images",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=bearer(),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid file type, please upload an image."
    assert storage_requests == []


@pytest.mark.integration
async def test_upload_without_file(client: AsyncClient, storage_requests, telemetry_events):
    response = await client.post("/api/v1/images", data={"other": "field"}, headers=bearer())

    assert response.status_code == 400
    assert response.json()["message"] == "No image file provided"


@pytest.mark.integration
async def test_upload_requires_admin(client: AsyncClient, storage_requests):
    anonymous = await client.post("/api/v1/images", files={"image": ("a.png", b"x", "image/png")})
    other = await client.post(
        "/api/v1/images", files={"image": ("a.png", b"x", "image/png")}, headers=bearer(OTHER_TOKEN)
    )

    assert anonymous.status_code == 401
    assert other.status_code == 403
    assert storage_requests == []
