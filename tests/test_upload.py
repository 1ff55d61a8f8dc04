"""
测试图片上传
"""
import httpx
import pytest

from mango_articles.services.upload_service import (
    ImageUploader,
    UploadError,
    unique_file_name,
    validate_upload,
)


def test_unique_file_name():
    name = unique_file_name("my photo (1).png")
    timestamp, random_str, safe_name = name.split("-", 2)
    assert timestamp.isdigit()
    assert len(random_str) == 6
    assert safe_name == "my-photo--1-.png"


def test_validate_upload():
    validate_upload("image/webp", 1024)

    with pytest.raises(UploadError) as exc_info:
        validate_upload("application/pdf", 10)
    assert exc_info.value.status_code == 400

    with pytest.raises(UploadError) as exc_info:
        validate_upload("image/png", 5 * 1024 * 1024 + 1)
    assert "5MB" in exc_info.value.message


async def test_imagekit_upload_success():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"].startswith("Basic ")
        return httpx.Response(200, json={
            "url": "https://ik.imagekit.io/demo/cat.png",
            "fileId": "abc123",
            "name": "cat.png",
            "size": 4
        })

    uploader = ImageUploader(
        public_key="public", private_key="private", url_endpoint="https://ik.imagekit.io/demo",
        transport=httpx.MockTransport(handler)
    )
    result = await uploader.upload(b"\x89PNG", "cat.png", "image/png")

    assert result.url == "https://ik.imagekit.io/demo/cat.png"
    assert result.file_id == "abc123"
    assert result.mock is False


async def test_imagekit_auth_failure():
    uploader = ImageUploader(
        public_key="public", private_key="bad", url_endpoint="https://ik.imagekit.io/demo",
        transport=httpx.MockTransport(lambda request: httpx.Response(401, json={"message": "Unauthorized"}))
    )
    with pytest.raises(UploadError) as exc_info:
        await uploader.upload(b"\x89PNG", "cat.png", "image/png")
    assert exc_info.value.message == "ImageKit authentication failed"


async def test_missing_credentials():
    with pytest.raises(UploadError) as exc_info:
        await ImageUploader().upload(b"\x89PNG", "cat.png", "image/png")
    assert "credentials missing" in exc_info.value.message


async def test_upload_api_mock_mode(client, author_headers):
    response = await client.post(
        "/api/upload",
        files={"file": ("cat.png", b"\x89PNG", "image/png")},
        headers=author_headers
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["mock"] is True
    assert data["url"].startswith("https://placehold.co/600x400.png")


async def test_upload_api_rejections(client, author_headers, guest_headers):
    files = {"file": ("cat.png", b"\x89PNG", "image/png")}
    assert (await client.post("/api/upload", files=files)).status_code == 401
    assert (await client.post("/api/upload", files=files, headers=guest_headers)).status_code == 403

    response = await client.post(
        "/api/upload",
        files={"file": ("doc.pdf", b"%PDF", "application/pdf")},
        headers=author_headers
    )
    assert response.status_code == 400


async def test_upload_api_provider_error(client, author_headers, uploader):
    # 关闭mock且没有凭证
    uploader.mock = False
    response = await client.post(
        "/api/upload",
        files={"file": ("cat.png", b"\x89PNG", "image/png")},
        headers=author_headers
    )
    assert response.status_code == 500
    assert response.json()["detail"]["error"].startswith("Server configuration error")


async def test_imagekit_non_object_error_body():
    uploader = ImageUploader(
        public_key="public", private_key="private", url_endpoint="https://ik.imagekit.io/demo",
        transport=httpx.MockTransport(lambda request: httpx.Response(500, json=["unexpected"]))
    )
    with pytest.raises(UploadError) as exc_info:
        await uploader.upload(b"\x89PNG", "cat.png", "image/png")
    assert exc_info.value.message == "Failed to upload image"
