import re

import pytest
from botocore.exceptions import ClientError

from yummio_api.config import settings
from yummio_api.errors import PayloadTooLarge, UpstreamFailure, ValidationFailed
from yummio_api.services.uploads import PlaceholderBlobStore, UploadService, content_type_for, get_blob_store

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class MemoryStore:
    def __init__(self):
        self.objects = {}

    def put_bytes(self, *, key, content_type, data):
        self.objects[key] = (content_type, data)
        return f"https://cdn.example/{key}"


class FailingStore:
    def put_bytes(self, *, key, content_type, data):
        raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")


def test_upload_builds_dated_key_and_content_type():
    store = MemoryStore()
    result = UploadService(store).upload_image("Foto.PNG", PNG)

    assert re.fullmatch(r"recipes/\d{4}/\d{2}/\d{2}/[0-9a-f-]{36}\.png", result.filename)
    assert result.url == f"https://cdn.example/{result.filename}"
    assert result.size == len(PNG)
    assert store.objects[result.filename] == ("image/png", PNG)


def test_content_types():
    assert content_type_for("jpg") == content_type_for("jpeg") == "image/jpeg"
    assert content_type_for("webp") == "image/webp"


def test_rejects_invalid_extension():
    with pytest.raises(ValidationFailed):
        UploadService(MemoryStore()).upload_image("script.exe", b"MZ")
    with pytest.raises(ValidationFailed):
        UploadService(MemoryStore()).upload_image("no-extension", PNG)


def test_rejects_too_large(monkeypatch):
    monkeypatch.setattr(settings, "max_upload_bytes", 10)
    with pytest.raises(PayloadTooLarge):
        UploadService(MemoryStore()).upload_image("big.jpg", b"x" * 11)


def test_store_failure_is_upstream():
    with pytest.raises(UpstreamFailure):
        UploadService(FailingStore()).upload_image("a.webp", PNG)


def test_placeholder_store_without_bucket():
    assert settings.s3_bucket == ""
    store = get_blob_store()
    assert isinstance(store, PlaceholderBlobStore)
    assert store.put_bytes(key="k", content_type="image/png", data=PNG).startswith("https://picsum.photos/")


def test_upload_endpoint(client, register):
    ann = register()
    files = {"image": ("plato.jpg", PNG, "image/jpeg")}
    assert client.post("/api/v1/upload/image", files=files).status_code == 401

    r = client.post("/api/v1/upload/image", files=files, headers=ann.headers)
    assert r.status_code == 200
    assert r.json()["filename"].endswith(".jpg")

    r = client.post("/api/v1/upload/image", files={"image": ("doc.pdf", b"%PDF", "application/pdf")},
                    headers=ann.headers)
    assert r.status_code == 400
    assert r.json()["code"] == "bad_request"


def test_chunked_upload_is_cut_at_the_limit(client, register, monkeypatch):
    ann = register()
    monkeypatch.setattr(settings, "max_upload_bytes", 10)
    received = []
    monkeypatch.setattr(
        "yummio_api.routes.upload.UploadService",
        lambda store: received.append(store),
    )

    boundary = "yummio-boundary"
    def body():
        yield (
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="image"; filename="big.jpg"\r\n'
            "Content-Type: image/jpeg\r\n\r\n"
        ).encode()
        for _ in range(32):
            yield b"x" * (32 * 1024)
        yield f"\r\n--{boundary}--\r\n".encode()

    # sin Content-Length: el middleware de tamaño no puede rechazarla
    r = client.post(
        "/api/v1/upload/image",
        content=body(),
        headers={**ann.headers, "Content-Type": f"multipart/form-data; boundary={boundary}"},
    )
    assert r.status_code == 413
    assert r.json()["code"] == "payload_too_large"
    assert r.json()["meta"] == {"max": 10}
    assert received == []
