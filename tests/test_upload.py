from unittest.mock import patch

from cloudinary.exceptions import Error as CloudinaryError

UPLOAD_URL = "/api/upload/image"


def image(content=b"GIF89a fake", content_type="image/gif", name="pic.gif"):
    return {"file": (name, content, content_type)}


def test_upload_requires_auth(client):
    assert client.post(UPLOAD_URL, files=image()).status_code == 401


def test_upload_returns_url(client, register):
    alice = register("alice")
    result = {"secure_url": "https://cdn.example.com/pic.gif", "public_id": "blog/pic"}

    with patch("cloudinary.uploader.upload", return_value=result) as upload:
        response = client.post(UPLOAD_URL, files=image(), headers=alice["headers"])

    assert response.status_code == 200
    assert response.json() == {"url": "https://cdn.example.com/pic.gif", "public_id": "blog/pic"}
    assert upload.call_args.kwargs["resource_type"] == "image"


def test_upload_rejects_non_images(client, register):
    alice = register("alice")

    with patch("cloudinary.uploader.upload") as upload:
        response = client.post(
            UPLOAD_URL, files=image(b"%PDF", "application/pdf", "doc.pdf"), headers=alice["headers"]
        )

    assert response.status_code == 400
    upload.assert_not_called()


def test_upload_rejects_empty_and_oversized_files(client, register):
    alice = register("alice")

    with patch("cloudinary.uploader.upload") as upload, patch("blog.services.uploads.MAX_UPLOAD_BYTES", 8):
        empty = client.post(UPLOAD_URL, files=image(b""), headers=alice["headers"])
        too_big = client.post(UPLOAD_URL, files=image(b"0123456789"), headers=alice["headers"])

    assert empty.status_code == 400
    assert too_big.status_code == 400
    assert "too large" in too_big.json()["detail"]
    upload.assert_not_called()


def test_upload_missing_file_is_bad_request(client, register):
    alice = register("alice")
    assert client.post(UPLOAD_URL, headers=alice["headers"]).status_code == 400


def test_storage_failure_is_bad_gateway(client, register):
    alice = register("alice")

    with patch("cloudinary.uploader.upload", side_effect=CloudinaryError("boom")):
        response = client.post(UPLOAD_URL, files=image(), headers=alice["headers"])

    assert response.status_code == 502
    assert response.json() == {"status_code": 502, "detail": "Image upload failed"}
