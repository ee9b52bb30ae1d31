"""
Tests for POST /detect.

The store and detector are the in-memory fakes injected by the `client`
fixture; Redis is the in-memory mock.
"""

import json
import os

import pytest

from app.core.errors import DetectionCallFailedError, UploadFailedError
from tests.conftest import TINY_JPEG
from tests.mocks.inference_mock import VERDICT_JSON, responses_envelope


def _jpeg_part(name: str = "photo.jpg", mime: str = "image/jpeg", body: bytes = TINY_JPEG):
    return {"file_data": (name, body, mime)}


# ---------------------------------------------------------------------------
# Happy paths
# ---------------------------------------------------------------------------


def test_detect_text(client, fake_store, fake_detector):
    response = client.post("/detect", json={"text": "hello world"})

    assert response.status_code == 200
    body = response.json()
    assert body["media_type"] == "text"
    assert body["deepfake_probability"] == 5
    assert body["natural_probability"] == 95
    assert body["reasoning"] == VERDICT_JSON["reasoning"]
    assert body["provided_source"] == "text (body)"
    assert body["cloudinary_url"] is None
    assert body["cloudinary_public_id"] is None
    assert body["note"] is None

    content = fake_detector.calls[0][0]["content"]
    assert content[1] == {"type": "input_text", "text": "media_type_hint:text"}
    assert content[2] == {"type": "input_text", "text": "hello world"}
    assert fake_store.uploads == []


def test_detect_image_url(client, fake_store, fake_detector):
    fake_detector.envelope = responses_envelope(
        '{"deepfake_probability": 91.6, "natural_probability": 8.4}'
    )

    response = client.post("/detect", json={"image_url": "https://example.com/cat.png"})

    assert response.status_code == 200
    body = response.json()
    assert body["media_type"] == "image"
    assert body["deepfake_probability"] == 92
    assert body["natural_probability"] == 8
    assert body["provided_source"] == "image_url (body)"
    assert fake_detector.calls[0][0]["content"][2] == {
        "type": "input_image",
        "image_url": "https://example.com/cat.png",
    }
    assert fake_store.uploads == []


def test_detect_file_upload(client, fake_store, fake_detector):
    response = client.post("/detect", files=_jpeg_part())

    assert response.status_code == 200
    body = response.json()
    assert body["provided_source"] == "uploaded file (mimetype=image/jpeg)"
    assert body["cloudinary_public_id"] == "vera/detection/images/asset_1"
    assert body["cloudinary_url"].endswith("vera/detection/images/asset_1")

    upload = fake_store.uploads[0]
    assert upload["existed"] is True
    assert upload["content"] == TINY_JPEG
    assert upload["local_path"].endswith(".jpg")
    # Temp file is gone once the request finishes; the remote object is kept
    assert not os.path.exists(upload["local_path"])
    assert fake_store.removed == []


def test_detect_accepts_legacy_file_field(client, fake_store):
    response = client.post("/detect", files={"file": ("clip.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")})

    assert response.status_code == 200
    assert fake_store.uploads[0]["mime_type"] == "video/mp4"
    assert response.json()["cloudinary_public_id"].startswith("vera/detection/videos/")


def test_detect_form_text_field(client, fake_detector):
    response = client.post("/detect", data={"text": "form text"})
    assert response.status_code == 200
    assert fake_detector.calls[0][0]["content"][2]["text"] == "form text"


# ---------------------------------------------------------------------------
# Input precedence
# ---------------------------------------------------------------------------


def test_file_wins_over_text(client, fake_store, fake_detector):
    response = client.post("/detect", files=_jpeg_part(), data={"text": "ignored"})

    assert response.status_code == 200
    assert len(fake_store.uploads) == 1
    assert fake_detector.calls[0][0]["content"][2]["type"] == "input_image"


def test_image_url_wins_over_text(client, fake_detector):
    response = client.post(
        "/detect", json={"text": "ignored", "image_url": "https://example.com/a.webp"}
    )

    assert response.status_code == 200
    assert response.json()["provided_source"] == "image_url (body)"


# ---------------------------------------------------------------------------
# Input errors: nothing external is contacted
# ---------------------------------------------------------------------------


def test_invalid_image_url(client, fake_store, fake_detector):
    response = client.post("/detect", json={"image_url": "https://example.com/page.html"})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_image_url"
    assert fake_detector.calls == []
    assert fake_store.uploads == []


def test_invalid_image_url_not_masked_by_text(client, fake_detector):
    response = client.post("/detect", json={"image_url": "nope", "text": "hello"})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_image_url"
    assert fake_detector.calls == []


@pytest.mark.parametrize(
    "kwargs",
    [
        {"json": {}},
        {"json": {"text": ""}},
        {"json": ["not", "an", "object"]},
        {"data": {"unrelated": "x"}},
        {"content": b"plain body", "headers": {"content-type": "text/plain"}},
    ],
)
def test_no_input(client, fake_detector, kwargs):
    response = client.post("/detect", **kwargs)

    assert response.status_code == 400
    assert response.json()["error"] == "no_input"
    assert fake_detector.calls == []


def test_invalid_json(client, fake_detector):
    response = client.post(
        "/detect", content=b'{"text": ', headers={"content-type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_json"
    assert fake_detector.calls == []


def test_unsupported_file_type(client, fake_store, fake_detector):
    response = client.post("/detect", files=_jpeg_part("archive.zip", "application/zip", b"PK\x03\x04"))

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "unsupported_file_type"
    assert "application/zip" in body["message"]
    assert fake_store.uploads == []
    assert fake_detector.calls == []


def test_file_too_large(client, fake_store, monkeypatch):
    from app.config import settings

    monkeypatch.setattr(settings, "max_upload_mb", 0)
    response = client.post("/detect", files=_jpeg_part())

    assert response.status_code == 400
    assert response.json()["error"] == "file_too_large"
    assert fake_store.uploads == []


def test_too_many_files(client, fake_store, fake_detector):
    from app.config import settings

    parts = [_jpeg_part(f"photo{i}.jpg")["file_data"] for i in range(settings.max_upload_files + 1)]
    response = client.post("/detect", files=[("file_data", part) for part in parts])

    assert response.status_code == 400
    assert response.json() == {
        "error": "too_many_files",
        "message": f"Too many files uploaded. Maximum {settings.max_upload_files} files allowed.",
    }
    assert fake_store.uploads == []
    assert fake_detector.calls == []


def test_multipart_without_boundary(client, fake_store, fake_detector):
    response = client.post(
        "/detect", content=b"garbage", headers={"content-type": "multipart/form-data"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_multipart"
    assert fake_store.uploads == []
    assert fake_detector.calls == []


# ---------------------------------------------------------------------------
# Collaborator failures and cleanup
# ---------------------------------------------------------------------------


def test_model_failure_cleans_up_everything(client, fake_store, fake_detector):
    fake_detector.error = RuntimeError("model exploded")

    response = client.post("/detect", files=_jpeg_part())

    assert response.status_code == 500
    assert response.json()["error"] == "internal_error"
    upload = fake_store.uploads[0]
    assert not os.path.exists(upload["local_path"])
    assert fake_store.removed == [("vera/detection/images/asset_1", "image")]


def test_detection_call_failure_is_reported(client, fake_store, fake_detector):
    fake_detector.error = DetectionCallFailedError("OpenAI API call failed: rate limit")

    response = client.post("/detect", json={"text": "hello"})

    assert response.status_code == 500
    assert response.json() == {
        "error": "internal_error",
        "message": "OpenAI API call failed: rate limit",
    }


def test_upload_failure_skips_model(client, fake_store, fake_detector):
    fake_store.upload_error = UploadFailedError("Cloudinary upload failed after 3 attempt(s): timeout")

    response = client.post("/detect", files=_jpeg_part())

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "internal_error"
    assert body["message"].startswith("Cloudinary upload failed after 3 attempt(s)")
    assert fake_detector.calls == []
    assert not os.path.exists(fake_store.uploads[0]["local_path"])


def test_store_not_configured(client, fake_store, fake_detector):
    fake_store.is_configured = False

    response = client.post("/detect", files=_jpeg_part())

    assert response.status_code == 500
    assert response.json()["error"] == "internal_error"
    assert fake_detector.calls == []


def test_unparseable_model_output_is_degraded_success(client, fake_detector):
    fake_detector.envelope = {"output_text": "I'm not able to help with that."}

    response = client.post("/detect", json={"text": "hello"})

    assert response.status_code == 200
    body = response.json()
    assert body["deepfake_probability"] == 0
    assert body["natural_probability"] == 100
    assert body["raw_model_output"] == "I'm not able to help with that."
    assert body["note"].startswith("Model output could not be parsed as JSON")


def test_cleanup_failure_does_not_mask_original_error(client, fake_store, fake_detector):
    fake_detector.error = DetectionCallFailedError("OpenAI API call failed: boom")
    fake_store.remove_error = RuntimeError("delete failed too")

    response = client.post("/detect", files=_jpeg_part())

    assert response.status_code == 500
    assert response.json() == {"error": "internal_error", "message": "OpenAI API call failed: boom"}
    assert len(fake_store.removed) == 1


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


def test_rate_limited(client, mock_redis):
    from app.config import settings

    mock_redis._store["rate_limit:testclient"] = str(settings.rate_limit_max_requests)
    mock_redis.expire("rate_limit:testclient", 60)

    response = client.post("/detect", json={"text": "hello"})

    assert response.status_code == 429
    assert response.json() == {
        "error": "rate_limited",
        "message": "Too many requests from this IP, please try again later.",
    }
    assert 0 < int(response.headers["retry-after"]) <= 60
    assert response.headers["ratelimit-remaining"] == "0"


def test_successful_request_reports_remaining_budget(client, mock_redis):
    from app.config import settings

    response = client.post("/detect", json={"text": "hello"})

    assert response.status_code == 200
    assert response.headers["ratelimit-limit"] == str(settings.rate_limit_max_requests)
    assert response.headers["ratelimit-remaining"] == str(settings.rate_limit_max_requests - 1)
    assert response.headers["ratelimit-reset"] == str(settings.rate_limit_request_window_sec)


def test_rate_limit_uses_forwarded_ip(client, mock_redis):
    client.post("/detect", json={"text": "hello"}, headers={"x-forwarded-for": "203.0.113.7, 10.0.0.1"})
    assert mock_redis.get("rate_limit:203.0.113.7") == "1"


def test_response_is_json_serializable(client):
    response = client.post("/detect", json={"text": "hello"})
    json.dumps(response.json())
