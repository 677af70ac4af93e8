from __future__ import annotations

import base64
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from backend.api.main import app, get_classifier
from conftest import StubClassifier, jpeg_bytes, verdict
from frameprobe.errors import RateLimitedError

AUTH = {"Authorization": "Bearer dev-token"}


@pytest.fixture
def client():
    classifier = StubClassifier(decide=lambda f: verdict(f.index, is_artificial=True, confidence=0.9))
    app.dependency_overrides[get_classifier] = lambda: classifier
    yield TestClient(app)
    app.dependency_overrides.clear()


def _data_uri() -> str:
    return "data:image/jpeg;base64," + base64.b64encode(jpeg_bytes()).decode("ascii")


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_requires_token(client: TestClient) -> None:
    response = client.post("/analyze-frames", json={"frames": [_data_uri()]})
    assert response.status_code == 401


def test_analyze_frames(client: TestClient) -> None:
    response = client.post("/analyze-frames", json={"frames": [_data_uri()] * 4}, headers=AUTH)
    assert response.status_code == 200
    body = response.json()
    assert body["verdict"] == "ai-generated"
    assert body["frames_analyzed"] == 4
    assert [v["frame_index"] for v in body["frame_verdicts"]] == [0, 1, 2, 3]


def test_analyze_frames_without_frames(client: TestClient) -> None:
    response = client.post("/analyze-frames", json={"frames": []}, headers=AUTH)
    assert response.status_code == 400
    assert response.json()["detail"] == "No frames provided"


def test_rate_limit_maps_to_429(client: TestClient) -> None:
    def decide(frame):
        raise RateLimitedError()

    app.dependency_overrides[get_classifier] = lambda: StubClassifier(decide=decide)
    response = client.post("/analyze-frames", json={"frames": [_data_uri()]}, headers=AUTH)
    assert response.status_code == 429
    assert "Rate limit" in response.json()["detail"]


def test_analyze_upload(client: TestClient, synthetic_video: Path) -> None:
    with synthetic_video.open("rb") as fh:
        response = client.post(
            "/analyze",
            files={"video": ("clip.mp4", fh, "video/mp4")},
            headers=AUTH,
        )
    assert response.status_code == 200
    body = response.json()
    assert body["frames_analyzed"] == 5
    assert body["confidence"] == pytest.approx(0.9)


def test_analyze_upload_rejects_non_video(client: TestClient) -> None:
    response = client.post(
        "/analyze",
        files={"video": ("notes.txt", b"hello", "text/plain")},
        headers=AUTH,
    )
    assert response.status_code == 400


def test_analyze_upload_undecodable_video(client: TestClient) -> None:
    response = client.post(
        "/analyze",
        files={"video": ("broken.mp4", b"\x00" * 4096, "video/mp4")},
        headers=AUTH,
    )
    assert response.status_code == 400
    assert "video" in response.json()["detail"].lower()


def test_analyze_frames_empty_payload_is_bad_request(client: TestClient) -> None:
    response = client.post(
        "/analyze-frames", json={"frames": ["data:image/jpeg;base64,"]}, headers=AUTH
    )
    assert response.status_code == 400
    assert "not a valid image" in response.json()["detail"]


def test_analyze_frames_undecodable_image_is_bad_request(client: TestClient) -> None:
    payload = base64.b64encode(b"not an image at all").decode("ascii")
    response = client.post(
        "/analyze-frames", json={"frames": ["data:image/jpeg;base64," + payload]}, headers=AUTH
    )
    assert response.status_code == 400
