import importlib
import json
import sys
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from module_1_obstruction_detection.app.config.settings import AppSettings as DetectionSettings
from module_1_obstruction_detection.app.services.detector_client import DetectorFailure, DetectorSuccess
from module_1_obstruction_detection.app.services.obstruction_service import ObstructionService


def _reload_main():
    module_name = "module_2_field_mapping.app.main"
    if module_name in sys.modules:
        return importlib.reload(sys.modules[module_name])
    return importlib.import_module(module_name)


@pytest.fixture()
def main(monkeypatch, tmp_path):
    documents_path = tmp_path / "docs.json"
    documents_path.write_text(
        json.dumps({"local": {"markers": [{"lat": 14.6, "lng": 120.98, "title": "Obstacle 1", "marker_id": "seed"}]}})
    )
    monkeypatch.setenv("FIELDNAV_DOCUMENTS_PATH", str(documents_path))
    monkeypatch.setenv("FIELDNAV_ENABLE_BOT_WORKER", "0")
    monkeypatch.setenv("FIELDNAV_DETECTION_PREVIEW_DIR", str(tmp_path / "previews"))
    return _reload_main()


def test_marker_lifecycle_and_renderer_sync(main) -> None:
    with TestClient(main.app) as client:
        status = client.get("/renderer/status", params={"wait": True}).json()
        assert status["bridge"]["state"] == "ready"
        assert status["mirror_keys"] == ["seed"]
        assert status["in_sync"] is True

        created = client.post("/markers", json={"lat": 14.61, "lng": 120.99})
        assert created.status_code == 201
        assert created.json()["title"] == "Obstacle 2"

        typed = client.post("/markers/coordinates", json={"lat": "14.62", "lng": "121.0"})
        assert typed.status_code == 201
        rejected = client.post("/markers/coordinates", json={"lat": "north", "lng": "121.0"})
        assert rejected.status_code == 400

        status = client.get("/renderer/status", params={"wait": True}).json()
        assert len(status["mirror_keys"]) == 3
        assert status["in_sync"] is True

        listing = client.get("/markers").json()
        assert [item["title"] for item in listing["markers"]] == ["Obstacle 1", "Obstacle 2", "Obstacle 3"]

        assert client.post("/markers/save").json() == {"saved": True, "count": 3}
        assert client.delete("/markers").status_code == 204
        status = client.get("/renderer/status", params={"wait": True}).json()
        assert status["mirror_keys"] == []

        reloaded = client.post("/markers/load").json()
        assert len(reloaded["markers"]) == 3


def test_renderer_messages_and_clicks(main) -> None:
    with TestClient(main.app) as client:
        bad = client.post("/renderer/messages", content=b"{oops")
        assert bad.status_code == 200
        assert bad.json() == {"accepted": False}

        good = client.post("/renderer/messages", content=json.dumps({"type": "mapClick", "lat": 1.0, "lng": 2.0}))
        assert good.json() == {"accepted": True}

        assert client.post("/renderer/click", json={"lat": 3.0, "lng": 4.0}).status_code == 202
        status = client.get("/renderer/status", params={"wait": True}).json()
        assert status["bridge"]["dropped"] == 1
        assert len(status["store_keys"]) == 3
        assert status["in_sync"] is True

        viewport = client.post("/renderer/viewport", json={"lat": 10.0, "lng": 11.0, "zoom": 15}).json()
        assert viewport == {"lat": 10.0, "lng": 11.0, "zoom": 15}


def test_bot_location_endpoint(main) -> None:
    with TestClient(main.app) as client:
        body = client.get("/bot/location").json()
        assert body["status_color"] == "#2e7d32"
        assert body["location"]["status"] == "online"

        main.bot_tracker.lose_fix()
        assert client.get("/bot/location").json() == {"location": None}


def test_detection_endpoint_success_and_fallback(main, tmp_path) -> None:
    client_stub = MagicMock()
    service = ObstructionService(DetectionSettings(save_previews=False, preview_dir=tmp_path), client=client_stub)
    main.app.dependency_overrides[main.get_obstruction_service] = lambda: service

    with TestClient(main.app) as client:
        client_stub.submit.return_value = DetectorSuccess(
            payload={
                "detections": [
                    {"bbox": [50, 80, 200, 180], "confidence": 0.92, "class_id": 0, "class_name": "Animal"}
                ],
                "image_size": [350, 300],
            }
        )
        body = client.post("/detection/analyze", json={"image": "ZmFrZQ=="}).json()
        assert body["decision"]["path_status"] == "CAUTION"
        assert body["decision"]["safety_score"] == 90

        client_stub.submit.return_value = DetectorFailure(reason="network error: refused")
        body = client.post("/detection/analyze", json={"image": "ZmFrZQ=="}).json()
        assert body["source"] == "demo"
        assert body["analysis"]["severity"] == "HIGH"
        assert body["decision"]["path_status"] == "BLOCKED"
        assert body["decision"]["safety_score"] == 50

    main.app.dependency_overrides.clear()


def test_unstorable_coordinates_are_rejected(main) -> None:
    with TestClient(main.app) as client:
        assert client.post("/markers", json={"lat": 91.0, "lng": 0.0}).status_code == 422
        assert client.post("/markers/coordinates", json={"lat": "inf", "lng": "1"}).status_code == 400
        nan_click = client.post("/renderer/messages", content='{"type": "mapClick", "lat": NaN, "lng": 1}')
        assert nan_click.json() == {"accepted": False}

        assert client.post("/markers/save").json() == {"saved": True, "count": 1}
        assert len(client.post("/markers/load").json()["markers"]) == 1


def test_api_detection_previews_are_off_by_default(main, tmp_path) -> None:
    assert main.obstruction_service.settings.save_previews is False
    assert main.obstruction_service.preview_writer is None
    assert main.obstruction_service.settings.preview_dir == tmp_path / "previews"
