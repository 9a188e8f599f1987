import json

import pytest
import requests

from detection.detection import Detection
from fusion.backend_client import BackendClient, BackendError


class _FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self.text = text if text is not None else (json.dumps(body) if body is not None else "")
        self.content = self.text.encode()

    def json(self):
        return json.loads(self.text)


class _FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _detections():
    return [Detection(label="car", bbox=(0.123456, 0.2, 0.3, 0.4), confidence=0.91)]


def test_send_posts_rounded_payload_to_vision_endpoint():
    session = _FakeSession([_FakeResponse(body={"hazards": ["car"]})])
    client = BackendClient("http://backend.local/", session=session, timeout=2.5)

    body = client.send(_detections(), heading=90.0, distance_to_next=12.0, now=10.0)

    assert body == {"hazards": ["car"]}
    call = session.calls[0]
    assert call["url"] == "http://backend.local/vision"
    assert call["timeout"] == 2.5
    assert call["json"]["heading"] == 90.0
    assert call["json"]["distance_to_next"] == 12.0
    assert call["json"]["detections"] == [
        {"label": "car", "confidence": 0.91, "bbox": {"x": 0.1235, "y": 0.2, "w": 0.3, "h": 0.4}}
    ]


def test_missing_heading_is_sent_as_zero():
    payload = BackendClient.build_payload(_detections(), heading=None, distance_to_next=None)

    assert payload["heading"] == 0
    assert payload["distance_to_next"] == 0


def test_calls_are_throttled():
    session = _FakeSession([_FakeResponse(body={}), _FakeResponse(body={})])
    client = BackendClient("http://backend.local", session=session)

    assert client.send(_detections(), now=0.0) == {}
    assert client.send(_detections(), now=0.5) is None
    assert client.send(_detections(), now=0.8) == {}
    assert len(session.calls) == 2


def test_http_error_raises():
    session = _FakeSession([_FakeResponse(status_code=503, text="overloaded")])
    client = BackendClient("http://backend.local", session=session)

    with pytest.raises(BackendError, match="503"):
        client.send(_detections(), now=0.0)


def test_empty_or_invalid_body_raises():
    session = _FakeSession([_FakeResponse(text=""), _FakeResponse(text="<html>")])
    client = BackendClient("http://backend.local", min_interval=0.0, session=session)

    with pytest.raises(BackendError, match="empty"):
        client.send(_detections(), now=0.0)
    with pytest.raises(BackendError, match="invalid JSON"):
        client.send(_detections(), now=1.0)


def test_transport_error_raises_and_releases_in_flight_guard():
    session = _FakeSession([requests.ConnectionError("refused"), _FakeResponse(body={"hazards": []})])
    client = BackendClient("http://backend.local", session=session)

    with pytest.raises(BackendError):
        client.send(_detections(), now=0.0)

    assert client.send(_detections(), now=1.0) == {"hazards": []}
