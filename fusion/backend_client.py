"""HTTP client sending detections to the backend for semantic confirmation."""

import threading
import time
from typing import Any, Dict, List, Optional

import requests

from detection.detection import Detection


class BackendError(Exception):
    """Raised when the backend call fails or returns an unusable response."""


class BackendClient:
    """Posts a frame's detections to the backend vision endpoint.

    Calls are throttled and never overlap: a call made too soon after the
    previous one, or while one is in flight, is skipped.

    Attributes:
        base_url: Backend base URL, the endpoint is <base_url>/vision
        min_interval: Minimum seconds between calls
        timeout: Request timeout in seconds
    """

    def __init__(self, base_url: str, min_interval: float = 0.75, timeout: float = 4.0,
                 session: Optional[requests.Session] = None):
        """Initialize the backend client.

        Args:
            base_url: Backend base URL
            min_interval: Minimum seconds between calls (default: 0.75)
            timeout: Request timeout in seconds (default: 4.0)
            session: Optional requests session to reuse connections
        """
        self.base_url = base_url.rstrip('/')
        self.min_interval = min_interval
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.last_call: Optional[float] = None
        self._in_flight = False
        self._lock = threading.Lock()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/vision"

    @staticmethod
    def build_payload(detections: List[Detection], heading: Optional[float],
                      distance_to_next: Optional[float]) -> Dict[str, Any]:
        """Build the request body, rounding box coordinates to 4 decimals."""
        items = []
        for detection in detections:
            item: Dict[str, Any] = {'label': detection.label}
            if detection.confidence is not None:
                item['confidence'] = float(detection.confidence)
            x, y, w, h = detection.bbox
            item['bbox'] = {
                'x': round(x, 4),
                'y': round(y, 4),
                'w': round(w, 4),
                'h': round(h, 4),
            }
            items.append(item)

        return {
            'detections': items,
            'heading': heading if heading is not None else 0,
            'distance_to_next': distance_to_next if distance_to_next is not None else 0,
        }

    def send(self, detections: List[Detection], heading: Optional[float] = None,
             distance_to_next: Optional[float] = None, now: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """Send detections to the backend.

        Args:
            detections: Detections of the current frame
            heading: User heading in degrees clockwise from north
            distance_to_next: Distance to the next route instruction in meters
            now: Clock value used for throttling (default: wall clock)

        Returns:
            Decoded JSON object, or None if the call was throttled

        Raises:
            BackendError: On transport errors, non-2xx status or a non-JSON body
        """
        now = time.time() if now is None else now

        with self._lock:
            if self._in_flight:
                return None
            if self.last_call is not None and now - self.last_call < self.min_interval:
                return None
            self.last_call = now
            self._in_flight = True

        try:
            response = self.session.post(
                self.endpoint,
                json=self.build_payload(detections, heading, distance_to_next),
                headers={'Accept': 'application/json'},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise BackendError(f"Backend request failed: {e}") from e
        finally:
            with self._lock:
                self._in_flight = False

        if not 200 <= response.status_code < 300:
            preview = response.text[:200] if response.text else '<no body>'
            raise BackendError(f"Backend returned HTTP {response.status_code}: {preview}")

        if not response.content:
            raise BackendError("Backend returned empty response")

        try:
            body = response.json()
        except ValueError as e:
            raise BackendError(f"Backend returned invalid JSON: {e}") from e

        return body if isinstance(body, dict) else {}
