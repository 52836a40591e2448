import logging

import requests

from mock_interview.core.config import settings
from mock_interview.core.errors import SessionStoreError

logger = logging.getLogger(__name__)


class SessionStoreClient:
    """Writes the controller's columns of a session row through the session API."""

    def __init__(self, base_url: str | None = None, timeout: float = 10.0, http=None):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/") + settings.API_V1_PREFIX
        self.timeout = timeout
        self.http = http or requests.Session()

    def _send(self, method: str, path: str, payload: dict | None = None) -> dict:
        try:
            response = self.http.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SessionStoreError("Could not reach the session store", {"path": path}) from e

        if response.status_code >= 400:
            raise SessionStoreError(
                f"Session store rejected {method} {path}",
                {"status_code": response.status_code, "body": response.text[:200]},
            )
        try:
            return response.json()
        except ValueError as e:
            raise SessionStoreError(
                f"Session store returned an unreadable body for {method} {path}",
                {"status_code": response.status_code, "body": response.text[:200]},
            ) from e

    def create_session(
        self,
        session_id: str,
        conversation_id: str,
        category: str,
        session_name: str,
        expected_duration_minutes: int,
    ) -> dict:
        return self._send("POST", "/sessions", {
            "id": session_id,
            "conversation_id": conversation_id,
            "category": category,
            "session_name": session_name,
            "expected_duration_minutes": expected_duration_minutes,
        })

    def mark_active(self, session_id: str) -> dict:
        return self._send("POST", f"/sessions/{session_id}/start")

    def complete_session(
        self,
        session_id: str,
        actual_duration_minutes: int,
        end_reason: str,
    ) -> dict:
        return self._send("POST", f"/sessions/{session_id}/complete", {
            "actual_duration_minutes": actual_duration_minutes,
            "end_reason": end_reason,
        })

    def cancel_session(self, session_id: str) -> dict:
        return self._send("POST", f"/sessions/{session_id}/cancel")

    def mark_error(self, session_id: str, reason: str | None = None) -> dict:
        return self._send("POST", f"/sessions/{session_id}/error", {"reason": reason})
