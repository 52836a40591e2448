import pytest
import requests

from mock_interview.client.context import build_conversational_context, candidate_background
from mock_interview.client.provider import ConversationProvider
from mock_interview.client.store import SessionStoreClient
from mock_interview.core.errors import (
    ConfigurationError,
    PersonaNotFoundError,
    ProviderAuthError,
    ProviderError,
    ProviderRequestError,
    ProviderUnavailableError,
    SessionStoreError,
)


class FakeResponse:
    def __init__(self, status_code, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json body")
        return self._body


class FakeHttp:
    """Records outgoing requests and replays canned responses."""

    def __init__(self, *responses, error=None):
        self.responses = list(responses)
        self.error = error
        self.requests = []

    def _reply(self):
        if self.error:
            raise self.error
        return self.responses.pop(0)

    def post(self, url, json=None, headers=None, timeout=None):
        self.requests.append(("POST", url, json, headers))
        return self._reply()

    def request(self, method, url, json=None, timeout=None):
        self.requests.append((method, url, json, None))
        return self._reply()


def _provider(http, api_key="test-key"):
    return ConversationProvider(
        api_key=api_key,
        base_url="https://provider.test/v2",
        webhook_base_url="https://hooks.test",
        http=http,
    )


class TestCreateConversation:
    def test_payload_and_headers(self):
        http = FakeHttp(FakeResponse(200, {"conversation_id": "c1", "conversation_url": "https://x/c1"}))

        conversation = _provider(http).create_conversation(
            "Behavioral", "Leadership round", 20, cv_context="Led a team of five."
        )

        assert conversation.conversation_id == "c1"
        assert conversation.conversation_url == "https://x/c1"
        method, url, payload, headers = http.requests[0]
        assert url == "https://provider.test/v2/conversations"
        assert headers["x-api-key"] == "test-key"
        assert payload["persona_id"] == "p67d83202798"
        assert payload["conversation_name"] == "Leadership round"
        assert payload["callback_url"] == "https://hooks.test/api/v1/webhooks/conversation"
        assert payload["properties"]["max_call_duration"] == 1200
        assert payload["properties"]["enable_recording"] is False
        assert "Led a team of five." in payload["conversational_context"]

    def test_technical_uses_technical_persona(self):
        http = FakeHttp(FakeResponse(201, {"conversation_id": "c1", "conversation_url": "u"}))

        _provider(http).create_conversation("Technical", "Round", 10)

        assert http.requests[0][2]["persona_id"] == "p76c770451a6"

    @pytest.mark.parametrize(
        "status, error",
        [
            (401, ProviderAuthError),
            (404, PersonaNotFoundError),
            (400, ProviderRequestError),
            (500, ProviderError),
        ],
    )
    def test_status_codes_map_to_errors(self, status, error):
        http = FakeHttp(FakeResponse(status, {"message": "nope"}))

        with pytest.raises(error) as excinfo:
            _provider(http).create_conversation("Technical", "Round", 10)

        assert excinfo.value.status_code == status

    def test_bad_request_carries_provider_message(self):
        http = FakeHttp(FakeResponse(400, {"message": "persona_id is invalid"}))

        with pytest.raises(ProviderRequestError) as excinfo:
            _provider(http).create_conversation("Technical", "Round", 10)

        assert "persona_id is invalid" in excinfo.value.message

    def test_network_failure_is_retryable(self):
        http = FakeHttp(error=requests.ConnectionError("refused"))

        with pytest.raises(ProviderUnavailableError) as excinfo:
            _provider(http).create_conversation("Technical", "Round", 10)

        assert excinfo.value.retryable is True

    def test_missing_api_key_fails_before_any_request(self):
        http = FakeHttp()

        with pytest.raises(ConfigurationError):
            _provider(http, api_key="").create_conversation("Technical", "Round", 10)

        assert http.requests == []

    def test_malformed_success_body(self):
        http = FakeHttp(FakeResponse(200, {"unexpected": True}))

        with pytest.raises(ProviderError):
            _provider(http).create_conversation("Technical", "Round", 10)


class TestEndConversation:
    @pytest.mark.parametrize("status", [200, 201, 204, 404])
    def test_success_codes(self, status):
        http = FakeHttp(FakeResponse(status))

        assert _provider(http).end_conversation("c1", "manual") is True
        assert http.requests[0][1] == "https://provider.test/v2/conversations/c1/end"
        assert http.requests[0][2] == {"reason": "manual"}

    def test_server_error_raises(self):
        http = FakeHttp(FakeResponse(500, text="Internal"))

        with pytest.raises(ProviderError):
            _provider(http).end_conversation("c1")


class TestConversationalContext:
    def test_background_is_truncated(self):
        background = candidate_background("a" * 2500, max_length=2000)

        assert background.startswith("CANDIDATE BACKGROUND:\n")
        assert "a" * 2000 + "..." in background
        assert "a" * 2001 not in background

    def test_blank_cv_adds_nothing(self):
        assert candidate_background("   ") is None
        assert "CANDIDATE BACKGROUND" not in build_conversational_context("Technical", "  ")

    def test_category_prompt_selected(self):
        assert "Lucy" in build_conversational_context("Behavioral")
        assert "Steve" in build_conversational_context("Technical")


class TestSessionStoreClient:
    def _store(self, http):
        return SessionStoreClient(base_url="https://api.test", http=http)

    def test_create_posts_row(self):
        http = FakeHttp(FakeResponse(201, {"id": "s1"}))

        self._store(http).create_session("s1", "c1", "Technical", "Round", 15)

        method, url, payload, _ = http.requests[0]
        assert (method, url) == ("POST", "https://api.test/api/v1/sessions")
        assert payload == {
            "id": "s1",
            "conversation_id": "c1",
            "category": "Technical",
            "session_name": "Round",
            "expected_duration_minutes": 15,
        }

    def test_complete_sends_duration_and_reason(self):
        http = FakeHttp(FakeResponse(200, {"id": "s1"}))

        self._store(http).complete_session("s1", 6, "surface_closed")

        assert http.requests[0][1] == "https://api.test/api/v1/sessions/s1/complete"
        assert http.requests[0][2] == {"actual_duration_minutes": 6, "end_reason": "surface_closed"}

    def test_rejection_raises(self):
        http = FakeHttp(FakeResponse(400, {"detail": "bad"}, text='{"detail": "bad"}'))

        with pytest.raises(SessionStoreError) as excinfo:
            self._store(http).cancel_session("s1")

        assert excinfo.value.details["status_code"] == 400

    def test_network_failure_raises(self):
        http = FakeHttp(error=requests.Timeout("slow"))

        with pytest.raises(SessionStoreError):
            self._store(http).mark_active("s1")

    def test_unreadable_success_body_raises(self):
        http = FakeHttp(FakeResponse(200, None, text="<html>gateway</html>"))

        with pytest.raises(SessionStoreError) as excinfo:
            self._store(http).mark_active("s1")

        assert excinfo.value.details["status_code"] == 200
