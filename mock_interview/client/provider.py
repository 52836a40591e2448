import logging
from dataclasses import dataclass

import requests

from mock_interview.client.context import (
    build_conversational_context,
    persona_for,
    validate_persona_ids,
)
from mock_interview.core.config import settings
from mock_interview.core.errors import (
    ConfigurationError,
    PersonaNotFoundError,
    ProviderAuthError,
    ProviderError,
    ProviderRequestError,
    ProviderUnavailableError,
)

logger = logging.getLogger(__name__)

USER_AGENT = "MockInterview/1.0"
END_SUCCESS_CODES = {200, 201, 204, 404}


@dataclass
class Conversation:
    conversation_id: str
    conversation_url: str


def _error_message(response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or fallback
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or fallback
    return fallback


class ConversationProvider:
    """HTTP client for the hosted video-conversation provider."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        webhook_base_url: str | None = None,
        timeout: float | None = None,
        http=None,
    ):
        self.api_key = api_key if api_key is not None else settings.PROVIDER_API_KEY
        self.base_url = (base_url or settings.PROVIDER_BASE_URL).rstrip("/")
        self.webhook_base_url = (webhook_base_url or settings.WEBHOOK_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.PROVIDER_TIMEOUT_SECONDS
        self.http = http or requests.Session()

    @property
    def callback_url(self) -> str:
        return f"{self.webhook_base_url}{settings.API_V1_PREFIX}/webhooks/conversation"

    def check_configuration(self):
        if not self.api_key:
            raise ConfigurationError(
                "Provider API key not found. Please add PROVIDER_API_KEY to your .env file."
            )
        validate_persona_ids()

    def _headers(self) -> dict:
        return {
            "x-api-key": self.api_key,
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

    def build_payload(
        self,
        category: str,
        session_name: str,
        duration_minutes: int,
        cv_context: str | None = None,
    ) -> dict:
        return {
            "persona_id": persona_for(category),
            "conversation_name": session_name,
            "conversational_context": build_conversational_context(category, cv_context),
            "callback_url": self.callback_url,
            "properties": {
                "max_call_duration": duration_minutes * 60,
                "participant_left_timeout": settings.PARTICIPANT_LEFT_TIMEOUT,
                "participant_absent_timeout": settings.PARTICIPANT_ABSENT_TIMEOUT,
                "enable_recording": False,
                "enable_closed_captions": True,
                "language": "english",
            },
        }

    def create_conversation(
        self,
        category: str,
        session_name: str,
        duration_minutes: int,
        cv_context: str | None = None,
    ) -> Conversation:
        self.check_configuration()
        payload = self.build_payload(category, session_name, duration_minutes, cv_context)

        try:
            response = self.http.post(
                f"{self.base_url}/conversations",
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("Conversation creation failed: %s", e)
            raise ProviderUnavailableError() from e

        logger.info("Conversation create responded %s", response.status_code)

        if response.status_code in (200, 201):
            try:
                body = response.json()
                return Conversation(
                    conversation_id=body["conversation_id"],
                    conversation_url=body["conversation_url"],
                )
            except (ValueError, KeyError, TypeError) as e:
                raise ProviderError("Invalid response received from the interview service.") from e

        if response.status_code == 401:
            raise ProviderAuthError()
        if response.status_code == 404:
            raise PersonaNotFoundError()
        if response.status_code == 400:
            raise ProviderRequestError(
                "Invalid request: " + _error_message(response, "malformed request")
            )
        raise ProviderError(
            f"API Error {response.status_code}: " + _error_message(response, "unknown error"),
            status_code=response.status_code,
        )

    def end_conversation(self, conversation_id: str, reason: str = "interview_completed") -> bool:
        try:
            response = self.http.post(
                f"{self.base_url}/conversations/{conversation_id}/end",
                json={"reason": reason},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ProviderUnavailableError() from e

        if response.status_code in END_SUCCESS_CODES:
            # 404 means the conversation is no longer active
            return True

        raise ProviderError(
            f"Ending conversation failed ({response.status_code}): "
            + _error_message(response, "unknown error"),
            status_code=response.status_code,
        )
