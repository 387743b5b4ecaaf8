"""Error taxonomy for the chat service.

Every failure a request can hit is turned into a ``ChatError`` before it
reaches the HTTP layer, which only has to read ``http_status``, ``message``
and ``details`` off it.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional


AUTH_MESSAGE = "Chave de API do Gemini inválida ou não configurada corretamente."
SAFETY_MESSAGE = (
    "A resposta foi bloqueada devido às configurações de segurança. "
    "Tente uma pergunta diferente."
)
INTERNAL_MESSAGE = "Ocorreu um erro interno no servidor."


class ChatError(Exception):
    """Base class for errors that map onto an HTTP response.

    Attributes:
        message: user-facing text placed under ``error``.
        http_status: status code of the response.
        details: diagnostic text placed under ``details`` (500s only).
    """

    http_status = 500

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ConfigurationMissing(ChatError):
    """Required environment values are absent. Fatal at startup."""

    def __init__(self, names: Iterable[str]):
        self.names = list(names)
        super().__init__(
            f"Missing required configuration: {', '.join(self.names)}"
        )


class InvalidRequest(ChatError):
    http_status = 400


class AuthError(ChatError):
    http_status = 401

    def __init__(self, message: str = AUTH_MESSAGE):
        super().__init__(message)


class SafetyBlocked(ChatError):
    http_status = 400

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason
        if reason:
            message = f"A resposta foi bloqueada: {reason}"
        else:
            message = SAFETY_MESSAGE
        super().__init__(message)


class UpstreamError(ChatError):
    http_status = 500

    def __init__(self, details: str, message: str = INTERNAL_MESSAGE):
        super().__init__(message, details=details)


class ClientDisconnected(ChatError):
    """The caller went away before the reply was ready."""

    http_status = 499

    def __init__(self):
        super().__init__("Client closed the connection.")


def reason_label(reason: Any) -> Optional[str]:
    """Name of a block or finish reason, or None when it reports no block.

    Both SDK generations spell the empty value as an `*_UNSPECIFIED` member
    (`BLOCK_REASON_UNSPECIFIED`, `BLOCKED_REASON_UNSPECIFIED`) or as 0.
    """
    if reason is None:
        return None
    name = getattr(reason, "name", None)
    label = str(name if name is not None else reason)
    if label in ("", "0") or label.upper().endswith("_UNSPECIFIED"):
        return None
    return label


def _block_reason(exc: Exception) -> Optional[str]:
    response: Any = getattr(exc, "response", None)
    if response is None:
        return None
    if isinstance(response, dict):
        feedback = response.get("prompt_feedback") or response.get("promptFeedback")
    else:
        feedback = getattr(response, "prompt_feedback", None)
    if feedback is None:
        return None
    if isinstance(feedback, dict):
        reason = feedback.get("block_reason") or feedback.get("blockReason")
    else:
        reason = getattr(feedback, "block_reason", None)
    return reason_label(reason)


def classify_error(exc: Exception) -> ChatError:
    """Map any exception raised while serving a chat onto the taxonomy."""
    if isinstance(exc, ChatError):
        return exc

    text = str(exc)
    if "API key not valid" in text:
        return AuthError()
    if "SAFETY" in text.upper():
        return SafetyBlocked()
    reason = _block_reason(exc)
    if reason:
        return SafetyBlocked(reason)
    return UpstreamError(details=text or type(exc).__name__)
