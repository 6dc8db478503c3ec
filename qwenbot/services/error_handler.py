"""Classification of provider failures and user-facing error messages."""

import asyncio
import logging
from enum import Enum
from typing import Any, Optional

import openai

from qwenbot.exceptions import (
    APIException,
    APITimeoutException,
    AuthenticationException,
    BadRequestException,
    ContentPolicyException,
    RateLimitException,
    ServerException,
)

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    """Failure kinds surfaced by the completion provider."""

    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    CONTENT_POLICY = "content_policy"
    BAD_REQUEST = "bad_request"
    UNKNOWN = "unknown"


ERROR_MESSAGES: dict[FailureKind, dict[str, str]] = {
    FailureKind.UNAUTHORIZED: {
        "zh": "API Key 无效或已过期，请检查配置",
        "en": "API Key is invalid or expired, please check configuration",
    },
    FailureKind.RATE_LIMITED: {
        "zh": "请求过于频繁，请稍后再试",
        "en": "Request too frequent, please try again later",
    },
    FailureKind.SERVER_ERROR: {
        "zh": "服务器错误，请稍后重试",
        "en": "Server error, please try again later",
    },
    FailureKind.TIMEOUT: {
        "zh": "请求超时，请稍后重试",
        "en": "Request timeout, please try again later",
    },
    FailureKind.CONTENT_POLICY: {
        "zh": "输入内容包含不适当的内容，请修改后重试",
        "en": "Input contains inappropriate content, please modify and try again",
    },
    FailureKind.BAD_REQUEST: {
        "zh": "请求参数错误，请检查输入内容",
        "en": "Invalid request parameters, please check input",
    },
    FailureKind.UNKNOWN: {
        "zh": "发生未知错误，请查看日志",
        "en": "Unknown error occurred, please check logs",
    },
}

EXCEPTION_TYPES: dict[FailureKind, type] = {
    FailureKind.UNAUTHORIZED: AuthenticationException,
    FailureKind.RATE_LIMITED: RateLimitException,
    FailureKind.SERVER_ERROR: ServerException,
    FailureKind.TIMEOUT: APITimeoutException,
    FailureKind.CONTENT_POLICY: ContentPolicyException,
    FailureKind.BAD_REQUEST: BadRequestException,
    FailureKind.UNKNOWN: APIException,
}

_CODE_KINDS = {
    "401-invalidapikey": FailureKind.UNAUTHORIZED,
    "invalidapikey": FailureKind.UNAUTHORIZED,
    "invalid_api_key": FailureKind.UNAUTHORIZED,
    "429-throttling": FailureKind.RATE_LIMITED,
    "throttling": FailureKind.RATE_LIMITED,
    "rate_limit_exceeded": FailureKind.RATE_LIMITED,
    "500-internalerror": FailureKind.SERVER_ERROR,
    "internalerror": FailureKind.SERVER_ERROR,
    "datainspectionfailed": FailureKind.CONTENT_POLICY,
    "400-datainspectionfailed": FailureKind.CONTENT_POLICY,
    "data_inspection_failed": FailureKind.CONTENT_POLICY,
    "400-invalidparameter": FailureKind.BAD_REQUEST,
    "invalidparameter": FailureKind.BAD_REQUEST,
}


def _extract_code(error: Any) -> Optional[str]:
    """Return a provider error code from an openai SDK error body, if any."""
    code = getattr(error, "code", None)
    if code:
        return str(code)

    body = getattr(error, "body", None)
    if isinstance(body, dict):
        if body.get("code"):
            return str(body["code"])
        inner = body.get("error")
        if isinstance(inner, dict) and inner.get("code"):
            return str(inner["code"])
    return None


def _extract_status(error: Any) -> Optional[int]:
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status
    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def classify_error(error: BaseException) -> FailureKind:
    """Map an exception from the completion call to a ``FailureKind``.

    Provider error codes win over HTTP status so that a 400 carrying
    ``DataInspectionFailed`` is reported as a content-policy rejection.
    """
    if isinstance(error, APIException) and isinstance(error.kind, FailureKind):
        return error.kind

    if isinstance(error, (asyncio.TimeoutError, TimeoutError, openai.APITimeoutError)):
        return FailureKind.TIMEOUT

    code = _extract_code(error)
    if code:
        kind = _CODE_KINDS.get(code.lower())
        if kind is not None:
            return kind

    if isinstance(error, openai.AuthenticationError):
        return FailureKind.UNAUTHORIZED
    if isinstance(error, openai.RateLimitError):
        return FailureKind.RATE_LIMITED
    if isinstance(error, openai.InternalServerError):
        return FailureKind.SERVER_ERROR
    if isinstance(error, openai.BadRequestError):
        return FailureKind.BAD_REQUEST

    status = _extract_status(error)
    if status == 401:
        return FailureKind.UNAUTHORIZED
    if status == 429:
        return FailureKind.RATE_LIMITED
    if status is not None and status >= 500:
        return FailureKind.SERVER_ERROR
    if status == 400:
        return FailureKind.BAD_REQUEST

    if "timeout" in str(error).lower():
        return FailureKind.TIMEOUT

    return FailureKind.UNKNOWN


def to_api_exception(error: BaseException, context: str = "completion") -> APIException:
    """Wrap ``error`` in the typed exception for its failure kind and log it."""
    if isinstance(error, APIException) and isinstance(error.kind, FailureKind):
        return error

    kind = classify_error(error)
    status = _extract_status(error)
    logger.error(
        "API error [%s]: kind=%s status=%s code=%s detail=%s",
        context,
        kind.value,
        status,
        _extract_code(error),
        error,
    )
    exc_type = EXCEPTION_TYPES[kind]
    return exc_type(
        ERROR_MESSAGES[kind]["en"],
        kind=kind,
        status_code=status,
        details={"cause": str(error)},
    )


class ErrorHandler:
    """Formats failures for users in Chinese, English or both."""

    def __init__(self, lang: str = "bilingual") -> None:
        self.lang = lang

    def user_message(self, kind: FailureKind, lang: Optional[str] = None) -> str:
        messages = ERROR_MESSAGES.get(kind, ERROR_MESSAGES[FailureKind.UNKNOWN])
        lang = lang or self.lang
        if lang == "zh":
            return f"❌ {messages['zh']}"
        if lang == "en":
            return f"❌ {messages['en']}"
        return f"❌ {messages['zh']} / {messages['en']}"

    def describe(self, error: BaseException, lang: Optional[str] = None) -> str:
        """User-facing text for any exception raised behind a command."""
        return self.user_message(classify_error(error), lang)
