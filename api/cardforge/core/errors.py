from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    UNSUPPORTED_TYPE = "unsupported_type"
    FILE_TOO_LARGE = "file_too_large"
    INVALID_URL = "invalid_url"
    DECODE_FAILED = "decode_failed"
    EXTRACTION_FAILED = "extraction_failed"
    FETCH_FAILED = "fetch_failed"
    NETWORK_TIMEOUT = "network_timeout"
    NETWORK_UNREACHABLE = "network_unreachable"
    SERVICE_UNAVAILABLE = "service_unavailable"
    MODEL_ERROR = "model_error"
    EMPTY_MODEL_RESPONSE = "empty_model_response"
    MALFORMED_RESPONSE = "malformed_response"


# Kinds the client caused; everything else is reported as a server error.
CLIENT_ERROR_KINDS = frozenset(
    {
        ErrorKind.INVALID_INPUT,
        ErrorKind.UNSUPPORTED_TYPE,
        ErrorKind.FILE_TOO_LARGE,
        ErrorKind.INVALID_URL,
    }
)


class PipelineError(Exception):
    """
    Terminal failure of one request.

    `message` is short and safe to show to the user. `context` carries
    diagnostics (raw model output samples, status codes, parser errors) for
    the server log only.
    """

    kind: ErrorKind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    @property
    def http_status(self) -> int:
        return 400 if self.kind in CLIENT_ERROR_KINDS else 500

    def to_payload(self) -> Dict[str, str]:
        return {"error": self.message, "kind": self.kind.value}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class InputError(PipelineError):
    kind = ErrorKind.INVALID_INPUT


class UnsupportedTypeError(PipelineError):
    kind = ErrorKind.UNSUPPORTED_TYPE

    def __init__(self, media_type: str) -> None:
        super().__init__(
            f"Nicht unterstützter Dateityp: {media_type}",
            context={"media_type": media_type},
        )
        self.media_type = media_type


class FileTooLargeError(PipelineError):
    kind = ErrorKind.FILE_TOO_LARGE

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"Datei zu groß ({size} Bytes, erlaubt sind maximal {limit} Bytes).",
            context={"size": size, "limit": limit},
        )


class InvalidURLError(PipelineError):
    kind = ErrorKind.INVALID_URL


class DecodeError(PipelineError):
    kind = ErrorKind.DECODE_FAILED


class ExtractionError(PipelineError):
    kind = ErrorKind.EXTRACTION_FAILED


class FetchError(PipelineError):
    kind = ErrorKind.FETCH_FAILED

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        ctx = dict(context or {})
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message, context=ctx)
        self.status_code = status_code


class NetworkTimeoutError(PipelineError):
    kind = ErrorKind.NETWORK_TIMEOUT


class NetworkUnreachableError(PipelineError):
    kind = ErrorKind.NETWORK_UNREACHABLE


class ServiceUnavailableError(PipelineError):
    kind = ErrorKind.SERVICE_UNAVAILABLE


class ModelInvocationError(PipelineError):
    kind = ErrorKind.MODEL_ERROR


class EmptyModelResponseError(PipelineError):
    kind = ErrorKind.EMPTY_MODEL_RESPONSE


class MalformedResponseError(PipelineError):
    kind = ErrorKind.MALFORMED_RESPONSE
