from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class GenStudioException(Exception):
    """Base exception for GenStudio application"""
    error_code = "GENSTUDIO_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "error_message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class ValidationError(GenStudioException):
    """Raised when a job request is missing or has invalid fields"""
    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation error"):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class ConfigurationError(GenStudioException):
    """Raised when a required setting (e.g. the provider token) is missing"""
    error_code = "CONFIGURATION_ERROR"

    def __init__(self, message: str = "Configuration error"):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class ProviderError(GenStudioException):
    """Raised on a non-2xx or malformed response from the inference provider"""
    error_code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    ):
        super().__init__(message, status_code, {"upstream_status": upstream_status})
        self.upstream_status = upstream_status


class ProviderConnectionError(ProviderError):
    """Raised when the provider could not be reached at all.

    This is the only error the poller may retry, and only when fetch retries
    are enabled.
    """
    error_code = "PROVIDER_CONNECTION_ERROR"

    def __init__(self, message: str):
        super().__init__(message)


class JobNotFoundError(ProviderError):
    """Raised when the provider does not know the job handle"""
    error_code = "JOB_NOT_FOUND"

    def __init__(self, message: str = "Job not found"):
        super().__init__(message, 404, status.HTTP_404_NOT_FOUND)


class JobFailedError(GenStudioException):
    """Raised when the provider reports the job as failed"""
    error_code = "JOB_FAILED"

    def __init__(self, message: str = "Job failed"):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class JobTimeoutError(GenStudioException):
    """Raised when the attempt ceiling or time budget is exhausted"""
    error_code = "JOB_TIMEOUT"

    def __init__(self, message: str = "timeout"):
        super().__init__(message, status.HTTP_504_GATEWAY_TIMEOUT)


class JobCancelledError(GenStudioException):
    """Raised when the caller stops polling before a terminal status"""
    error_code = "JOB_CANCELLED"

    def __init__(self, message: str = "cancelled"):
        super().__init__(message, 499)


class UnexpectedOutputError(GenStudioException):
    """Raised when a job succeeds without a recognizable output"""
    error_code = "UNEXPECTED_OUTPUT"

    def __init__(self, message: str = "unexpected output format"):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class MediaStorageError(GenStudioException):
    """Raised when draining or persisting a media stream fails"""
    error_code = "MEDIA_IO_ERROR"

    def __init__(self, message: str):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class DownloadError(GenStudioException):
    """Raised when a download reference cannot be fetched"""
    error_code = "DOWNLOAD_ERROR"

    def __init__(self, message: str = "Failed to download media"):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


async def validation_exception_handler(request: Request, exc: ValidationError):
    """Validation failures use the `error` key, like the form endpoints always have"""
    logger.info(f"Rejected request to {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message}
    )


async def genstudio_exception_handler(request: Request, exc: GenStudioException):
    """Handle custom GenStudio exceptions"""
    logger.error(f"GenStudio exception on {request.url.path}: {exc!r}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error_code": exc.error_code}
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.exception(f"Unexpected error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )
