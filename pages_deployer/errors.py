# errors.py
from typing import Any, Optional

import httpx


class DeploymentError(Exception):
    """Base class for every pipeline failure.

    ``details`` carries whatever the upstream service answered (parsed JSON
    when possible, raw text otherwise) so it can be surfaced to the caller.
    """

    status_code = 500

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DeploymentError):
    status_code = 400


class AuthorizationError(DeploymentError):
    status_code = 403


class GenerationError(DeploymentError):
    pass


class RepositoryCreationError(DeploymentError):
    pass


class PublishError(DeploymentError):
    pass


class StaticSiteError(DeploymentError):
    """Never aborts the pipeline; only logged."""


class NotificationError(DeploymentError):
    pass


def response_details(response: Optional[httpx.Response]) -> Any:
    if response is None:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def upstream_details(exc: Exception) -> Any:
    """Extract the upstream response body from an httpx error, if any."""
    if isinstance(exc, httpx.HTTPStatusError):
        return response_details(exc.response)
    return str(exc)
