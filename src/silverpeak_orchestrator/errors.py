"""Exceptions raised by the Orchestrator client."""

from __future__ import annotations

from typing import Any

import requests


class OrchestratorError(Exception):
    """Base class for every error raised by this package."""


class MissingCredentialsError(OrchestratorError, ValueError):
    """Raised before any request when user and password are required but not configured."""


class ApplicationGroupNotFoundError(OrchestratorError, LookupError):
    """Raised when deleting an application group that does not exist."""

    def __init__(self, name: str):
        super().__init__(f"application group '{name}' doesn't exist")
        self.name = name


class OrchestratorVersionError(OrchestratorError, ValueError):
    """Raised when the Orchestrator version string cannot be parsed."""


class OrchestratorRequestError(OrchestratorError):
    """A remote call failed, either at the transport or with an unexpected status."""

    status_code: int | None = None


class OrchestratorConnectionError(OrchestratorRequestError):
    """The request never produced an HTTP response (DNS, TLS, timeout, refused)."""


class OrchestratorAPIError(OrchestratorRequestError):
    """The server answered with a status code other than the one the operation expects.

    Attributes:
        status_code -- HTTP status code of the response
        message -- ``error`` field of a JSON object body, else the response text
        response -- the original ``requests.Response``
    """

    def __init__(
        self,
        status_code: int,
        message: str = "",
        response: requests.Response | None = None,
    ):
        super().__init__(f"error ({status_code}): {message}")
        self.status_code = status_code
        self.message = message
        self.response = response

    @classmethod
    def from_response(cls, response: requests.Response) -> OrchestratorAPIError:
        return cls(response.status_code, _extract_message(response), response)


def _extract_message(response: requests.Response) -> str:
    try:
        payload: Any = response.json()
    except ValueError:
        return response.text

    if isinstance(payload, dict) and "error" in payload:
        return str(payload["error"])
    return response.text
