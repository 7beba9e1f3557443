"""Exception hierarchy for the Watson Work client.

All errors derive from WatsonWorkError so callers can catch one type.
Retry only ever happens inside the token manager; everything else here
propagates to the caller as-is.
"""

from typing import Optional


class WatsonWorkError(Exception):
    """Base exception for the library."""


class InvalidCredentialFormat(WatsonWorkError):
    """App id or secret has the wrong shape; raised before any request."""


class AcquisitionFailed(WatsonWorkError):
    """Token acquisition gave up after exhausting its retries."""

    def __init__(
        self,
        message: str,
        attempts: int = 0,
        status_code: Optional[int] = None,
    ):
        self.attempts = attempts
        self.status_code = status_code
        super().__init__(message)


class AcquisitionInProgress(WatsonWorkError):
    """No token has been stored yet; the first acquisition is still running."""


class TransportError(WatsonWorkError):
    """Network failure or non-2xx response from the platform."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class InvalidFieldSpec(WatsonWorkError, ValueError):
    """A GraphQL field specification element is malformed."""


class MissingProperty(WatsonWorkError, KeyError):
    """A picked property was absent from the response."""

    def __init__(self, property_name: str):
        self.property_name = property_name
        super().__init__(property_name)

    def __str__(self) -> str:
        return f"No '{self.property_name}' field in response"
