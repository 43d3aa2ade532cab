"""Error taxonomy shared by the proxy handler and the generation client.

Every failure the proxy can report belongs to exactly one :class:`ErrorKind`.
The kind travels over the wire next to the human-readable message, so the
client decides whether to retry by kind instead of by re-parsing text.

=======================  ===========  =========================================
Kind                     Status       Meaning
=======================  ===========  =========================================
``caller_error``         400 / 405    Malformed request from the client
``configuration_error``  500          Deployment is missing a credential
``upstream_error``       provider's   Provider rejected or failed the request
``data_shape_error``     500          Provider succeeded without an image
``internal_error``       500          Network failure or unexpected exception
=======================  ===========  =========================================
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure classifications returned by the proxy."""

    CALLER_ERROR = "caller_error"
    CONFIGURATION_ERROR = "configuration_error"
    UPSTREAM_ERROR = "upstream_error"
    DATA_SHAPE_ERROR = "data_shape_error"
    INTERNAL_ERROR = "internal_error"

    @property
    def retryable(self) -> bool:
        """Whether repeating the identical request could succeed."""
        return self not in (ErrorKind.CALLER_ERROR, ErrorKind.CONFIGURATION_ERROR)


class ProxyError(Exception):
    """Base class for failures raised inside the proxy handler.

    Subclasses fix the :class:`ErrorKind` and default HTTP status; the handler
    converts any ``ProxyError`` into a structured JSON response at its
    boundary.

    Attributes:
        message: Message safe to relay to the caller.
        status_code: HTTP status the response carries.
    """

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR
    default_status: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status


class CallerError(ProxyError):
    """Malformed request: wrong method, bad JSON, or missing prompt."""

    kind = ErrorKind.CALLER_ERROR
    default_status = 400


class ConfigurationError(ProxyError):
    """The credential for the active provider is not configured."""

    kind = ErrorKind.CONFIGURATION_ERROR


class UpstreamError(ProxyError):
    """The provider answered with a non-success status.

    The provider's status is mirrored unchanged, so 403 (bad credential) and
    429 (rate limited) stay distinguishable for the caller.
    """

    kind = ErrorKind.UPSTREAM_ERROR
    default_status = 502


class DataShapeError(ProxyError):
    """The provider reported success but no image could be located."""

    kind = ErrorKind.DATA_SHAPE_ERROR


class InternalError(ProxyError):
    """Unexpected failure: network error, unparseable body, or a bug."""

    kind = ErrorKind.INTERNAL_ERROR
