"""Generation client: retrying proxy calls and result rendering.

Modules
-------
generator
    :class:`GenerationClient` with bounded exponential backoff and
    cancellation.
retry
    :class:`RetryPolicy` and per-call :class:`RetryState`.
view
    Rendering hooks and :class:`RenderedImage`.
cli
    The ``dreampie-generate`` command.
"""

from dreampie.client.generator import (
    CancellationToken,
    GenerationClient,
    GenerationOutcome,
    GenerationState,
)
from dreampie.client.retry import RetryPolicy, RetryState
from dreampie.client.view import ConsoleView, GenerationView, RenderedImage

__all__ = [
    "CancellationToken",
    "ConsoleView",
    "GenerationClient",
    "GenerationOutcome",
    "GenerationState",
    "GenerationView",
    "RenderedImage",
    "RetryPolicy",
    "RetryState",
]
