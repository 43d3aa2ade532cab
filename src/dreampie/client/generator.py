"""Generation client: calls the proxy with bounded retries and renders the result.

State machine for one call::

    Idle -> Attempting -> Success                      (terminal)
                       -> Waiting -> Attempting        (retryable failure)
                       -> Exhausted                    (max attempts reached)
                       -> Failed                       (non-retryable failure)
                       -> Cancelled                    (token cancelled)

A second submission while a call is running is rejected without touching the
view's result area.  Each call may carry a :class:`CancellationToken`;
cancelling it interrupts the in-flight request or the pending backoff wait.

Failures are classified by the ``kind`` the proxy returns, never by reading
provider-specific JSON.  ``caller_error`` and ``configuration_error`` stop the
loop immediately because repeating the same request cannot fix them.

Usage
-----
::

    async with httpx.AsyncClient() as http:
        client = GenerationClient("http://127.0.0.1:8888/api/generate-image", http)
        outcome = await client.generate("a red fox")
        if outcome.succeeded:
            outcome.image.src  # data:image/png;base64,...
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

import httpx

from dreampie.core.config import DreamPieConfig
from dreampie.core.errors import ErrorKind

from .retry import RetryPolicy, RetryState
from .view import GenerationView, RenderedImage

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROMPT_REQUIRED_MESSAGE = "Poco Pie says: You gotta give me something to work with!"
SUCCESS_MESSAGE = "Dream baked! Image generated successfully!"
BUSY_MESSAGE = "Poco Pie is still baking your last dream. Hang tight!"
CANCELLED_MESSAGE = "Generation cancelled."
AUTH_FAILED_MESSAGE = (
    "Authentication Failed (403): the provider API key is invalid or missing "
    "in the server settings."
)
INVALID_RESPONSE_MESSAGE = "Invalid response structure or missing image data. Check the proxy logs."


class GenerationState(str, Enum):
    """Lifecycle states of one generation call."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


@dataclass
class GenerationOutcome:
    """Result of :meth:`GenerationClient.generate`.

    Attributes:
        state: Terminal state of the call.
        attempts: Number of requests sent to the proxy.
        image: Rendered image on success.
        message: Final user-visible message.
        kind: Error kind of the last failure, when the proxy reported one.
    """

    state: GenerationState
    attempts: int = 0
    image: RenderedImage | None = None
    message: str | None = None
    kind: ErrorKind | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is GenerationState.SUCCESS


class CancellationToken:
    """Cooperative cancellation signal for one generation call."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class GenerationCancelled(Exception):
    """Raised inside the retry loop when the call's token is cancelled."""


class AttemptFailed(Exception):
    """One attempt failed; carries the classified message.

    Attributes:
        message: User-visible description of the failure.
        kind: Error kind reported by the proxy, if any.
        status_code: HTTP status of the proxy response, if any.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.kind is None or self.kind.retryable


def classify_failure(status_code: int, body: Any) -> AttemptFailed:
    """Turn a non-success proxy response into an :class:`AttemptFailed`.

    Args:
        status_code: HTTP status returned by the proxy.
        body: Parsed JSON body, or ``None`` when it was not JSON.

    Returns:
        The classified failure.
    """
    kind: ErrorKind | None = None
    error: Any = None
    if isinstance(body, dict):
        error = body.get("error")
        with contextlib.suppress(ValueError):
            kind = ErrorKind(body.get("kind"))

    if status_code == 403:
        return AttemptFailed(AUTH_FAILED_MESSAGE, kind=kind, status_code=status_code)
    if isinstance(error, dict) and error.get("message"):
        message = f"Generation Error ({status_code}): {error['message']}"
    elif error:
        message = f"Generation Error ({status_code}): {error}"
    else:
        message = f"Generation Error: Proxy failed with status {status_code}. Check the proxy logs."
    return AttemptFailed(message, kind=kind, status_code=status_code)


class GenerationClient:
    """Obtains an image from the proxy with bounded exponential backoff.

    Attributes:
        url: Proxy endpoint.
        http: Async HTTP client; the caller owns its lifecycle.
        view: Rendering hooks.
        policy: Attempt count and backoff timing.
    """

    def __init__(
        self,
        url: str,
        http: httpx.AsyncClient,
        view: GenerationView | None = None,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        """Initialise the client.

        Args:
            url: Proxy endpoint URL.
            http: Async HTTP client used for every attempt.
            view: Rendering hooks; defaults to a no-op view.
            policy: Retry policy; defaults to 3 attempts, 1 s base, 0.5 s jitter.
            sleep: Coroutine used for backoff waits.
            rng: Source of uniform values in ``[0, 1)`` for jitter.
        """
        self.url = url
        self.http = http
        self.view = view or GenerationView()
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng
        self._state = GenerationState.IDLE
        self._busy = False

    @classmethod
    def from_config(
        cls,
        settings: DreamPieConfig,
        http: httpx.AsyncClient,
        view: GenerationView | None = None,
    ) -> GenerationClient:
        return cls(settings.proxy_url, http, view=view, policy=RetryPolicy.from_config(settings))

    @property
    def state(self) -> GenerationState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._busy

    # -- Public interface ---------------------------------------------------

    async def generate(
        self, prompt: str, token: CancellationToken | None = None
    ) -> GenerationOutcome:
        """Run one generation call to completion.

        Args:
            prompt: Prompt text; surrounding whitespace is ignored.
            token: Optional cancellation token for this call.

        Returns:
            The terminal :class:`GenerationOutcome`.  This method does not
            raise; every failure is reported through the outcome and the view.
        """
        prompt = prompt.strip()
        if not prompt:
            self.view.show_message(PROMPT_REQUIRED_MESSAGE)
            return GenerationOutcome(GenerationState.IDLE, message=PROMPT_REQUIRED_MESSAGE)

        if self._busy:
            logger.info("Rejected overlapping submission while a generation is running.")
            self.view.show_message(BUSY_MESSAGE)
            return GenerationOutcome(GenerationState.REJECTED, message=BUSY_MESSAGE)

        token = token or CancellationToken()
        retry = RetryState(self.policy)

        self._busy = True
        self.view.set_busy(True)
        self.view.show_loading()
        try:
            return await self._run(prompt, retry, token)
        except GenerationCancelled:
            logger.info("Generation cancelled after %d attempt(s).", retry.attempt)
            self._state = GenerationState.CANCELLED
            self.view.show_error(CANCELLED_MESSAGE)
            return GenerationOutcome(
                GenerationState.CANCELLED, attempts=retry.attempt, message=CANCELLED_MESSAGE
            )
        except Exception as exc:
            logger.exception("Generation failed with an unclassified error.")
            message = f"Generation Error: {exc}"
            self._state = GenerationState.FAILED
            self.view.show_error(message)
            return GenerationOutcome(GenerationState.FAILED, attempts=retry.attempt, message=message)
        finally:
            self._busy = False
            self.view.set_busy(False)

    # -- Retry loop -----------------------------------------------------------

    async def _run(
        self, prompt: str, retry: RetryState, token: CancellationToken
    ) -> GenerationOutcome:
        while True:
            if token.cancelled:
                raise GenerationCancelled()

            retry.attempt += 1
            self._state = GenerationState.ATTEMPTING
            try:
                image = await self._attempt(prompt, token)
            except AttemptFailed as failure:
                logger.warning("Attempt %d failed: %s", retry.attempt, failure.message)
                if not failure.retryable or retry.is_last_attempt:
                    state = GenerationState.EXHAUSTED if failure.retryable else GenerationState.FAILED
                    self._state = state
                    self.view.show_error(failure.message)
                    return GenerationOutcome(
                        state, attempts=retry.attempt, message=failure.message, kind=failure.kind
                    )

                delay = self.policy.delay_for(retry.attempt - 1, self._rng)
                retry.last_delay = delay
                logger.info("Retrying in %.0fms...", delay * 1000)
                self.view.show_retry(retry.attempt, failure.message, delay)
                self._state = GenerationState.WAITING
                await self._until_cancelled(self._sleep(delay), token)
                continue

            self._state = GenerationState.SUCCESS
            self.view.show_image(image)
            self.view.show_message(SUCCESS_MESSAGE)
            return GenerationOutcome(
                GenerationState.SUCCESS, attempts=retry.attempt, image=image, message=SUCCESS_MESSAGE
            )

    async def _attempt(self, prompt: str, token: CancellationToken) -> RenderedImage:
        try:
            response = await self._until_cancelled(
                self.http.post(self.url, json={"prompt": prompt}), token
            )
        except httpx.HTTPError as exc:
            raise AttemptFailed(f"Network error: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            raise classify_failure(response.status_code, body)

        image = body.get("base64Image") if isinstance(body, dict) else None
        if not isinstance(image, str) or not image:
            raise AttemptFailed(INVALID_RESPONSE_MESSAGE, status_code=response.status_code)
        return RenderedImage(base64_data=image, alt=prompt)

    @staticmethod
    async def _until_cancelled(awaitable: Awaitable[T], token: CancellationToken) -> T:
        """Await ``awaitable`` unless ``token`` is cancelled first."""
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()
        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise GenerationCancelled()
