"""Server-side proxy between the generation client and the image provider.

:class:`ProxyHandler` is the single point where the provider credential is
attached to a request.  It is constructed once at startup with an explicit
:class:`~dreampie.core.providers.ProviderConfig` and credential, and serves
every request with the same pipeline:

1. Reject anything but ``POST`` (405).
2. Parse the JSON body into a :class:`GenerationRequest` (400 on failure).
3. Require the provider credential (500, configuration error).
4. Build the provider payload and send it with the credential attached.
5. Mirror a non-success provider status, or normalize the success body to
   ``{"base64Image": ...}`` (500 when no image can be found).

:meth:`ProxyHandler.handle` never raises.  Every failure, including network
errors and bugs, becomes a :class:`ProxyResponse` with an explicit
:class:`~dreampie.core.errors.ErrorKind`.

Usage
-----
::

    async with httpx.AsyncClient() as client:
        handler = ProxyHandler.from_config(config, client)
        response = await handler.handle("POST", b'{"prompt": "a red fox"}')
        response.status_code, response.body
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import ValidationError

from dreampie.core.config import DreamPieConfig
from dreampie.core.errors import (
    CallerError,
    ConfigurationError,
    DataShapeError,
    ErrorKind,
    InternalError,
    ProxyError,
    UpstreamError,
)
from dreampie.core.normalize import build_payload, extract_error_message, extract_image
from dreampie.core.providers import AuthMode, ProviderConfig, provider_registry

from .models import ErrorResponse, GenerateImageResponse, GenerationRequest

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal Server Error."
MISSING_DATA_MESSAGE = "Image data not found in provider response."


@dataclass
class ProxyResponse:
    """Structured result of one proxy invocation.

    Attributes:
        status_code: HTTP status to send back to the caller.
        body: JSON-serialisable response body.
    """

    status_code: int
    body: dict[str, Any]

    @property
    def ok(self) -> bool:
        """Whether the proxy produced an image."""
        return self.status_code == 200


class ProxyHandler:
    """Forwards prompts to one configured provider and normalizes the reply.

    Attributes:
        provider: Provider every request is forwarded to.
        client: Shared async HTTP client used for the outbound call.
    """

    def __init__(
        self,
        provider: ProviderConfig,
        credential: str | None,
        client: httpx.AsyncClient,
        timeout: float | None = None,
    ) -> None:
        """Initialise the handler.

        Args:
            provider: Provider description.
            credential: Secret for the provider, or ``None`` when the
                deployment has not configured one.
            client: Async HTTP client; the caller owns its lifecycle.
            timeout: Per-request timeout override in seconds.
        """
        self.provider = provider
        self.client = client
        self._credential = credential
        self._timeout = timeout

    @classmethod
    def from_config(cls, settings: DreamPieConfig, client: httpx.AsyncClient) -> ProxyHandler:
        """Build a handler for the provider named in ``settings``.

        Raises:
            KeyError: If ``settings.provider`` is not a registered provider.
        """
        provider = provider_registry.get(settings.provider)
        credential = settings.credential_for(provider.credential)
        if credential is None:
            logger.warning(
                "No credential configured for provider '%s'; set %s.",
                provider.name,
                provider.credential_env,
            )
        logger.info("Proxy handler wired to provider '%s'.", provider.name)
        return cls(provider, credential, client, timeout=settings.request_timeout)

    # -- Public interface ---------------------------------------------------

    async def handle(self, method: str, body: bytes | str | None) -> ProxyResponse:
        """Serve one proxy request.

        Args:
            method: HTTP method of the incoming request.
            body: Raw request body.

        Returns:
            A :class:`ProxyResponse`; this method does not raise.
        """
        try:
            if method.upper() != "POST":
                raise CallerError("Method Not Allowed", status_code=405)
            prompt = self._parse_prompt(body)
            image = await self.generate(prompt)
        except ProxyError as exc:
            self._log_failure(exc)
            return self._error_response(exc)
        except Exception:
            logger.exception("Proxy handler failed unexpectedly.")
            return self._error_response(InternalError(INTERNAL_ERROR_MESSAGE))

        result = GenerateImageResponse(base64_image=image)
        return ProxyResponse(200, result.model_dump(by_alias=True))

    async def generate(self, prompt: str) -> str:
        """Forward a validated prompt and return the base64 image.

        Args:
            prompt: Non-empty prompt text.

        Returns:
            Base64-encoded image data.

        Raises:
            ConfigurationError: The credential is missing.
            UpstreamError: The provider answered with a non-success status.
            DataShapeError: The success body contains no image.
            InternalError: Network failure or unparseable success body.
        """
        credential = self._require_credential()
        payload = build_payload(self.provider, prompt)

        try:
            response = await self._send(payload, credential)
        except httpx.HTTPError as exc:
            logger.error("Request to provider '%s' failed: %s", self.provider.name, exc)
            raise InternalError(INTERNAL_ERROR_MESSAGE) from exc

        if not response.is_success:
            raw = self._json_or_none(response)
            logger.warning(
                "Provider '%s' returned %s: %s",
                self.provider.name,
                response.status_code,
                response.text,
            )
            message = extract_error_message(raw)
            raise UpstreamError(
                f"API Request Failed ({response.status_code}): {message}",
                status_code=response.status_code,
            )

        try:
            raw = response.json()
        except ValueError as exc:
            raise InternalError(INTERNAL_ERROR_MESSAGE) from exc

        image = extract_image(self.provider.response_shape, raw)
        if image is None:
            raise DataShapeError(MISSING_DATA_MESSAGE)
        return image

    # -- Internals ----------------------------------------------------------

    @staticmethod
    def _parse_prompt(body: bytes | str | None) -> str:
        if not body:
            raise CallerError("Prompt is required.")
        try:
            request = GenerationRequest.model_validate_json(body)
        except ValidationError as exc:
            if any(err["type"] == "json_invalid" for err in exc.errors()):
                raise CallerError("Request body must be valid JSON.") from exc
            raise CallerError("Prompt is required.") from exc
        return request.prompt

    def _require_credential(self) -> str:
        if not self._credential:
            raise ConfigurationError(
                f"Server configuration error: {self.provider.credential_env} is not set."
            )
        return self._credential

    async def _send(self, payload: dict[str, Any], credential: str) -> httpx.Response:
        params: dict[str, str] = {}
        headers = {"Accept": "application/json"}
        if self.provider.auth_mode is AuthMode.QUERY_KEY:
            params["key"] = credential
        else:
            headers["Authorization"] = f"Bearer {credential}"

        kwargs: dict[str, Any] = {"params": params, "headers": headers}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        if self.provider.encoding == "multipart":
            kwargs["files"] = {key: (None, str(value)) for key, value in payload.items()}
        else:
            kwargs["json"] = payload

        logger.debug("Forwarding prompt to provider '%s'.", self.provider.name)
        return await self.client.post(self.provider.endpoint, **kwargs)

    @staticmethod
    def _json_or_none(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    def _log_failure(self, exc: ProxyError) -> None:
        if exc.kind is ErrorKind.CALLER_ERROR:
            logger.info("Rejected request (%s): %s", exc.status_code, exc.message)
        elif exc.kind is ErrorKind.CONFIGURATION_ERROR:
            logger.error("%s", exc.message)
        elif exc.kind is ErrorKind.DATA_SHAPE_ERROR:
            logger.error(
                "Provider '%s' succeeded without image data; response shape '%s' may have drifted.",
                self.provider.name,
                self.provider.response_shape.value,
            )

    @staticmethod
    def _error_response(exc: ProxyError) -> ProxyResponse:
        body = ErrorResponse(error=exc.message, kind=exc.kind)
        return ProxyResponse(exc.status_code, body.model_dump(mode="json"))
