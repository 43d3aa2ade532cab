"""Provider definitions and registry for the Dream Pie proxy.

Each deployment forwards prompts to exactly one external text-to-image
provider.  Instead of keeping one copy of the handler per provider, every
provider is described by a :class:`ProviderConfig` value and the single
:class:`~dreampie.api.proxy.ProxyHandler` is parameterized by it.

Provider Schema Families
------------------------
=====================  ==================================  ==============================
Payload shape          Request body                        Response image field
=====================  ==================================  ==============================
``contents``           ``contents[].parts[].text``         ``candidates[0]...inlineData``
``instances``          ``instances[].prompt``              ``predictions[0].bytesBase64Encoded``
``text_prompts``       ``text_prompts[].text``             ``artifacts[0].base64``
``flat_prompt``        ``prompt`` (multipart form)         ``image``
=====================  ==================================  ==============================

Usage Example
-------------
    >>> from dreampie.core.providers import provider_registry
    >>> provider_registry.list_available()
    ['gemini-flash-image', 'imagen', 'stability-sdxl', 'stability-core']
    >>> provider = provider_registry.get("imagen")
    >>> provider.response_shape
    <ResponseShape.PREDICTIONS: 'predictions'>

Registering a custom provider:

    >>> provider_registry.register(ProviderConfig(name="my-imagen", ...))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from .config import CredentialFamily

logger = logging.getLogger(__name__)


class PayloadShape(str, Enum):
    """Request body layouts understood by :func:`~dreampie.core.normalize.build_payload`."""

    CONTENTS = "contents"
    INSTANCES = "instances"
    TEXT_PROMPTS = "text_prompts"
    FLAT_PROMPT = "flat_prompt"


class ResponseShape(str, Enum):
    """Success body layouts understood by :func:`~dreampie.core.normalize.extract_image`."""

    INLINE_DATA = "inline_data"
    PREDICTIONS = "predictions"
    ARTIFACTS = "artifacts"
    FLAT_IMAGE = "flat_image"


class AuthMode(str, Enum):
    """How the credential is attached to the outbound request."""

    QUERY_KEY = "query_key"
    BEARER = "bearer"


@dataclass(frozen=True)
class ProviderConfig:
    """Static description of one external image-generation provider.

    Attributes:
        name: Registry key, also used in logs and ``/api/health``.
        endpoint: Fully qualified endpoint URL.
        credential: Credential family read from configuration.
        auth_mode: Query-string ``key`` or ``Authorization: Bearer`` header.
        payload_shape: Request body layout.
        response_shape: Where the base64 image lives in a success body.
        encoding: ``"json"`` body or ``"multipart"`` form fields.
        options: Provider-specific defaults merged into every payload
            (instance count, aspect ratio, output format, cfg scale, ...).
        negative_prompt: Default negative prompt, empty to omit.
        description: Human-readable summary.
    """

    name: str
    endpoint: str
    credential: CredentialFamily
    auth_mode: AuthMode
    payload_shape: PayloadShape
    response_shape: ResponseShape
    encoding: Literal["json", "multipart"] = "json"
    options: dict[str, Any] = field(default_factory=dict)
    negative_prompt: str = ""
    description: str = ""

    @property
    def credential_env(self) -> str:
        """Environment variable operators must set for this provider."""
        return "SEEDDREAM_API_KEY" if self.credential == "gemini" else "STABILITY_API_KEY"

    def info(self) -> dict[str, Any]:
        """Return non-secret metadata about the provider."""
        return {
            "name": self.name,
            "description": self.description,
            "credential_env": self.credential_env,
            "payload_shape": self.payload_shape.value,
            "response_shape": self.response_shape.value,
        }


class ProviderRegistry:
    """Registry of the providers a deployment can select by name.

    Notes
    -----
    - Exactly one provider is active per deployment; the registry only
      resolves the configured name at startup.
    - Registering an existing name overwrites it with a warning.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._providers: dict[str, ProviderConfig] = {}

    def register(self, provider: ProviderConfig) -> None:
        """Register a provider configuration.

        Args:
            provider: Provider description to make selectable.
        """
        if provider.name in self._providers:
            logger.warning("Provider '%s' is already registered, overwriting", provider.name)
        self._providers[provider.name] = provider
        logger.debug("Registered provider: %s", provider.name)

    def get(self, name: str) -> ProviderConfig:
        """Look up a provider by name.

        Args:
            name: Registered provider name.

        Returns:
            The matching :class:`ProviderConfig`.

        Raises:
            KeyError: If no provider with that name is registered.
        """
        if name not in self._providers:
            available = ", ".join(self.list_available())
            raise KeyError(f"Provider '{name}' not found. Available providers: {available}")
        return self._providers[name]

    def list_available(self) -> list[str]:
        """List registered provider names in registration order."""
        return list(self._providers.keys())

    def get_provider_info(self, name: str) -> dict[str, Any] | None:
        """Return provider metadata, or ``None`` when unknown."""
        provider = self._providers.get(name)
        return provider.info() if provider else None


GOOGLE_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
STABILITY_API_BASE = "https://api.stability.ai"

GEMINI_FLASH_IMAGE = ProviderConfig(
    name="gemini-flash-image",
    endpoint=f"{GOOGLE_API_BASE}/gemini-2.5-flash-image-preview:generateContent",
    credential="gemini",
    auth_mode=AuthMode.QUERY_KEY,
    payload_shape=PayloadShape.CONTENTS,
    response_shape=ResponseShape.INLINE_DATA,
    options={"responseModalities": ["TEXT", "IMAGE"]},
    description="Gemini 2.5 Flash Image (free-tier generateContent endpoint)",
)

IMAGEN = ProviderConfig(
    name="imagen",
    endpoint=f"{GOOGLE_API_BASE}/imagen-3.0-generate-002:predict",
    credential="gemini",
    auth_mode=AuthMode.QUERY_KEY,
    payload_shape=PayloadShape.INSTANCES,
    response_shape=ResponseShape.PREDICTIONS,
    options={"sampleCount": 1, "aspectRatio": "1:1"},
    description="Imagen 3 predict endpoint",
)

STABILITY_SDXL = ProviderConfig(
    name="stability-sdxl",
    endpoint=f"{STABILITY_API_BASE}/v1/generation/stable-diffusion-xl-1024-v1-0/text-to-image",
    credential="stability",
    auth_mode=AuthMode.BEARER,
    payload_shape=PayloadShape.TEXT_PROMPTS,
    response_shape=ResponseShape.ARTIFACTS,
    options={"cfg_scale": 7, "height": 1024, "width": 1024, "samples": 1, "steps": 30},
    negative_prompt="blurry, bad quality, distorted",
    description="Stable Diffusion XL 1.0 (v1 text-to-image)",
)

STABILITY_CORE = ProviderConfig(
    name="stability-core",
    endpoint=f"{STABILITY_API_BASE}/v2beta/stable-image/generate/core",
    credential="stability",
    auth_mode=AuthMode.BEARER,
    payload_shape=PayloadShape.FLAT_PROMPT,
    response_shape=ResponseShape.FLAT_IMAGE,
    encoding="multipart",
    options={"model": "core", "aspect_ratio": "1:1", "output_format": "png"},
    negative_prompt="blurry, bad quality, distorted",
    description="Stable Image Core (v2beta)",
)

# Global provider registry instance
provider_registry = ProviderRegistry()
for _provider in (GEMINI_FLASH_IMAGE, IMAGEN, STABILITY_SDXL, STABILITY_CORE):
    provider_registry.register(_provider)
