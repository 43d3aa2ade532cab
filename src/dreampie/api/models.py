"""Pydantic request and response models for the Dream Pie proxy API.

These models define the JSON contract between the proxy handler and the
generation client.  The client depends on nothing else: every provider
response collapses into :class:`GenerateImageResponse` or
:class:`ErrorResponse` before it leaves the server.

Models
------
GenerationRequest
    Body of ``POST /api/generate-image`` — a single non-empty prompt.
GenerateImageResponse
    Success body — ``{"base64Image": "..."}``.
ErrorResponse
    Failure body — ``{"error": "...", "kind": "..."}``.
HealthResponse
    Body of ``GET /api/health``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dreampie.core.errors import ErrorKind


class GenerationRequest(BaseModel):
    """Request body for the proxy endpoint.

    Attributes:
        prompt: Free-text description of the desired image.  Surrounding
            whitespace is stripped; an empty result is rejected.
    """

    prompt: str = Field(
        ...,
        description="Text prompt describing the image to generate.",
    )

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("prompt must not be empty")
        return value


class GenerateImageResponse(BaseModel):
    """Success body returned by the proxy.

    Attributes:
        base64_image: Generated image bytes, base64 encoded.  Serialised as
            ``base64Image``.
    """

    model_config = ConfigDict(populate_by_name=True)

    base64_image: str = Field(
        ...,
        alias="base64Image",
        min_length=1,
        description="Base64-encoded image bytes.",
    )


class ErrorResponse(BaseModel):
    """Failure body returned by the proxy.

    Attributes:
        error: One-line message safe to show to the user.
        kind: Explicit failure classification.
    """

    error: str = Field(..., description="Human-readable failure message.")
    kind: ErrorKind = Field(..., description="Failure classification.")


class HealthResponse(BaseModel):
    """Body of ``GET /api/health``."""

    status: str = "ok"
    version: str
    provider: str
