"""Request building and response normalization for provider schema families.

All provider-specific field access lives here.  The proxy handler only calls
three functions:

- :func:`build_payload` — prompt + :class:`ProviderConfig` → request body
- :func:`extract_image` — response shape + raw success body → base64 or ``None``
- :func:`extract_error_message` — raw error body → best-effort message

The extractors never raise on unexpected input; a body that does not match
its shape simply yields ``None`` and the handler reports a data-shape error.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .providers import PayloadShape, ProviderConfig, ResponseShape

UNKNOWN_API_ERROR = "Unknown API Error"


# ---------------------------------------------------------------------------
# Request payloads.
# ---------------------------------------------------------------------------


def _contents_payload(provider: ProviderConfig, prompt: str) -> dict[str, Any]:
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": dict(provider.options),
    }


def _instances_payload(provider: ProviderConfig, prompt: str) -> dict[str, Any]:
    instance: dict[str, Any] = {"prompt": prompt}
    if provider.negative_prompt:
        instance["negativePrompt"] = provider.negative_prompt
    return {"instances": [instance], "parameters": dict(provider.options)}


def _text_prompts_payload(provider: ProviderConfig, prompt: str) -> dict[str, Any]:
    text_prompts = [{"text": prompt, "weight": 1}]
    # Stability v1 expresses negative prompts as negatively weighted entries.
    if provider.negative_prompt:
        text_prompts.append({"text": provider.negative_prompt, "weight": -1})
    return {"text_prompts": text_prompts, **provider.options}


def _flat_prompt_payload(provider: ProviderConfig, prompt: str) -> dict[str, Any]:
    payload: dict[str, Any] = {"prompt": prompt, **provider.options}
    if provider.negative_prompt:
        payload["negative_prompt"] = provider.negative_prompt
    return payload


_PAYLOAD_BUILDERS: dict[PayloadShape, Callable[[ProviderConfig, str], dict[str, Any]]] = {
    PayloadShape.CONTENTS: _contents_payload,
    PayloadShape.INSTANCES: _instances_payload,
    PayloadShape.TEXT_PROMPTS: _text_prompts_payload,
    PayloadShape.FLAT_PROMPT: _flat_prompt_payload,
}


def build_payload(provider: ProviderConfig, prompt: str) -> dict[str, Any]:
    """Build the provider request body for a prompt.

    Args:
        provider: Active provider description.
        prompt: Validated, non-empty prompt text.

    Returns:
        Dictionary ready to be sent as JSON or as multipart form fields.
    """
    return _PAYLOAD_BUILDERS[provider.payload_shape](provider, prompt)


# ---------------------------------------------------------------------------
# Success bodies.
# ---------------------------------------------------------------------------


def _first(items: Any) -> Any:
    if isinstance(items, list) and items:
        return items[0]
    return None


def _get(obj: Any, key: str) -> Any:
    return obj.get(key) if isinstance(obj, dict) else None


def _inline_data(raw: Any) -> Any:
    parts = _get(_get(_first(_get(raw, "candidates")), "content"), "parts")
    if not isinstance(parts, list):
        return None
    for part in parts:
        # REST responses use camelCase; some SDK dumps use snake_case.
        inline = _get(part, "inlineData") or _get(part, "inline_data")
        if inline:
            return _get(inline, "data")
    return None


def _predictions(raw: Any) -> Any:
    return _get(_first(_get(raw, "predictions")), "bytesBase64Encoded")


def _artifacts(raw: Any) -> Any:
    return _get(_first(_get(raw, "artifacts")), "base64")


def _flat_image(raw: Any) -> Any:
    return _get(raw, "image")


_EXTRACTORS: dict[ResponseShape, Callable[[Any], Any]] = {
    ResponseShape.INLINE_DATA: _inline_data,
    ResponseShape.PREDICTIONS: _predictions,
    ResponseShape.ARTIFACTS: _artifacts,
    ResponseShape.FLAT_IMAGE: _flat_image,
}


def extract_image(shape: ResponseShape, raw: Any) -> str | None:
    """Locate the base64 image payload in a provider success body.

    Args:
        shape: Response shape of the active provider.
        raw: Parsed JSON body.

    Returns:
        The non-empty base64 string, or ``None`` when the body does not
        contain one.
    """
    value = _EXTRACTORS[shape](raw)
    if isinstance(value, str) and value:
        return value
    return None


# ---------------------------------------------------------------------------
# Error bodies.
# ---------------------------------------------------------------------------


def extract_error_message(raw: Any) -> str:
    """Pull a human-readable message out of a provider error body.

    Understands Google's ``{"error": {"message": ...}}``, Stability v1's
    ``{"message": ...}`` and Stability v2's ``{"errors": [...]}`` layouts.

    Args:
        raw: Parsed JSON error body, or ``None`` when it was not JSON.

    Returns:
        The extracted message, or ``"Unknown API Error"``.
    """
    error = _get(raw, "error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(error, str) and error:
        return error

    message = _get(raw, "message")
    if isinstance(message, str) and message:
        return message

    errors = _get(raw, "errors")
    if isinstance(errors, list) and errors:
        return "; ".join(str(e) for e in errors)

    return UNKNOWN_API_ERROR
