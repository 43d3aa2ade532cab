"""Core functionality shared by the proxy and the generation client.

- **DreamPieConfig** / **config**: Pydantic Settings configuration
  (``DREAMPIE_*`` variables plus provider credentials)
- **ErrorKind** and the ``ProxyError`` hierarchy: explicit failure taxonomy
- **ProviderConfig** / **provider_registry**: the selectable providers
- **build_payload** / **extract_image**: per-shape request building and
  response normalization

Architecture Overview
---------------------
1. **Configuration Layer** (config.py)
2. **Error Taxonomy** (errors.py)
3. **Provider Layer** (providers.py, normalize.py)

The HTTP-facing proxy lives in :mod:`dreampie.api`, the retrying client in
:mod:`dreampie.client`.
"""

from dreampie.core.config import DreamPieConfig, config
from dreampie.core.errors import ErrorKind, ProxyError
from dreampie.core.normalize import build_payload, extract_error_message, extract_image
from dreampie.core.providers import ProviderConfig, provider_registry

__all__ = [
    "DreamPieConfig",
    "config",
    "ErrorKind",
    "ProxyError",
    "ProviderConfig",
    "provider_registry",
    "build_payload",
    "extract_image",
    "extract_error_message",
]
