"""Dream Pie - text-to-image proxy and retrying generation client."""

__version__ = "0.1.0"

from dreampie.core.config import DreamPieConfig, config
from dreampie.core.errors import ErrorKind
from dreampie.core.providers import ProviderConfig, provider_registry

__all__ = [
    "DreamPieConfig",
    "config",
    "ErrorKind",
    "ProviderConfig",
    "provider_registry",
]
