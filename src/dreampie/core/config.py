"""Configuration management for Dream Pie.

This module provides centralized configuration management using Pydantic Settings.
Application settings are loaded from environment variables with the DREAMPIE_
prefix; provider credentials keep the names the deployments already use.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (DREAMPIE_* prefix, credentials by their own names)
2. .env file in the project root
3. Default values defined in DreamPieConfig

Example .env file:
    DREAMPIE_PROVIDER=imagen
    DREAMPIE_SERVER_PORT=8888
    SEEDDREAM_API_KEY=your-google-key
    STABILITY_API_KEY=sk-...

Credentials
-----------
Each provider family reads exactly one secret:

- Gemini/Imagen family: ``SEEDDREAM_API_KEY`` (``GEMINI_API_KEY`` is accepted
  as an alias)
- Stability family: ``STABILITY_API_KEY``

A missing credential is *not* a startup error.  The proxy reports it per
request as a configuration error so operators can see which secret is absent
without the server refusing to boot.

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time and
serves as the single source of truth across the application.

Usage Example
-------------
    from dreampie.core.config import config

    print(config.provider)
    key = config.credential_for("imagen")
"""

from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

CredentialFamily = Literal["gemini", "stability"]


class DreamPieConfig(BaseSettings):
    """Main configuration for Dream Pie.

    Attributes
    ----------
    Provider Settings:
        provider : str
            Name of the provider wired into the proxy (see
            ``dreampie.core.providers.provider_registry``)
        gemini_api_key : SecretStr | None
            Credential for the Gemini/Imagen family
        stability_api_key : SecretStr | None
            Credential for the Stability family
        request_timeout : float
            Outbound request timeout in seconds

    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Bind port (1024-65535)
        proxy_path : str
            Route the proxy handler is mounted on
        log_level : str
            Root logging level for the entry points

    Client Settings:
        proxy_url : str
            Full URL of the proxy endpoint used by the generation client
        max_attempts : int
            Total attempts per generation call
        backoff_base : float
            Base delay in seconds; attempt ``i`` waits ``base * 2**i``
        backoff_jitter : float
            Upper bound of the uniform random jitter added to each wait
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DREAMPIE_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Provider settings
    provider: str = Field(
        default="gemini-flash-image",
        description="Registered provider name the proxy forwards to",
    )
    gemini_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("SEEDDREAM_API_KEY", "GEMINI_API_KEY"),
        description="Credential for Gemini/Imagen family providers",
    )
    stability_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("STABILITY_API_KEY"),
        description="Credential for Stability family providers",
    )
    request_timeout: float = Field(
        default=120.0,
        description="Outbound provider request timeout in seconds",
        gt=0,
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=8888,
        description="Server port",
        ge=1024,
        le=65535,
    )
    proxy_path: str = Field(
        default="/api/generate-image",
        description="Route the proxy handler is served on",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level used by the console entry points",
    )

    # Generation client settings
    proxy_url: str = Field(
        default="http://127.0.0.1:8888/api/generate-image",
        description="Proxy endpoint the generation client calls",
    )
    max_attempts: int = Field(
        default=3,
        description="Total attempts per generation call",
        ge=1,
        le=10,
    )
    backoff_base: float = Field(
        default=1.0,
        description="Base backoff delay in seconds",
        ge=0,
    )
    backoff_jitter: float = Field(
        default=0.5,
        description="Maximum random jitter added to each backoff delay",
        ge=0,
    )

    def credential_for(self, family: CredentialFamily) -> str | None:
        """Return the plain credential for a provider family.

        Args:
            family: Credential family of the active provider.

        Returns:
            The secret value, or ``None`` when it is unset or blank.
        """
        secret = self.gemini_api_key if family == "gemini" else self.stability_api_key
        if secret is None:
            return None
        value = secret.get_secret_value().strip()
        return value or None


# Global configuration instance
config = DreamPieConfig()
