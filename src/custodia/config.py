"""Application configuration using pydantic-settings.

Settings are loaded once and handed to ApiClient.from_settings(), which
carries the wallet defaults (network, server signer) to Wallet.create().
No component reads them implicitly while an operation is running.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from custodia.network import DEFAULT_NETWORK_ID

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    """SDK settings loaded from CUSTODIA_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CUSTODIA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Remote service
    # ======================
    api_url: str = Field(
        default="https://api.cdp.coinbase.com/platform",
        description="Base URL of the wallet orchestration service",
    )
    api_key_name: str = Field(default="", description="API key sent as bearer credential")
    request_timeout: float = Field(default=30.0, description="HTTP request timeout in seconds")
    max_network_tries: int = Field(
        default=3, description="Connection retries performed by the HTTP transport"
    )
    debug_api: bool = Field(default=False, description="Log every request and response")
    default_page_limit: int = Field(default=100, description="Page size for list endpoints")

    # ======================
    # Wallets
    # ======================
    use_server_signer: bool = Field(
        default=False, description="Let a server signer sign and broadcast on our behalf"
    )
    default_network_id: str = Field(default=DEFAULT_NETWORK_ID, description="Network for new wallets")

    # ======================
    # Logging
    # ======================
    log_level: str = Field(default="INFO", description="Root log level")

    @property
    def is_configured(self) -> bool:
        """Check if API credentials are configured."""
        return bool(self.api_key_name)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "api_url": self.api_url,
            "api_key_name": "***" if self.api_key_name else "(not set)",
            "request_timeout": self.request_timeout,
            "max_network_tries": self.max_network_tries,
            "debug_api": self.debug_api,
            "default_page_limit": self.default_page_limit,
            "use_server_signer": self.use_server_signer,
            "default_network_id": self.default_network_id,
            "log_level": self.log_level,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging with the project format.

    Args:
        level: Log level name; defaults to Settings.log_level
    """
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)
