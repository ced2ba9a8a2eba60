"""Remote service client."""

from custodia.api.client import ApiClient

__all__ = ["ApiClient"]
