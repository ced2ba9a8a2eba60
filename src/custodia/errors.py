"""Exception hierarchy for wallet, signing and operation failures.

Errors fall into three groups that callers are expected to treat differently:

- Local caller errors that will never succeed on retry
  (InvalidSeedError, AlreadySignedError, destination errors, ...)
- OperationTimeoutError: the operation may still resolve, call wait() again
- APIError: the remote service rejected or failed the request
"""

import json
from decimal import Decimal
from typing import Optional

import httpx


class CustodiaError(Exception):
    """Base class for all custodia errors."""


# ======================
# Seeds and keys
# ======================


class InvalidSeedError(CustodiaError, ValueError):
    """Raised when a seed is present but is not exactly 32 bytes."""


class SeedNotLoadedError(CustodiaError):
    """Raised when an operation needs the wallet seed but it was never loaded."""

    def __init__(self, message: str = "Wallet seed is not loaded"):
        super().__init__(message)


class KeyMismatchError(CustodiaError):
    """Raised when a loaded seed does not reproduce a registered address."""


# ======================
# Signing
# ======================


class AlreadySignedError(CustodiaError):
    """Raised when signing something that already carries a signature."""

    def __init__(self, message: str = "Transaction has already been signed"):
        super().__init__(message)


class TransactionNotSignedError(CustodiaError):
    """Raised when broadcasting an operation with an unsigned transaction."""

    def __init__(self, message: str = "Transaction must be signed before broadcast"):
        super().__init__(message)


class AddressCannotSignError(CustodiaError):
    """Raised when an address without key material is asked to sign."""

    def __init__(self, message: str = "Address cannot sign transactions: no private key loaded"):
        super().__init__(message)


class InsufficientFundsError(CustodiaError):
    """Raised when the local balance pre-check fails."""

    def __init__(self, expected: Decimal, exact: Decimal):
        self.expected = expected
        self.exact = exact
        super().__init__(f"Insufficient funds: {expected} requested, but only {exact} available")


class ExternalOperationError(CustodiaError):
    """Raised when a step only wallet-managed operations support is asked of an external one."""

    def __init__(self, label: str, action: str):
        self.label = label
        self.action = action
        super().__init__(f"Cannot {action} {label}: it is not managed by one of our wallets")


# ======================
# Destinations
# ======================


class DestinationError(CustodiaError, ValueError):
    """Base class for destination resolution failures."""


class NetworkMismatchError(DestinationError):
    """Raised when a destination lives on a different network than the operation."""

    def __init__(self, kind: str, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"destination network must match {kind}: expected {expected}, got {actual}")


class NoDefaultAddressError(DestinationError):
    """Raised when a wallet used as destination has no addresses yet."""

    def __init__(self, wallet_id: Optional[str] = None):
        super().__init__(f"Wallet {wallet_id} has no default address")


class UnsupportedDestinationTypeError(DestinationError, TypeError):
    """Raised when a destination is not a str, Address, Wallet or Destination."""

    def __init__(self, type_name: str):
        super().__init__(f"unsupported destination type: {type_name}")


# ======================
# Polling
# ======================


class OperationTimeoutError(CustodiaError, TimeoutError):
    """Raised when wait() exceeds its deadline before a terminal status.

    The operation itself may still complete later.
    """

    def __init__(self, label: str, timeout: float, elapsed: float):
        self.label = label
        self.timeout = timeout
        self.elapsed = elapsed
        super().__init__(f"{label} timed out after {elapsed:.3f}s (timeout {timeout}s)")


# ======================
# Remote service
# ======================


class APIConnectionError(CustodiaError):
    """Raised when the remote service could not be reached at all."""


class APIError(CustodiaError):
    """An error returned by the remote service.

    Attributes:
        http_code: HTTP status code of the response
        api_code: Service error code (e.g. "invalid_wallet_id")
        api_message: Service error message
        correlation_id: Request correlation ID, if the service returned one
    """

    def __init__(
        self,
        http_code: Optional[int] = None,
        api_code: Optional[str] = None,
        api_message: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ):
        self.http_code = http_code
        self.api_code = api_code
        self.api_message = api_message
        self.correlation_id = correlation_id
        super().__init__(str(self))

    @classmethod
    def from_response(cls, response: httpx.Response) -> "APIError":
        """Build the most specific APIError for an error response."""
        api_code = None
        api_message = None
        correlation_id = None

        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError):
            body = None

        if isinstance(body, dict):
            api_code = body.get("code")
            api_message = body.get("message")
            correlation_id = body.get("correlation_id")

        error_class = API_ERROR_CLASSES.get(api_code, cls) if api_code else cls
        return error_class(
            http_code=response.status_code,
            api_code=api_code,
            api_message=api_message or response.reason_phrase,
            correlation_id=correlation_id,
        )

    @property
    def retryable(self) -> bool:
        return self.http_code is not None and (self.http_code == 429 or self.http_code >= 500)

    def __str__(self) -> str:
        message = "API Error"
        if self.http_code:
            message += f" | HTTP status code: {self.http_code}"
        if self.api_code:
            message += f" | API error code: {self.api_code}"
        if self.api_message:
            message += f" | API error message: {self.api_message}"
        if self.correlation_id:
            message += f" | Correlation ID: {self.correlation_id}"
        return message


class UnimplementedError(APIError):
    pass


class UnauthorizedError(APIError):
    pass


class InternalError(APIError):
    pass


class InvalidWalletIDError(APIError):
    pass


class InvalidAddressIDError(APIError):
    pass


class InvalidPageError(APIError):
    pass


class MalformedRequestError(APIError):
    pass


class UnsupportedAssetError(APIError):
    pass


class AlreadyExistsError(APIError):
    pass


class FaucetLimitReachedError(APIError):
    pass


class ResourceExhaustedError(APIError):
    pass


class InvalidSignedPayloadError(APIError):
    pass


class NetworkFeatureUnsupportedError(APIError):
    pass


API_ERROR_CLASSES: dict[str, type[APIError]] = {
    "unimplemented": UnimplementedError,
    "unauthorized": UnauthorizedError,
    "internal": InternalError,
    "invalid_wallet_id": InvalidWalletIDError,
    "invalid_address_id": InvalidAddressIDError,
    "invalid_page": InvalidPageError,
    "malformed_request": MalformedRequestError,
    "unsupported_asset": UnsupportedAssetError,
    "already_exists": AlreadyExistsError,
    "faucet_limit_reached": FaucetLimitReachedError,
    "resource_exhausted": ResourceExhaustedError,
    "invalid_signed_payload": InvalidSignedPayloadError,
    "network_feature_unsupported": NetworkFeatureUnsupportedError,
}


def is_retryable(exc: BaseException) -> bool:
    """Return True when the failed call may succeed if attempted again."""
    if isinstance(exc, (OperationTimeoutError, APIConnectionError)):
        return True
    if isinstance(exc, APIError):
        return exc.retryable
    return False
