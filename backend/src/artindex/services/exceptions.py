"""Service error hierarchy for provider I/O and catalog promotion.

This module defines the exception hierarchy for service-level errors:
- ServiceError: Base for all service errors
- TransientError: Retryable errors (network, rate limits, timeouts)
- PermanentError: Non-retryable errors (authentication, bad requests)

Provider and promotion errors mix a domain base (ProviderError,
PromotionError) with the retry classification.
"""


class ServiceError(Exception):
    """Base exception for all service errors."""

    pass


class TransientError(ServiceError):
    """Transient error that may succeed on retry.

    Examples:
    - Network timeouts
    - Rate limit exceeded (429)
    - Service unavailable (5xx)
    """

    pass


class PermanentError(ServiceError):
    """Permanent error that will not succeed on retry.

    Examples:
    - Authentication failures (401, 403)
    - Invalid request parameters (400, 404)
    - GraphQL query errors
    """

    pass


# Provider-specific errors
class ProviderError(ServiceError):
    """Base exception for data provider errors."""

    pass


class ProviderRateLimitError(ProviderError, TransientError):
    """Rate limit exceeded (429).

    Attributes:
        retry_after: Seconds the provider asked us to wait, if it said
    """

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class ProviderNetworkError(ProviderError, TransientError):
    """Network timeout, transport failure or service unavailable."""

    pass


class ProviderAuthError(ProviderError, PermanentError):
    """Authentication failure (401, 403)."""

    pass


class ProviderRequestError(ProviderError, PermanentError):
    """Request rejected by the provider (other 4xx, GraphQL errors)."""

    pass


# Promotion-specific errors
class PromotionError(ServiceError):
    """Base exception for staged record promotion errors."""

    pass


class IndexRecordNotFoundError(PromotionError, PermanentError):
    """Staged ArtworkIndex record does not exist."""

    pass


class MissingTokenIdentityError(PromotionError, PermanentError):
    """Record lacks a contract address or token id and cannot be keyed."""

    pass
