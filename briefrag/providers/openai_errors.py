"""Translation of ``openai`` SDK exceptions into briefrag errors.

Shared by the embedding and completion adapters so both classify
failures the same way:

    openai.APITimeoutError      -> ProviderError (retryable)
    openai.RateLimitError       -> RateLimitError
    openai.APIConnectionError   -> ProviderError (retryable)
    openai.APIStatusError       -> ProviderError (retryable when 5xx)
    any other openai.APIError   -> ProviderError
"""

from __future__ import annotations

import openai

from briefrag.utils.errors import ProviderError, RateLimitError


def map_openai_error(exc: openai.APIError, provider_name: str, operation: str) -> ProviderError:
    """Return the briefrag error for an SDK exception raised during *operation*."""
    if isinstance(exc, openai.APITimeoutError):
        return ProviderError(
            message=f"{operation} timed out",
            provider_name=provider_name,
            retryable=True,
        )
    if isinstance(exc, openai.RateLimitError):
        return RateLimitError(
            message=f"{operation} rate limited: {exc.message}",
            provider_name=provider_name,
            body=_body_text(exc),
        )
    if isinstance(exc, openai.APIConnectionError):
        return ProviderError(
            message=f"{operation} connection failed: {exc.message}",
            provider_name=provider_name,
            retryable=True,
        )
    if isinstance(exc, openai.APIStatusError):
        return ProviderError(
            message=f"{operation} failed with HTTP {exc.status_code}: {exc.message}",
            provider_name=provider_name,
            status_code=exc.status_code,
            body=_body_text(exc),
            retryable=exc.status_code >= 500,
        )
    return ProviderError(
        message=f"{operation} failed: {exc}",
        provider_name=provider_name,
    )


def _body_text(exc: openai.APIError) -> str | None:
    if exc.body is None:
        return None
    return exc.body if isinstance(exc.body, str) else repr(exc.body)
