"""HTTP error mapping shared by the httpx-based adapters."""

from typing import Any

import httpx

from reelflow.errors import ProviderError, ProviderNotConfiguredError


def safe_json(response: httpx.Response) -> dict[str, Any] | None:
    """Safely parse a JSON response body."""
    try:
        return response.json()  # type: ignore[no-any-return]
    except ValueError:
        return None


def raise_for_provider(response: httpx.Response, provider: str) -> None:
    """Translate an unsuccessful response into the reelflow error hierarchy.

    401/403 mean the credentials are wrong and retrying will not help. Every
    other failure (429, 5xx, unexpected 4xx) is treated as transient.
    """
    if response.is_success:
        return

    data = safe_json(response) or {}
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message") or response.text
    else:
        message = str(error or data.get("detail") or response.text)

    if response.status_code in (401, 403):
        raise ProviderNotConfiguredError(
            f"{provider} rejected credentials ({response.status_code}): {message}"
        )
    raise ProviderError(f"{provider} API error {response.status_code}: {message}")
