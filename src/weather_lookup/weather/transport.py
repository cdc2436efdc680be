"""Shared HTTP plumbing for the upstream API clients."""

import logging
from typing import Any, Dict, Optional

import httpx

from weather_lookup.errors import DecodeError, NetworkError

logger = logging.getLogger(__name__)


def create_http_client(user_agent: str, timeout: float) -> httpx.AsyncClient:
    """Create an async HTTP client that identifies itself upstream.

    Args:
        user_agent: User-Agent header sent with every request
        timeout: Timeout in seconds applied to connect, read and write

    Returns:
        Configured httpx.AsyncClient
    """
    return httpx.AsyncClient(
        headers={"User-Agent": user_agent},
        timeout=timeout
    )


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    service: str = "upstream"
) -> Any:
    """GET a URL and return its decoded JSON body.

    Args:
        client: HTTP client to send the request with
        url: Request URL
        params: Optional query parameters
        service: Name of the upstream service, used in logs and errors

    Returns:
        Decoded JSON payload

    Raises:
        NetworkError: On timeouts, transport failures and non-2xx statuses
        DecodeError: If the body is not valid JSON
    """
    try:
        response = await client.get(url, params=params)
        response.raise_for_status()
    except httpx.TimeoutException as e:
        logger.error(f"Timeout calling {service} API: {e}")
        raise NetworkError(f"{service} request timed out") from e
    except httpx.HTTPStatusError as e:
        logger.error(f"HTTP error from {service} API: {e.response.status_code} - {e.response.text}")
        raise NetworkError(f"{service} returned HTTP {e.response.status_code}") from e
    except httpx.RequestError as e:
        logger.error(f"Request error to {service} API: {e}")
        raise NetworkError(f"{service} request failed: {e}") from e

    try:
        return response.json()
    except ValueError as e:
        logger.error(f"Non-JSON response from {service} API: {e}")
        raise DecodeError(f"{service} returned a non-JSON body") from e
