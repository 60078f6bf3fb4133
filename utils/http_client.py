"""
HTTP client utilities for talking to the inference server.
Every chat turn gets its own httpx client; nothing is shared across requests.
"""
import httpx


def build_timeout(total: float, connect: float | None = None) -> httpx.Timeout:
    """
    Build an httpx timeout where read/write/pool follow the total budget.

    Args:
        total: Budget for read, write and pool acquisition
        connect: Optional shorter budget for establishing the TCP connection

    Returns:
        Configured httpx.Timeout
    """
    return httpx.Timeout(total, connect=connect if connect is not None else total)


def create_upstream_client(
    timeout: httpx.Timeout | float,
    transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """
    Create a fresh httpx client for a single upstream exchange.

    Features:
    - No keep-alive pool (each turn owns its connection)
    - JSON accept header for OpenAI-compatible servers

    Args:
        timeout: Timeout configuration for the exchange
        transport: Optional transport override (used by tests)

    Returns:
        Configured httpx.AsyncClient; callers must close it
    """
    limits = httpx.Limits(
        max_connections=1,
        max_keepalive_connections=0
    )

    return httpx.AsyncClient(
        timeout=timeout,
        limits=limits,
        transport=transport,
        headers={"Accept": "application/json"}
    )
