"""SQL Server client factory.

``wait_for_server()`` keeps trying to open a connection until SQL Server
answers or the connect deadline passes.  The returned adapter owns its
connection pool; the caller must ``close()`` it.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from sqlalchemy.exc import InterfaceError, OperationalError

from bak_converter.adapters.base import SqlServerClient
from bak_converter.adapters.mssql import AsyncSqlServerAdapter
from bak_converter.config.models import ConverterConfig, ServerProfile
from bak_converter.errors import ConnectionTimeout

logger = logging.getLogger(__name__)

# Failures that mean "server not reachable yet" -- retried.  Anything else
# propagates on the first attempt.
CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    InterfaceError,
    OperationalError,
    OSError,
)

AdapterFactory = Callable[[ServerProfile], SqlServerClient]


async def wait_for_server(
    config: ConverterConfig,
    *,
    timeout: float | None = None,
    retry_interval: float | None = None,
    adapter_factory: AdapterFactory | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> SqlServerClient:
    """Open a SQL Server client, retrying while the server is unavailable.

    Args:
        config: Converter configuration (server profile, deadline, interval).
        timeout: Deadline in seconds (default: ``config.connect_timeout``).
            Zero or less fails immediately without a connection attempt.
        retry_interval: Seconds to wait between attempts (default:
            ``config.retry_interval``).
        adapter_factory: Builds a client from a ``ServerProfile`` (default:
            ``AsyncSqlServerAdapter.from_profile``).
        sleep: Awaitable sleep used between attempts.

    Returns:
        Connected ``SqlServerClient``.

    Raises:
        ConnectionTimeout: If the deadline passes before a connection succeeds.
        Exception: Any non-connection error from the first failing attempt,
            unchanged.

    Example:
        client = await wait_for_server(config, timeout=30)
        try:
            ...
        finally:
            await client.close()
    """
    timeout = config.connect_timeout if timeout is None else timeout
    interval = config.retry_interval if retry_interval is None else retry_interval
    factory = adapter_factory or AsyncSqlServerAdapter.from_profile

    if timeout <= 0:
        raise ConnectionTimeout(
            f"Connection Timeout: deadline of {timeout} seconds already elapsed"
        )

    deadline = time.monotonic() + timeout
    attempt = 0

    while True:
        attempt += 1
        client = factory(config.server)
        try:
            await client.test_connection()
        except CONNECTION_ERRORS as exc:
            await _discard(client)
            if time.monotonic() >= deadline:
                raise ConnectionTimeout(
                    f"Connection Timeout: failed to connect to SQL Server at "
                    f"{config.server.host} within {timeout:g} seconds"
                ) from exc
            logger.warning(
                "Connection attempt %d to %s failed (%s), retrying in %gs",
                attempt,
                config.server.host,
                exc,
                interval,
            )
            await sleep(interval)
            continue
        except Exception:
            await _discard(client)
            raise

        logger.info("Connected to SQL Server at %s after %d attempt(s)", config.server.host, attempt)
        return client


async def _discard(client: SqlServerClient) -> None:
    try:
        await client.close()
    except Exception:
        logger.debug("Failed to dispose of unusable client", exc_info=True)
