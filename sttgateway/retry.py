import asyncio
from dataclasses import dataclass
import logging
import socket
from typing import Awaitable, Callable, TypeVar
import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

NETWORK_ERROR_PATTERNS = (
    "unable to resolve host",
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "failed to connect",
    "connection refused",
    "connection reset",
    "connection aborted",
    "network is unreachable",
    "no route to host",
    "timed out",
    "timeout",
)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0

    def delay_for(self, attempt: int) -> float:
        # Linear backoff: 1x, 2x, 3x ... the base delay
        return self.base_delay * attempt


def is_network_error(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, (socket.gaierror, socket.herror, ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return True
    message = str(exc).lower()
    return any(p in message for p in NETWORK_ERROR_PATTERNS)


def is_timeout_error(exc: BaseException) -> bool:
    return isinstance(exc, (httpx.TimeoutException, TimeoutError, asyncio.TimeoutError))


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "request",
) -> T:
    """
    Run `operation` up to `policy.max_attempts` times.

    Only network-class failures are retried, waiting `attempt * base_delay`
    seconds before the next attempt. Any other failure is raised immediately.
    When every attempt fails the last error is raised.
    """
    policy = policy or RetryPolicy()
    last_error: BaseException = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await operation()

        except asyncio.CancelledError:
            raise

        except Exception as ex:
            if not is_network_error(ex):
                logger.error(f"Failed in {label}: non-retriable error {type(ex).__name__}: {ex}")
                raise

            last_error = ex
            if attempt < policy.max_attempts:
                delay = policy.delay_for(attempt)
                logger.warning(
                    f"Network error '{ex}' in {label} (attempt {attempt}/{policy.max_attempts}), retrying in {delay}s..."
                )
                await sleep(delay)

    logger.error(
        f"Failed in {label}: Retry attempts exceeded ({policy.max_attempts} attempts)."
    )
    raise last_error
