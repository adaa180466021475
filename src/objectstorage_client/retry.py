from objectstorage_client.errors import ClientTransportError
from objectstorage_client.errors import InternalError
from objectstorage_client.errors import ObjectStorageClientError
from objectstorage_client.errors import ServerTransportError
from objectstorage_client.interfaces import IRequestExecutor
from zope.interface import implementer

import asyncio
import enum
import httpx
import logging


logger = logging.getLogger(__name__)

# name: (default, min, max); delays and timeouts in milliseconds
RETRIES_COUNT = (3, 0, 10)
RETRY_DELAY = (5000, 0, 10000)
REQUEST_TIMEOUT = (10000, 500, 20000)

MAX_BACKOFF_DELAY = 10000
BACKOFF_STEP = 1000


def _bounded(name, value, limits):
    default, low, high = limits
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        logger.debug("Invalid %s=%r, using default %s", name, value, default)
        return default
    if number < low or number > high:
        logger.debug(
            "%s=%s is outside [%s, %s], using default %s", name, number, low, high, default
        )
        return default
    return number


def fixed_backoff(attempt_index, retry_delay):
    return retry_delay


def linear_backoff(attempt_index, retry_delay):
    """Grow the delay by one second per attempt, capped at ten seconds."""
    return min(retry_delay + attempt_index * BACKOFF_STEP, MAX_BACKOFF_DELAY)


class RetryPolicy:
    """Retry tunables for one logical storage operation.

    Out-of-range or unparsable values are replaced by the defaults rather
    than rejected.
    """

    def __init__(
        self,
        retries_count=None,
        retry_delay=None,
        request_timeout=None,
        timeout_consumes_retry=True,
        backoff=fixed_backoff,
    ):
        self.retries_count = _bounded("retries_count", retries_count, RETRIES_COUNT)
        self.retry_delay = _bounded("retry_delay", retry_delay, RETRY_DELAY)
        self.request_timeout = _bounded("request_timeout", request_timeout, REQUEST_TIMEOUT)
        self.timeout_consumes_retry = timeout_consumes_retry
        self.backoff = backoff

    def __repr__(self):
        return (
            f"<RetryPolicy retries_count={self.retries_count} "
            f"retry_delay={self.retry_delay} request_timeout={self.request_timeout}>"
        )

    @property
    def max_attempts(self):
        return max(self.retries_count, 1)

    @property
    def request_timeout_seconds(self):
        return self.request_timeout / 1000

    def delay_seconds(self, attempt_index):
        return self.backoff(attempt_index, self.retry_delay) / 1000

    def replace(self, **changes):
        values = {
            "retries_count": self.retries_count,
            "retry_delay": self.retry_delay,
            "request_timeout": self.request_timeout,
            "timeout_consumes_retry": self.timeout_consumes_retry,
            "backoff": self.backoff,
        }
        values.update(changes)
        return RetryPolicy(**values)


class Outcome(enum.Enum):
    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    RETRYABLE = "retryable"
    INTERNAL = "internal"


def classify(response, error):
    if error is not None:
        if isinstance(error, (httpx.TransportError, asyncio.TimeoutError)):
            return Outcome.RETRYABLE
        return Outcome.INTERNAL
    if response.status_code >= 500:
        return Outcome.RETRYABLE
    if response.status_code >= 400:
        return Outcome.CLIENT_ERROR
    return Outcome.SUCCESS


def _is_timeout(error):
    return isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError))


def _describe(response, error):
    if error is not None:
        return repr(error)
    return f"{response.status_code} ({response.reason_phrase})"


@implementer(IRequestExecutor)
class RequestExecutor:
    """Runs one HTTP call per attempt until success or exhaustion.

    ``attempt`` is a coroutine function taking the 0-based attempt index and
    returning an ``httpx.Response``. It must build a fresh request body on
    every call. Transport failures and 5xx responses are retried, 4xx
    responses end the loop at once, and anything else is reported as an
    internal error. Errors raised by the client itself (missing
    credentials, ...) pass straight through.
    """

    def __init__(self, policy=None, sleep=asyncio.sleep):
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def execute(self, attempt, policy=None):
        policy = policy or self.policy
        current_retries = 0
        free_timeouts = 0
        index = 0
        while True:
            response = error = None
            try:
                response = await asyncio.wait_for(
                    attempt(index), timeout=policy.request_timeout_seconds
                )
            except ObjectStorageClientError:
                raise
            except Exception as e:
                error = e
            outcome = classify(response, error)
            if outcome is not Outcome.RETRYABLE:
                break
            if _is_timeout(error) and not policy.timeout_consumes_retry:
                if free_timeouts >= policy.max_attempts - 1:
                    break
                free_timeouts += 1
            else:
                if current_retries >= policy.max_attempts - 1:
                    break
                current_retries += 1
            logger.warning(
                "Error during object request: %s",
                _describe(response, error),
                extra={
                    "attempt": index,
                    "status": response.status_code if response is not None else None,
                },
            )
            if response is not None:
                await response.aclose()
            await self._sleep(policy.delay_seconds(index))
            index += 1

        if outcome is Outcome.SUCCESS:
            return response
        if response is not None:
            await response.aclose()
        raise self._error_for(outcome, response, error) from error

    @staticmethod
    def _error_for(outcome, response, error):
        if outcome is Outcome.CLIENT_ERROR:
            return ClientTransportError(
                f"Client error during request: {_describe(response, None)}",
                status=response.status_code,
            )
        if outcome is Outcome.RETRYABLE:
            status = response.status_code if response is not None else None
            return ServerTransportError(
                f"Server error during request: {_describe(response, error)}",
                status=status,
                cause=error,
            )
        return InternalError(f"Internal error during request: {error!r}", cause=error)
