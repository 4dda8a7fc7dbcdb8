from pymongo.errors import AutoReconnect, NetworkTimeout
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .logger_utils import logger


def on_retry_callback(retry_state):
    """Callback function to log retry attempts."""
    logger.warning(
        f"Retrying function {getattr(retry_state.fn, '__name__', retry_state.fn)}, "
        f"attempt {retry_state.attempt_number} after {retry_state.seconds_since_start:.2f}s..."
    )


def gateway_retry(attempts: int = 3):
    """
    Retry decorator for store calls.

    Only transient network errors are retried; the last error is re-raised
    so the caller can translate it.
    """
    return retry(
        retry=retry_if_exception_type((AutoReconnect, NetworkTimeout)),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        stop=stop_after_attempt(attempts),
        before_sleep=on_retry_callback,
        reraise=True,
    )
