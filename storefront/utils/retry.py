# storefront/utils/retry.py
import redis
import stripe
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# zerwane polaczenie, 429 i 5xx od stripe, reszta (4xx) nie ma sensu ponawiac
TRANSIENT_GATEWAY_ERRORS = (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)


def _log_retry(retry_state) -> None:
    exc = retry_state.outcome.exception()
    logger.warning(
        f"{retry_state.fn.__qualname__} attempt {retry_state.attempt_number} failed: {exc}, retrying"
    )


def gateway_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(TRANSIENT_GATEWAY_ERRORS),
        before_sleep=_log_retry,
    )


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type((redis.ConnectionError, redis.TimeoutError)),
        before_sleep=_log_retry,
    )
