"""Reconnect delay policy."""

MAX_RETRY_DELAY = 120_000
DEFAULT_RETRY_INTERVAL = 5_000
# Failures retried at the base interval before the delay starts to grow.
FAILURE_GRACE = 12
# Consecutive hard failures after which the device is shown as unreachable.
OFFLINE_THRESHOLD = 3


def retry_delay(failures: int, base_interval: int = DEFAULT_RETRY_INTERVAL) -> int:
    """
    Return the delay in milliseconds before the next reconnect attempt.

    :param failures: consecutive hard failures so far
    :param base_interval: base retry interval in milliseconds
    """
    return min(MAX_RETRY_DELAY, base_interval * max(1, failures - FAILURE_GRACE))
