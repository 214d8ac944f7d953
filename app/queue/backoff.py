from app.queue.models import Backoff, BackoffType


def compute_backoff_ms(backoff: Backoff, attempt_index: int) -> int:
    """Delay before the next attempt, given the zero-based index of the attempt that failed.

    Exponential: delay_ms * 2**attempt_index (1000, 2000, 4000, ...).
    Fixed: delay_ms every time.
    """
    if attempt_index < 0:
        raise ValueError("attempt_index must be >= 0")
    if backoff.type == BackoffType.FIXED:
        return backoff.delay_ms
    return backoff.delay_ms * (2**attempt_index)
