import pytest

from app.queue.backoff import compute_backoff_ms
from app.queue.models import Backoff, BackoffType


class TestExponentialBackoff:
    def test_doubles_per_attempt(self) -> None:
        backoff = Backoff(type=BackoffType.EXPONENTIAL, delay_ms=1000)

        delays = [compute_backoff_ms(backoff, n) for n in range(4)]

        assert delays == [1000, 2000, 4000, 8000]


class TestFixedBackoff:
    def test_constant_delay(self) -> None:
        backoff = Backoff(type=BackoffType.FIXED, delay_ms=250)

        assert compute_backoff_ms(backoff, 0) == 250
        assert compute_backoff_ms(backoff, 5) == 250


class TestInvalidInput:
    def test_negative_attempt_index_raises(self) -> None:
        with pytest.raises(ValueError):
            compute_backoff_ms(Backoff(), -1)

    def test_negative_delay_rejected(self) -> None:
        with pytest.raises(ValueError):
            Backoff(delay_ms=-5)
