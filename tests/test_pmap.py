import threading
import time

import pytest

from finance_insights.pmap import p_map


def test_preserves_input_order():
    def slow_square(x: int) -> int:
        time.sleep(0.01 * (5 - x))
        return x * x

    assert p_map(range(5), slow_square, concurrency=3) == [0, 1, 4, 9, 16]


def test_never_exceeds_concurrency():
    lock = threading.Lock()
    active = 0
    peak = 0

    def track(_x: int) -> None:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.01)
        with lock:
            active -= 1

    p_map(range(12), track, concurrency=2)
    assert peak <= 2


def test_empty_input():
    assert p_map([], lambda x: x, concurrency=4) == []


@pytest.mark.parametrize("concurrency", [0, -1, 1.5])
def test_rejects_bad_concurrency(concurrency):
    with pytest.raises(ValueError):
        p_map([1], lambda x: x, concurrency=concurrency)


def _boom(x: int) -> int:
    if x % 2:
        raise RuntimeError(f"odd {x}")
    return x


def test_fail_fast_reraises_first_error():
    with pytest.raises(RuntimeError, match="odd"):
        p_map(range(4), _boom, concurrency=1)


def test_collects_all_errors_when_not_failing_fast():
    with pytest.raises(ExceptionGroup) as ei:
        p_map(range(5), _boom, concurrency=2, stop_on_error=False)
    assert sorted(str(e) for e in ei.value.exceptions) == ["odd 1", "odd 3"]
