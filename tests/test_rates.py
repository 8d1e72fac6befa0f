import pytest

from netmon.datatype import Process
from netmon.rates import byte_map, compute_rates


def test_rate_from_previous_cycle():
    proc = Process("curl", 42, bytes_in=3000, bytes_out=500)
    compute_rates([proc], {("curl", 42): (1000, 100)}, 2.0)
    assert proc.rate_in == 1000.0
    assert proc.rate_out == 200.0


def test_no_previous_entry_keeps_zero():
    proc = Process("curl", 42, bytes_in=3000, bytes_out=500)
    compute_rates([proc], {("curl", 43): (1000, 100)}, 2.0)
    assert (proc.rate_in, proc.rate_out) == (0.0, 0.0)


@pytest.mark.parametrize('current, previous', [
    ((10, 10), (500, 500)),
    ((0, 0), (1, 1)),
    ((10, 600), (500, 500)),
])
def test_counter_reset_clamps_to_zero(current, previous):
    proc = Process("app", 1, bytes_in=current[0], bytes_out=current[1])
    compute_rates([proc], {("app", 1): previous}, 2.0)
    assert proc.rate_in >= 0.0
    assert proc.rate_out >= 0.0
    if current[0] < previous[0]:
        assert proc.rate_in == 0.0
    if current[1] < previous[1]:
        assert proc.rate_out == 0.0


def test_rate_is_exact_delta_over_interval():
    proc = Process("app", 1, bytes_in=1_000_003, bytes_out=7)
    compute_rates([proc], {("app", 1): (3, 0)}, 4.0)
    assert proc.rate_in == (1_000_003 - 3) / 4.0
    assert proc.rate_out == 7 / 4.0


def test_non_positive_interval_leaves_rates_alone():
    proc = Process("app", 1, bytes_in=100, bytes_out=100)
    compute_rates([proc], {("app", 1): (0, 0)}, 0)
    assert (proc.rate_in, proc.rate_out) == (0.0, 0.0)


def test_identity_is_name_and_pid():
    a = Process("worker", 10, bytes_in=200)
    b = Process("other", 10, bytes_in=200)
    compute_rates([a, b], {("worker", 10): (100, 0)}, 1.0)
    assert a.rate_in == 100.0
    assert b.rate_in == 0.0


def test_byte_map():
    processes = [Process("a", 1, bytes_in=5, bytes_out=6), Process("b", 0, bytes_in=7, bytes_out=8)]
    assert byte_map(processes) == {("a", 1): (5, 6), ("b", 0): (7, 8)}
