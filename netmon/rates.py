from typing import Dict, Iterable, Tuple

from .datatype import Process, ProcessKey

ByteMap = Dict[ProcessKey, Tuple[int, int]]


def compute_rates(processes: Iterable[Process], previous: ByteMap, interval_secs: float) -> None:
    """
    Fill in ``rate_in``/``rate_out`` from the counters of the previous cycle.

    Processes without a previous entry keep a rate of 0.0. A counter that went
    backwards (e.g. the process restarted under the same pid) gives 0.0.
    """
    if interval_secs <= 0:
        return
    for proc in processes:
        prev = previous.get(proc.key)
        if prev is None:
            continue
        prev_in, prev_out = prev
        proc.rate_in = max(0, proc.bytes_in - prev_in) / interval_secs
        proc.rate_out = max(0, proc.bytes_out - prev_out) / interval_secs


def byte_map(processes: Iterable[Process]) -> ByteMap:
    return {p.key: (p.bytes_in, p.bytes_out) for p in processes}
