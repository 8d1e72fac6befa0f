from typing import Iterable, Optional

import psutil

from .datatype import Process


def get_exe_path(pid: int) -> Optional[str]:
    try:
        return psutil.Process(pid).exe() or None
    except (psutil.Error, OSError):
        return None


def enrich_process_paths(processes: Iterable[Process]) -> None:
    """Fill in the executable path of every process with a known pid."""
    for proc in processes:
        if proc.pid == 0:
            continue
        proc.path = get_exe_path(proc.pid)
