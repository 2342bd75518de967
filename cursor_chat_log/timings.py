"""Timing utilities for export profiling.

Enabled via the CURSOR_CHAT_LOG_DEBUG_TIMING environment variable
("1", "true" or "yes").
"""

import os
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Union


def is_timing_enabled() -> bool:
    return os.getenv("CURSOR_CHAT_LOG_DEBUG_TIMING", "").lower() in (
        "1",
        "true",
        "yes",
    )


@contextmanager
def log_timing(
    phase: Union[str, Callable[[], str]],
    t_start: Optional[float] = None,
) -> Iterator[None]:
    """Context manager for logging phase timing.

    Args:
        phase: Phase name, or a callable returning it (evaluated at the end)
        t_start: Optional start time for reporting total elapsed time

    Example:
        with log_timing(lambda: f"Export ({len(paths)} chats)", t_start):
            paths = export()
    """
    if not is_timing_enabled():
        yield
        return

    t_phase_start = time.time()
    try:
        yield
    finally:
        t_now = time.time()
        phase_time = t_now - t_phase_start
        phase_name = phase() if callable(phase) else phase
        if t_start is not None:
            print(
                f"[TIMING] {phase_name:40s} {phase_time:8.3f}s (total: {t_now - t_start:8.3f}s)",
                flush=True,
            )
        else:
            print(f"[TIMING] {phase_name:40s} {phase_time:8.3f}s", flush=True)
