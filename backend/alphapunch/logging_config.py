import logging
import os
import time
from typing import Dict, Optional, Union

logging.basicConfig(
    level=os.getenv("ALPHAPUNCH_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

log = logging.getLogger("alphapunch")

MetricValue = Union[int, float]

# Counters only grow; gauges hold the last observed value.
# Both are written from the event loop thread only.
_counters: Dict[str, int] = {}
_gauges: Dict[str, float] = {}


def inc_metric(name: str, amount: int = 1) -> None:
    _counters[name] = _counters.get(name, 0) + amount


def set_metric(name: str, value: MetricValue) -> None:
    _gauges[name] = float(value)


def record_timing(name: str, elapsed_ms: float) -> None:
    """Keep the last and the slowest duration of a stage, plus how often it ran."""
    elapsed_ms = round(elapsed_ms, 1)
    _gauges[f"time_ms_last_{name}"] = elapsed_ms
    _gauges[f"time_ms_max_{name}"] = max(_gauges.get(f"time_ms_max_{name}", 0.0), elapsed_ms)
    inc_metric(f"runs_{name}")
    log.debug(f"{name} took {elapsed_ms:.1f}ms")


def get_metrics_snapshot() -> Dict[str, MetricValue]:
    snapshot: Dict[str, MetricValue] = dict(_gauges)
    snapshot.update(_counters)
    return snapshot


def reset_metrics() -> None:
    _counters.clear()
    _gauges.clear()


class Timer:
    """
    Wall-clock stopwatch for a block of work.

    It only measures; the caller decides where the figure is recorded,
    so it is safe to use inside worker threads.
    """

    def __init__(self):
        self._start: Optional[float] = None
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000
