"""Run orchestration: window planning, fetching with retries, and process wiring."""

from adrind.orchestration.fetcher import FetchResult, WindowFetcher, backoff_delay
from adrind.orchestration.planning import group_windows, iter_chunks, plan_windows

__all__ = [
    "FetchResult",
    "WindowFetcher",
    "backoff_delay",
    "group_windows",
    "iter_chunks",
    "plan_windows",
]
