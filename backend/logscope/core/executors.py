# logscope/core/executors.py
"""
Shared worker pool for CPU-bound analysis work.

Timeline binning of large inputs runs here so the event loop keeps serving
requests. The pool is bounded by settings.ANALYSIS_WORKERS and shut down by the
application on exit.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from logscope.core.config import settings

analysis_executor = ThreadPoolExecutor(
    max_workers=settings.ANALYSIS_WORKERS,
    thread_name_prefix="logscope-analysis",
)
