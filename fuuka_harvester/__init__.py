"""Harvest every post an identity made on a FoolFuuka archive.

Supports:
  • JSON search API pagination with an HTML search fallback
  • Server-directed 429 waits, per-page retries and a circuit breaker
  • Crash-safe checkpoints with resume
  • Flat JSON, threaded JSON and JSONL exports
"""

from .config import GlobalConfig, Query, ScrapeConfig
from .engine import Post, ScrapeResult, ScrapeState, Thread
from .orchestrator import MissingIdentityError, Orchestrator, RunReport, run

__version__ = "1.0.0"

__all__ = [
    "GlobalConfig",
    "MissingIdentityError",
    "Orchestrator",
    "Post",
    "Query",
    "RunReport",
    "ScrapeConfig",
    "ScrapeResult",
    "ScrapeState",
    "Thread",
    "run",
]
