"""이벤트 핸들러 패키지."""

from .stats_handler import run_stats_consumer

__all__ = ["run_stats_consumer"]
