# Application Stats Package
from .progress import ProgressReport, build_progress, count_mastered
from .streak import update_stats

__all__ = ["ProgressReport", "build_progress", "count_mastered", "update_stats"]
