"""
Логирование FileDrop
"""

from .analytics import AnalyticsLogger, analytics_logger

__all__ = ["AnalyticsLogger", "analytics_logger"]
