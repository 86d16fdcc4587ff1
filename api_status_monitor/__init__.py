"""
API Status Monitor - Scheduled HTTP health checks with change notifications.
"""

__version__ = "0.1.0"
