"""
Background Jobs Module

Handles scheduled tasks for:
- Low stock monitoring
"""

from app.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler
from app.jobs.inventory_jobs import check_low_stock

__all__ = [
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
    "check_low_stock",
]
