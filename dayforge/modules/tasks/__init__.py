"""Tasks and priority scoring."""

from dayforge.modules.tasks.prioritizer import calculate_priority
from dayforge.modules.tasks.service import TaskService

__all__ = ["TaskService", "calculate_priority"]
