"""
Service Layer Package

Business logic between the API layer and the database queries:
- GamificationService: drink logs, task completions, points, achievements
- ProgressService: statistics, progress reports, mood and trigger logs
"""

from recovery.services.container import ServiceContainer, get_container, init_container

__all__ = [
    "ServiceContainer",
    "get_container",
    "init_container",
]
