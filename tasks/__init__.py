"""
Celery tasks module
Import all tasks here so Celery can discover them
"""
from . import analysis_tasks, maintenance_tasks

__all__ = ['analysis_tasks', 'maintenance_tasks']
