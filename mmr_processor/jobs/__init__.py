"""
MMR Job Orchestration Package
"""

from .job_store import JobStore, InMemoryJobStore, SQLiteJobStore
from .job_tracker import JobTracker
from .job_queue import JobQueue, calculate_priority
from .mmr_worker import MMRWorker
from .mmr_service import MMRService

__all__ = [
    'JobStore',
    'InMemoryJobStore',
    'SQLiteJobStore',
    'JobTracker',
    'JobQueue',
    'calculate_priority',
    'MMRWorker',
    'MMRService'
]
