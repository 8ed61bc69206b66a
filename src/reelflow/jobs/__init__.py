"""Background job processors and the worker pool.

Celery tasks live in ``reelflow.jobs.tasks`` and are loaded by the Celery app.
"""

from reelflow.jobs.processors import PROCESSORS, ProcessorContext, build_context
from reelflow.jobs.runner import WorkerPool, drain, execute_job, run_once

__all__ = [
    "PROCESSORS",
    "ProcessorContext",
    "WorkerPool",
    "build_context",
    "drain",
    "execute_job",
    "run_once",
]
