"""Job dispatch for the entity operations."""

from __future__ import annotations

from .dispatcher import JobDispatcher, JobOutcome, UnknownJobTypeError
from .handlers import OPERATIONS, build_handlers, job_name, register_handlers
from .schema import ElementJob, JobStatus, MergeJob, ResolveJob

__all__ = [
    "OPERATIONS",
    "ElementJob",
    "JobDispatcher",
    "JobOutcome",
    "JobStatus",
    "MergeJob",
    "ResolveJob",
    "UnknownJobTypeError",
    "build_handlers",
    "job_name",
    "register_handlers",
]
