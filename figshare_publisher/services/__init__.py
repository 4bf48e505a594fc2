"""Publishing services."""

from .upload_job import ClientFactory, RemoteUploadJob
from .upload_models import JobFailure, JobResult, JobState, UploadSpec

__all__ = [
    "ClientFactory",
    "JobFailure",
    "JobResult",
    "JobState",
    "RemoteUploadJob",
    "UploadSpec",
]
