"""External service integrations."""

from .tutor_client import (
    TutorServiceError,
    TutorRequestRejected,
    TutorUpstreamError,
    BaseTutorClient,
    HttpTutorClient,
    LocalTutorClient,
    build_payload,
)
from .log_sink import LogSink

__all__ = [
    "TutorServiceError",
    "TutorRequestRejected",
    "TutorUpstreamError",
    "BaseTutorClient",
    "HttpTutorClient",
    "LocalTutorClient",
    "build_payload",
    "LogSink",
]
