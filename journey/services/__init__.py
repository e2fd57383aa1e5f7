"""
Application services wiring the core logic to the storage ports.
"""

from journey.services.flows import FlowQueries
from journey.services.identity import IdentityService
from journey.services.ingest import EventIngest, IngestReport
from journey.services.results import ResultQueries
from journey.services.sessionizer import Sessionizer, SessionizerReport

__all__ = [
    "EventIngest",
    "FlowQueries",
    "IdentityService",
    "IngestReport",
    "ResultQueries",
    "Sessionizer",
    "SessionizerReport",
]
