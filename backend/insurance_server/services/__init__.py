"""Service layer: client sessions, result persistence and housekeeping."""

from .pipeline_factory import build_pipeline, get_pipeline, reset_pipeline
from .result_store import ResultStore, SavedResult
from .session import InputError, ProofSession, parse_unsigned

__all__ = [
    "build_pipeline",
    "get_pipeline",
    "reset_pipeline",
    "ResultStore",
    "SavedResult",
    "InputError",
    "ProofSession",
    "parse_unsigned",
]
