"""Zero-knowledge proof generation pipeline around nargo and bb."""

from .artifact_store import ArtifactStore
from .exceptions import (
    ArtifactDecodeError,
    ArtifactIOError,
    ArtifactNotFoundError,
    ConstraintViolationError,
    MissingArtifactError,
    ProofEngineError,
    ToolFailureError,
    ToolInvocationError,
    ToolTimeoutError,
    WorkspaceError,
)
from .models import (
    CircuitBounds,
    FailureKind,
    PipelineStage,
    ProofRequest,
    ProofResponse,
    StageEvent,
)
from .pipeline import ProofPipeline
from .public_inputs import extract_public_inputs
from .tool_invoker import ExternalTool, ToolResult
from .workspace import WorkspaceAllocator

__all__ = [
    "ArtifactStore",
    "ExternalTool",
    "ToolResult",
    "WorkspaceAllocator",
    "ProofPipeline",
    "extract_public_inputs",
    "CircuitBounds",
    "FailureKind",
    "PipelineStage",
    "ProofRequest",
    "ProofResponse",
    "StageEvent",
    "ProofEngineError",
    "ArtifactIOError",
    "ArtifactDecodeError",
    "ArtifactNotFoundError",
    "MissingArtifactError",
    "ConstraintViolationError",
    "ToolFailureError",
    "ToolInvocationError",
    "ToolTimeoutError",
    "WorkspaceError",
]
