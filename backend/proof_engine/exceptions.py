"""Custom exceptions for the proof generation pipeline."""

from typing import Any


class ProofEngineError(Exception):
    """Base exception for proof pipeline errors.

    Every subclass maps onto a failure category reported to the client.
    """

    failure_kind = "internal"

    def __init__(self, message: str, details: Any = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ArtifactIOError(ProofEngineError):
    """Local filesystem failure while reading or writing an artifact."""

    failure_kind = "io_error"


class ArtifactDecodeError(ArtifactIOError):
    """Artifact exists but its bytes are not text."""


class ArtifactNotFoundError(ProofEngineError):
    """Requested artifact is absent from the working directory."""

    failure_kind = "missing_artifact"


class MissingArtifactError(ProofEngineError):
    """A stage finished but the file it should have produced is absent."""

    failure_kind = "missing_artifact"


class ConstraintViolationError(ProofEngineError):
    """Circuit executor exited non-zero: inputs do not satisfy the circuit."""

    failure_kind = "constraint_violation"


class ToolFailureError(ProofEngineError):
    """Proving backend exited non-zero."""

    failure_kind = "tool_failure"


class ToolInvocationError(ProofEngineError):
    """External program could not be started at all."""

    failure_kind = "tool_invocation"


class ToolTimeoutError(ProofEngineError):
    """External program exceeded its time limit and was killed."""

    failure_kind = "timeout"

    def __init__(self, command: str, timeout_seconds: float):
        super().__init__(
            f"{command} timed out after {timeout_seconds:g} seconds",
            details={"command": command, "timeout_seconds": timeout_seconds},
        )


class WorkspaceError(ProofEngineError):
    """Request-scoped working directory could not be prepared."""

    failure_kind = "io_error"
