"""Pydantic models shared by the proof pipeline and its callers."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class FailureKind(str, Enum):
    """Category of a failed pipeline run."""

    CONSTRAINT_VIOLATION = "constraint_violation"
    MISSING_ARTIFACT = "missing_artifact"
    TOOL_FAILURE = "tool_failure"
    TOOL_INVOCATION = "tool_invocation"
    IO_ERROR = "io_error"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


class PipelineStage(str, Enum):
    """Ordered stages of one proof run."""

    WRITE_INPUTS = "write_inputs"
    EXECUTE_CIRCUIT = "execute_circuit"
    VERIFY_WITNESS = "verify_witness"
    GENERATE_PROOF = "generate_proof"
    ENCODE_AND_COLLECT = "encode_and_collect"


class CircuitBounds(BaseModel):
    """Public bound constants written next to the private inputs."""

    min_age: int = Field(default=10, ge=0)
    max_age: int = Field(default=25, ge=0)
    min_bmi: int = Field(default=185, ge=0)
    max_bmi: int = Field(default=249, ge=0)

    model_config = {"frozen": True}


class ProofRequest(BaseModel):
    """
    Private inputs for one proof.

    Attributes:
        age: Age in whole years
        bmi_scaled: Body-mass index multiplied by 10

    Range checks are left to the circuit; out-of-range values fail the
    ExecuteCircuit stage instead of being rejected here.
    """

    age: int = Field(..., ge=0, description="Age in whole years")
    bmi_scaled: int = Field(..., ge=0, description="BMI multiplied by 10")

    model_config = {"frozen": True}


class StageEvent(BaseModel):
    """Emitted after a pipeline stage actually completes."""

    stage: PipelineStage
    step: int = Field(..., ge=1)
    total: int = Field(..., ge=1)
    description: str

    model_config = {"frozen": True}


class ProofResponse(BaseModel):
    """
    Outcome of one pipeline run.

    Either a success carrying both the hex proof and the public inputs, or a
    failure carrying neither. Use ``succeeded`` / ``failed`` to build one.
    """

    success: bool
    proof_hex: str = ""
    public_inputs: str = ""
    message: str
    failure: Optional[FailureKind] = None
    workspace: Optional[str] = Field(
        None, description="Working directory used for the run (diagnostics)"
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_outcome(self) -> "ProofResponse":
        if self.success:
            if not self.proof_hex or not self.public_inputs:
                raise ValueError("successful response needs proof_hex and public_inputs")
            if self.failure is not None:
                raise ValueError("successful response cannot carry a failure kind")
        else:
            if self.proof_hex or self.public_inputs:
                raise ValueError("failed response must not carry proof data")
            if self.failure is None:
                raise ValueError("failed response needs a failure kind")
        return self

    @classmethod
    def succeeded(
        cls,
        proof_hex: str,
        public_inputs: str,
        message: str,
        workspace: Optional[str] = None,
    ) -> "ProofResponse":
        return cls(
            success=True,
            proof_hex=proof_hex,
            public_inputs=public_inputs,
            message=message,
            workspace=workspace,
        )

    @classmethod
    def failed(
        cls,
        failure: FailureKind,
        message: str,
        workspace: Optional[str] = None,
    ) -> "ProofResponse":
        return cls(success=False, failure=failure, message=message, workspace=workspace)
