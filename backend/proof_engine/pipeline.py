"""
Proof generation pipeline.

Turns a ProofRequest into a ProofResponse by driving the Noir executor and
the Barretenberg prover through five ordered stages:

    write_inputs -> execute_circuit -> verify_witness
        -> generate_proof -> encode_and_collect

Each stage either advances or ends the run with a failed response. Tool
exit codes and artifact presence are checked independently: a tool that
exits 0 without producing its file is a missing-artifact failure.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from .artifact_store import ArtifactStore
from .exceptions import (
    ConstraintViolationError,
    MissingArtifactError,
    ProofEngineError,
    ToolFailureError,
)
from .models import (
    CircuitBounds,
    FailureKind,
    PipelineStage,
    ProofRequest,
    ProofResponse,
    StageEvent,
)
from .public_inputs import extract_public_inputs
from .tool_invoker import ExternalTool
from .workspace import WorkspaceAllocator

logger = logging.getLogger(__name__)

PROVER_INPUTS_ARTIFACT = "Prover.toml"
TARGET_DIR = "target"

SUCCESS_MESSAGE = (
    "Proof generated successfully! The user is eligible for insurance discount."
)

STAGE_DESCRIPTIONS = {
    PipelineStage.WRITE_INPUTS: "Writing inputs to Prover.toml",
    PipelineStage.EXECUTE_CIRCUIT: "Executing circuit to generate witness (nargo execute)",
    PipelineStage.VERIFY_WITNESS: "Checking witness file",
    PipelineStage.GENERATE_PROOF: "Generating proof with Barretenberg (bb prove)",
    PipelineStage.ENCODE_AND_COLLECT: "Converting proof to hex format and reading public inputs",
}

STAGE_ORDER = list(STAGE_DESCRIPTIONS)

EventCallback = Callable[[StageEvent], Awaitable[None]]


def render_prover_toml(request: ProofRequest, bounds: CircuitBounds) -> str:
    """Serialize private inputs and bound constants in Prover.toml format."""
    values = {
        "age": request.age,
        "bmi": request.bmi_scaled,
        "min_age": bounds.min_age,
        "max_age": bounds.max_age,
        "min_bmi": bounds.min_bmi,
        "max_bmi": bounds.max_bmi,
    }
    return "".join(f'{key} = "{value}"\n' for key, value in values.items())


class ProofPipeline:
    """
    Orchestrates one proof per call to ``run``.

    Every run gets its own working directory from the WorkspaceAllocator,
    so concurrent runs never share Prover.toml, witness or proof files.
    """

    def __init__(
        self,
        executor: ExternalTool,
        prover: ExternalTool,
        workspaces: WorkspaceAllocator,
        bounds: CircuitBounds | None = None,
        oracle_hash: str = "keccak",
        output_format: str = "bytes_and_fields",
        max_concurrent: int | None = None,
    ):
        """
        Args:
            executor: Circuit executor (``nargo``)
            prover: Proving backend (``bb``)
            workspaces: Allocator for request-scoped working directories
            bounds: Bound constants written next to the private inputs
            oracle_hash: Hash oracle passed to ``bb prove --oracle_hash``
            output_format: Value for ``bb prove --output_format``
            max_concurrent: Upper limit on simultaneous runs (None = unlimited)
        """
        self.executor = executor
        self.prover = prover
        self.workspaces = workspaces
        self.bounds = bounds or CircuitBounds()
        self.oracle_hash = oracle_hash
        self.output_format = output_format
        self._slots = asyncio.Semaphore(max_concurrent) if max_concurrent else None

    @property
    def circuit_name(self) -> str:
        return self.workspaces.circuit_name

    async def run(
        self, request: ProofRequest, on_event: Optional[EventCallback] = None
    ) -> ProofResponse:
        """
        Generate a proof for the request.

        Never raises for stage failures; they come back as a failed
        ProofResponse with a category and a diagnostic message.

        Args:
            request: Private inputs
            on_event: Awaited with a StageEvent after each completed stage

        Returns:
            ProofResponse: Success with proof and public inputs, or failure
        """
        if self._slots is None:
            return await self._run_in_workspace(request, on_event)

        async with self._slots:
            return await self._run_in_workspace(request, on_event)

    async def _run_in_workspace(
        self, request: ProofRequest, on_event: Optional[EventCallback]
    ) -> ProofResponse:
        loop = asyncio.get_running_loop()
        try:
            workspace = await loop.run_in_executor(None, self.workspaces.allocate)
        except ProofEngineError as e:
            logger.error(f"Workspace allocation failed: {e.message}")
            return ProofResponse.failed(FailureKind(e.failure_kind), e.message)

        try:
            return await self._run_stages(request, workspace, on_event)
        finally:
            await loop.run_in_executor(None, self.workspaces.release, workspace)

    async def _run_stages(
        self,
        request: ProofRequest,
        workspace: Path,
        on_event: Optional[EventCallback],
    ) -> ProofResponse:
        loop = asyncio.get_running_loop()
        store = ArtifactStore(workspace)
        workspace_label = str(workspace) if self.workspaces.keep_workspaces else None
        logger.info(
            f"Starting proof run in {workspace}: age={request.age}, "
            f"bmi_scaled={request.bmi_scaled}"
        )

        try:
            await loop.run_in_executor(None, self._write_inputs, store, request)
            await self._emit(on_event, PipelineStage.WRITE_INPUTS)

            await self._execute_circuit(workspace)
            await self._emit(on_event, PipelineStage.EXECUTE_CIRCUIT)

            witness = await loop.run_in_executor(None, self._verify_witness, store)
            await self._emit(on_event, PipelineStage.VERIFY_WITNESS)

            await self._generate_proof(store, witness)
            await self._emit(on_event, PipelineStage.GENERATE_PROOF)

            proof_hex, public_inputs = await loop.run_in_executor(
                None, self._collect_outputs, store
            )
            await self._emit(on_event, PipelineStage.ENCODE_AND_COLLECT)

        except ProofEngineError as e:
            logger.warning(f"Proof run failed [{e.failure_kind}]: {e.message}")
            return ProofResponse.failed(
                FailureKind(e.failure_kind), e.message, workspace=workspace_label
            )

        except ConnectionError:
            # Raised by the event callback, not by a stage
            raise

        except Exception as e:
            logger.exception(f"Unexpected error during proof run in {workspace}")
            return ProofResponse.failed(
                FailureKind.INTERNAL,
                f"Unexpected error during proof generation: {e}",
                workspace=workspace_label,
            )

        logger.info(f"Proof run succeeded in {workspace} ({len(proof_hex)} hex chars)")
        return ProofResponse.succeeded(
            proof_hex=proof_hex,
            public_inputs=public_inputs,
            message=SUCCESS_MESSAGE,
            workspace=workspace_label,
        )

    async def _emit(self, on_event: Optional[EventCallback], stage: PipelineStage) -> None:
        if on_event is None:
            return
        event = StageEvent(
            stage=stage,
            step=STAGE_ORDER.index(stage) + 1,
            total=len(STAGE_ORDER),
            description=STAGE_DESCRIPTIONS[stage],
        )
        await on_event(event)

    def _write_inputs(self, store: ArtifactStore, request: ProofRequest) -> None:
        store.write_text(PROVER_INPUTS_ARTIFACT, render_prover_toml(request, self.bounds))

    async def _execute_circuit(self, workspace: Path) -> None:
        result = await self.executor.run_async(["execute"], workspace)
        if not result.ok:
            logger.info(f"Circuit constraints not satisfied (exit {result.returncode})")
            raise ConstraintViolationError(
                "Circuit execution failed. The inputs don't satisfy the constraints: "
                f"{result.stderr}",
                details={"returncode": result.returncode},
            )

    def _verify_witness(self, store: ArtifactStore) -> str:
        """Return the witness artifact name, compressed form first."""
        for name in (
            f"{TARGET_DIR}/{self.circuit_name}.gz",
            f"{TARGET_DIR}/{self.circuit_name}",
        ):
            if store.exists(name):
                return name

        logger.error(f"Executor exited 0 but no witness exists in {store.path(TARGET_DIR)}")
        raise MissingArtifactError("Witness file was not generated after circuit execution")

    async def _generate_proof(self, store: ArtifactStore, witness: str) -> None:
        args = [
            "prove",
            "-b", f"./{TARGET_DIR}/{self.circuit_name}.json",
            "-w", f"./{witness}",
            "-o", f"./{TARGET_DIR}",
            "--oracle_hash", self.oracle_hash,
            "--output_format", self.output_format,
        ]
        result = await self.prover.run_async(args, store.base_path)
        if not result.ok:
            raise ToolFailureError(
                f"Proof generation failed: {result.stderr}",
                details={"returncode": result.returncode},
            )

        proof_name = f"{TARGET_DIR}/proof"
        if not store.exists(proof_name):
            logger.error(f"Prover exited 0 but {store.path(proof_name)} is missing")
            raise MissingArtifactError(
                f"Proof file was not generated at path: {store.path(proof_name)}"
            )

    def _encode_proof(self, store: ArtifactStore) -> str:
        proof_name = f"{TARGET_DIR}/proof"
        data = store.read_bytes(proof_name)
        if not data:
            raise MissingArtifactError(f"Proof file is empty: {store.path(proof_name)}")
        return f"0x{data.hex()}"

    def _collect_outputs(self, store: ArtifactStore) -> tuple[str, str]:
        return self._encode_proof(store), extract_public_inputs(store, TARGET_DIR)
