"""
Pipeline factory.

Builds the ProofPipeline from application settings and keeps a single
instance so the concurrency limit is shared by every session.
"""

import logging

from insurance_server.config import Settings, resolve_circuit_path, settings
from proof_engine import CircuitBounds, ExternalTool, ProofPipeline, WorkspaceAllocator

logger = logging.getLogger(__name__)

# Singleton pipeline instance
_pipeline_instance: ProofPipeline | None = None


def build_pipeline(config: Settings) -> ProofPipeline:
    """Create a ProofPipeline wired to the configured toolchain."""
    circuit_path = resolve_circuit_path(config)
    logger.info(
        f"Using circuit {config.CIRCUIT_NAME} at {circuit_path} "
        f"(nargo={config.NARGO_BINARY}, bb={config.BB_BINARY})"
    )

    return ProofPipeline(
        executor=ExternalTool(config.NARGO_BINARY, timeout=config.TOOL_TIMEOUT),
        prover=ExternalTool(config.BB_BINARY, timeout=config.TOOL_TIMEOUT),
        workspaces=WorkspaceAllocator(
            circuit_path=circuit_path,
            circuit_name=config.CIRCUIT_NAME,
            workspace_root=config.WORKSPACE_ROOT,
            keep_workspaces=config.KEEP_WORKSPACES,
        ),
        bounds=CircuitBounds(
            min_age=config.MIN_AGE,
            max_age=config.MAX_AGE,
            min_bmi=config.MIN_BMI,
            max_bmi=config.MAX_BMI,
        ),
        oracle_hash=config.ORACLE_HASH,
        output_format=config.OUTPUT_FORMAT,
        max_concurrent=config.MAX_CONCURRENT_PROOFS,
    )


def get_pipeline() -> ProofPipeline:
    """
    Get the configured pipeline instance.

    Uses singleton pattern so every session shares one concurrency limit.
    """
    global _pipeline_instance

    if _pipeline_instance is None:
        _pipeline_instance = build_pipeline(settings)

    return _pipeline_instance


def reset_pipeline() -> None:
    """
    Reset the pipeline singleton (for testing purposes).

    The next get_pipeline() call builds a fresh instance from settings.
    """
    global _pipeline_instance
    _pipeline_instance = None
    logger.info("Pipeline singleton reset")
