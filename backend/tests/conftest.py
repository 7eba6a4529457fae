"""
Pytest configuration and fixtures

Proof runs use shell stand-ins for nargo and bb (tests/fixtures/fake_toolchain)
so the suite does not need Noir or Barretenberg installed.
"""

import shutil
from pathlib import Path

import pytest

from proof_engine import CircuitBounds, ExternalTool, ProofPipeline, WorkspaceAllocator

FIXTURES_DIR = Path(__file__).parent / "fixtures"
CIRCUIT_NAME = "insurance_verifier"


@pytest.fixture
def fake_toolchain(tmp_path) -> dict[str, Path]:
    """Copy the fake nargo/bb scripts into tmp_path with execute permission."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    tools = {}
    for name in ("nargo", "bb"):
        target = bin_dir / name
        shutil.copyfile(FIXTURES_DIR / "fake_toolchain" / name, target)
        target.chmod(0o755)
        tools[name] = target
    return tools


@pytest.fixture
def circuit_dir(tmp_path) -> Path:
    """Circuit template with a compiled definition and stale run artifacts."""
    circuit = tmp_path / "noir-circuit"
    (circuit / "src").mkdir(parents=True)
    (circuit / "target").mkdir()
    (circuit / "Nargo.toml").write_text(
        f'[package]\nname = "{CIRCUIT_NAME}"\ntype = "bin"\n'
    )
    (circuit / "src" / "main.nr").write_text("fn main(age: u32, bmi: u32) {}\n")
    (circuit / "target" / f"{CIRCUIT_NAME}.json").write_text('{"bytecode": "H4sI"}')

    # Leftovers from a previous run in the template itself
    (circuit / "Prover.toml").write_text('age = "99"\n')
    (circuit / "target" / f"{CIRCUIT_NAME}.gz").write_text("stale witness")
    (circuit / "target" / "proof").write_bytes(b"stale proof")
    return circuit


@pytest.fixture
def workspace_root(tmp_path) -> Path:
    return tmp_path / "workspaces"


@pytest.fixture
def make_pipeline(fake_toolchain, circuit_dir, workspace_root):
    """Factory building a ProofPipeline wired to the fake toolchain."""

    def _make(
        tool_timeout: float = 30.0,
        max_concurrent: int | None = None,
        keep_workspaces: bool = False,
        nargo: str | None = None,
        bb: str | None = None,
    ) -> ProofPipeline:
        return ProofPipeline(
            executor=ExternalTool(nargo or str(fake_toolchain["nargo"]), timeout=tool_timeout),
            prover=ExternalTool(bb or str(fake_toolchain["bb"]), timeout=tool_timeout),
            workspaces=WorkspaceAllocator(
                circuit_path=circuit_dir,
                circuit_name=CIRCUIT_NAME,
                workspace_root=workspace_root,
                keep_workspaces=keep_workspaces,
            ),
            bounds=CircuitBounds(),
            max_concurrent=max_concurrent,
        )

    return _make


@pytest.fixture
def pipeline(make_pipeline) -> ProofPipeline:
    return make_pipeline()
