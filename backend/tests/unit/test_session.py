"""
Unit tests for the interactive session protocol.

Sessions run over a real loopback TCP connection; the pipeline is replaced
by a stub so only the exchange itself is under test.
"""

import asyncio
import threading
from unittest.mock import patch

import pytest

from insurance_server.server import ProofServer
from insurance_server.services.result_store import ResultStore
from insurance_server.services.session import InputError, parse_unsigned
from proof_engine import (
    CircuitBounds,
    FailureKind,
    PipelineStage,
    ProofRequest,
    ProofResponse,
    StageEvent,
)


class StubPipeline:
    """Records requests and replays a canned response with stage events."""

    def __init__(self, response: ProofResponse, stages: int = 5):
        self.response = response
        self.stages = list(PipelineStage)[:stages]
        self.bounds = CircuitBounds()
        self.oracle_hash = "keccak"
        self.requests: list[ProofRequest] = []

    async def run(self, request, on_event=None):
        self.requests.append(request)
        for step, stage in enumerate(self.stages, start=1):
            if on_event:
                await on_event(
                    StageEvent(stage=stage, step=step, total=5, description=stage.value)
                )
        return self.response


SUCCESS = ProofResponse.succeeded("0xdeadbeef", '["0x0a"]', "Proof generated successfully!")
FAILURE = ProofResponse.failed(
    FailureKind.CONSTRAINT_VIOLATION,
    "Circuit execution failed. The inputs don't satisfy the constraints: age",
)


async def converse(server: ProofServer, lines: list[str]) -> str:
    """Connect, send each line, and return everything the server wrote."""
    reader, writer = await asyncio.open_connection("127.0.0.1", server.bound_port)
    for line in lines:
        writer.write(line.encode())
    await writer.drain()
    transcript = await asyncio.wait_for(reader.read(), timeout=10)
    writer.close()
    return transcript.decode()


@pytest.fixture
def make_server(tmp_path):
    async def _make(pipeline, input_timeout=5.0) -> ProofServer:
        server = ProofServer(
            pipeline=pipeline,
            result_store=ResultStore(str(tmp_path / "results")),
            host="127.0.0.1",
            port=0,
            input_timeout=input_timeout,
        )
        await server.start()
        return server

    return _make


class TestParseUnsigned:
    """Tests for parse_unsigned."""

    def test_parses_with_surrounding_whitespace(self):
        assert parse_unsigned(" 15\r\n", "age") == 15

    def test_zero_is_valid(self):
        assert parse_unsigned("0\n", "age") == 0

    def test_leading_plus_sign_accepted(self):
        assert parse_unsigned("+15\n", "age") == 15

    @pytest.mark.parametrize("raw", ["abc\n", "\n", "1.5\n", "12abc\n", "+\n", "++15\n", "+-15\n"])
    def test_non_numbers_rejected(self, raw):
        with pytest.raises(InputError) as exc_info:
            parse_unsigned(raw, "age")
        assert "Invalid age input" in exc_info.value.message

    def test_negative_rejected(self):
        with pytest.raises(InputError):
            parse_unsigned("-5\n", "BMI")

    def test_above_u32_rejected(self):
        with pytest.raises(InputError):
            parse_unsigned(f"{2**32}\n", "BMI")


class TestSessionExchange:
    """Tests for the full prompt/result exchange."""

    @pytest.mark.asyncio
    async def test_successful_exchange(self, make_server, tmp_path):
        pipeline = StubPipeline(SUCCESS)
        server = await make_server(pipeline)

        transcript = await converse(server, ["15\n", "200\n"])
        await server.stop()

        assert transcript.startswith("ZK Insurance Verifier Server\n")
        assert "Enter age (10-25): " in transcript
        assert "Enter BMI multiplied by 10 (185-249): " in transcript
        assert "Step 1/5: write_inputs... done" in transcript
        assert "Step 5/5: encode_and_collect... done" in transcript
        assert "=== PROOF GENERATION RESULT ===\nSuccess: true\n" in transcript
        assert "=== PROOF (HEX FORMAT) ===\n0xdeadbeef\n" in transcript
        assert '=== PUBLIC INPUTS ===\n["0x0a"]\n' in transcript
        assert "Files saved:" in transcript
        assert "=== VERIFICATION ===" in transcript
        assert transcript.endswith("Thanks for using ZK Insurance Verifier!\n")
        assert pipeline.requests == [ProofRequest(age=15, bmi_scaled=200)]

    @pytest.mark.asyncio
    async def test_success_persists_result_files(self, make_server, tmp_path):
        server = await make_server(StubPipeline(SUCCESS))

        transcript = await converse(server, ["15\n", "200\n"])
        await server.stop()

        proof_files = list((tmp_path / "results").glob("proof_*.hex"))
        input_files = list((tmp_path / "results").glob("public_inputs_*.txt"))
        assert len(proof_files) == 1 and len(input_files) == 1
        assert proof_files[0].read_text() == "0xdeadbeef"
        assert input_files[0].read_text() == '["0x0a"]'
        assert f"  - Proof: {proof_files[0].name}" in transcript

    @pytest.mark.asyncio
    async def test_result_files_saved_off_event_loop_thread(self, make_server):
        loop_thread = threading.get_ident()
        save_threads = []
        original_save = ResultStore.save

        def recording_save(store, *args):
            save_threads.append(threading.get_ident())
            return original_save(store, *args)

        server = await make_server(StubPipeline(SUCCESS))
        with patch.object(ResultStore, "save", recording_save):
            transcript = await converse(server, ["15\n", "200\n"])
        await server.stop()

        assert "Files saved:" in transcript
        assert len(save_threads) == 1
        assert save_threads[0] != loop_thread

    @pytest.mark.asyncio
    async def test_failed_proof_reports_details(self, make_server, tmp_path):
        server = await make_server(StubPipeline(FAILURE, stages=1))

        transcript = await converse(server, ["30\n", "200\n"])
        await server.stop()

        assert "Success: false" in transcript
        assert "=== ERROR DETAILS ===\nFailure category: constraint_violation\n" in transcript
        assert "don't satisfy the constraints" in transcript
        assert "=== PROOF (HEX FORMAT) ===" not in transcript
        assert transcript.endswith("Thanks for using ZK Insurance Verifier!\n")
        assert not (tmp_path / "results").exists()

    @pytest.mark.asyncio
    async def test_malformed_age_aborts_without_pipeline(self, make_server):
        pipeline = StubPipeline(SUCCESS)
        server = await make_server(pipeline)

        transcript = await converse(server, ["abc\n"])
        await server.stop()

        assert "Error: Invalid age input: 'abc'" in transcript
        assert "Enter BMI" not in transcript
        assert "Generating proof" not in transcript
        assert pipeline.requests == []

    @pytest.mark.asyncio
    async def test_malformed_bmi_aborts_without_pipeline(self, make_server):
        pipeline = StubPipeline(SUCCESS)
        server = await make_server(pipeline)

        transcript = await converse(server, ["15\n", "twenty\n"])
        await server.stop()

        assert "Error: Invalid BMI input" in transcript
        assert pipeline.requests == []

    @pytest.mark.asyncio
    async def test_eof_before_input_is_input_error(self, make_server):
        pipeline = StubPipeline(SUCCESS)
        server = await make_server(pipeline)

        reader, writer = await asyncio.open_connection("127.0.0.1", server.bound_port)
        writer.write_eof()
        transcript = (await asyncio.wait_for(reader.read(), timeout=10)).decode()
        writer.close()
        await server.stop()

        assert "no input received" in transcript
        assert pipeline.requests == []

    @pytest.mark.asyncio
    async def test_input_timeout_closes_session(self, make_server):
        pipeline = StubPipeline(SUCCESS)
        server = await make_server(pipeline, input_timeout=0.2)

        reader, writer = await asyncio.open_connection("127.0.0.1", server.bound_port)
        transcript = (await asyncio.wait_for(reader.read(), timeout=10)).decode()
        writer.close()
        await server.stop()

        assert "Error: Timed out waiting for input" in transcript
        assert pipeline.requests == []

    @pytest.mark.asyncio
    async def test_slow_client_does_not_block_others(self, make_server):
        server = await make_server(StubPipeline(SUCCESS), input_timeout=5.0)

        idle_reader, idle_writer = await asyncio.open_connection(
            "127.0.0.1", server.bound_port
        )
        transcript = await converse(server, ["15\n", "200\n"])

        assert "Success: true" in transcript
        assert server.active_sessions >= 1

        idle_writer.close()
        await server.stop()
