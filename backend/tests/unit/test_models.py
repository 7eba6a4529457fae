"""Unit tests for proof pipeline models."""

import pytest
from pydantic import ValidationError

from proof_engine import FailureKind, ProofRequest, ProofResponse


class TestProofRequest:
    """Tests for ProofRequest."""

    def test_out_of_range_values_are_accepted(self):
        """Range checks belong to the circuit, not the request."""
        request = ProofRequest(age=30, bmi_scaled=500)
        assert request.age == 30
        assert request.bmi_scaled == 500

    def test_negative_values_rejected(self):
        with pytest.raises(ValidationError):
            ProofRequest(age=-1, bmi_scaled=200)

    def test_request_is_immutable(self):
        request = ProofRequest(age=15, bmi_scaled=200)
        with pytest.raises(ValidationError):
            request.age = 16


class TestProofResponse:
    """Tests for the success/failure invariant of ProofResponse."""

    def test_succeeded_builds_success(self):
        response = ProofResponse.succeeded("0xab", '["0x01"]', "ok")

        assert response.success is True
        assert response.failure is None

    def test_failed_builds_failure_with_empty_fields(self):
        response = ProofResponse.failed(FailureKind.MISSING_ARTIFACT, "no witness")

        assert response.success is False
        assert response.proof_hex == ""
        assert response.public_inputs == ""
        assert response.failure == FailureKind.MISSING_ARTIFACT

    def test_success_without_public_inputs_rejected(self):
        with pytest.raises(ValidationError):
            ProofResponse(success=True, proof_hex="0xab", public_inputs="", message="ok")

    def test_success_with_failure_kind_rejected(self):
        with pytest.raises(ValidationError):
            ProofResponse(
                success=True,
                proof_hex="0xab",
                public_inputs="[]",
                message="ok",
                failure=FailureKind.TIMEOUT,
            )

    def test_failure_with_proof_rejected(self):
        """No partial-success state can be constructed."""
        with pytest.raises(ValidationError):
            ProofResponse(
                success=False,
                proof_hex="0xab",
                message="failed",
                failure=FailureKind.TOOL_FAILURE,
            )

    def test_failure_without_kind_rejected(self):
        with pytest.raises(ValidationError):
            ProofResponse(success=False, message="failed")

    def test_response_is_immutable(self):
        response = ProofResponse.failed(FailureKind.IO_ERROR, "disk full")
        with pytest.raises(ValidationError):
            response.message = "changed"
