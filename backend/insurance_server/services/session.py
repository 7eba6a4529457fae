"""
Interactive proof session over a TCP stream.

One ProofSession drives one connection: prompt for age and BMI, run the
proof pipeline while reporting each finished stage, render the result and
close. There is no retry prompt; a malformed value ends the session.
"""

import asyncio
import logging
from typing import Optional

from proof_engine import CircuitBounds, ProofPipeline, ProofRequest, ProofResponse, StageEvent
from .result_store import ResultStore

logger = logging.getLogger(__name__)

# Largest value accepted for either input (unsigned 32-bit)
MAX_INPUT_VALUE = 2**32 - 1

BANNER = "ZK Insurance Verifier Server\n============================\n"
CLOSING_LINE = "\nConnection will close. Thanks for using ZK Insurance Verifier!\n"


class InputError(Exception):
    """Client sent something that is not an unsigned integer."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def parse_unsigned(raw: str, label: str) -> int:
    """
    Parse one line of client input as an unsigned integer.

    Args:
        raw: Line as received, including any trailing newline
        label: Field name used in the error message

    Returns:
        int: Parsed value in [0, 2**32 - 1]

    Raises:
        InputError: If the text is not an unsigned integer
    """
    text = raw.strip()
    # One leading plus sign is allowed, as in "+15"
    digits = text[1:] if text.startswith("+") else text
    if not (digits.isascii() and digits.isdigit()):
        raise InputError(f"Invalid {label} input: '{text}' is not a whole number")

    value = int(digits)
    if value > MAX_INPUT_VALUE:
        raise InputError(f"Invalid {label} input: {value} is out of range")
    return value


class ProofSession:
    """
    Drives one client connection through the proof exchange.

    Only input errors, input timeouts and transport failures end the
    session early; every pipeline failure is reported as a normal result.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        pipeline: ProofPipeline,
        result_store: ResultStore,
        bounds: Optional[CircuitBounds] = None,
        input_timeout: Optional[float] = None,
    ):
        self.reader = reader
        self.writer = writer
        self.pipeline = pipeline
        self.result_store = result_store
        self.bounds = bounds or pipeline.bounds
        self.input_timeout = input_timeout
        self.peer = writer.get_extra_info("peername")
        self.response: Optional[ProofResponse] = None

    async def _send(self, text: str) -> None:
        self.writer.write(text.encode("utf-8"))
        await self.writer.drain()

    async def _send_best_effort(self, text: str) -> None:
        try:
            await self._send(text)
        except (ConnectionError, OSError) as e:
            logger.debug(f"Could not deliver message to {self.peer}: {e}")

    async def _read_line(self, label: str) -> str:
        try:
            line = await asyncio.wait_for(self.reader.readline(), timeout=self.input_timeout)
        except ValueError:
            # StreamReader raises ValueError when the line exceeds its buffer limit
            raise InputError(f"Invalid {label} input: line too long") from None

        if not line:
            raise InputError(f"Invalid {label} input: no input received")
        return line.decode("utf-8", errors="replace")

    async def _prompt_unsigned(self, prompt: str, label: str) -> int:
        await self._send(prompt)
        return parse_unsigned(await self._read_line(label), label)

    async def _report_stage(self, event: StageEvent) -> None:
        await self._send(f"Step {event.step}/{event.total}: {event.description}... done\n")

    async def run(self) -> Optional[ProofResponse]:
        """
        Run the full exchange and close the connection.

        Returns:
            ProofResponse: Pipeline outcome, or None if the session ended early
        """
        logger.info(f"Session started for {self.peer}")
        try:
            await self._send(BANNER)
            age = await self._prompt_unsigned(
                f"Enter age ({self.bounds.min_age}-{self.bounds.max_age}): ", "age"
            )
            bmi_scaled = await self._prompt_unsigned(
                f"Enter BMI multiplied by 10 ({self.bounds.min_bmi}-{self.bounds.max_bmi}): ",
                "BMI",
            )

            request = ProofRequest(age=age, bmi_scaled=bmi_scaled)
            await self._send("\nGenerating proof...\n")
            self.response = await self.pipeline.run(request, on_event=self._report_stage)

            await self._write_result(self.response)
            await self._send(CLOSING_LINE)

        except InputError as e:
            logger.info(f"Rejected input from {self.peer}: {e.message}")
            await self._send_best_effort(f"Error: {e.message}\n")

        except asyncio.TimeoutError:
            logger.info(f"Input timeout for {self.peer} after {self.input_timeout}s")
            await self._send_best_effort("Error: Timed out waiting for input\n")

        except (ConnectionError, asyncio.IncompleteReadError) as e:
            logger.warning(f"Connection lost with {self.peer}: {e}")

        finally:
            await self._close()

        logger.info(f"Session finished for {self.peer}")
        return self.response

    async def _write_result(self, response: ProofResponse) -> None:
        await self._send(
            "\n=== PROOF GENERATION RESULT ===\n"
            f"Success: {str(response.success).lower()}\n"
            f"Message: {response.message}\n"
        )

        if not response.success:
            await self._send(
                "\n=== ERROR DETAILS ===\n"
                f"Failure category: {response.failure.value}\n"
                f"{response.message}\n"
            )
            return

        await self._send(f"\n=== PROOF (HEX FORMAT) ===\n{response.proof_hex}\n")
        await self._send(f"\n=== PUBLIC INPUTS ===\n{response.public_inputs}\n")

        try:
            loop = asyncio.get_running_loop()
            saved = await loop.run_in_executor(
                None, self.result_store.save, response.proof_hex, response.public_inputs
            )
        except OSError as e:
            await self._send(f"\nError saving result files: {e}\n")
        else:
            await self._send(
                "\nFiles saved:\n"
                f"  - Proof: {saved.proof_filename}\n"
                f"  - Public Inputs: {saved.public_inputs_filename}\n"
            )

        await self._send(
            "\n=== VERIFICATION ===\n"
            "To verify this proof, use the proof hex and public inputs displayed above.\n"
            f"The proof was generated with bb prove using the "
            f"{self.pipeline.oracle_hash} hash oracle.\n"
        )

    async def _close(self) -> None:
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError) as e:
            logger.debug(f"Error while closing connection to {self.peer}: {e}")
