"""
TCP connection acceptor.

Accepts client connections and runs one independent ProofSession task per
connection. A slow or malformed client never blocks the others.
"""

import asyncio
import logging
from typing import Optional

from proof_engine import ProofPipeline
from .services.result_store import ResultStore
from .services.session import ProofSession

logger = logging.getLogger(__name__)


class ProofServer:
    """Listens for clients and hands each connection to a ProofSession."""

    def __init__(
        self,
        pipeline: ProofPipeline,
        result_store: ResultStore,
        host: str = "0.0.0.0",
        port: int = 8080,
        input_timeout: Optional[float] = None,
    ):
        self.pipeline = pipeline
        self.result_store = result_store
        self.host = host
        self.port = port
        self.input_timeout = input_timeout
        self.active_sessions = 0
        self.completed_sessions = 0
        self._server: Optional[asyncio.AbstractServer] = None

    @property
    def sockets(self) -> list:
        return list(self._server.sockets) if self._server else []

    @property
    def bound_port(self) -> int:
        """Port actually bound (differs from ``port`` when it was 0)."""
        return self.sockets[0].getsockname()[1] if self.sockets else self.port

    async def handle_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        peer = writer.get_extra_info("peername")
        logger.info(f"New connection from: {peer}")
        self.active_sessions += 1
        try:
            session = ProofSession(
                reader,
                writer,
                pipeline=self.pipeline,
                result_store=self.result_store,
                input_timeout=self.input_timeout,
            )
            await session.run()
            logger.info(f"Client {peer} disconnected")
        except Exception:
            logger.exception(f"Error handling client {peer}")
        finally:
            self.active_sessions -= 1
            self.completed_sessions += 1

    async def start(self) -> None:
        self._server = await asyncio.start_server(self.handle_client, self.host, self.port)
        logger.info(f"Listening on {self.host}:{self.bound_port}")

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        async with self._server:
            await self._server.serve_forever()

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            logger.info("TCP server stopped")
