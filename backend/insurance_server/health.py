"""
Health check HTTP application.

Small FastAPI app served next to the TCP server for deployment probes.
"""

import shutil
from datetime import datetime, timezone

from fastapi import FastAPI

from insurance_server import __version__
from insurance_server.config import resolve_circuit_path, settings
from insurance_server.server import ProofServer
from insurance_server.services.cleanup_scheduler import get_scheduler_status


def create_health_app(server: ProofServer) -> FastAPI:
    """Build the health app reporting on the given TCP server."""
    app = FastAPI(
        title="ZK Insurance Verifier",
        description="Health endpoints for the zero-knowledge insurance proof server",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )

    @app.get("/")
    async def root():
        """Liveness endpoint"""
        return {
            "status": "ok",
            "service": "ZK Insurance Verifier",
            "version": __version__,
        }

    @app.get("/health")
    async def health_check():
        """
        Detailed health check endpoint.

        Reports whether the toolchain and circuit are available, plus
        session counters and cleanup scheduler state.
        """
        circuit_path = resolve_circuit_path(settings)
        toolchain = {
            "nargo": shutil.which(settings.NARGO_BINARY) is not None,
            "bb": shutil.which(settings.BB_BINARY) is not None,
        }
        circuit_ready = circuit_path.is_dir()
        healthy = circuit_ready and all(toolchain.values())

        return {
            "status": "healthy" if healthy else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "tcpPort": server.bound_port,
            "circuit": {"path": str(circuit_path), "ready": circuit_ready},
            "toolchain": toolchain,
            "sessions": {
                "active": server.active_sessions,
                "completed": server.completed_sessions,
            },
            "cleanup": get_scheduler_status(),
        }

    return app
