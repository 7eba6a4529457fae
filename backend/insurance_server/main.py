"""
ZK Insurance Verifier server

Entry point: parses the command line, prints the startup banner and runs
the TCP server, the cleanup scheduler and (optionally) the health endpoint.
"""

import argparse
import asyncio
import logging

import uvicorn

from insurance_server.config import Settings, settings
from insurance_server.health import create_health_app
from insurance_server.server import ProofServer
from insurance_server.services.cleanup_scheduler import (
    start_cleanup_scheduler,
    stop_cleanup_scheduler,
)
from insurance_server.services.pipeline_factory import get_pipeline
from insurance_server.services.result_store import ResultStore

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="TCP server generating zero-knowledge insurance eligibility proofs"
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=settings.PORT,
        help=f"TCP port to listen on (default: {settings.PORT})",
    )
    return parser.parse_args(argv)


def print_banner(config: Settings, port: int) -> None:
    print("ZK Insurance Verifier TCP Server")
    print("================================")
    print(f"Listening on {config.HOST}:{port}")
    print(f"Connect using: nc 127.0.0.1 {port}")
    print(f"Or: telnet 127.0.0.1 {port}")
    print()
    print("Note: Make sure 'bb' (Barretenberg) and 'nargo' are installed and in PATH")
    print("Requirements:")
    print(f"  - Valid age range: {config.MIN_AGE}-{config.MAX_AGE}")
    print(
        f"  - Valid BMI range: {config.MIN_BMI / 10}-{config.MAX_BMI / 10} "
        f"(multiplied by 10: {config.MIN_BMI}-{config.MAX_BMI})"
    )
    print()


async def serve(config: Settings, port: int) -> None:
    """Run the TCP server until cancelled."""
    server = ProofServer(
        pipeline=get_pipeline(),
        result_store=ResultStore(config.RESULTS_PATH),
        host=config.HOST,
        port=port,
        input_timeout=config.INPUT_TIMEOUT,
    )
    await server.start()
    start_cleanup_scheduler()

    tasks = [asyncio.create_task(server.serve_forever())]
    if config.HEALTH_PORT:
        health_server = uvicorn.Server(
            uvicorn.Config(
                create_health_app(server),
                host=config.HOST,
                port=config.HEALTH_PORT,
                log_level=config.LOG_LEVEL.lower(),
            )
        )
        tasks.append(asyncio.create_task(health_server.serve()))
        logger.info(f"Health endpoint on {config.HOST}:{config.HEALTH_PORT}")

    try:
        await asyncio.gather(*tasks)
    finally:
        for task in tasks:
            task.cancel()
        stop_cleanup_scheduler()
        await server.stop()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print_banner(settings, args.port)

    try:
        asyncio.run(serve(settings, args.port))
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
