"""
Cleanup Scheduler Service

Removes stale proof workspaces and old saved results.
Uses APScheduler for periodic cleanup job execution.
"""

import asyncio
import logging
import shutil
from datetime import datetime, timedelta
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from insurance_server.config import settings

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()

JOB_ID = "cleanup_stale_artifacts"

# Saved result files written by ResultStore
RESULT_PATTERNS = ("proof_*.hex", "public_inputs_*.txt")


def _is_expired(path: Path, cutoff: datetime) -> bool:
    return datetime.fromtimestamp(path.stat().st_mtime) < cutoff


async def cleanup_stale_artifacts(
    workspace_root: str | None = None,
    results_path: str | None = None,
    ttl_hours: int | None = None,
) -> dict:
    """
    Delete workspaces and saved results older than the TTL.

    Workspaces are normally removed right after each run; the ones left
    behind come from crashes or KEEP_WORKSPACES.

    Returns:
        dict: Summary of cleanup operation with counts
    """
    workspace_dir = Path(workspace_root or settings.WORKSPACE_ROOT)
    results_dir = Path(results_path or settings.RESULTS_PATH)
    ttl = ttl_hours if ttl_hours is not None else settings.FILE_TTL_HOURS
    cutoff = datetime.now() - timedelta(hours=ttl)

    cleanup_summary = {
        "workspaces_deleted": 0,
        "results_deleted": 0,
        "errors": 0,
    }

    if workspace_dir.exists():
        for workspace in workspace_dir.iterdir():
            if not workspace.is_dir() or not workspace.name.startswith("run_"):
                continue
            try:
                if _is_expired(workspace, cutoff):
                    shutil.rmtree(workspace)
                    cleanup_summary["workspaces_deleted"] += 1
                    logger.info(f"Cleaned up stale workspace: {workspace}")
            except OSError as e:
                cleanup_summary["errors"] += 1
                logger.error(f"Failed to clean up workspace {workspace}: {e}")
    else:
        logger.debug(f"Workspace root does not exist: {workspace_dir}")

    if results_dir.exists():
        for pattern in RESULT_PATTERNS:
            for result_file in results_dir.glob(pattern):
                try:
                    if result_file.is_file() and _is_expired(result_file, cutoff):
                        result_file.unlink()
                        cleanup_summary["results_deleted"] += 1
                        logger.info(f"Cleaned up old result file: {result_file}")
                except OSError as e:
                    cleanup_summary["errors"] += 1
                    logger.error(f"Failed to clean up result file {result_file}: {e}")

    logger.info(
        f"Cleanup completed: {cleanup_summary['workspaces_deleted']} workspaces, "
        f"{cleanup_summary['results_deleted']} result files deleted, "
        f"{cleanup_summary['errors']} errors"
    )

    return cleanup_summary


def start_cleanup_scheduler():
    """
    Start the cleanup scheduler.

    Must be called from within a running event loop.
    Safe to call multiple times - will not add duplicate jobs.
    """
    if scheduler.running:
        logger.debug("Scheduler already running")
        return

    # Bind to the caller's loop; a previous start may have used another one
    scheduler.configure(event_loop=asyncio.get_running_loop())

    if not scheduler.get_job(JOB_ID):
        scheduler.add_job(
            cleanup_stale_artifacts,
            "interval",
            hours=settings.CLEANUP_INTERVAL_HOURS,
            id=JOB_ID,
            name="Cleanup stale workspaces and results",
            replace_existing=True,
        )
        logger.info(
            f"Scheduled cleanup job: every {settings.CLEANUP_INTERVAL_HOURS} hour(s), "
            f"TTL: {settings.FILE_TTL_HOURS} hours"
        )

    scheduler.start()
    logger.info("Cleanup scheduler started")


def stop_cleanup_scheduler():
    """Stop the cleanup scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Cleanup scheduler stopped")


def get_scheduler_status() -> dict:
    """
    Get current scheduler status for health checks.

    Returns:
        dict: Scheduler status including running state and job info
    """
    job = scheduler.get_job(JOB_ID)
    return {
        "running": scheduler.running,
        "job_scheduled": job is not None,
        "next_run": str(job.next_run_time) if job and scheduler.running else None,
        "interval_hours": settings.CLEANUP_INTERVAL_HOURS,
        "ttl_hours": settings.FILE_TTL_HOURS,
    }
