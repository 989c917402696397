"""
app.py

Responsibility: FastAPI application entry point. Wires up the lifespan (logging,
settings, DB init, HTTP clients, OPNsense record lookup, failover scheduler),
registers the routers, and exposes main() for running under uvicorn.
Does NOT: contain failover logic, health checks, or DB queries beyond the
startup/shutdown audit entries.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI

from checkers.http_checker import HttpHealthChecker
from db.database import init_db, session_scope
from exceptions import GslbError
from logger import configure_logging
from providers.opnsense_client import OpnSenseProvider
from routes.action_routes import router as action_router
from routes.api_routes import router as api_router
from scheduler import FailoverScheduler, audit_log_cleanup_job, failover_cycle_job
from services.failover_service import FailoverEvaluator
from services.log_service import LogService
from settings import Settings

logger = logging.getLogger(__name__)

_DEFAULT_LISTEN_HOST = "0.0.0.0"
_DEFAULT_LISTEN_PORT = 8080


def _audit(message: str, level: str = "INFO") -> None:
    with session_scope() as session:
        LogService(session).log(message, level=level)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Starts and stops every long-lived resource of the process.

    Startup failures (missing settings, an unreachable firewall, a missing or
    ambiguous host override) propagate and abort startup. On shutdown the
    stop future is resolved, an in-flight cycle is allowed to finish, and the
    HTTP clients are closed.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to FastAPI while the app is serving requests.
    """
    configure_logging()
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    logger.info("Loaded settings: %s", settings.masked())

    init_db()

    http_client = httpx.AsyncClient()
    # NOTE: separate client so TLS verification can be relaxed for the
    # firewall's self-signed certificate without affecting health checks.
    opnsense_http_client = httpx.AsyncClient(verify=settings.opnsense_verify_tls)

    try:
        provider = await OpnSenseProvider.create(
            http_client=opnsense_http_client,
            host=settings.opnsense_host,
            auth=settings.opnsense_auth,
            targets=settings.targets,
            hostname=settings.gslb_host,
        )
    except GslbError as exc:
        logger.critical("Could not locate GSLB record %s: %s", settings.gslb_host, exc)
        await opnsense_http_client.aclose()
        await http_client.aclose()
        raise

    checker = HttpHealthChecker(http_client, settings.primary_check_url)
    evaluator = FailoverEvaluator(checker, provider, settings.targets)
    scheduler = FailoverScheduler(
        run_cycle=functools.partial(failover_cycle_job, evaluator, settings.targets),
        interval_seconds=settings.interval_seconds,
        cleanup=functools.partial(audit_log_cleanup_job, settings.log_retention_days),
    )

    app.state.settings = settings
    app.state.http_client = http_client
    app.state.opnsense_http_client = opnsense_http_client
    app.state.scheduler = scheduler

    stop: asyncio.Future[str] = asyncio.get_running_loop().create_future()
    scheduler.start()
    runner = asyncio.create_task(scheduler.run(stop))
    _audit(
        f"GSLB switcher started for {settings.gslb_host} "
        f"(primary {settings.primary_ip}, secondary {settings.secondary_ip}, "
        f"interval {settings.interval_seconds:g}s)."
    )

    yield

    stop.set_result("application shutdown")
    await runner
    await opnsense_http_client.aclose()
    await http_client.aclose()
    _audit("GSLB switcher stopped.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(title="GSLB Switcher", lifespan=lifespan)

app.include_router(api_router)
app.include_router(action_router)


@app.get("/health")
async def health() -> dict:
    """
    Liveness check for container orchestrators.

    Returns:
        A dict with a "status" key set to "ok".
    """
    return {"status": "ok"}


def main() -> None:
    """Runs the application under uvicorn, which handles SIGINT/SIGTERM."""
    uvicorn.run(
        app,
        host=os.getenv("GSLB_LISTEN_HOST", _DEFAULT_LISTEN_HOST),
        port=int(os.getenv("GSLB_LISTEN_PORT", str(_DEFAULT_LISTEN_PORT))),
        log_config=None,
    )


if __name__ == "__main__":
    main()
