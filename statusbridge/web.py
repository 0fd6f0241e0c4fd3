#!/usr/bin/env python3
"""
statusbridge self-observability app.

Read-only view of the scheduler: liveness and the report of the last
completed query-and-push cycle.
"""

import logging

from fastapi import APIRouter, FastAPI, HTTPException

from .scheduler import Scheduler

logger = logging.getLogger("statusbridge.web")


def create_status_routes(scheduler: Scheduler) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health():
        return {"status": "ok", "cycles": scheduler.cycles_completed}

    @router.get("/api/status")
    def last_cycle():
        """Report of the last completed cycle."""
        report = scheduler.last_report
        if report is None:
            raise HTTPException(status_code=404, detail="no cycle completed yet")
        return report.to_dict()

    return router


def create_app(scheduler: Scheduler) -> FastAPI:
    app = FastAPI(title="statusbridge", docs_url=None, redoc_url=None)
    app.include_router(create_status_routes(scheduler))
    return app
