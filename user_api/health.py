"""
Health report for the dashboard and liveness probes.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from user_api.db import UserStore

logger = logging.getLogger(__name__)


def build_health_report(store: UserStore, version: str) -> dict:
    """
    Report liveness, the active backend and the user count.

    Never raises: a failing count degrades the report instead.
    """
    report = {
        "success": True,
        "message": "API is running",
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": version,
        "backendType": store.backend_type,
        "userCount": 0,
        "database": {"connected": True, "type": store.display_name},
    }
    try:
        report["userCount"] = store.count_users()
    except Exception:
        logger.exception("Health probe failed for %s store", store.backend_type)
        report["message"] = "API is running (degraded)"
        report["status"] = "degraded"
        report["database"]["connected"] = False
    return report
