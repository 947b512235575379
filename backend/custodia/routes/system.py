# backend/custodia/routes/system.py
"""
System health and version endpoints.

Provides database health checks and version information for deployment
debugging.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import POOL_MODELS, CustodyRecord, DecommissionRecord, Director
from custodia.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity by counting the core tables.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = {
            f"assets_{origin.lower()}": db.session.query(model).count()
            for origin, model in POOL_MODELS.items()
        }
        details["custody_ledger"] = db.session.query(CustodyRecord).count()
        details["decommission_ledger"] = db.session.query(DecommissionRecord).count()
        details["directors"] = db.session.query(Director).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_directory_health() -> dict:
    """
    Directors without a position or areas cannot sign custody documents.

    Reported as degraded, never unhealthy.
    """
    from ..services import director_service

    start_time = time.time()
    try:
        profiles = director_service.list_directors()
        incomplete = [p.name for p in profiles if not p.is_complete]
        elapsed_ms = (time.time() - start_time) * 1000
        result = {
            "status": "degraded" if incomplete else "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "directors": len(profiles),
                "incomplete": len(incomplete),
            },
        }
        if incomplete:
            result["warning"] = f"Incomplete directors: {', '.join(incomplete[:10])}"
        return result
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Directory health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Directory error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    directory_health = check_directory_health()

    all_checks = [database_health, directory_health]
    unhealthy_count = sum(1 for check in all_checks if check["status"] == "unhealthy")
    degraded_count = sum(1 for check in all_checks if check["status"] == "degraded")

    if unhealthy_count > 0:
        overall_status = "unhealthy"
        http_status = 503
    elif degraded_count > 0:
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "directory": directory_health,
        }
    }

    return response, http_status


@system_bp.get("/version")
def version():
    """
    Version endpoint for deployment debugging.

    Does NOT expose secret keys, database credentials or internal paths.
    """
    import sys

    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "atomic_custody_commit": bool(current_app.config.get("CUSTODY_ATOMIC_COMMIT", True)),
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
