"""
Advertising Panel Health Check Routes
Liveness, readiness and component status
"""
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from datetime import datetime, timezone
import sys
from pathlib import Path
import psutil
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Dict, Any

from ..config import get_settings
from ..database import get_db
from ..models.link import Link
from ..models.media import Media
from ..models.user import User
from ..services.gateway import credential_store
from .events import event_manager

settings = get_settings()

router = APIRouter(prefix="/api/health", tags=["health"])


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


START_TIME = _now()


def get_uptime() -> str:
    """Get system uptime as human-readable string"""
    delta = _now() - START_TIME
    hours, remainder = divmod(delta.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if delta.days > 0:
        return f"{delta.days}d {hours}h {minutes}m"
    elif hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    else:
        return f"{minutes}m {seconds}s"


def check_database(db: Session) -> Dict[str, Any]:
    """Check database connectivity and stats"""
    try:
        db.execute(text("SELECT 1"))
        counts = {
            "users": db.query(User).count(),
            "media": db.query(Media).count(),
            "links": db.query(Link).count(),
        }
    except SQLAlchemyError as e:
        db.rollback()
        return {
            "status": "unhealthy",
            "error": str(e),
        }
    return {
        "status": "healthy",
        "backend": db.get_bind().dialect.name,
        "row_counts": counts,
    }


def check_storage() -> Dict[str, Any]:
    """Check the upload directory and its free space"""
    upload_path = Path(settings.upload_dir)
    if not upload_path.exists():
        return {
            "status": "unhealthy",
            "error": f"Upload directory does not exist: {settings.upload_dir}",
        }

    try:
        usage = psutil.disk_usage(str(upload_path))
    except OSError as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }

    free_percent = usage.free / usage.total * 100 if usage.total else 0
    status = "healthy" if free_percent > 10 else "warning" if free_percent > 5 else "critical"

    return {
        "status": status,
        "path": settings.upload_dir,
        "total_gb": round(usage.total / (1024**3), 2),
        "free_gb": round(usage.free / (1024**3), 2),
        "free_percent": round(free_percent, 1),
    }


def check_gateway() -> Dict[str, Any]:
    snapshot = credential_store.snapshot()
    if snapshot is None:
        return {"status": "warning", "configured": False}
    return {"status": "healthy", "configured": True, "key_id": snapshot.key_id}


def check_system() -> Dict[str, Any]:
    """Check system resources"""
    memory = psutil.virtual_memory()
    return {
        "status": "healthy" if memory.percent < 90 else "warning",
        "cpu_percent": psutil.cpu_percent(interval=None),
        "memory_percent": memory.percent,
        "python_version": sys.version.split()[0],
    }


# ============================================================
# ROUTES
# ============================================================

@router.get("")
@router.get("/live")
async def health_live():
    """
    Liveness probe - is the service running?
    """
    return {
        "ok": True,
        "status": "alive",
        "environment": settings.environment,
        "uptime": get_uptime(),
        "timestamp": _now().isoformat() + "Z",
    }


@router.get("/ready")
def health_ready(db: Session = Depends(get_db)):
    """
    Readiness probe - checks database and upload storage.
    """
    database = check_database(db)
    storage = check_storage()

    all_healthy = database["status"] == "healthy" and storage["status"] in ["healthy", "warning"]

    return {
        "ok": all_healthy,
        "status": "ready" if all_healthy else "not_ready",
        "checks": {
            "database": database["status"],
            "storage": storage["status"],
        },
        "timestamp": _now().isoformat() + "Z",
    }


@router.get("/full")
def health_full(db: Session = Depends(get_db)):
    """
    Full health check - detailed status of all components.
    """
    checks = {
        "database": check_database(db),
        "storage": check_storage(),
        "gateway": check_gateway(),
        "system": check_system(),
    }

    statuses = [c["status"] for c in checks.values()]
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "warning" in statuses or "critical" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    return {
        "ok": overall == "healthy",
        "status": overall,
        "uptime": get_uptime(),
        "started_at": START_TIME.isoformat() + "Z",
        "realtime_clients": event_manager.client_count,
        "checks": checks,
        "timestamp": _now().isoformat() + "Z",
    }


@router.get("/metrics", response_class=PlainTextResponse)
def health_metrics(db: Session = Depends(get_db)):
    """
    Prometheus-style metrics endpoint.
    """
    database = check_database(db)
    storage = check_storage()
    system = check_system()

    metrics = [f"adpanel_uptime_seconds {(_now() - START_TIME).total_seconds()}"]
    metrics.append(f"adpanel_cpu_percent {system['cpu_percent']}")
    metrics.append(f"adpanel_memory_percent {system['memory_percent']}")
    metrics.append(f"adpanel_realtime_clients {event_manager.client_count}")

    if storage["status"] != "unhealthy":
        metrics.append(f"adpanel_storage_free_gb {storage['free_gb']}")

    if database["status"] == "healthy":
        for table, count in database["row_counts"].items():
            metrics.append(f'adpanel_db_rows{{table="{table}"}} {count}')

    metrics.append(f"adpanel_health_database {1 if database['status'] == 'healthy' else 0}")
    metrics.append(f"adpanel_gateway_configured {1 if credential_store.configured else 0}")

    return "\n".join(metrics)
