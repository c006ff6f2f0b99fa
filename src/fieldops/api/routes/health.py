"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status, HTTPException

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_optimizer_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.optimizer_client import check_health as optimizer_health_check
    return optimizer_health_check


def _get_support_point_functions():
    """Lazy import to avoid startup failures."""
    from ...data.support_points_repository import (
        _load_support_points_from_database,
        _load_support_points_from_file,
        _sync_support_points_to_database,
    )
    return {
        "_load_support_points_from_database": _load_support_points_from_database,
        "_load_support_points_from_file": _load_support_points_from_file,
        "_sync_support_points_to_database": _sync_support_points_to_database,
    }


@router.get("/health/optimizer", status_code=status.HTTP_200_OK)
def health_optimizer() -> dict:
    """Check AI route optimizer health."""
    try:
        optimizer_health_check = _get_optimizer_health_check()
        status_flag = optimizer_health_check()
        return {"service": "optimizer", "healthy": status_flag}
    except Exception as e:
        return {"service": "optimizer", "healthy": False, "error": str(e)}


@router.post("/health/sync-support-points", status_code=status.HTTP_200_OK)
def sync_support_points() -> dict:
    """Manually sync support points from the Excel workbook to the database."""
    try:
        funcs = _get_support_point_functions()
        file_points = funcs["_load_support_points_from_file"]()
        funcs["_sync_support_points_to_database"](file_points)
        db_points = funcs["_load_support_points_from_database"]()

        return {
            "status": "success",
            "file_support_points": len(file_points),
            "database_support_points": len(db_points) if db_points else 0,
            "message": f"Synced {len(file_points)} support points to database" if db_points else "Database not configured or sync failed",
        }
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to sync support points: {str(exc)}"
        ) from exc


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check database connection and technician table status."""
    from ...db.supabase import get_supabase_client
    from ...persistence.database import TECHNICIANS_TABLE

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set FIELDOPS_SUPABASE_URL and FIELDOPS_SUPABASE_KEY environment variables.",
            "technicians_count": 0,
        }

    try:
        response = supabase.table(TECHNICIANS_TABLE).select("id", count="exact").limit(1).execute()
        count = response.count or 0
        return {
            "configured": True,
            "connected": True,
            "technicians_count": count,
            "message": f"Database connected. Found {count} technicians.",
        }
    except Exception as exc:
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
