# This project was developed with assistance from AI tools.
"""Liveness and database connectivity check."""

from audres_db import DatabaseService, get_db_service
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from .. import __version__

router = APIRouter()


@router.get("/")
async def health(db: DatabaseService = Depends(get_db_service)) -> JSONResponse:
    """Report service status; 503 when the database cannot be reached."""
    checks = await db.health_check()
    healthy = checks.get("database") == "ok"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "ok" if healthy else "degraded", "version": __version__, **checks},
    )
