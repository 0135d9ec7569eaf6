# This project was developed with assistance from AI tools.
"""Audit trail integrity check."""

from audres_db import get_db
from audres_db.enums import UserRole
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import require_roles
from ..services.audit import verify_audit_chain

router = APIRouter()


@router.get("/verify", dependencies=[Depends(require_roles(UserRole.ADMIN))])
async def verify_chain(session: AsyncSession = Depends(get_db)) -> dict:
    """Walk the hash chain; reports ``OK`` or the first tampered event."""
    return await verify_audit_chain(session)
