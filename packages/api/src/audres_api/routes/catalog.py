# This project was developed with assistance from AI tools.
"""Document catalog routes: public listing, management for registrar heads."""

from audres_db import get_db
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import MANAGERS, require_roles
from ..schemas.catalog import (
    CatalogEntryCreate,
    CatalogEntryResponse,
    CatalogEntryUpdate,
    CatalogListResponse,
)
from ..services import catalog as catalog_service
from ..services.catalog import DuplicateCatalogEntryError

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Catalog entry not found")


@router.get("", response_model=CatalogListResponse)
async def list_catalog(
    include_archived: bool = Query(default=False),
    session: AsyncSession = Depends(get_db),
) -> CatalogListResponse:
    """Document types with price and processing days. No authentication required."""
    entries = await catalog_service.list_catalog(session, include_archived=include_archived)
    return CatalogListResponse(
        data=[CatalogEntryResponse.model_validate(e) for e in entries],
        count=len(entries),
    )


@router.post(
    "",
    response_model=CatalogEntryResponse,
    status_code=201,
    dependencies=[Depends(require_roles(*MANAGERS))],
)
async def create_entry(
    body: CatalogEntryCreate,
    session: AsyncSession = Depends(get_db),
) -> CatalogEntryResponse:
    try:
        entry = await catalog_service.create_entry(
            session,
            doc_type=body.type,
            amount=body.amount,
            processing_days=body.processing_days,
        )
    except DuplicateCatalogEntryError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return CatalogEntryResponse.model_validate(entry)


@router.patch(
    "/{entry_id}",
    response_model=CatalogEntryResponse,
    dependencies=[Depends(require_roles(*MANAGERS))],
)
async def update_entry(
    entry_id: int,
    body: CatalogEntryUpdate,
    session: AsyncSession = Depends(get_db),
) -> CatalogEntryResponse:
    try:
        entry = await catalog_service.update_entry(
            session, entry_id, **body.model_dump(exclude_unset=True)
        )
    except DuplicateCatalogEntryError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if entry is None:
        raise _not_found()
    return CatalogEntryResponse.model_validate(entry)


@router.post(
    "/{entry_id}/archive",
    response_model=CatalogEntryResponse,
    dependencies=[Depends(require_roles(*MANAGERS))],
)
async def archive_entry(
    entry_id: int,
    session: AsyncSession = Depends(get_db),
) -> CatalogEntryResponse:
    """Hide a document type from new submissions; existing items keep their price."""
    entry = await catalog_service.set_archived(session, entry_id, archived=True)
    if entry is None:
        raise _not_found()
    return CatalogEntryResponse.model_validate(entry)


@router.post(
    "/{entry_id}/restore",
    response_model=CatalogEntryResponse,
    dependencies=[Depends(require_roles(*MANAGERS))],
)
async def restore_entry(
    entry_id: int,
    session: AsyncSession = Depends(get_db),
) -> CatalogEntryResponse:
    entry = await catalog_service.set_archived(session, entry_id, archived=False)
    if entry is None:
        raise _not_found()
    return CatalogEntryResponse.model_validate(entry)
