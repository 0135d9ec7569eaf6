# This project was developed with assistance from AI tools.
"""Document catalog: registrar price list and turnaround times.

Entries are never deleted. Archiving hides an entry from new submissions
while price lookups keep resolving it for historic items.
"""

import logging
from decimal import Decimal

from audres_db import CatalogEntry
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# (type, price, processing days)
DEFAULT_CATALOG: tuple[tuple[str, Decimal, int], ...] = (
    ("Transcript of Record", Decimal("350"), 20),
    ("Diploma", Decimal("800"), 20),
    ("Form 137", Decimal("200"), 20),
    ("Form 138", Decimal("150"), 10),
    ("Authentication", Decimal("80"), 10),
    ("CAV (Graduate)", Decimal("240"), 10),
    ("CAV (Nursing Graduate with RLE)", Decimal("320"), 10),
    ("CAV (Under Graduate)", Decimal("160"), 10),
    ("CAV (SHS)", Decimal("160"), 10),
    ("CAV (SHS Graduate)", Decimal("320"), 10),
    ("CAV (HS)", Decimal("160"), 10),
    ("Certificate of Grades", Decimal("150"), 10),
    ("Certificate of Enrollment", Decimal("150"), 10),
    ("Certificate of Graduation", Decimal("150"), 10),
    ("Units Earned", Decimal("150"), 10),
    ("Subject Description", Decimal("50"), 10),
    ("GWA", Decimal("150"), 10),
    ("Good Moral", Decimal("500"), 10),
    ("CAR", Decimal("150"), 10),
    ("No Objection", Decimal("500"), 10),
    ("Honorable Dismissal", Decimal("500"), 10),
    ("NTSP Serial Number", Decimal("150"), 10),
    ("English Proficiency", Decimal("150"), 10),
)


class DuplicateCatalogEntryError(ValueError):
    """Raised when a document type name is already in the catalog."""


async def seed_default_catalog(session: AsyncSession) -> int:
    """Insert default entries whose type is not yet present. Returns the count added."""
    result = await session.execute(select(CatalogEntry.type))
    existing = set(result.scalars().all())

    added = 0
    for doc_type, amount, days in DEFAULT_CATALOG:
        if doc_type in existing:
            continue
        session.add(
            CatalogEntry(type=doc_type, amount=amount, processing_days=days, archived=False)
        )
        added += 1

    if added:
        await session.commit()
        logger.info("Seeded %d default catalog entries", added)
    return added


async def list_catalog(session: AsyncSession, *, include_archived: bool = False) -> list[CatalogEntry]:
    stmt = select(CatalogEntry).order_by(CatalogEntry.type)
    if not include_archived:
        stmt = stmt.where(CatalogEntry.archived.is_(False))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_entry(session: AsyncSession, entry_id: int) -> CatalogEntry | None:
    result = await session.execute(select(CatalogEntry).where(CatalogEntry.id == entry_id))
    return result.scalar_one_or_none()


async def _type_taken(session: AsyncSession, doc_type: str, exclude_id: int | None = None) -> bool:
    stmt = select(CatalogEntry.id).where(CatalogEntry.type == doc_type)
    if exclude_id is not None:
        stmt = stmt.where(CatalogEntry.id != exclude_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none() is not None


async def create_entry(
    session: AsyncSession,
    *,
    doc_type: str,
    amount: Decimal,
    processing_days: int = 10,
) -> CatalogEntry:
    """Add a document type. Raises DuplicateCatalogEntryError if the name exists."""
    if await _type_taken(session, doc_type):
        raise DuplicateCatalogEntryError(f"Document type '{doc_type}' already exists")

    entry = CatalogEntry(
        type=doc_type,
        amount=amount,
        processing_days=processing_days,
        archived=False,
    )
    session.add(entry)
    await session.commit()
    await session.refresh(entry)
    logger.info("Catalog entry %s added (amount=%s)", doc_type, amount)
    return entry


async def update_entry(session: AsyncSession, entry_id: int, **updates) -> CatalogEntry | None:
    """Apply a partial update. Returns None when the entry does not exist."""
    entry = await get_entry(session, entry_id)
    if entry is None:
        return None

    new_type = updates.get("type")
    if new_type and new_type != entry.type and await _type_taken(session, new_type, entry_id):
        raise DuplicateCatalogEntryError(f"Document type '{new_type}' already exists")

    for field in ("type", "amount", "processing_days"):
        if updates.get(field) is not None:
            setattr(entry, field, updates[field])

    await session.commit()
    await session.refresh(entry)
    return entry


async def set_archived(session: AsyncSession, entry_id: int, archived: bool = True) -> CatalogEntry | None:
    entry = await get_entry(session, entry_id)
    if entry is None:
        return None
    entry.archived = archived
    await session.commit()
    await session.refresh(entry)
    logger.info("Catalog entry %s archived=%s", entry.type, archived)
    return entry


async def get_prices(session: AsyncSession) -> dict[str, Decimal]:
    """Map every document type, archived or not, to its unit price."""
    result = await session.execute(select(CatalogEntry.type, CatalogEntry.amount))
    return {row[0]: Decimal(row[1]) for row in result.all()}


async def get_orderable_types(session: AsyncSession) -> set[str]:
    """Types a requester may currently submit (non-archived)."""
    result = await session.execute(
        select(CatalogEntry.type).where(CatalogEntry.archived.is_(False))
    )
    return set(result.scalars().all())
