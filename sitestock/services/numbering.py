from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from sitestock.app.db.models.models_v1 import utcnow

CLAIM_PREFIX = "CLM"
RETURN_PREFIX = "RET"
ADJUSTMENT_PREFIX = "ADJ"
PO_PREFIX = "PO"
REQUEST_PREFIX = "REQ"


def next_document_number(
    db: Session,
    column: InstrumentedAttribute,
    prefix: str,
    *,
    now: datetime | None = None,
) -> str:
    """
    Numéro lisible `PREFIX-YYYY-NNNNN`, séquentiel par année.

    Pas de verrou : deux transactions concurrentes peuvent calculer le même
    numéro, la contrainte UNIQUE tranche (IntegrityError -> Conflict).
    """
    year = (now or utcnow()).year
    stem = f"{prefix}-{year}-"
    count = db.execute(
        select(func.count()).select_from(column.class_).where(column.like(f"{stem}%"))
    ).scalar_one()
    return f"{stem}{int(count) + 1:05d}"
