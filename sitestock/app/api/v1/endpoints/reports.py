from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.security import require_role
from sitestock.app.db.models.core_types import Role, StockHealth
from sitestock.app.schemas.auth import Actor
from sitestock.services import reports

router = APIRouter(prefix="/reports")


@router.get("/inventory.csv")
def inventory_report(
    status: StockHealth | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.ceo_admin, Role.warehouse_admin)),
):
    suffix = f"_{status.value}" if status else ""
    return Response(
        content=reports.inventory_csv(db, status=status),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="inventory{suffix}.csv"'},
    )
