"""
Registre matière par projet : quantité requise vs quantité réclamée.

Invariant : 0 <= claimed_quantity <= required_quantity.
Écrit par les approbations de claims (+, plafonné) et de retours (-, plancher 0).
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from sitestock.app.core.errors import Conflict, NotFound, ValidationFailure
from sitestock.app.db.models.models_v1 import InventoryItem, Project, ProjectMaterial


def lock_materials(
    db: Session,
    *,
    project_id: int,
    product_ids: Iterable[int],
) -> dict[int, ProjectMaterial]:
    """
    Verrouille les lignes (project, product), indexées par product_id.
    Une ligne absente fait échouer toute l'opération.
    """
    ids = sorted({int(pid) for pid in product_ids if pid is not None})
    if not ids:
        return {}

    rows = (
        db.execute(
            select(ProjectMaterial)
            .where(ProjectMaterial.project_id == project_id)
            .where(ProjectMaterial.product_id.in_(ids))
            .order_by(ProjectMaterial.id.asc())
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .all()
    )
    found = {int(m.product_id): m for m in rows}

    for pid in ids:
        if pid not in found:
            raise NotFound(
                f"Product {pid} is not in the material list of project {project_id}",
                field=f"product_id:{pid}",
            )
    return found


def add_claimed(material: ProjectMaterial, quantity: int) -> int:
    """Augmente claimed_quantity, plafonné à required_quantity. Retourne la nouvelle valeur."""
    material.claimed_quantity = min(
        int(material.claimed_quantity) + int(quantity),
        int(material.required_quantity),
    )
    return material.claimed_quantity


def release_claimed(material: ProjectMaterial, quantity: int) -> int:
    """Diminue claimed_quantity, plancher 0. Retourne la nouvelle valeur."""
    material.claimed_quantity = max(int(material.claimed_quantity) - int(quantity), 0)
    return material.claimed_quantity


def add_material(
    db: Session,
    *,
    project_id: int,
    product_id: int,
    required_quantity: int,
    phase: str | None = None,
) -> ProjectMaterial:
    if required_quantity < 0:
        raise ValidationFailure("required_quantity must be >= 0", field="required_quantity")
    if not db.get(Project, project_id):
        raise NotFound("Project not found", field="project_id")
    if not db.get(InventoryItem, product_id):
        raise NotFound(f"Inventory item {product_id} not found", field="product_id")

    exists = db.execute(
        select(ProjectMaterial)
        .where(ProjectMaterial.project_id == project_id)
        .where(ProjectMaterial.product_id == product_id)
    ).scalar_one_or_none()
    if exists:
        raise Conflict("Product already in project material list", field="product_id")

    m = ProjectMaterial(
        project_id=project_id,
        product_id=product_id,
        phase=phase,
        required_quantity=required_quantity,
        claimed_quantity=0,
    )
    db.add(m)
    db.flush()
    return m


def list_materials(db: Session, project_id: int) -> list[ProjectMaterial]:
    if not db.get(Project, project_id):
        raise NotFound("Project not found", field="project_id")

    stmt = (
        select(ProjectMaterial)
        .join(InventoryItem, InventoryItem.id == ProjectMaterial.product_id)
        .where(ProjectMaterial.project_id == project_id)
        .order_by(ProjectMaterial.phase, InventoryItem.product_name)
    )
    return list(db.execute(stmt).scalars().all())
