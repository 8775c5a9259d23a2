from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from sitestock.app.core.errors import Conflict, NotFound, ValidationFailure
from sitestock.app.db.models.core_types import AuditAction
from sitestock.app.db.models.models_v1 import (
    InventoryItem,
    Project,
    ProjectMaterial,
    ProjectTemplate,
    ProjectTemplateItem,
)
from sitestock.app.schemas.auth import Actor
from sitestock.services.audit import record_audit

logger = logging.getLogger(__name__)


def create_template(db: Session, *, name: str, description: str | None = None) -> ProjectTemplate:
    exists = db.execute(select(ProjectTemplate).where(ProjectTemplate.name == name)).scalar_one_or_none()
    if exists:
        raise Conflict("Template already exists", field="name")

    t = ProjectTemplate(name=name, description=description)
    db.add(t)
    db.flush()
    return t


def get_template(db: Session, template_id: int) -> ProjectTemplate:
    t = db.get(ProjectTemplate, template_id)
    if not t:
        raise NotFound("Template not found", field="template_id")
    return t


def list_templates(db: Session, *, active_only: bool = True) -> list[ProjectTemplate]:
    stmt = select(ProjectTemplate).order_by(ProjectTemplate.name)
    if active_only:
        stmt = stmt.where(ProjectTemplate.active.is_(True))
    return list(db.execute(stmt).scalars().all())


def add_template_item(
    db: Session,
    *,
    template_id: int,
    product_id: int,
    required_quantity: int,
    phase: str | None = None,
) -> ProjectTemplateItem:
    t = get_template(db, template_id)
    if required_quantity <= 0:
        raise ValidationFailure("required_quantity must be > 0", field="required_quantity")
    if not db.get(InventoryItem, product_id):
        raise NotFound(f"Inventory item {product_id} not found", field="product_id")

    item = ProjectTemplateItem(product_id=product_id, phase=phase, required_quantity=required_quantity)
    t.items.append(item)
    db.flush()
    return item


def apply_template(db: Session, *, template_id: int, project_id: int, actor: Actor) -> list[ProjectMaterial]:
    """
    Copie la liste matière du template dans le projet.

    Produit absent du projet -> nouvelle ligne ; déjà présent -> required_quantity
    augmentée de la quantité du template. claimed_quantity n'est jamais touché.
    """
    t = get_template(db, template_id)
    if not db.get(Project, project_id):
        raise NotFound("Project not found", field="project_id")
    if not t.items:
        raise ValidationFailure("Template has no items", field="template_id")

    wanted: dict[int, ProjectTemplateItem] = {}
    totals: dict[int, int] = {}
    for it in t.items:
        pid = int(it.product_id)
        wanted.setdefault(pid, it)
        totals[pid] = totals.get(pid, 0) + int(it.required_quantity)

    existing = {
        int(m.product_id): m
        for m in db.execute(
            select(ProjectMaterial)
            .where(ProjectMaterial.project_id == project_id)
            .where(ProjectMaterial.product_id.in_(sorted(totals)))
            .order_by(ProjectMaterial.id.asc())
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars()
    }

    touched: list[ProjectMaterial] = []
    for pid in sorted(totals):
        m = existing.get(pid)
        if m is None:
            m = ProjectMaterial(
                project_id=project_id,
                product_id=pid,
                phase=wanted[pid].phase,
                required_quantity=totals[pid],
                claimed_quantity=0,
            )
            db.add(m)
        else:
            m.required_quantity += totals[pid]
        touched.append(m)
    db.flush()

    record_audit(
        db,
        actor=actor,
        action=AuditAction.template_applied,
        description=f"Template '{t.name}' applied to project {project_id} ({len(touched)} materials)",
        entity_type="project",
        entity_id=project_id,
        meta={"template_id": t.id},
    )
    logger.info("Template %s applied to project %s by %s", t.name, project_id, actor.name)
    return touched
