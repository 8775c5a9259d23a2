import pytest

from sitestock.app.core.errors import InvalidTransition, NotFound, ValidationFailure
from sitestock.app.db.models.core_types import ClaimStatus, ClaimType, ProjectStatus
from sitestock.app.db.models.models_v1 import AuditLog, InventoryItem, ProjectMaterial
from sitestock.app.db.session import unit_of_work
from sitestock.services.claims import approve_claim, create_claim, deny_claim, list_pending_claims


def _claim(db_session, project, lines, actor, **kwargs):
    with unit_of_work(db_session):
        return create_claim(db_session, project_id=project.id, lines=lines, actor=actor, **kwargs)


def test_full_approval_decrements_stock_and_fills_ledger(
    db_session, make_item, make_project, make_material, onsite, warehouse
):
    """
    GIVEN
    - in_stock = 50, required = 40, claimed = 0
    - un claim de 20 unités, approuvé en entier

    THEN
    - in_stock == 30, claimed == 20
    - status == approved
    """
    item = make_item(in_stock=50)
    project = make_project()
    material = make_material(project, item, required=40)

    claim = _claim(db_session, project, [(item.id, 20)], onsite)
    line_id = claim.items[0].id

    with unit_of_work(db_session):
        claim = approve_claim(db_session, claim_id=claim.id, approvals={line_id: 20}, actor=warehouse)

    db_session.refresh(item)
    db_session.refresh(material)
    assert claim.status == ClaimStatus.approved
    assert claim.items[0].quantity_approved == 20
    assert claim.processed_by == warehouse.name
    assert claim.processed_at is not None
    assert item.in_stock == 30
    assert item.projected_stock == 30
    assert material.claimed_quantity == 20


def test_partial_approval(db_session, make_item, make_project, make_material, onsite, warehouse):
    """
    GIVEN
    - in_stock = 50, un claim de 20, approuvé à 12

    THEN
    - in_stock == 38, status == partial_approved
    """
    item = make_item(in_stock=50)
    project = make_project()
    material = make_material(project, item, required=40)

    claim = _claim(db_session, project, [(item.id, 20)], onsite)
    with unit_of_work(db_session):
        claim = approve_claim(db_session, claim_id=claim.id, approvals={claim.items[0].id: 12}, actor=warehouse)

    db_session.refresh(item)
    db_session.refresh(material)
    assert claim.status == ClaimStatus.partial_approved
    assert item.in_stock == 38
    assert material.claimed_quantity == 12


def test_lines_missing_from_mapping_are_approved_at_zero(
    db_session, make_item, make_project, make_material, onsite, warehouse
):
    a = make_item(in_stock=10)
    b = make_item(in_stock=10)
    project = make_project()
    make_material(project, a, required=10)
    make_material(project, b, required=10)

    claim = _claim(db_session, project, [(a.id, 4), (b.id, 4)], onsite)
    first = claim.items[0]

    with unit_of_work(db_session):
        claim = approve_claim(db_session, claim_id=claim.id, approvals={first.id: 4}, actor=warehouse)

    db_session.refresh(a)
    db_session.refresh(b)
    assert claim.status == ClaimStatus.partial_approved
    assert [it.quantity_approved for it in claim.items] == [4, 0]
    assert a.in_stock == 6
    assert b.in_stock == 10


def test_claimed_quantity_is_capped_at_required(
    db_session, make_item, make_project, make_material, onsite, warehouse
):
    """
    GIVEN
    - required = 10, claimed = 8
    - un claim de 5 approuvé en entier

    THEN
    - claimed plafonné à 10, mais in_stock baisse bien de 5
    """
    item = make_item(in_stock=30)
    project = make_project()
    material = make_material(project, item, required=10, claimed=8)

    claim = _claim(db_session, project, [(item.id, 5)], onsite)
    with unit_of_work(db_session):
        approve_claim(db_session, claim_id=claim.id, approvals={claim.items[0].id: 5}, actor=warehouse)

    db_session.refresh(item)
    db_session.refresh(material)
    assert material.claimed_quantity == 10
    assert item.in_stock == 25


def test_unknown_claim_item_fails_whole_approval(
    db_session, make_item, make_project, make_material, onsite, warehouse
):
    """
    GIVEN
    - une ligne valide et un id de ligne inconnu

    THEN
    - NotFound, rien n'est appliqué (stock, ledger, statut inchangés)
    """
    item = make_item(in_stock=50)
    project = make_project()
    material = make_material(project, item, required=40)
    claim = _claim(db_session, project, [(item.id, 20)], onsite)
    line_id = claim.items[0].id

    with pytest.raises(NotFound):
        with unit_of_work(db_session):
            approve_claim(db_session, claim_id=claim.id, approvals={line_id: 20, 999_999: 1}, actor=warehouse)

    db_session.refresh(item)
    db_session.refresh(material)
    db_session.refresh(claim)
    assert item.in_stock == 50
    assert material.claimed_quantity == 0
    assert claim.status == ClaimStatus.pending
    assert claim.items[0].quantity_approved == 0


def test_approved_above_requested_is_rejected(db_session, make_item, make_project, make_material, onsite, warehouse):
    item = make_item(in_stock=50)
    project = make_project()
    make_material(project, item, required=40)
    claim = _claim(db_session, project, [(item.id, 20)], onsite)

    with pytest.raises(ValidationFailure) as exc:
        with unit_of_work(db_session):
            approve_claim(db_session, claim_id=claim.id, approvals={claim.items[0].id: 21}, actor=warehouse)

    assert exc.value.field == f"items[{claim.items[0].id}]"


def test_insufficient_stock_is_rejected(db_session, make_item, make_project, make_material, onsite, warehouse):
    item = make_item(in_stock=5)
    project = make_project()
    make_material(project, item, required=40)
    claim = _claim(db_session, project, [(item.id, 20)], onsite)

    with pytest.raises(ValidationFailure):
        with unit_of_work(db_session):
            approve_claim(db_session, claim_id=claim.id, approvals={claim.items[0].id: 20}, actor=warehouse)

    db_session.refresh(item)
    assert item.in_stock == 5


def test_nothing_approved_must_be_denied(db_session, make_item, make_project, make_material, onsite, warehouse):
    item = make_item(in_stock=50)
    project = make_project()
    make_material(project, item, required=40)
    claim = _claim(db_session, project, [(item.id, 20)], onsite)

    with pytest.raises(ValidationFailure):
        with unit_of_work(db_session):
            approve_claim(db_session, claim_id=claim.id, approvals={}, actor=warehouse)


def test_missing_ledger_row_fails_approval(db_session, make_item, make_project, onsite, warehouse):
    item = make_item(in_stock=50)
    project = make_project()
    claim = _claim(db_session, project, [(item.id, 5)], onsite)

    with pytest.raises(NotFound):
        with unit_of_work(db_session):
            approve_claim(db_session, claim_id=claim.id, approvals={claim.items[0].id: 5}, actor=warehouse)

    db_session.refresh(item)
    assert item.in_stock == 50


def test_deny_then_deny_again_is_invalid(db_session, make_item, make_project, make_material, onsite, warehouse):
    """
    GIVEN
    - un claim refusé

    THEN
    - un second refus (ou une approbation) -> InvalidTransition
    - le stock n'a jamais bougé
    """
    item = make_item(in_stock=50)
    project = make_project()
    make_material(project, item, required=40)
    claim = _claim(db_session, project, [(item.id, 20)], onsite)

    with unit_of_work(db_session):
        claim = deny_claim(db_session, claim_id=claim.id, reason="Wrong phase", actor=warehouse)
    assert claim.status == ClaimStatus.denied
    assert claim.denial_reason == "Wrong phase"

    with pytest.raises(InvalidTransition):
        with unit_of_work(db_session):
            deny_claim(db_session, claim_id=claim.id, reason="again", actor=warehouse)

    with pytest.raises(InvalidTransition):
        with unit_of_work(db_session):
            approve_claim(db_session, claim_id=claim.id, approvals={claim.items[0].id: 1}, actor=warehouse)

    db_session.refresh(item)
    assert item.in_stock == 50


def test_deny_requires_reason(db_session, make_item, make_project, onsite, warehouse):
    item = make_item(in_stock=5)
    project = make_project()
    claim = _claim(db_session, project, [(item.id, 1)], onsite)

    with pytest.raises(ValidationFailure):
        deny_claim(db_session, claim_id=claim.id, reason="  ", actor=warehouse)


def test_create_claim_validations(db_session, make_item, make_project, onsite):
    item = make_item(in_stock=5)
    project = make_project()
    closed = make_project(status=ProjectStatus.completed)

    with pytest.raises(ValidationFailure):
        create_claim(db_session, project_id=project.id, lines=[], actor=onsite)
    with pytest.raises(ValidationFailure):
        create_claim(db_session, project_id=project.id, lines=[(item.id, 1), (item.id, 2)], actor=onsite)
    with pytest.raises(ValidationFailure):
        create_claim(db_session, project_id=project.id, lines=[(item.id, 0)], actor=onsite)
    with pytest.raises(NotFound):
        create_claim(db_session, project_id=project.id, lines=[(999_999, 1)], actor=onsite)
    with pytest.raises(ValidationFailure):
        create_claim(db_session, project_id=closed.id, lines=[(item.id, 1)], actor=onsite)
    with pytest.raises(ValidationFailure):
        create_claim(
            db_session,
            project_id=project.id,
            lines=[(item.id, 1)],
            actor=onsite,
            claim_type=ClaimType.emergency,
        )


def test_pending_queue_puts_emergencies_first(db_session, make_item, make_project, onsite):
    item = make_item(in_stock=5)
    project = make_project()

    standard = _claim(db_session, project, [(item.id, 1)], onsite)
    emergency = _claim(
        db_session,
        project,
        [(item.id, 1)],
        onsite,
        claim_type=ClaimType.emergency,
        emergency_reason="Slab pour tomorrow",
    )

    queue = list_pending_claims(db_session)
    assert [c.id for c in queue] == [emergency.id, standard.id]
    assert emergency.claim_number.startswith("CLM-")
    assert emergency.claim_number != standard.claim_number


def test_approval_is_audited(db_session, make_item, make_project, make_material, onsite, warehouse):
    item = make_item(in_stock=50)
    project = make_project()
    make_material(project, item, required=40)
    claim = _claim(db_session, project, [(item.id, 20)], onsite)
    line_id = claim.items[0].id

    with unit_of_work(db_session):
        approve_claim(db_session, claim_id=claim.id, approvals={line_id: 12}, actor=warehouse)

    logs = db_session.query(AuditLog).filter(AuditLog.entity_type == "claim").order_by(AuditLog.id).all()
    assert [log.action_type for log in logs] == ["claim_created", "claim_partially_approved"]
    assert logs[-1].actor_name == warehouse.name
    assert logs[-1].meta == {"approved": {str(line_id): 12}}


def test_claimed_stays_within_bounds_across_claims_and_returns(
    db_session, make_item, make_project, make_material, onsite, warehouse
):
    from sitestock.services.returns import approve_return, create_return

    item = make_item(in_stock=100)
    project = make_project()
    make_material(project, item, required=10)

    for qty in (6, 6):
        claim = _claim(db_session, project, [(item.id, qty)], onsite)
        with unit_of_work(db_session):
            approve_claim(db_session, claim_id=claim.id, approvals={claim.items[0].id: qty}, actor=warehouse)

    for qty in (4, 9):
        with unit_of_work(db_session):
            ret = create_return(
                db_session, project_id=project.id, lines=[(item.id, qty)], reason="Damaged", actor=onsite
            )
        with unit_of_work(db_session):
            approve_return(db_session, return_id=ret.id, actor=warehouse)

    material = db_session.query(ProjectMaterial).filter_by(project_id=project.id, product_id=item.id).one()
    stock = db_session.get(InventoryItem, item.id)
    assert material.claimed_quantity == 0
    assert 0 <= material.claimed_quantity <= material.required_quantity
    assert stock.in_stock == 88
