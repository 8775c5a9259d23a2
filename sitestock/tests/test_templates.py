import pytest

from sitestock.app.core.errors import Conflict, ValidationFailure
from sitestock.app.db.models.models_v1 import AuditLog
from sitestock.app.db.session import unit_of_work
from sitestock.services.ledger import list_materials
from sitestock.services.templates import add_template_item, apply_template, create_template


def test_apply_template_creates_or_raises_required(db_session, make_item, make_project, make_material, ceo):
    """
    GIVEN
    - un template : 2x4 x 100 (framing), drywall x 40 (finishing)
    - le projet a déjà 2x4 requis = 50, dont 20 réclamés

    THEN
    - 2x4 requis == 150, claimed inchangé
    - drywall ajouté avec requis == 40
    """
    lumber = make_item(product_name="2x4 Lumber - 8ft", sku="LUM-2X4-8FT")
    drywall = make_item(product_name="Drywall Sheet - 4x8", sku="DW-4X8-STD")
    project = make_project()
    make_material(project, lumber, required=50, claimed=20)

    with unit_of_work(db_session):
        t = create_template(db_session, name="Single family house")
        add_template_item(db_session, template_id=t.id, product_id=lumber.id, required_quantity=100, phase="framing")
        add_template_item(db_session, template_id=t.id, product_id=drywall.id, required_quantity=40, phase="finishing")

    with unit_of_work(db_session):
        apply_template(db_session, template_id=t.id, project_id=project.id, actor=ceo)

    rows = {m.product_id: m for m in list_materials(db_session, project.id)}
    assert rows[lumber.id].required_quantity == 150
    assert rows[lumber.id].claimed_quantity == 20
    assert rows[drywall.id].required_quantity == 40
    assert rows[drywall.id].phase == "finishing"
    assert db_session.query(AuditLog).filter_by(action_type="template_applied").count() == 1


def test_template_rules(db_session, make_item, make_project, ceo):
    item = make_item()
    project = make_project()
    with unit_of_work(db_session):
        t = create_template(db_session, name="Empty")

    with pytest.raises(Conflict):
        create_template(db_session, name="Empty")
    with pytest.raises(ValidationFailure):
        add_template_item(db_session, template_id=t.id, product_id=item.id, required_quantity=0)
    with pytest.raises(ValidationFailure):
        apply_template(db_session, template_id=t.id, project_id=project.id, actor=ceo)
