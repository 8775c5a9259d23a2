from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select

from sitestock.app.core.config import settings
from sitestock.app.core.logging_setup import setup_logging
from sitestock.app.core.security import hash_password
from sitestock.app.db.models.core_types import ProjectStatus, Role
from sitestock.app.db.models.models_v1 import InventoryItem, Project, User, Vendor
from sitestock.app.db.session import SessionLocal, unit_of_work
from sitestock.services.inventory import refresh_projected_stock

logger = logging.getLogger(__name__)

USERS = [
    ("John Admin", "john.admin@company.com", Role.ceo_admin),
    ("Sarah Warehouse", "sarah.warehouse@company.com", Role.warehouse_admin),
    ("Mike Onsite", "mike.onsite@company.com", Role.onsite_team),
]

VENDORS = [
    ("ABC Suppliers Inc.", "contact@abcsuppliers.com", "555-0100", "USA", 7),
    ("Global Materials Co.", "sales@globalmaterials.com", "555-0200", "USA", 14),
    ("Premium Hardware Ltd.", "info@premiumhardware.com", "555-0300", "Canada", 21),
]

# (nom, sku, in_stock, coût unitaire, safety_stock)
CATALOG = [
    ("2x4 Lumber - 8ft", "LUM-2X4-8FT", 150, "8.50", 25),
    ("2x4 Lumber - 10ft", "LUM-2X4-10FT", 120, "10.50", 25),
    ("Drywall Sheet - 4x8", "DW-4X8-STD", 45, "12.75", 10),
    ("Concrete Mix - 80lb", "CONC-80LB", 85, "6.25", 20),
    ("Roofing Shingles - Bundle", "ROOF-SH-BDL", 200, "35.00", 50),
    ("Insulation Batts - R13", "INS-R13-BATT", 75, "28.50", 15),
    ("PVC Pipe - 1/2\"", "PVC-1-2", 180, "3.25", 30),
    ("Copper Wire - 12 AWG", "WIRE-CU-12AWG", 500, "0.85", 100),
    ("Nails - 16d Common", "NAIL-16D-COMMON", 1000, "0.05", 200),
    ("Door - Interior 30\"", "DOOR-INT-30", 15, "125.00", 5),
]

PROJECTS = [
    ("Sunset Condos - Phase 1", "123 Main St, Miami, FL", ProjectStatus.active),
    ("Ocean View Apartments", "456 Beach Blvd, Miami, FL", ProjectStatus.active),
    ("Riverside Complex", "321 River Rd, Miami, FL", ProjectStatus.on_hold),
]


def run_seed():
    """Idempotent : ne crée que ce qui manque (clé = email / nom / sku)."""
    db = SessionLocal()
    try:
        with unit_of_work(db):
            for name, email, role in USERS:
                if not db.scalar(select(User).where(User.email == email)):
                    db.add(
                        User(
                            name=name,
                            email=email,
                            password_hash=hash_password(settings.SEED_PASSWORD),
                            role=role,
                            active=True,
                        )
                    )

            for name, email, phone, country, lead in VENDORS:
                if not db.scalar(select(Vendor).where(Vendor.name == name)):
                    db.add(
                        Vendor(
                            name=name,
                            contact_email=email,
                            contact_phone=phone,
                            country=country,
                            lead_time_days=lead,
                        )
                    )

            for name, sku, in_stock, cost, safety in CATALOG:
                if db.scalar(select(InventoryItem).where(InventoryItem.sku == sku)):
                    continue
                item = InventoryItem(
                    product_name=name,
                    sku=sku,
                    in_stock=in_stock,
                    allocated=0,
                    consumed_30d=0,
                    on_order_local_14d=0,
                    on_order_shipment_a_60d=0,
                    on_order_shipment_b_60d=0,
                    signed_quotations=0,
                    safety_stock=safety,
                    unit_cost=Decimal(cost),
                )
                refresh_projected_stock(item)
                db.add(item)

            for name, location, status in PROJECTS:
                if not db.scalar(select(Project).where(Project.name == name)):
                    db.add(
                        Project(
                            name=name,
                            location=location,
                            status=status,
                            description=f"Construction project at {location}",
                        )
                    )

        logger.info(
            "Seed OK: %d users, %d vendors, %d items, %d projects",
            len(USERS),
            len(VENDORS),
            len(CATALOG),
            len(PROJECTS),
        )
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging(settings)
    run_seed()
