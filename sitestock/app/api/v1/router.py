from fastapi import APIRouter

from sitestock.app.api.v1.endpoints.health import router as health_router
from sitestock.app.api.v1.endpoints.auth import router as auth_router
from sitestock.app.api.v1.endpoints.inventory import router as inventory_router
from sitestock.app.api.v1.endpoints.vendors import router as vendors_router
from sitestock.app.api.v1.endpoints.projects import router as projects_router
from sitestock.app.api.v1.endpoints.user_projects import router as user_projects_router
from sitestock.app.api.v1.endpoints.templates import router as templates_router
from sitestock.app.api.v1.endpoints.claims import router as claims_router
from sitestock.app.api.v1.endpoints.returns import router as returns_router
from sitestock.app.api.v1.endpoints.requests import router as requests_router
from sitestock.app.api.v1.endpoints.stock_adjustments import router as stock_adjustments_router
from sitestock.app.api.v1.endpoints.purchase_orders import router as purchase_orders_router
from sitestock.app.api.v1.endpoints.notifications import router as notifications_router
from sitestock.app.api.v1.endpoints.audit_logs import router as audit_logs_router
from sitestock.app.api.v1.endpoints.reports import router as reports_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(auth_router, tags=["auth"])
router.include_router(inventory_router, tags=["inventory"])
router.include_router(vendors_router, tags=["vendors"])
router.include_router(projects_router, tags=["projects"])
router.include_router(user_projects_router, tags=["user_projects"])
router.include_router(templates_router, tags=["project_templates"])
router.include_router(claims_router, tags=["claims"])
router.include_router(returns_router, tags=["returns"])
router.include_router(requests_router, tags=["requests"])
router.include_router(stock_adjustments_router, tags=["stock_adjustments"])
router.include_router(purchase_orders_router, tags=["purchase_orders"])
router.include_router(notifications_router, tags=["notifications"])
router.include_router(audit_logs_router, tags=["audit_logs"])
router.include_router(reports_router, tags=["reports"])
