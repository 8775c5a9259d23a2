from fastapi import FastAPI

from sitestock.app.api.v1.router import router as v1_router
from sitestock.app.core.config import settings
from sitestock.app.core.errors import setup_exception_handlers
from sitestock.app.core.logging_setup import setup_logging

setup_logging(settings)

app = FastAPI(title="SiteStock", version="0.1.0")
setup_exception_handlers(app)
app.include_router(v1_router, prefix="/v1")
