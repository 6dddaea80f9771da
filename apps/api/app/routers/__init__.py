"""API routers."""

from app.routers.admin_customers import router as admin_customers_router
from app.routers.admin_investigators import router as admin_investigators_router
from app.routers.admin_requests import router as admin_requests_router
from app.routers.audit import router as audit_router
from app.routers.investigation_requests import router as investigation_requests_router
from app.routers.investigators import router as investigators_router

__all__ = [
    "admin_customers_router",
    "admin_investigators_router",
    "admin_requests_router",
    "audit_router",
    "investigation_requests_router",
    "investigators_router",
]
