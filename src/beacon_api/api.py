
from fastapi import APIRouter

from beacon_api.modules.admin.router import router as admin_router
from beacon_api.modules.applications.router import router as applications_router
from beacon_api.modules.auth.router import router as auth_router
from beacon_api.modules.payments.router import router as payments_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Auth"])
api_router.include_router(applications_router, tags=["Applications"])
api_router.include_router(payments_router, prefix="/payment", tags=["Payments"])
api_router.include_router(admin_router, prefix="/admin", tags=["Admin"])
