from fastapi import APIRouter

from valuation.api.v1.health import router as health_router
from valuation.api.v1.auth import router as auth_router
from valuation.api.v1.valuations import router as valuations_router
from valuation.api.v1.options import router as options_router

v1_router = APIRouter()

v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(auth_router, tags=["auth"])
v1_router.include_router(valuations_router)
v1_router.include_router(options_router)
