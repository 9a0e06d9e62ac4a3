from fastapi import APIRouter

from app.api.v1.routers import payments as payments_router
from app.api.v1.routers import subscriptions as subscriptions_router

router = APIRouter()

router.include_router(payments_router.router)
router.include_router(subscriptions_router.router)
