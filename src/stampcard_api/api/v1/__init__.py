from fastapi import APIRouter

from .endpoints import (
    admin,
    health,
    observability,
    offers,
    scans,
    sessions,
    users,
)

router = APIRouter()
router.include_router(health.router, tags=["Health"])
router.include_router(offers.router)
router.include_router(scans.router)
router.include_router(users.router)
router.include_router(sessions.router)
router.include_router(admin.router)
router.include_router(observability.router)
