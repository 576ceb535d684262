from fastapi import APIRouter
from app.api.admin import fields, requests, system, user_types

router = APIRouter()
router.include_router(fields.router, prefix="/fields", tags=["AdminFields"])
router.include_router(user_types.router, prefix="/user-types", tags=["AdminUserTypes"])
router.include_router(requests.router, prefix="/requests", tags=["AdminRequests"])
router.include_router(system.router, prefix="/system", tags=["AdminSystem"])
