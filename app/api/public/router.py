from fastapi import APIRouter
from app.api.public import requests, user_types

router = APIRouter()
router.include_router(user_types.router, prefix="/user-types", tags=["Public"])
router.include_router(requests.router, prefix="/requests", tags=["Public"])
