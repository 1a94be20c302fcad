from __future__ import annotations

from fastapi import APIRouter

from teamfeed.api.v1.auth import router as auth_router
from teamfeed.api.v1.collaboration import router as collaboration_router
from teamfeed.api.v1.invites import router as invites_router
from teamfeed.api.v1.projects import router as projects_router
from teamfeed.api.v1.public import router as public_router
from teamfeed.api.v1.sharing import router as sharing_router
from teamfeed.api.v1.teams import router as teams_router
from teamfeed.api.v1.updates import router as updates_router
from teamfeed.api.v1.users import router as users_router

api_v1_router = APIRouter()

api_v1_router.include_router(auth_router)
api_v1_router.include_router(users_router)
api_v1_router.include_router(teams_router)
api_v1_router.include_router(projects_router)
api_v1_router.include_router(collaboration_router)
api_v1_router.include_router(invites_router)
api_v1_router.include_router(sharing_router)
api_v1_router.include_router(updates_router)
api_v1_router.include_router(public_router)
