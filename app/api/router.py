from fastapi import APIRouter

from app.api.auth import router as auth_router
from app.api.export import router as export_router
from app.api.families import router as families_router
from app.api.family_permissions import router as family_permissions_router
from app.api.imports import router as imports_router
from app.api.invitations import router as invitations_router
from app.api.members import router as members_router
from app.api.notifications import router as notifications_router
from app.api.posts import comments_router
from app.api.posts import router as posts_router
from app.api.tree import router as tree_router
from app.api.uploads import router as uploads_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(members_router)
# static /permissions/available must register ahead of /families/{family_id}
api_router.include_router(family_permissions_router)
api_router.include_router(families_router)
api_router.include_router(invitations_router)
api_router.include_router(tree_router)
api_router.include_router(posts_router)
api_router.include_router(comments_router)
api_router.include_router(notifications_router)
api_router.include_router(uploads_router)
api_router.include_router(imports_router)
api_router.include_router(export_router)
