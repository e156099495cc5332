from fastapi import APIRouter
from notes_api.api.endpoints import notes, settings, subscriptions

api_router = APIRouter()

api_router.include_router(notes.router, prefix="/notes", tags=["notes"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(subscriptions.router, tags=["push"])
