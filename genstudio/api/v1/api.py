from fastapi import APIRouter

from genstudio.api.v1.endpoints import animations, background, downloads, images, soundtovideo

api_router = APIRouter()

api_router.include_router(images.router, prefix="/images", tags=["images"])
api_router.include_router(animations.router, prefix="/animations", tags=["animations"])
api_router.include_router(soundtovideo.router, prefix="/soundtovideo", tags=["soundtovideo"])
api_router.include_router(background.router, prefix="/remove-background", tags=["remove-background"])
api_router.include_router(downloads.router, tags=["downloads"])
