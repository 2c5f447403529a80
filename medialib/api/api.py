# File: medialib/api/api.py

from fastapi import APIRouter

from medialib.api.endpoints import albums, files, media, playlists, tags, utils

api_router = APIRouter()

api_router.include_router(media.router, prefix="/medias", tags=["Media"])
api_router.include_router(tags.router, prefix="/tags", tags=["Tags"])
api_router.include_router(playlists.router, prefix="/playlists", tags=["Playlists"])
api_router.include_router(albums.router, prefix="/albums", tags=["Albums"])
api_router.include_router(utils.router, prefix="/utils", tags=["Utilities"])
api_router.include_router(files.router, prefix="/file", tags=["Files"])
