"""
RecipeShare Backend — Recipe Image Route
==========================================

What:  Serves uploaded recipe images from STORAGE_ROOT.
Who:   <img> tags in the dashboard, via the `image` URL on each recipe.

Paths that resolve outside the storage root are rejected with 400, so
`../` sequences cannot reach other files on the host.
"""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from recipeshare.schemas.common import ErrorResponse
from recipeshare.services.file_service import file_service, media_type_for

router = APIRouter(prefix="/api", tags=["Files"])


@router.get(
    "/files/{file_path:path}",
    summary="Serve an uploaded recipe image",
    responses={
        200: {"description": "Image file"},
        400: {"description": "Path outside the storage root", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_file(file_path: str) -> FileResponse:
    full_path = file_service.resolve(file_path)
    return FileResponse(
        path=str(full_path),
        media_type=media_type_for(full_path),
        # Stored names are UUIDs and never rewritten
        headers={"Cache-Control": "public, max-age=86400"},
    )
