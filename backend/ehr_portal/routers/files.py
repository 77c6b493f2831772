from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse, Response
from ehr_portal.auth import get_current_user, UserPrincipal
from ehr_portal.config import Settings, get_app_settings
from ehr_portal.schemas.file import FileUploadResponse
from ehr_portal.services.file_service import file_service

router = APIRouter()


@router.post("/upload-file", response_model=FileUploadResponse)
async def upload_file(
    file: UploadFile = File(...),
    current_user: UserPrincipal = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
):
    """Store the bytes; the returned fileHash is what /uploadRecord and appointments reference."""
    stored = await file_service.store(file, settings.upload_dir, settings.max_upload_bytes)
    return FileUploadResponse(file=stored)


@router.get("/file/{file_hash}")
async def get_file(
    file_hash: str,
    current_user: UserPrincipal = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
):
    resolved = file_service.resolve(file_hash, settings.upload_dir)
    if resolved.content is not None:
        return Response(content=resolved.content, media_type=resolved.media_type)
    return FileResponse(resolved.path, media_type=resolved.media_type)
