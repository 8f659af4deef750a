from fastapi import APIRouter, Depends, UploadFile, File
from naagrik.api.dependencies import get_current_principal
from naagrik.core.security import Principal
from naagrik.schemas import UploadResponse
from naagrik.storage.image_storage import image_storage

router = APIRouter(tags=["uploads"])


@router.post("/upload", response_model=UploadResponse)
async def upload_image(
    image: UploadFile = File(...),
    principal: Principal = Depends(get_current_principal)
):
    """Store an issue photo and return its URL for use in the issue's photo field"""
    url, public_id = await image_storage.save_image(image)
    return UploadResponse(url=url, public_id=public_id)
