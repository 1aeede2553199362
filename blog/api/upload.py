from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel

from blog.dependencies import get_current_user
from blog.models.user import User
from blog.services.uploads import upload_image

router = APIRouter(prefix="/api/upload", tags=["upload"])


class UploadResponse(BaseModel):
    url: str
    public_id: str


@router.post("/image", response_model=UploadResponse)
def upload(file: UploadFile = File(...), user: User = Depends(get_current_user)):
    """Upload an image (max 5MB) and return its public URL"""
    return upload_image(file)
