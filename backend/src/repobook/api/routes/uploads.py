"""
Upload API routes.

- POST /uploads/sign - Signed parameters for a browser-side image upload
"""

from fastapi import APIRouter, Depends

from repobook.api.auth import AuthContext, get_current_user
from repobook.api.dependencies import get_uploader
from repobook.api.schemas import UploadSignatureResponse
from repobook.diagrams.uploader import CloudinaryUploader

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.post("/sign", response_model=UploadSignatureResponse)
def sign_upload(
    auth: AuthContext = Depends(get_current_user),
    uploader: CloudinaryUploader = Depends(get_uploader),
) -> UploadSignatureResponse:
    return UploadSignatureResponse(**uploader.sign_upload())
