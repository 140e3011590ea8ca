"""
Media utility routes backed by Cloudinary.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, File, Request, UploadFile

from app.core.errors import BadRequest, UpstreamFailure
from app.features.media.client import CloudinaryClient
from app.features.media.schemas import SignatureResponse, UploadResponse
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter()

MISSING_SETTINGS = (
    "Missing Cloudinary environment variables "
    "(CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET)"
)


def get_cloudinary(request: Request) -> CloudinaryClient:
    cloudinary: CloudinaryClient = request.app.state.cloudinary
    if not cloudinary.is_configured:
        raise UpstreamFailure(MISSING_SETTINGS)
    return cloudinary


@router.api_route("/cloudinary-sign", methods=["GET", "POST"], response_model=SignatureResponse)
async def cloudinary_sign(cloudinary: Annotated[CloudinaryClient, Depends(get_cloudinary)]):
    """Return a timestamp signature for direct browser uploads."""
    return cloudinary.signature_payload()


@router.post("/upload", response_model=UploadResponse)
async def upload(
    cloudinary: Annotated[CloudinaryClient, Depends(get_cloudinary)],
    file: Optional[UploadFile] = File(None, description='File to upload, sent as form field "file"'),
):
    """Upload a file to Cloudinary and return its public URL."""
    if file is None:
        raise BadRequest('No file uploaded. Use key "file" in form-data.')

    content = await file.read()
    result = await cloudinary.upload(file.filename or "upload", content)

    url = result.get("secure_url")
    public_id = result.get("public_id")
    if not url or not public_id:
        log.error("Cloudinary response for %s lacks secure_url or public_id: %s", file.filename, result)
        raise UpstreamFailure("Upload failed", "Cloudinary response is missing secure_url or public_id")

    log.info("Uploaded %s (%d bytes) as %s", file.filename, len(content), public_id)
    return {
        "success": True,
        "url": url,
        "publicId": public_id,
    }
