"""
Pydantic schemas for media responses.
"""
from pydantic import BaseModel


class SignatureResponse(BaseModel):
    timestamp: int
    signature: str
    cloudName: str
    apiKey: str


class UploadResponse(BaseModel):
    success: bool = True
    url: str
    publicId: str
