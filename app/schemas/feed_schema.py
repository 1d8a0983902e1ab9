from pydantic import Field
from datetime import datetime
from typing import Optional

from schemas.base import CamelModel


class FeedItemResponse(CamelModel):
    id: int = Field(..., example=1, description="Feed item identification number")
    title: str = Field(..., example="Sample Video")
    description: str = Field(..., example="A sample video file")
    image: str = Field(..., example="/uploads/images/1740559919539_thumb.png", description="Thumbnail URL")
    storage_key: str = Field(..., example="/uploads/1740559919539_catmeme.zip", description="Storage path of the file")
    file_hash: str = Field(..., description="sha256 of the stored file")
    resolution: str = Field(..., example="1920 x 1080")
    duration: str = Field(..., example="00:15:30")
    file_type: str = Field(..., example=".zip")
    file_size: str = Field(..., example="586.05 MB", description="Human readable size")
    file_size_bytes: int = Field(..., example=614522470, description="File size in bytes")
    created_at: Optional[datetime] = None

class FeedPage(CamelModel):
    items: list[FeedItemResponse]
    total_pages: int
    current_page: int

class FeedItemMessage(CamelModel):
    message: str
    item: FeedItemResponse

class DownloadIssued(CamelModel):
    download_token: str = Field(..., description="Signed, short-lived download capability token")
    secure_download_url: str = Field(..., example="https://example.com/api/feed/secure-download?token=eyJ...")
    remaining_quota: float = Field(..., example=1.42, description="Remaining download quota in GB")

class SecureDownloadInfo(CamelModel):
    file_name: str = Field(..., example="1740559919539_catmeme.zip")
    file_size: int = Field(..., example=614522470, description="File size in bytes")
    download_url: str = Field(..., example="https://example.com/api/feed/start-download?token=eyJ...")
