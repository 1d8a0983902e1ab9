from datetime import datetime
from typing import Optional

from schemas.base import CamelModel
from schemas.payment_schema import PaymentResponse
from schemas.user_schema import UserResponse


class RecentTransaction(CamelModel):
    id: int
    user: str
    amount: float
    status: str
    date: Optional[datetime] = None

class TopFeedItem(CamelModel):
    id: int
    title: str
    download_count: int

class DashboardResponse(CamelModel):
    total_users: int
    active_users: int
    total_revenue: float
    total_downloads: int
    recent_transactions: list[RecentTransaction]
    top_feed_items: list[TopFeedItem]

class UploadResponse(CamelModel):
    message: str
    file_url: Optional[str] = None
    image_url: Optional[str] = None

class DownloadEntry(CamelModel):
    feed_item_id: Optional[int] = None
    file_size_mb: float
    downloaded_at: Optional[datetime] = None

class ProfileResponse(CamelModel):
    user: UserResponse
    transactions: list[PaymentResponse]
    downloads: list[DownloadEntry]
