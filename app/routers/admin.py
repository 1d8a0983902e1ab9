import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from database import get_db
from dependencies import get_current_admin
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from models.device_model import AllowedDevice, PendingDevice
from models.download_model import DownloadedFile
from models.feed_item_model import FeedItem
from models.payment_model import Payment
from models.user_model import User
from schemas.admin_schema import DashboardResponse, UploadResponse
from schemas.payment_schema import AdminPaymentResponse
from schemas.user_schema import DeviceRequest, DevicesResponse, MessageResponse
from services import file_storage
from sqlalchemy import desc, func
from sqlalchemy.orm import Session, joinedload

logger = logging.getLogger(__name__)

router = APIRouter()

ACTIVE_WINDOW = timedelta(days=30)
DASHBOARD_LIMIT = 5


def _device_token_required(request: DeviceRequest) -> str:
    if not request.device_token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Device token is required")
    return request.device_token


@router.get("/dashboard", response_model=DashboardResponse, summary="Admin dashboard statistics")
def get_dashboard_stats(admin: User = Depends(get_current_admin), db: Session = Depends(get_db)):
    active_since = datetime.now(timezone.utc) - ACTIVE_WINDOW

    total_users = db.query(User).count()
    active_users = db.query(User).filter(User.last_login >= active_since).count()
    revenue = db.query(func.coalesce(func.sum(Payment.amount), 0.0)).filter(Payment.status == "completed").scalar()
    total_downloads = db.query(DownloadedFile).count()

    transactions = db.query(Payment).options(joinedload(Payment.user)).order_by(
        Payment.created_at.desc(), Payment.id.desc()).limit(DASHBOARD_LIMIT).all()

    top_items = db.query(
        FeedItem.id, FeedItem.title, func.count(DownloadedFile.id).label("download_count")
    ).join(DownloadedFile, DownloadedFile.feed_item_id == FeedItem.id).group_by(
        FeedItem.id, FeedItem.title
    ).order_by(desc("download_count"), FeedItem.id).limit(DASHBOARD_LIMIT).all()

    return {
        "total_users": total_users,
        "active_users": active_users,
        "total_revenue": float(revenue or 0),
        "total_downloads": total_downloads,
        "recent_transactions": [
            {
                "id": tx.id,
                "user": tx.user.name if tx.user else "Unknown",
                "amount": tx.amount,
                "status": tx.status.capitalize(),
                "date": tx.created_at,
            }
            for tx in transactions
        ],
        "top_feed_items": [
            {"id": row.id, "title": row.title, "download_count": row.download_count} for row in top_items
        ],
    }


@router.get("/devices", response_model=DevicesResponse, summary="Approved devices of the logged-in admin")
def get_approved_devices(admin: User = Depends(get_current_admin)):
    return {"allowed_devices": [device.device_token for device in admin.allowed_devices]}


@router.post("/approve-device", response_model=MessageResponse, summary="Approve a device",
             responses={400: {"description": "Device token is required"}})
def approve_device(request: DeviceRequest, admin: User = Depends(get_current_admin), db: Session = Depends(get_db)):
    device_token = _device_token_required(request)

    exists = db.query(AllowedDevice).filter(AllowedDevice.user_id == admin.id,
                                            AllowedDevice.device_token == device_token).first()
    if not exists:
        db.add(AllowedDevice(user_id=admin.id, device_token=device_token))

    db.query(PendingDevice).filter(PendingDevice.user_id == admin.id,
                                   PendingDevice.device_token == device_token).update(
        {PendingDevice.approved: True}, synchronize_session=False)
    db.commit()
    logger.info("Admin %s approved a device", admin.id)

    return {"detail": "Device approved successfully"}


@router.post("/remove-device", response_model=MessageResponse, summary="Remove an approved device",
             responses={400: {"description": "Device token is required"}})
def remove_device(request: DeviceRequest, admin: User = Depends(get_current_admin), db: Session = Depends(get_db)):
    device_token = _device_token_required(request)

    db.query(AllowedDevice).filter(AllowedDevice.user_id == admin.id,
                                   AllowedDevice.device_token == device_token).delete(synchronize_session=False)
    db.commit()
    db.expire(admin, ["allowed_devices"])
    logger.info("Admin %s removed a device", admin.id)

    return {"detail": "Device removed successfully"}


@router.get("/payments", response_model=list[AdminPaymentResponse], summary="All payments, newest first")
def get_all_payments(admin: User = Depends(get_current_admin), db: Session = Depends(get_db)):
    return db.query(Payment).options(joinedload(Payment.user)).order_by(
        Payment.created_at.desc(), Payment.id.desc()).all()


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED,
             summary="Upload a ZIP file and/or an image",
             responses={
                 400: {"description": "At least one file (ZIP or Image) is required"},
                 413: {"description": "Upload file is too large"},
             })
def upload_files(file: Optional[UploadFile] = File(None),
                 image: Optional[UploadFile] = File(None),
                 admin: User = Depends(get_current_admin)):
    if file is None and image is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail="At least one file (ZIP or Image) is required")
    if file is not None and file.content_type not in file_storage.ALLOWED_ARCHIVE_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only ZIP files and images are allowed")
    if image is not None and image.content_type not in file_storage.ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only ZIP files and images are allowed")

    file_url = image_url = None
    try:
        if file is not None:
            stored_name, _, _ = file_storage.save_upload(file, file_storage.uploads_dir())
            file_url = file_storage.storage_key_for(stored_name)
        if image is not None:
            image_name, _, _ = file_storage.save_upload(image, file_storage.images_dir())
            image_url = file_storage.image_url_for(image_name)
    except file_storage.UploadTooLarge:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File too large")

    logger.info("Admin %s uploaded file=%s image=%s", admin.id, file_url, image_url)
    return {"message": "File uploaded successfully", "file_url": file_url, "image_url": image_url}
