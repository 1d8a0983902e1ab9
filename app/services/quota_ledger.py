"""Per-user download quota bookkeeping.

All balance changes are single UPDATE statements whose arithmetic runs in the
database, so concurrent requests for the same user never work from a stale
balance. ``reserve`` additionally carries its balance check in the WHERE clause:
the row count tells whether the reservation happened.
"""
import logging

from sqlalchemy.orm import Session

from models.download_model import DownloadedFile
from models.user_model import User
from services.exceptions import InsufficientQuota
from utils.sizes import bytes_to_mb

logger = logging.getLogger(__name__)


def reserve(db: Session, user: User, file_size_gb: float) -> float:
    """Take ``file_size_gb`` from the user's quota and return the remaining quota.

    Raises InsufficientQuota and leaves the balance untouched when the user has
    less than ``file_size_gb`` available. The caller owns the transaction.
    """
    updated = db.query(User).filter(
        User.id == user.id,
        User.download_limit >= file_size_gb,
    ).update({
        User.download_limit: User.download_limit - file_size_gb,
        User.total_downloads: User.total_downloads + file_size_gb,
    }, synchronize_session=False)

    db.refresh(user)

    if updated != 1:
        logger.info("Quota rejected for user %s: need %.4f GB, have %.4f GB",
                    user.id, file_size_gb, user.download_limit)
        raise InsufficientQuota(file_size_gb, user.download_limit)

    logger.info("Reserved %.4f GB for user %s, %.4f GB left", file_size_gb, user.id, user.download_limit)
    return user.download_limit


def credit(db: Session, user_id: int, gb: float) -> None:
    db.query(User).filter(User.id == user_id).update({
        User.download_limit: User.download_limit + gb,
        User.total_purchased_storage: User.total_purchased_storage + gb,
    }, synchronize_session=False)
    logger.info("Credited %.2f GB to user %s", gb, user_id)


def refund(db: Session, user_id: int, gb: float) -> None:
    db.query(User).filter(User.id == user_id).update({
        User.download_limit: User.download_limit + gb,
        User.total_downloads: User.total_downloads - gb,
    }, synchronize_session=False)
    logger.info("Refunded %.4f GB to user %s", gb, user_id)


def record_download(db: Session, user: User, feed_item_id: int, size_bytes: int) -> DownloadedFile:
    entry = DownloadedFile(
        user_id=user.id,
        feed_item_id=feed_item_id,
        file_size_mb=bytes_to_mb(size_bytes),
    )
    db.add(entry)
    return entry


def forget_download(db: Session, downloaded_file_id) -> None:
    if downloaded_file_id is None:
        return
    db.query(DownloadedFile).filter(DownloadedFile.id == downloaded_file_id).delete(synchronize_session=False)
