"""Quota-gated download capability tokens.

A token is an HS256 JWT carrying ``filePath``, ``fileName``, ``fileSize`` (bytes),
``userId``, ``expiresAt`` (epoch seconds) and a ``jti``. Issuing one takes the
file's size from the user's quota; the matching DownloadGrant row tracks
redemptions so the policy can be single-use and so that grants that expire
unredeemed can be refunded by the maintenance sweep.
"""
import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import uuid4

from jose import jwt
from jose.exceptions import JOSEError
from sqlalchemy.orm import Session

from models.download_model import DownloadGrant
from models.feed_item_model import FeedItem
from models.user_model import User
from services import quota_ledger
from services.exceptions import NotFound, NotFoundOnDisk, InvalidOrExpired
from services.file_storage import stored_file_path
from utils.auth import secret_key
from utils.sizes import bytes_to_gb

logger = logging.getLogger(__name__)

TOKEN_TYPE = "download"
TOKEN_ALGORITHM = "HS256"
POLICY_MULTI = "multi"
POLICY_SINGLE = "single"


@dataclass
class IssuedDownload:
    token: str
    url: str
    remaining_quota: float
    expires_at: int


def token_secret():
    return os.getenv("DOWNLOAD_TOKEN_SECRET") or secret_key()


def token_ttl():
    return int(os.getenv("DOWNLOAD_TOKEN_TTL", "300"))


def token_policy():
    policy = os.getenv("DOWNLOAD_TOKEN_POLICY", POLICY_MULTI).strip().lower()
    if policy not in (POLICY_MULTI, POLICY_SINGLE):
        raise ValueError(f"DOWNLOAD_TOKEN_POLICY must be '{POLICY_MULTI}' or '{POLICY_SINGLE}', got {policy!r}")
    return policy


def base_url():
    return os.getenv("BASE_URL", "http://localhost:8000").rstrip("/")


def secure_download_url(token):
    return f"{base_url()}/api/feed/secure-download?token={token}"


def start_download_url(token):
    return f"{base_url()}/api/feed/start-download?token={token}"


def _now(now):
    return int(time.time()) if now is None else int(now)


def issue_download(db: Session, user: User, feed_item_id: int, now=None) -> IssuedDownload:
    item = db.query(FeedItem).filter(FeedItem.id == feed_item_id).first()
    if not item:
        raise NotFound("Item not found")

    if not os.path.isfile(stored_file_path(item.storage_key)):
        logger.error("Feed item %s points at missing file %s", item.id, item.storage_key)
        raise NotFoundOnDisk(item.storage_key)

    size_gb = bytes_to_gb(item.file_size_bytes)
    remaining = quota_ledger.reserve(db, user, size_gb)

    issued_at = _now(now)
    expires_at = issued_at + token_ttl()
    jti = uuid4().hex
    payload = {
        "filePath": item.storage_key,
        "fileName": os.path.basename(item.storage_key),
        "fileSize": item.file_size_bytes,
        "userId": user.id,
        "expiresAt": expires_at,
        "exp": expires_at,
        "jti": jti,
        "typ": TOKEN_TYPE,
    }
    token = jwt.encode(payload, token_secret(), algorithm=TOKEN_ALGORITHM)

    history = quota_ledger.record_download(db, user, item.id, item.file_size_bytes)
    db.flush()
    db.add(DownloadGrant(
        jti=jti,
        user_id=user.id,
        feed_item_id=item.id,
        downloaded_file_id=history.id,
        file_size_bytes=item.file_size_bytes,
        charged_gb=size_gb,
        expires_at=expires_at,
    ))
    db.commit()

    logger.info("Issued download token %s for item %s to user %s, expires at %s",
                jti, item.id, user.id, expires_at)
    return IssuedDownload(token=token, url=secure_download_url(token),
                          remaining_quota=remaining, expires_at=expires_at)


def verify_download_token(token: str, now=None) -> dict:
    """Return the token payload, or raise InvalidOrExpired.

    Expiry is checked here against ``expiresAt`` instead of by the JWT library
    so that a token is valid up to and including its expiry second.
    """
    try:
        payload = jwt.decode(token, token_secret(), algorithms=[TOKEN_ALGORITHM],
                             options={"verify_exp": False})
    except JOSEError:
        raise InvalidOrExpired("Invalid or expired token")

    expires_at = payload.get("expiresAt")
    if payload.get("typ") != TOKEN_TYPE or not isinstance(expires_at, int) or not payload.get("jti"):
        raise InvalidOrExpired("Invalid or expired token")

    if _now(now) > expires_at:
        raise InvalidOrExpired("Invalid or expired token")

    return payload


def get_redeemable_grant(db: Session, payload: dict) -> DownloadGrant:
    grant = db.query(DownloadGrant).populate_existing().filter(DownloadGrant.jti == payload["jti"]).first()
    if not grant or grant.refunded:
        raise InvalidOrExpired("Invalid or expired token")
    if token_policy() == POLICY_SINGLE and grant.redeemed_count > 0:
        raise InvalidOrExpired("Download token already used")
    return grant


def redeem(db: Session, payload: dict) -> DownloadGrant:
    """Count one redemption of the token's grant.

    The claim only succeeds while the grant has not been refunded by the
    expiry sweep, and under the single-use policy only while it has no
    redemptions, so two racing requests cannot both stream the file.
    """
    grant = get_redeemable_grant(db, payload)

    query = db.query(DownloadGrant).filter(DownloadGrant.id == grant.id, DownloadGrant.refunded == False)
    if token_policy() == POLICY_SINGLE:
        query = query.filter(DownloadGrant.redeemed_count == 0)
    updated = query.update({
        DownloadGrant.redeemed_count: DownloadGrant.redeemed_count + 1,
        DownloadGrant.last_redeemed_at: datetime.now(timezone.utc),
    }, synchronize_session=False)

    if updated != 1:
        db.rollback()
        db.refresh(grant)
        if grant.refunded:
            raise InvalidOrExpired("Invalid or expired token")
        raise InvalidOrExpired("Download token already used")

    db.commit()
    db.refresh(grant)
    logger.info("Redeemed download token %s (%d redemptions)", grant.jti, grant.redeemed_count)
    return grant
