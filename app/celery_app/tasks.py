import json
import logging
import time
from datetime import datetime, timezone

from celery_app.config import celery_app, r

from database import SessionLocal
from models.Blacklisted_tokens_model import BlacklistedToken
from models.download_model import DownloadGrant
from services import quota_ledger

logger = logging.getLogger(__name__)

SWEEP_BATCH = 500


@celery_app.task(name="celery_app.tasks.refund_expired_grants")
def refund_expired_grants(now=None, db=None):
    """Give back the quota of download grants that expired without a single redemption.

    Each grant is claimed by flipping ``refunded`` in a conditional UPDATE, so
    overlapping sweeps refund a grant at most once.
    """
    now = int(time.time()) if now is None else int(now)
    owns_session = db is None
    if owns_session:
        db = SessionLocal()

    refunded = 0
    try:
        grants = db.query(DownloadGrant).filter(
            DownloadGrant.expires_at < now,
            DownloadGrant.redeemed_count == 0,
            DownloadGrant.refunded == False,
        ).order_by(DownloadGrant.id).limit(SWEEP_BATCH).all()

        for grant in grants:
            claimed = db.query(DownloadGrant).filter(
                DownloadGrant.id == grant.id,
                DownloadGrant.refunded == False,
                DownloadGrant.redeemed_count == 0,
            ).update({DownloadGrant.refunded: True}, synchronize_session=False)
            if claimed != 1:
                db.rollback()
                continue

            if grant.user_id is not None:
                quota_ledger.refund(db, grant.user_id, grant.charged_gb)
            quota_ledger.forget_download(db, grant.downloaded_file_id)
            db.commit()
            refunded += 1
            logger.info("Refunded unused download grant %s (%.4f GB) to user %s",
                        grant.jti, grant.charged_gb, grant.user_id)
    except Exception:
        db.rollback()
        raise
    finally:
        if owns_session:
            db.close()

    if owns_session:
        r.set("maintenance:refund_sweep", json.dumps({"ts": now, "refunded": refunded}))
    return refunded


@celery_app.task(name="celery_app.tasks.purge_blacklisted_tokens")
def purge_blacklisted_tokens(now=None, db=None):
    now = now or datetime.now(timezone.utc)
    owns_session = db is None
    if owns_session:
        db = SessionLocal()
    try:
        deleted = db.query(BlacklistedToken).filter(
            BlacklistedToken.expires_at < now
        ).delete(synchronize_session=False)
        db.commit()
    finally:
        if owns_session:
            db.close()
    logger.info("Purged %d expired blacklisted tokens", deleted)
    return deleted
