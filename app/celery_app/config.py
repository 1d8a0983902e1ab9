import os

import redis
from celery import Celery
from database import Base, db
from dotenv import load_dotenv

from models import Blacklisted_tokens_model, device_model, download_model, feed_item_model, payment_model, support_model, user_model
Base.metadata.create_all(bind=db)

load_dotenv()

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

celery_app = Celery(
    "task",
    broker=REDIS_URL,
    backend=REDIS_URL
)

celery_app.conf.beat_schedule = {
    "refund-expired-download-grants": {
        "task": "celery_app.tasks.refund_expired_grants",
        "schedule": float(os.getenv("REFUND_SWEEP_INTERVAL", "60")),
    },
    "purge-blacklisted-tokens": {
        "task": "celery_app.tasks.purge_blacklisted_tokens",
        "schedule": 3600.0,
    },
}

r = redis.from_url(REDIS_URL)

celery_app.autodiscover_tasks(['celery_app.tasks'])
