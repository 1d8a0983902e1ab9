import hashlib
import logging
import random

from database import Base, SessionLocal, db
from models.feed_item_model import FeedItem
from sqlalchemy.exc import IntegrityError
from utils.log import configure_logging
from utils.sizes import parse_size

logger = logging.getLogger(__name__)

RESOLUTIONS = ["320 x 240", "640 x 480", "1280 x 720", "1920 x 1080"]
DURATIONS = ["00:05:00", "00:15:30", "00:28:00", "01:02:45"]
FILE_TYPES = [".mpg", ".mp4", ".avi", ".mov"]
FILE_SIZES = ["200 MB", "586.051 MB", "1.2 GB", "3.5 GB"]


def generate_dummy_item(index):
    file_type = random.choice(FILE_TYPES)
    stored_name = f"sample_{index}{file_type}"
    return FeedItem(
        title=f"Sample Video {index}",
        description="This is a sample video file with random metadata.",
        image="/uploads/images/placeholder.png",
        storage_key=f"/uploads/{stored_name}",
        file_hash=hashlib.sha256(stored_name.encode("utf-8")).hexdigest(),
        resolution=random.choice(RESOLUTIONS),
        duration=random.choice(DURATIONS),
        file_type=file_type,
        file_size_bytes=parse_size(random.choice(FILE_SIZES)),
    )


def seed(count=30):
    Base.metadata.create_all(bind=db)
    added = 0
    for index in range(1, count + 1):
        session = SessionLocal()
        try:
            session.add(generate_dummy_item(index))
            session.commit()
            added += 1
        except IntegrityError:
            session.rollback()
            logger.warning("Sample item %d already exists, skipping", index)
        finally:
            session.close()
    logger.info("Added %d dummy feed items", added)
    return added


if __name__ == "__main__":
    configure_logging()
    seed()
