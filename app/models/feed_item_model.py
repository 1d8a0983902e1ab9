from database import Base
from sqlalchemy import Column, Integer, String, DateTime, Text, BIGINT, func
from utils.sizes import format_size_mb


class FeedItem(Base):
    __tablename__ = "feed_items"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    image = Column(String, nullable=False)
    storage_key = Column(String, nullable=False)
    file_hash = Column(String, unique=True, index=True, nullable=False)
    resolution = Column(String, nullable=False)
    duration = Column(String, nullable=False)
    file_type = Column(String, nullable=False)
    file_size_bytes = Column(BIGINT, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def file_size(self):
        return format_size_mb(self.file_size_bytes or 0)
