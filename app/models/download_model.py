from database import Base
from sqlalchemy import Column, Integer, String, DateTime, Float, Boolean, BIGINT, ForeignKey, func
from sqlalchemy.orm import relationship


class DownloadedFile(Base):
    __tablename__ = "downloaded_files"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    feed_item_id = Column(Integer, ForeignKey("feed_items.id", ondelete="SET NULL"), nullable=True)
    file_size_mb = Column(Float, nullable=False)
    downloaded_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="downloaded_files")
    feed_item = relationship("FeedItem")


class DownloadGrant(Base):
    """Server-side record of an issued download token, keyed by the token's jti."""
    __tablename__ = "download_grants"

    id = Column(Integer, primary_key=True, index=True)
    jti = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    feed_item_id = Column(Integer, ForeignKey("feed_items.id", ondelete="SET NULL"), nullable=True)
    file_size_bytes = Column(BIGINT, nullable=False)
    # history row written at issue time, removed again if the grant is refunded
    downloaded_file_id = Column(Integer, ForeignKey("downloaded_files.id", ondelete="SET NULL"), nullable=True)
    charged_gb = Column(Float, nullable=False)
    # epoch seconds, same value as the token's expiresAt claim
    expires_at = Column(Integer, nullable=False, index=True)
    redeemed_count = Column(Integer, nullable=False, default=0)
    last_redeemed_at = Column(DateTime(timezone=True), nullable=True)
    refunded = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="download_grants")
