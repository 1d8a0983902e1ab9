from sqlalchemy import Column, Integer, String, DateTime, Float, func
from database import Base
from sqlalchemy.orm import relationship


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user")
    country = Column(String, default="Unknown")
    ip_address = Column(String, default="Unknown")
    user_agent = Column(String, default="Unknown")
    device_token = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login = Column(DateTime(timezone=True), nullable=True)

    # quota ledger, all in GB
    download_limit = Column(Float, nullable=False, default=0.0)
    total_purchased_storage = Column(Float, nullable=False, default=0.0)
    total_downloads = Column(Float, nullable=False, default=0.0)

    allowed_devices = relationship("AllowedDevice", back_populates="user", cascade="all, delete-orphan")
    pending_devices = relationship("PendingDevice", back_populates="user", cascade="all, delete-orphan")
    login_history = relationship("LoginHistory", back_populates="user", cascade="all, delete-orphan")
    downloaded_files = relationship("DownloadedFile", back_populates="user", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="user")
    download_grants = relationship("DownloadGrant", back_populates="user")

    @property
    def is_admin(self):
        return self.role == "admin"
