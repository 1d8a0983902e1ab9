from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database import Base


class AllowedDevice(Base):
    __tablename__ = "allowed_devices"
    __table_args__ = (UniqueConstraint("user_id", "device_token", name="uq_allowed_device"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    device_token = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="allowed_devices")


class PendingDevice(Base):
    __tablename__ = "pending_devices"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    device_token = Column(String, nullable=False)
    ip_address = Column(String)
    user_agent = Column(String)
    country = Column(String)
    approved = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="pending_devices")


class LoginHistory(Base):
    __tablename__ = "login_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    device_token = Column(String)
    ip_address = Column(String)
    user_agent = Column(String)
    country = Column(String)
    login_time = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="login_history")
