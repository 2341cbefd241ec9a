"""
Database models — the "truth layer."

Design principles:
  - Affiliates, campaigns and links are owned by the partner CRUD API;
    this service only reads them
  - click_events is append-only (no updates/deletes)
  - The coupon cache in Redis is a denormalized copy of link + campaign
"""

import enum
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    pass


class CommissionType(str, enum.Enum):
    PERCENT = "PERCENT"
    FIXED = "FIXED"


class ClickStatus(str, enum.Enum):
    CLICK = "CLICK"
    CONVERSION = "CONVERSION"


class PaymentStatus(str, enum.Enum):
    HOLD = "HOLD"
    RELEASE = "RELEASE"


# ---------------------------------------------------------------------------
# Entity tables
# ---------------------------------------------------------------------------

class Affiliate(Base):
    __tablename__ = "affiliates"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    links = relationship("AffiliateLink", back_populates="affiliate")


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(Uuid, primary_key=True, default=uuid4)
    title = Column(String(255), nullable=False)
    url = Column(Text, nullable=False)                       # destination

    # A link resolves only while start_on < now < end_on
    start_on = Column(DateTime(timezone=True), nullable=False)
    end_on = Column(DateTime(timezone=True), nullable=False)

    commission_type = Column(Enum(CommissionType, name="commission_type"),
                             nullable=False, default=CommissionType.PERCENT)
    commission_value = Column(Numeric(10, 2), nullable=False, default=0)

    is_approved = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    links = relationship("AffiliateLink", back_populates="campaign")

    __table_args__ = (
        Index("ix_campaigns_window", "start_on", "end_on"),
    )


class AffiliateLink(Base):
    __tablename__ = "affiliate_links"

    id = Column(Uuid, primary_key=True, default=uuid4)
    coupon = Column(String(64), nullable=False, unique=True, index=True)
    affiliate_id = Column(Uuid, ForeignKey("affiliates.id"), nullable=False, index=True)
    campaign_id = Column(Uuid, ForeignKey("campaigns.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    affiliate = relationship("Affiliate", back_populates="links")
    campaign = relationship("Campaign", back_populates="links")


# ---------------------------------------------------------------------------
# Event tables (append-only)
# ---------------------------------------------------------------------------

class ClickEvent(Base):
    """One row per resolved coupon redirect. Written by the tracking sink."""
    __tablename__ = "click_events"

    id = Column(Uuid, primary_key=True, default=uuid4)
    country = Column(String(16), nullable=False, default="UNKNOWN")
    affiliate_id = Column(Uuid, nullable=False)
    campaign_id = Column(Uuid, nullable=False)
    link_id = Column(Uuid, ForeignKey("affiliate_links.id"), nullable=False)

    status = Column(Enum(ClickStatus, name="click_status"), nullable=False, default=ClickStatus.CLICK)
    payment = Column(Enum(PaymentStatus, name="payment_status"), nullable=False, default=PaymentStatus.HOLD)
    amount = Column(Numeric(10, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_click_events_affiliate_created", "affiliate_id", "created_at"),
        Index("ix_click_events_campaign_created", "campaign_id", "created_at"),
    )
