"""
Link repository — coupon → affiliate link + active campaign.

A link resolves only while its campaign window is open:
    campaign.start_on < as_of < campaign.end_on
Both bounds are exclusive, so the boundary instants themselves are inactive.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.tables import AffiliateLink, Campaign, CommissionType


class ResolvedLink(BaseModel):
    """Denormalized link + campaign snapshot. Also the coupon cache payload."""
    link_id: UUID
    coupon: str
    affiliate_id: UUID
    campaign_id: UUID
    title: str
    url: str
    start_on: datetime
    end_on: datetime
    commission_type: CommissionType
    commission_value: Decimal
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LinkRepository:
    def __init__(self, db: AsyncSession):
        self._db = db

    async def find_active_by_coupon(self, coupon: str, as_of: datetime) -> ResolvedLink | None:
        stmt = (
            select(AffiliateLink, Campaign)
            .join(Campaign, AffiliateLink.campaign_id == Campaign.id)
            .where(
                AffiliateLink.coupon == coupon,
                Campaign.start_on < as_of,
                Campaign.end_on > as_of,
            )
            .order_by(AffiliateLink.id)
            .limit(1)
        )
        result = await self._db.execute(stmt)
        row = result.first()
        if row is None:
            return None

        link, campaign = row
        return ResolvedLink(
            link_id=link.id,
            coupon=link.coupon,
            affiliate_id=link.affiliate_id,
            campaign_id=link.campaign_id,
            title=campaign.title,
            url=campaign.url,
            start_on=campaign.start_on,
            end_on=campaign.end_on,
            commission_type=campaign.commission_type,
            commission_value=campaign.commission_value,
            created_at=link.created_at,
            updated_at=link.updated_at,
        )
