"""Record store for leads, customers and engagements.

Each write runs in its own database session and is committed before the
call returns, so a caller sequencing several writes observes every partial
outcome.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.future import select

from portal_api.core.enums import EngagementStatus
from portal_api.core.exceptions import RecordStoreError
from portal_api.core.metrics import track_db_operation
from portal_api.models.customer import Customer
from portal_api.models.engagement import Engagement
from portal_api.models.lead import Lead

logger = logging.getLogger(__name__)


class RecordStore(ABC):

    @abstractmethod
    async def get_lead(self, lead_id: int) -> Optional[Lead]:
        ...

    @abstractmethod
    async def insert_customer(self, fields: dict) -> Customer:
        ...

    @abstractmethod
    async def insert_engagement(self, fields: dict) -> Engagement:
        ...

    @abstractmethod
    async def delete_lead(self, lead_id: int) -> bool:
        """Delete a lead. Returns False when it was already gone."""


class SqlRecordStore(RecordStore):

    def __init__(self, session_factory):
        self._session_factory = session_factory

    @track_db_operation("select", "leads")
    async def get_lead(self, lead_id: int) -> Optional[Lead]:
        try:
            async with self._session_factory() as db:
                res = await db.execute(select(Lead).where(Lead.id == lead_id))
                return res.scalars().first()
        except (SQLAlchemyError, OSError) as e:
            raise RecordStoreError("get_lead", str(e)) from e

    @track_db_operation("insert", "customers")
    async def insert_customer(self, fields: dict) -> Customer:
        customer = Customer(**fields)
        await self._insert(customer, "insert_customer")
        logger.info(f"Customer {customer.id} created")
        return customer

    @track_db_operation("insert", "engagements")
    async def insert_engagement(self, fields: dict) -> Engagement:
        fields = dict(fields)
        fields["status"] = EngagementStatus.PENDING
        engagement = Engagement(**fields)
        await self._insert(engagement, "insert_engagement")
        logger.info(f"Engagement {engagement.id} created for customer {engagement.customer_id}")
        return engagement

    @track_db_operation("delete", "leads")
    async def delete_lead(self, lead_id: int) -> bool:
        try:
            async with self._session_factory() as db:
                res = await db.execute(select(Lead).where(Lead.id == lead_id))
                lead = res.scalars().first()
                if lead is None:
                    logger.info(f"Lead {lead_id} already removed")
                    return False
                await db.delete(lead)
                await db.commit()
        except (SQLAlchemyError, OSError) as e:
            raise RecordStoreError("delete_lead", str(e)) from e
        logger.info(f"Lead {lead_id} deleted")
        return True

    async def _insert(self, record, operation: str):
        try:
            async with self._session_factory() as db:
                db.add(record)
                await db.commit()
                await db.refresh(record)
        except (SQLAlchemyError, OSError) as e:
            raise RecordStoreError(operation, str(e)) from e
