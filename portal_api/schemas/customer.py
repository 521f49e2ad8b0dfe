from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime
from portal_api.core.enums import EngagementStatus


class CustomerOut(BaseModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    city: Optional[str] = None
    created_at: Optional[datetime] = None


class EngagementOut(BaseModel):
    id: int
    customer_id: int
    title: str
    description: str
    status: EngagementStatus
    start_date: date
    target_end_date: date
    actual_end_date: Optional[date] = None
    budget: Optional[float] = None
    created_at: Optional[datetime] = None


class CustomerDetailOut(BaseModel):
    customer: CustomerOut
    engagements: List[EngagementOut]
    has_portal_login: bool
