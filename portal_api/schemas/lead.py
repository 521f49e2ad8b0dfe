from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
from portal_api.core.enums import LeadStatus, ServiceCategory


class LeadCreate(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    company: Optional[str] = None
    city: Optional[str] = None
    service_category: ServiceCategory = ServiceCategory.OTHER
    budget_range: Optional[str] = None
    desired_deadline: Optional[str] = None
    description: Optional[str] = None
    status: LeadStatus = LeadStatus.NEW
    source: Optional[str] = None
    internal_notes: Optional[str] = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, value):
        return value.strip() if isinstance(value, str) else value


class LeadUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    city: Optional[str] = None
    service_category: Optional[ServiceCategory] = None
    budget_range: Optional[str] = None
    desired_deadline: Optional[str] = None
    description: Optional[str] = None
    status: Optional[LeadStatus] = None
    source: Optional[str] = None
    internal_notes: Optional[str] = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, value):
        return value.strip() if isinstance(value, str) else value


class LeadOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    city: Optional[str] = None
    service_category: ServiceCategory
    budget_range: Optional[str] = None
    desired_deadline: Optional[str] = None
    description: Optional[str] = None
    status: LeadStatus
    source: Optional[str] = None
    internal_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
