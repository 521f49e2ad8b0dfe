from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Dict, List, Optional
from datetime import date, datetime
from portal_api.core.enums import ConversionErrorKind, ConversionState, ErrorSeverity, UserRole
from portal_api.schemas.customer import CustomerOut, EngagementOut
from portal_api.schemas.lead import LeadOut

PASSWORD_MIN_LENGTH = 8


class EngagementInput(BaseModel):
    title: str = Field(min_length=5)
    description: str = Field(min_length=10)
    start_date: date
    target_end_date: date
    budget: Optional[float] = Field(default=None, ge=0)

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("budget")
    @classmethod
    def zero_budget_is_unset(cls, value):
        return value or None


class CredentialInput(BaseModel):
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    confirm_password: str = Field(min_length=PASSWORD_MIN_LENGTH)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class CredentialGrant(BaseModel):
    role: UserRole = UserRole.CUSTOMER
    customer_id: int
    display_name: Optional[str] = None


class ConversionError(BaseModel):
    kind: ConversionErrorKind
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    retryable: bool = True
    requires_manual_followup: bool = False
    field_errors: Dict[str, List[str]] = Field(default_factory=dict)


class ConversionStart(BaseModel):
    lead_id: int


class EngagementDefaults(BaseModel):
    title: str
    description: Optional[str] = None


class CredentialDefaults(BaseModel):
    email: Optional[str] = None


class IssuedCredential(BaseModel):
    email: str
    password: str


class ConversionStateOut(BaseModel):
    session_id: str
    state: ConversionState
    lead: LeadOut
    customer: Optional[CustomerOut] = None
    engagement: Optional[EngagementOut] = None
    engagement_defaults: Optional[EngagementDefaults] = None
    credential_defaults: Optional[CredentialDefaults] = None
    credential: Optional[IssuedCredential] = None
    credential_provisioned: bool = False
    in_flight: bool = False
    error: Optional[ConversionError] = None
    opened_at: datetime
    updated_at: datetime


class ConversionClosedOut(BaseModel):
    session_id: str
    final: bool
    customer_id: Optional[int] = None
    engagement_id: Optional[int] = None
    redirect_to: Optional[str] = None


class GeneratedPasswordOut(BaseModel):
    password: str


class PortalAccessOut(BaseModel):
    customer_id: int
    credential: Optional[IssuedCredential] = None
    error: Optional[ConversionError] = None
