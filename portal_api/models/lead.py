from sqlalchemy import Column, String, Text, Enum
from portal_api.models.base import BaseModel
from portal_api.core.enums import LeadStatus, ServiceCategory

class Lead(BaseModel):
    __tablename__ = "leads"
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(40))
    company = Column(String(255))
    city = Column(String(120))
    service_category = Column(Enum(ServiceCategory), nullable=False, default=ServiceCategory.OTHER)
    budget_range = Column(String(80))
    desired_deadline = Column(String(80))
    description = Column(Text)
    status = Column(Enum(LeadStatus), nullable=False, default=LeadStatus.NEW)
    source = Column(String(120))
    internal_notes = Column(Text)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)
