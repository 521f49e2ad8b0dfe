from sqlalchemy import Column, String, Text, Float, Date, ForeignKey, Enum
from sqlalchemy.orm import relationship
from portal_api.models.base import BaseModel
from portal_api.core.enums import EngagementStatus

class Engagement(BaseModel):
    __tablename__ = "engagements"
    
    customer_id = Column(ForeignKey("customers.id"), nullable=False, index=True)
    customer = relationship("Customer", backref="engagements")
    
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(Enum(EngagementStatus), default=EngagementStatus.PENDING, nullable=False)
    start_date = Column(Date, nullable=False)
    target_end_date = Column(Date, nullable=False)
    actual_end_date = Column(Date, nullable=True)
    budget = Column(Float, nullable=True)
