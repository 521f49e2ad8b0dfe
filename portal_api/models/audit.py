from sqlalchemy import Column, String, Text, ForeignKey
from sqlalchemy.orm import relationship
from portal_api.models.base import BaseModel

class Audit(BaseModel):
    __tablename__ = "audits"
    
    user_id = Column(ForeignKey("users.id"), nullable=True)
    
    user = relationship("User", backref="audit_logs")
    
    endpoint = Column(String(255), nullable=False)
    payload_hash = Column(String(128), nullable=False)
    details = Column(Text, nullable=True)
