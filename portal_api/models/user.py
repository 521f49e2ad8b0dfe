from sqlalchemy import Column, String, Enum, ForeignKey
from portal_api.models.base import BaseModel
from portal_api.core.enums import UserRole


class User(BaseModel):
    """A login credential: operators (admin) and portal customers"""
    __tablename__ = "users"
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.CUSTOMER)
    customer_id = Column(ForeignKey("customers.id"), nullable=True)
    display_name = Column(String(255))
