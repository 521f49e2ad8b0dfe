from sqlalchemy import Column, String
from portal_api.models.base import BaseModel

class Customer(BaseModel):
    __tablename__ = "customers"
    first_name = Column(String(120))
    last_name = Column(String(120))
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(40))
    company = Column(String(255))
    city = Column(String(120))

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)
