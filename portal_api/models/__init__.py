from portal_api.models.base import Base, BaseModel
from portal_api.models.lead import Lead
from portal_api.models.customer import Customer
from portal_api.models.engagement import Engagement
from portal_api.models.user import User
from portal_api.models.audit import Audit

__all__ = ["Base", "BaseModel", "Lead", "Customer", "Engagement", "User", "Audit"]
