from pydantic import BaseModel
from typing import Optional
from portal_api.core.enums import UserRole


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class MeOut(BaseModel):
    id: int
    email: str
    role: UserRole
    customer_id: Optional[int] = None
    display_name: Optional[str] = None
