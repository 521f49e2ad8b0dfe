from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import func
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession
from portal_api.schemas.auth import TokenOut, MeOut
from portal_api.models.user import User
from portal_api.db.session import get_db
from portal_api.core.security import create_access_token, get_current_user, verify_password
from portal_api.core.audit_log import log_audit
from portal_api.core.enums import AuditAction

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenOut)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: AsyncSession = Depends(get_db)):
    """Exchange an email and password for a bearer token (operators and portal customers)"""
    email = form_data.username.strip().lower()
    res = await db.execute(select(User).where(func.lower(User.email) == email))
    user = res.scalars().first()
    if not user or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(status_code=400, detail="Invalid credentials")

    await log_audit(db, int(user.id), AuditAction.LOGIN, {"email": email}, commit=True)

    token = create_access_token(str(user.id), user.role, customer_id=user.customer_id)
    return {"access_token": token}


@router.get("/me", response_model=MeOut)
async def me(current_user: User = Depends(get_current_user)):
    return MeOut(
        id=current_user.id,
        email=current_user.email,
        role=current_user.role,
        customer_id=current_user.customer_id,
        display_name=current_user.display_name,
    )
