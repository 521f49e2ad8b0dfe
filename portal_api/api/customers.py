from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from portal_api.api.conversions import ERROR_STATUS
from portal_api.core.audit_log import log_audit
from portal_api.core.auth_utils import check_not_found
from portal_api.core.enums import AuditAction
from portal_api.core.rate_limit import check_rate_limit
from portal_api.core.response_builders import build_customer_response, build_engagement_response
from portal_api.core.security import require_admin
from portal_api.db.session import get_db, get_session_factory
from portal_api.models.customer import Customer
from portal_api.models.engagement import Engagement
from portal_api.schemas.conversion import IssuedCredential, PortalAccessOut
from portal_api.schemas.customer import CustomerDetailOut
from portal_api.services.credential_store import CredentialStore, SqlCredentialStore
from portal_api.services.portal_access import grant_portal_access

router = APIRouter(prefix="/customers", tags=["customers"])


def get_credential_store(session_factory=Depends(get_session_factory)) -> CredentialStore:
    return SqlCredentialStore(session_factory)


async def _load_customer(db: AsyncSession, customer_id: int) -> Customer:
    res = await db.execute(select(Customer).where(Customer.id == customer_id))
    customer = res.scalars().first()
    check_not_found(customer, "Customer", customer_id)
    return customer


@router.get("/{customer_id}", response_model=CustomerDetailOut)
async def get_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin),
    credentials: CredentialStore = Depends(get_credential_store),
):
    customer = await _load_customer(db, customer_id)
    res = await db.execute(
        select(Engagement).where(Engagement.customer_id == customer_id).order_by(Engagement.id)
    )
    return CustomerDetailOut(
        customer=build_customer_response(customer),
        engagements=[build_engagement_response(e) for e in res.scalars().all()],
        has_portal_login=await credentials.has_login(customer_id),
    )


@router.post("/{customer_id}/credential", response_model=PortalAccessOut)
async def create_portal_login(
    customer_id: int,
    fields: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin),
    credentials: CredentialStore = Depends(get_credential_store),
):
    """Give an existing customer without a login access to the portal"""
    await check_rate_limit(int(current_user.id))
    customer = await _load_customer(db, customer_id)

    result = await grant_portal_access(credentials, customer, fields)
    if not result.ok:
        out = PortalAccessOut(customer_id=customer_id, error=result.error)
        return JSONResponse(status_code=ERROR_STATUS.get(result.error.kind, 400), content=out.model_dump(mode="json"))

    await log_audit(
        db, int(current_user.id), AuditAction.PROVISION_CREDENTIAL, fields,
        details={"customer_id": customer_id, "credential_id": result.credential.id}, commit=True,
    )
    return PortalAccessOut(
        customer_id=customer_id,
        credential=IssuedCredential(email=result.credential.email, password=result.secret),
    )
