from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import Optional, List

from portal_api.db.session import get_db
from portal_api.models.lead import Lead
from portal_api.schemas.lead import LeadCreate, LeadUpdate, LeadOut
from portal_api.core.security import require_admin
from portal_api.core.enums import AuditAction, LeadStatus, ServiceCategory
from portal_api.utils.idempotency import get_idempotent, set_idempotent
from portal_api.core.audit_decorator import audit_log
from portal_api.core.rate_limit import check_rate_limit
from portal_api.core.auth_utils import check_not_found
from portal_api.core.response_builders import build_lead_response, build_lead_response_list

router = APIRouter(prefix="/leads", tags=["leads"])


def reject_converted_status(status: Optional[LeadStatus]) -> None:
    # converted leads are deleted by the conversion wizard, never stored
    if status == LeadStatus.CONVERTED:
        raise HTTPException(
            status_code=400,
            detail="Leads are converted through the conversion wizard, not by status"
        )


@router.post("/", response_model=LeadOut)
@audit_log(AuditAction.CREATE_LEAD)
async def create_lead(
    payload: LeadCreate,
    idempotency_key: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin)
):
    await check_rate_limit(int(current_user.id))
    reject_converted_status(payload.status)

    if idempotency_key:
        prev = await get_idempotent("leads", idempotency_key)
        if prev:
            return LeadOut(**prev)

    lead = Lead(**payload.model_dump())
    db.add(lead)
    await db.commit()
    await db.refresh(lead)

    out = build_lead_response(lead)
    if idempotency_key:
        await set_idempotent("leads", idempotency_key, out.model_dump(mode="json"))
    return out


@router.get("/", response_model=List[LeadOut])
async def list_leads(
    status: Optional[LeadStatus] = Query(None),
    service_category: Optional[ServiceCategory] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin)
):
    q = select(Lead).order_by(Lead.id.desc())

    if status:
        q = q.where(Lead.status == status)
    if service_category:
        q = q.where(Lead.service_category == service_category)

    q = q.limit(limit).offset(offset)
    res = await db.execute(q)
    leads = res.scalars().all()

    return build_lead_response_list(leads)


@router.get("/{lead_id}", response_model=LeadOut)
async def get_lead(
    lead_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin)
):
    res = await db.execute(select(Lead).where(Lead.id == lead_id))
    lead = res.scalars().first()
    check_not_found(lead, "Lead", lead_id)

    return build_lead_response(lead)


@router.put("/{lead_id}", response_model=LeadOut)
@audit_log(AuditAction.UPDATE_LEAD)
async def update_lead(
    lead_id: int,
    payload: LeadUpdate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin)
):
    """Update a lead during qualification"""
    await check_rate_limit(int(current_user.id))
    reject_converted_status(payload.status)

    res = await db.execute(select(Lead).where(Lead.id == lead_id))
    lead = res.scalars().first()
    check_not_found(lead, "Lead", lead_id)

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(lead, field, value)

    db.add(lead)
    await db.commit()
    await db.refresh(lead)

    return build_lead_response(lead)


@router.delete("/{lead_id}")
@audit_log(AuditAction.DELETE_LEAD)
async def delete_lead(
    lead_id: int,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin)
):
    await check_rate_limit(int(current_user.id))

    res = await db.execute(select(Lead).where(Lead.id == lead_id))
    lead = res.scalars().first()
    check_not_found(lead, "Lead", lead_id)

    await db.delete(lead)
    await db.commit()

    return {"deleted": True}
