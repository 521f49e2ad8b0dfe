"""Lead conversion wizard endpoints.

The wizard UI drives a ConversionOrchestrator through these routes. Every
transition answers with the full session state; when the transition failed
the state carries the typed error and the HTTP status reflects its kind.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from portal_api.core.audit_log import log_audit
from portal_api.core.auth_utils import check_not_found, check_session_owner
from portal_api.core.config import settings
from portal_api.core.enums import AuditAction, ConversionErrorKind
from portal_api.core.exceptions import RecordStoreError
from portal_api.core.rate_limit import check_rate_limit
from portal_api.core.response_builders import build_conversion_response
from portal_api.core.security import require_admin
from portal_api.db.session import get_db, get_session_factory
from portal_api.schemas.conversion import (
    ConversionClosedOut,
    ConversionStart,
    ConversionStateOut,
    GeneratedPasswordOut,
)
from portal_api.services.conversion import ConversionOrchestrator, ConversionResult, ConversionSession
from portal_api.services.credential_store import SqlCredentialStore
from portal_api.services.record_store import SqlRecordStore
from portal_api.services.session_registry import ConversionSessionRegistry, get_session_registry, is_abandoned
from portal_api.services.webhook import send_webhook
from portal_api.utils.idempotency import get_idempotent, set_idempotent
from portal_api.utils.passwords import generate_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversions", tags=["conversions"])

ERROR_STATUS = {
    ConversionErrorKind.VALIDATION_ERROR: 422,
    ConversionErrorKind.CREDENTIAL_EMAIL_TAKEN: 409,
    ConversionErrorKind.SUBMISSION_IN_PROGRESS: 409,
    ConversionErrorKind.INVALID_STATE: 409,
    ConversionErrorKind.CUSTOMER_CREATION_FAILED: 503,
    ConversionErrorKind.ENGAGEMENT_CREATION_FAILED: 503,
    ConversionErrorKind.CREDENTIAL_CREATION_FAILED: 503,
    ConversionErrorKind.LEAD_RETIREMENT_FAILED: 500,
}


def get_orchestrator(session_factory=Depends(get_session_factory)) -> ConversionOrchestrator:
    return ConversionOrchestrator(
        records=SqlRecordStore(session_factory),
        credentials=SqlCredentialStore(session_factory),
    )


def _load_session(registry: ConversionSessionRegistry, session_id: str, current_user) -> ConversionSession:
    session = registry.get(session_id)
    check_not_found(session, "Conversion", session_id)
    check_session_owner(session, current_user)
    return session


def _respond(orchestrator: ConversionOrchestrator, result: ConversionResult):
    out = build_conversion_response(result.session, orchestrator.get_state(result.session), result.error)
    if result.ok:
        return out
    return JSONResponse(status_code=ERROR_STATUS.get(result.error.kind, 400), content=out.model_dump(mode="json"))


def _ids(session: ConversionSession) -> dict:
    return {
        "conversion_id": session.id,
        "lead_id": session.lead.id,
        "customer_id": session.customer.id if session.customer else None,
        "engagement_id": session.engagement.id if session.engagement else None,
        "credential_id": session.credential.id if session.credential else None,
    }


async def _audit_abandoned(db: AsyncSession, session: ConversionSession):
    await log_audit(db, session.operator_id, AuditAction.ABANDON_CONVERSION, details=_ids(session), commit=True)


@router.post("/", response_model=ConversionStateOut)
async def start_conversion(
    payload: ConversionStart,
    idempotency_key: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin),
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
    registry: ConversionSessionRegistry = Depends(get_session_registry),
):
    """Open the conversion wizard for a lead"""
    await check_rate_limit(int(current_user.id))

    for expired in registry.purge_expired():
        if is_abandoned(expired):
            await _audit_abandoned(db, expired)

    if idempotency_key:
        prev = await get_idempotent("conversions", idempotency_key)
        if prev:
            existing = registry.get(prev["session_id"])
            if existing is not None:
                check_session_owner(existing, current_user)
                return build_conversion_response(existing, orchestrator.get_state(existing))

    try:
        lead = await orchestrator.records.get_lead(payload.lead_id)
    except RecordStoreError as e:
        logger.error(f"Could not load lead {payload.lead_id}: {e}")
        raise HTTPException(status_code=503, detail="Lead could not be loaded")
    check_not_found(lead, "Lead", payload.lead_id)

    existing = registry.for_lead(lead.id)
    if existing is not None:
        if existing.operator_id != int(current_user.id):
            raise HTTPException(status_code=409, detail="This lead is already being converted by another operator")
        return build_conversion_response(existing, orchestrator.get_state(existing))

    session = registry.add(orchestrator.start_conversion(lead, operator_id=int(current_user.id)))
    await log_audit(db, int(current_user.id), AuditAction.START_CONVERSION, payload, details=_ids(session), commit=True)

    if idempotency_key:
        await set_idempotent("conversions", idempotency_key, {"session_id": session.id})
    return build_conversion_response(session, orchestrator.get_state(session))


@router.get("/generated-password", response_model=GeneratedPasswordOut)
async def generated_password(current_user=Depends(require_admin)):
    return GeneratedPasswordOut(password=generate_password(settings.GENERATED_PASSWORD_LENGTH))


@router.get("/{session_id}", response_model=ConversionStateOut)
async def get_conversion(
    session_id: str,
    current_user=Depends(require_admin),
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
    registry: ConversionSessionRegistry = Depends(get_session_registry),
):
    session = _load_session(registry, session_id, current_user)
    return build_conversion_response(session, orchestrator.get_state(session))


@router.post("/{session_id}/engagement", response_model=ConversionStateOut)
async def submit_engagement(
    session_id: str,
    fields: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin),
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
    registry: ConversionSessionRegistry = Depends(get_session_registry),
):
    """Create the customer and its engagement"""
    await check_rate_limit(int(current_user.id))
    session = _load_session(registry, session_id, current_user)

    had_customer = orchestrator.has_customer(session)
    had_engagement = session.engagement is not None
    result = await orchestrator.submit_engagement(session, fields)

    if not had_customer and orchestrator.has_customer(session):
        await log_audit(db, int(current_user.id), AuditAction.CREATE_CUSTOMER, details=_ids(session), commit=True)
    if not had_engagement and session.engagement is not None:
        await log_audit(db, int(current_user.id), AuditAction.CREATE_ENGAGEMENT, fields, details=_ids(session), commit=True)

    return _respond(orchestrator, result)


@router.post("/{session_id}/credential", response_model=ConversionStateOut)
async def submit_credential(
    session_id: str,
    fields: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin),
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
    registry: ConversionSessionRegistry = Depends(get_session_registry),
):
    """Provision the portal login, then retire the lead"""
    await check_rate_limit(int(current_user.id))
    session = _load_session(registry, session_id, current_user)

    had_credential = session.credential is not None
    was_completed = session.is_completed
    result = await orchestrator.submit_credential(session, fields)

    if not had_credential and session.credential is not None:
        await log_audit(db, int(current_user.id), AuditAction.PROVISION_CREDENTIAL, fields, details=_ids(session), commit=True)
    if not was_completed and session.is_completed:
        await log_audit(db, int(current_user.id), AuditAction.RETIRE_LEAD, details=_ids(session), commit=True)

    return _respond(orchestrator, result)


@router.post("/{session_id}/lead-retirement", response_model=ConversionStateOut)
async def retry_lead_retirement(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin),
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
    registry: ConversionSessionRegistry = Depends(get_session_registry),
):
    """Retry deleting the lead after its credential was provisioned"""
    await check_rate_limit(int(current_user.id))
    session = _load_session(registry, session_id, current_user)

    was_completed = session.is_completed
    result = await orchestrator.retry_lead_retirement(session)
    if not was_completed and session.is_completed:
        await log_audit(db, int(current_user.id), AuditAction.RETIRE_LEAD, details=_ids(session), commit=True)

    return _respond(orchestrator, result)


@router.post("/{session_id}/close", response_model=ConversionClosedOut)
async def close_conversion(
    session_id: str,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(require_admin),
    registry: ConversionSessionRegistry = Depends(get_session_registry),
):
    """Close the wizard. Only a completed conversion is reported as final."""
    session = _load_session(registry, session_id, current_user)
    if session.in_flight:
        raise HTTPException(status_code=409, detail="A submission for this conversion is still in progress")

    ids = _ids(session)
    registry.discard(session_id)

    if not session.is_completed:
        if is_abandoned(session):
            await _audit_abandoned(db, session)
        return ConversionClosedOut(session_id=session_id, final=False, customer_id=ids["customer_id"])

    await log_audit(db, int(current_user.id), AuditAction.COMPLETE_CONVERSION, details=ids, commit=True)
    background_tasks.add_task(send_webhook, {
        "event": "lead.converted",
        "lead_id": ids["lead_id"],
        "customer_id": ids["customer_id"],
        "engagement_id": ids["engagement_id"],
        "credential_email": session.credential.email,
    })
    return ConversionClosedOut(
        session_id=session_id,
        final=True,
        customer_id=ids["customer_id"],
        engagement_id=ids["engagement_id"],
        redirect_to=f"/customers/{ids['customer_id']}",
    )
