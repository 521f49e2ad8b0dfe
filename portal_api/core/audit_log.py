"""Audit logging utilities for database operations"""
import json
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from portal_api.models.audit import Audit
from portal_api.core.enums import AuditAction
from portal_api.core.metrics import audit_logs_created
from portal_api.utils.hashing import payload_hash, redact

logger = logging.getLogger(__name__)


def _as_dict(payload) -> dict:
    if payload is None:
        return {}
    if hasattr(payload, "model_dump"):
        return payload.model_dump(exclude_unset=True, mode="json")
    if isinstance(payload, dict):
        return payload
    return {}


async def log_audit(
    db: AsyncSession,
    user_id: Optional[int],
    action: AuditAction,
    payload: Optional[dict] = None,
    details: Optional[dict] = None,
    commit: bool = False,
) -> None:
    """Record an audit entry. Failures are logged, never raised."""
    try:
        payload_dict = _as_dict(payload)
        audit_record = Audit(
            user_id=int(user_id) if user_id is not None else None,
            endpoint=str(action),
            payload_hash=payload_hash(payload_dict),
            details=json.dumps(redact(details), sort_keys=True, default=str) if details else None,
        )
        db.add(audit_record)
        if commit:
            await db.commit()
        else:
            await db.flush()
        audit_logs_created.labels(action=str(action)).inc()
    except Exception as e:
        logger.error(f"Audit logging failed for action {action}: {e}", exc_info=True)
