import logging
from functools import wraps
from typing import Callable
from portal_api.core.audit_log import log_audit
from portal_api.core.enums import AuditAction

logger = logging.getLogger(__name__)


def audit_log(action: AuditAction) -> Callable:
    """Audit a route after it returns; the route must take `db` and `current_user`."""

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            result = await func(*args, **kwargs)

            db = kwargs.get("db")
            current_user = kwargs.get("current_user")

            if db is None or current_user is None:
                return result

            payload = None
            for key in ["payload", "lead", "data", "body"]:
                if key in kwargs:
                    payload = kwargs[key]
                    break

            details = {k: v for k, v in kwargs.items() if k.endswith("_id")}
            if hasattr(result, "id"):
                details["id"] = result.id

            await log_audit(db, int(current_user.id), action, payload, details=details, commit=True)
            return result

        return wrapper
    return decorator
