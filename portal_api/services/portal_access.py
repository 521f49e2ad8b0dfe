"""Portal login for a customer that has none.

Recovers customers left without a login when a conversion was closed after
its first transition. Errors use the same kinds as the wizard's credential
step.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from portal_api.core.enums import ConversionErrorKind, UserRole
from portal_api.core.exceptions import CredentialStoreError, EmailAlreadyRegistered
from portal_api.models.customer import Customer
from portal_api.models.user import User
from portal_api.schemas.conversion import ConversionError, CredentialGrant, CredentialInput
from portal_api.services.conversion import credential_failed, email_taken, invalid_fields
from portal_api.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


@dataclass
class PortalAccessResult:
    customer: Customer
    credential: Optional[User] = None
    secret: Optional[str] = field(default=None, repr=False)
    error: Optional[ConversionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def grant_portal_access(
    credentials: CredentialStore,
    customer: Customer,
    fields: Union[CredentialInput, Dict[str, Any]],
) -> PortalAccessResult:
    try:
        data = fields if isinstance(fields, CredentialInput) else CredentialInput.model_validate(fields)
    except ValidationError as exc:
        return PortalAccessResult(
            customer, error=invalid_fields(exc, "Login details are invalid", "confirm_password")
        )

    try:
        if await credentials.has_login(customer.id):
            return PortalAccessResult(
                customer,
                error=ConversionError(
                    kind=ConversionErrorKind.INVALID_STATE,
                    message=f"Customer {customer.id} already has a portal login",
                    retryable=False,
                ),
            )
        grant = CredentialGrant(
            role=UserRole.CUSTOMER,
            customer_id=customer.id,
            display_name=customer.full_name or None,
        )
        user = await credentials.create_credential(data.email, data.password, grant)
    except EmailAlreadyRegistered:
        logger.info(f"Portal access for customer {customer.id}: login email already registered")
        return PortalAccessResult(customer, error=email_taken())
    except CredentialStoreError as exc:
        logger.warning(f"Portal access for customer {customer.id} failed: {exc}")
        return PortalAccessResult(customer, error=credential_failed("The login could not be created; try again."))

    logger.info(f"Portal login {user.id} granted to customer {customer.id}")
    return PortalAccessResult(customer, credential=user, secret=data.password)
