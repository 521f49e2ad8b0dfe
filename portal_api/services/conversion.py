"""Lead-to-customer conversion orchestrator.

A conversion walks one lead through two operator-driven transitions:

    collecting_engagement --submit_engagement--> collecting_credential
    collecting_credential --submit_credential--> completed

Transition 1 writes a customer and an engagement to the record store.
Transition 2 provisions a portal credential in the credential store and
then deletes the lead. The two stores share no transaction, so every write
is committed on its own and the session remembers what already exists:

* a customer created before an engagement failure is reused on resubmit;
* a credential created before a lead deletion failure is never recreated,
  the lead deletion can only be retried explicitly.

Failures never leave this module as exceptions. Each call returns a
ConversionResult whose error, if any, is also attached to the session so a
wizard can redisplay the current step with its form data.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from portal_api.core.enums import (
    ConversionErrorKind,
    ConversionState,
    EngagementStatus,
    ErrorSeverity,
    UserRole,
)
from portal_api.core.exceptions import CredentialStoreError, EmailAlreadyRegistered, RecordStoreError
from portal_api.core.metrics import conversion_transitions, latent_duplicate_leads
from portal_api.models.customer import Customer
from portal_api.models.engagement import Engagement
from portal_api.models.lead import Lead
from portal_api.models.user import User
from portal_api.schemas.conversion import (
    ConversionError,
    CredentialGrant,
    CredentialInput,
    EngagementInput,
)
from portal_api.services.credential_store import CredentialStore
from portal_api.services.mapping import credential_defaults, customer_fields_from_lead, engagement_defaults
from portal_api.services.record_store import RecordStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ConversionSession:
    lead: Lead
    operator_id: Optional[int] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: ConversionState = ConversionState.COLLECTING_ENGAGEMENT
    customer: Optional[Customer] = None
    engagement: Optional[Engagement] = None
    credential: Optional[User] = None
    issued_secret: Optional[str] = field(default=None, repr=False)
    engagement_input: Optional[Dict[str, Any]] = None
    credential_email: Optional[str] = None
    error: Optional[ConversionError] = None
    in_flight: bool = False
    opened_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def is_completed(self) -> bool:
        return self.state == ConversionState.COMPLETED

    def touch(self):
        self.updated_at = _utcnow()


@dataclass
class ConversionResult:
    session: ConversionSession
    error: Optional[ConversionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class StateView:
    state: ConversionState
    payload: Dict[str, Any]


def _field_errors(exc: ValidationError, root_field: str) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for err in exc.errors():
        name = ".".join(str(part) for part in err.get("loc", ())) or root_field
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(name, []).append(message)
    return errors


def invalid_fields(exc: ValidationError, message: str, root_field: str) -> ConversionError:
    return ConversionError(
        kind=ConversionErrorKind.VALIDATION_ERROR,
        message=message,
        field_errors=_field_errors(exc, root_field),
    )


def email_taken() -> ConversionError:
    return ConversionError(
        kind=ConversionErrorKind.CREDENTIAL_EMAIL_TAKEN,
        message="A login already exists for this email. Choose another email.",
        field_errors={"email": ["Email already registered"]},
    )


def credential_failed(message: str) -> ConversionError:
    return ConversionError(kind=ConversionErrorKind.CREDENTIAL_CREATION_FAILED, message=message)


class ConversionOrchestrator:

    def __init__(self, records: RecordStore, credentials: CredentialStore):
        self.records = records
        self.credentials = credentials

    def start_conversion(self, lead: Lead, operator_id: Optional[int] = None) -> ConversionSession:
        session = ConversionSession(lead=lead, operator_id=operator_id)
        logger.info(f"Conversion {session.id} opened for lead {lead.id} by operator {operator_id}")
        return session

    def has_customer(self, session: ConversionSession) -> bool:
        return session.customer is not None

    def get_state(self, session: ConversionSession) -> StateView:
        payload: Dict[str, Any] = {
            "lead": session.lead,
            "customer": session.customer,
            "engagement": session.engagement,
            "error": session.error,
            "in_flight": session.in_flight,
        }
        if session.state == ConversionState.COLLECTING_ENGAGEMENT:
            payload["engagement_defaults"] = engagement_defaults(session.lead)
        elif session.state == ConversionState.COLLECTING_CREDENTIAL:
            payload["credential_defaults"] = credential_defaults(session.lead)
            payload["credential_provisioned"] = session.credential is not None
        else:
            payload["credential"] = {
                "email": session.credential.email if session.credential else session.credential_email,
                "password": session.issued_secret,
            }
        return StateView(state=session.state, payload=payload)

    async def submit_engagement(
        self, session: ConversionSession, fields: Union[EngagementInput, Dict[str, Any]]
    ) -> ConversionResult:
        if session.state != ConversionState.COLLECTING_ENGAGEMENT:
            logger.debug(f"Conversion {session.id}: engagement already recorded, ignoring resubmission")
            return ConversionResult(session)

        busy = self._claim(session)
        if busy:
            return busy
        try:
            try:
                data = fields if isinstance(fields, EngagementInput) else EngagementInput.model_validate(fields)
            except ValidationError as exc:
                return self._fail(
                    session, "engagement", invalid_fields(exc, "Engagement details are invalid", "engagement")
                )
            session.engagement_input = data.model_dump(mode="json")

            if session.customer is None:
                try:
                    session.customer = await self.records.insert_customer(
                        customer_fields_from_lead(session.lead)
                    )
                except RecordStoreError as exc:
                    logger.warning(f"Conversion {session.id}: customer creation failed: {exc}")
                    return self._fail(
                        session, "engagement",
                        ConversionError(
                            kind=ConversionErrorKind.CUSTOMER_CREATION_FAILED,
                            message="The customer record could not be created. Nothing was saved; try again.",
                        ),
                    )
            else:
                logger.info(f"Conversion {session.id}: reusing customer {session.customer.id}")

            try:
                session.engagement = await self.records.insert_engagement({
                    "customer_id": session.customer.id,
                    "title": data.title,
                    "description": data.description,
                    "status": EngagementStatus.PENDING,
                    "start_date": data.start_date,
                    "target_end_date": data.target_end_date,
                    "budget": data.budget,
                })
            except RecordStoreError as exc:
                logger.warning(
                    f"Conversion {session.id}: engagement creation failed, "
                    f"customer {session.customer.id} kept: {exc}"
                )
                return self._fail(
                    session, "engagement",
                    ConversionError(
                        kind=ConversionErrorKind.ENGAGEMENT_CREATION_FAILED,
                        message=(
                            f"Customer {session.customer.id} was created but the engagement was not. "
                            "Resubmitting only retries the engagement."
                        ),
                    ),
                )

            session.state = ConversionState.COLLECTING_CREDENTIAL
            return self._succeed(session, "engagement")
        finally:
            self._release(session)

    async def submit_credential(
        self, session: ConversionSession, fields: Union[CredentialInput, Dict[str, Any]]
    ) -> ConversionResult:
        if session.state == ConversionState.COMPLETED:
            return ConversionResult(session)
        if session.state != ConversionState.COLLECTING_CREDENTIAL or session.customer is None:
            return self._reject(session, "credential", "Create the customer and engagement first")
        if session.credential is not None:
            return self._reject(
                session, "credential",
                "A credential already exists for this conversion; retry the lead retirement instead",
            )

        busy = self._claim(session)
        if busy:
            return busy
        try:
            try:
                data = fields if isinstance(fields, CredentialInput) else CredentialInput.model_validate(fields)
            except ValidationError as exc:
                return self._fail(
                    session, "credential", invalid_fields(exc, "Login details are invalid", "confirm_password")
                )
            session.credential_email = data.email

            customer = session.customer
            grant = CredentialGrant(
                role=UserRole.CUSTOMER,
                customer_id=customer.id,
                display_name=customer.full_name or None,
            )
            try:
                session.credential = await self.credentials.create_credential(data.email, data.password, grant)
            except EmailAlreadyRegistered:
                logger.info(f"Conversion {session.id}: login email already registered")
                return self._fail(session, "credential", email_taken())
            except CredentialStoreError as exc:
                logger.warning(f"Conversion {session.id}: credential creation failed: {exc}")
                return self._fail(
                    session, "credential",
                    credential_failed("The login could not be created. The lead is untouched; try again."),
                )

            session.issued_secret = data.password
            return await self._retire_lead(session)
        finally:
            self._release(session)

    async def retry_lead_retirement(self, session: ConversionSession) -> ConversionResult:
        """Operator-initiated retry of the lead deletion after a credential exists."""
        if session.state == ConversionState.COMPLETED:
            return ConversionResult(session)
        if session.credential is None:
            return self._reject(session, "lead_retirement", "No credential has been provisioned yet")

        busy = self._claim(session)
        if busy:
            return busy
        try:
            return await self._retire_lead(session)
        finally:
            self._release(session)

    async def _retire_lead(self, session: ConversionSession) -> ConversionResult:
        lead_id = session.lead.id
        try:
            deleted = await self.records.delete_lead(lead_id)
        except RecordStoreError as exc:
            latent_duplicate_leads.inc()
            logger.error(
                f"Conversion {session.id}: credential {session.credential.id} exists for customer "
                f"{session.customer.id} but lead {lead_id} could not be deleted: {exc}"
            )
            return self._fail(
                session, "lead_retirement",
                ConversionError(
                    kind=ConversionErrorKind.LEAD_RETIREMENT_FAILED,
                    severity=ErrorSeverity.CRITICAL,
                    retryable=False,
                    requires_manual_followup=True,
                    message=(
                        f"The customer login was created, but lead {lead_id} could not be removed. "
                        "Delete the lead manually; do not resubmit the login form."
                    ),
                ),
            )
        if not deleted:
            logger.info(f"Conversion {session.id}: lead {lead_id} was already gone")

        session.state = ConversionState.COMPLETED
        logger.info(
            f"Conversion {session.id} completed: lead {lead_id} -> customer {session.customer.id}, "
            f"engagement {session.engagement.id}"
        )
        return self._succeed(session, "credential")

    def _claim(self, session: ConversionSession) -> Optional[ConversionResult]:
        if session.in_flight:
            conversion_transitions.labels(transition=str(session.state), outcome="busy").inc()
            return ConversionResult(
                session,
                ConversionError(
                    kind=ConversionErrorKind.SUBMISSION_IN_PROGRESS,
                    message="A submission for this conversion is already being processed",
                ),
            )
        session.in_flight = True
        return None

    def _release(self, session: ConversionSession):
        session.in_flight = False
        session.touch()

    def _succeed(self, session: ConversionSession, transition: str) -> ConversionResult:
        session.error = None
        conversion_transitions.labels(transition=transition, outcome="success").inc()
        return ConversionResult(session)

    def _fail(self, session: ConversionSession, transition: str, error: ConversionError) -> ConversionResult:
        session.error = error
        conversion_transitions.labels(transition=transition, outcome=str(error.kind)).inc()
        return ConversionResult(session, error)

    def _reject(self, session: ConversionSession, transition: str, message: str) -> ConversionResult:
        # refused submissions leave the session's own error untouched
        error = ConversionError(kind=ConversionErrorKind.INVALID_STATE, message=message, retryable=False)
        conversion_transitions.labels(transition=transition, outcome=str(error.kind)).inc()
        return ConversionResult(session, error)
