import pytest
from datetime import date
from sqlalchemy.future import select

from portal_api.core.enums import ConversionErrorKind, ConversionState, EngagementStatus, UserRole
from portal_api.core.exceptions import CredentialStoreError, EmailAlreadyRegistered, RecordStoreError
from portal_api.core.security import verify_password
from portal_api.models.customer import Customer
from portal_api.models.engagement import Engagement
from portal_api.models.lead import Lead
from portal_api.models.user import User
from portal_api.schemas.conversion import CredentialGrant
from portal_api.services.conversion import ConversionOrchestrator
from portal_api.services.credential_store import SqlCredentialStore
from portal_api.services.record_store import SqlRecordStore


@pytest.mark.integration
class TestSqlRecordStore:

    async def test_insert_customer_and_engagement(self, session_factory):
        store = SqlRecordStore(session_factory)
        customer = await store.insert_customer({
            "first_name": "Ada", "last_name": "Lovelace", "email": "a@b.com",
            "phone": None, "company": "Acme", "city": None,
        })
        assert customer.id is not None

        engagement = await store.insert_engagement({
            "customer_id": customer.id,
            "title": "Landing page build – Acme",
            "description": "A landing page for the spring launch campaign",
            "status": EngagementStatus.IN_PROGRESS,
            "start_date": date(2026, 11, 2),
            "target_end_date": date(2026, 12, 18),
            "budget": None,
        })
        assert engagement.customer_id == customer.id
        assert engagement.status == EngagementStatus.PENDING

        async with session_factory() as db:
            res = await db.execute(select(Customer))
            assert len(res.scalars().all()) == 1

    async def test_delete_lead_tolerates_missing(self, session_factory, create_lead_factory):
        store = SqlRecordStore(session_factory)
        lead = await create_lead_factory()

        assert await store.delete_lead(lead.id) is True
        assert await store.get_lead(lead.id) is None
        assert await store.delete_lead(lead.id) is False

    async def test_write_failure_is_wrapped(self, session_factory):
        store = SqlRecordStore(session_factory)
        with pytest.raises(RecordStoreError):
            # title and dates are NOT NULL
            await store.insert_engagement({"customer_id": 1, "description": "x"})


@pytest.mark.integration
class TestSqlCredentialStore:

    async def test_create_credential_hashes_secret(self, session_factory):
        store = SqlCredentialStore(session_factory)
        grant = CredentialGrant(customer_id=42, display_name="Ada Lovelace")

        user = await store.create_credential("A@B.com", "Xk9#mQ2pLz8!", grant)

        assert user.email == "a@b.com"
        assert user.role == UserRole.CUSTOMER
        assert user.customer_id == 42
        assert user.password_hash != "Xk9#mQ2pLz8!"
        assert verify_password("Xk9#mQ2pLz8!", user.password_hash)

    async def test_duplicate_email_is_rejected(self, session_factory):
        store = SqlCredentialStore(session_factory)
        grant = CredentialGrant(customer_id=1)
        await store.create_credential("a@b.com", "Xk9#mQ2pLz8!", grant)

        with pytest.raises(EmailAlreadyRegistered):
            await store.create_credential("a@B.COM", "another-secret", grant)

        async with session_factory() as db:
            res = await db.execute(select(User))
            assert len(res.scalars().all()) == 1


class UnreachableDatabase:
    """Session factory whose connection is refused, as asyncpg reports a server that is down"""

    def __call__(self):
        return self

    async def __aenter__(self):
        raise ConnectionRefusedError(111, "Connect call failed ('127.0.0.1', 5432)")

    async def __aexit__(self, *exc_info):
        return False


@pytest.mark.unit
class TestDatabaseOutage:

    async def test_record_store_wraps_connection_errors(self):
        store = SqlRecordStore(UnreachableDatabase())

        with pytest.raises(RecordStoreError):
            await store.get_lead(1)
        with pytest.raises(RecordStoreError):
            await store.insert_customer({"first_name": "Ada", "email": "a@b.com"})
        with pytest.raises(RecordStoreError):
            await store.delete_lead(1)

    async def test_credential_store_wraps_connection_errors(self):
        store = SqlCredentialStore(UnreachableDatabase())

        with pytest.raises(CredentialStoreError) as exc_info:
            await store.create_credential("a@b.com", "Xk9#mQ2pLz8!", CredentialGrant(customer_id=1))
        assert not isinstance(exc_info.value, EmailAlreadyRegistered)

        with pytest.raises(CredentialStoreError):
            await store.has_login(1)

    async def test_orchestrator_returns_typed_errors(self, valid_engagement_data, valid_credential_data):
        orchestrator = ConversionOrchestrator(
            SqlRecordStore(UnreachableDatabase()), SqlCredentialStore(UnreachableDatabase())
        )
        session = orchestrator.start_conversion(Lead(id=1, first_name="Ada", last_name="Lovelace", email="a@b.com"))

        result = await orchestrator.submit_engagement(session, valid_engagement_data)
        assert result.error.kind == ConversionErrorKind.CUSTOMER_CREATION_FAILED
        assert session.state == ConversionState.COLLECTING_ENGAGEMENT
        assert not session.in_flight

        session.customer = Customer(id=7, first_name="Ada", last_name="Lovelace", email="a@b.com")
        session.engagement = Engagement(id=8, customer_id=7)
        session.state = ConversionState.COLLECTING_CREDENTIAL

        result = await orchestrator.submit_credential(session, valid_credential_data)
        assert result.error.kind == ConversionErrorKind.CREDENTIAL_CREATION_FAILED
        assert session.credential is None
