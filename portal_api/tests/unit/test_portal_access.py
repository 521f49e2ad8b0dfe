import pytest

from portal_api.core.enums import ConversionErrorKind, UserRole
from portal_api.core.exceptions import CredentialStoreError
from portal_api.models.customer import Customer
from portal_api.services.portal_access import grant_portal_access
from portal_api.tests.fakes import InMemoryCredentialStore

CREDENTIAL = {"email": "a@b.com", "password": "Xk9#mQ2pLz8!", "confirm_password": "Xk9#mQ2pLz8!"}


@pytest.fixture
def credentials():
    return InMemoryCredentialStore()


@pytest.fixture
def customer():
    return Customer(id=7, first_name="Ada", last_name="Lovelace", email="a@b.com")


@pytest.mark.unit
class TestGrantPortalAccess:

    async def test_grants_customer_login(self, credentials, customer):
        result = await grant_portal_access(credentials, customer, CREDENTIAL)

        assert result.ok
        assert result.secret == "Xk9#mQ2pLz8!"
        user = credentials.credentials["a@b.com"]
        assert user is result.credential
        assert user.role == UserRole.CUSTOMER
        assert user.customer_id == 7
        assert user.display_name == "Ada Lovelace"

    async def test_validation_happens_before_any_write(self, credentials, customer):
        result = await grant_portal_access(credentials, customer, {**CREDENTIAL, "password": "short"})

        assert result.error.kind == ConversionErrorKind.VALIDATION_ERROR
        assert credentials.calls == 0

    async def test_existing_login_is_refused(self, credentials, customer):
        await grant_portal_access(credentials, customer, CREDENTIAL)
        result = await grant_portal_access(credentials, customer, {**CREDENTIAL, "email": "ada@acme.example.com"})

        assert result.error.kind == ConversionErrorKind.INVALID_STATE
        assert credentials.calls == 1

    async def test_email_taken(self, credentials, customer):
        credentials.register("a@b.com")
        result = await grant_portal_access(credentials, customer, CREDENTIAL)

        assert result.error.kind == ConversionErrorKind.CREDENTIAL_EMAIL_TAKEN
        assert "email" in result.error.field_errors

    async def test_store_failure(self, credentials, customer):
        credentials.error = CredentialStoreError("database unavailable")
        result = await grant_portal_access(credentials, customer, CREDENTIAL)

        assert result.error.kind == ConversionErrorKind.CREDENTIAL_CREATION_FAILED
        assert result.secret is None
