"""Credential store: portal logins keyed by email."""
import logging
from abc import ABC, abstractmethod

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.future import select

from portal_api.core.exceptions import CredentialStoreError, EmailAlreadyRegistered
from portal_api.core.metrics import track_db_operation
from portal_api.core.security import hash_password
from portal_api.models.user import User
from portal_api.schemas.conversion import CredentialGrant

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore(ABC):

    @abstractmethod
    async def create_credential(self, email: str, secret: str, grant: CredentialGrant) -> User:
        """Raises EmailAlreadyRegistered or CredentialStoreError."""

    @abstractmethod
    async def has_login(self, customer_id: int) -> bool:
        ...


class SqlCredentialStore(CredentialStore):

    def __init__(self, session_factory):
        self._session_factory = session_factory

    @track_db_operation("insert", "users")
    async def create_credential(self, email: str, secret: str, grant: CredentialGrant) -> User:
        email = normalize_email(email)
        try:
            async with self._session_factory() as db:
                res = await db.execute(select(User.id).where(func.lower(User.email) == email))
                if res.first() is not None:
                    raise EmailAlreadyRegistered(email)

                user = User(
                    email=email,
                    password_hash=hash_password(secret),
                    role=grant.role,
                    customer_id=grant.customer_id,
                    display_name=grant.display_name,
                )
                db.add(user)
                try:
                    await db.commit()
                except IntegrityError as e:
                    await db.rollback()
                    raise EmailAlreadyRegistered(email) from e
                await db.refresh(user)
        except (SQLAlchemyError, OSError) as e:
            raise CredentialStoreError(f"Could not create credential: {e}") from e

        logger.info(f"Credential {user.id} created for customer {grant.customer_id}")
        return user

    @track_db_operation("select", "users")
    async def has_login(self, customer_id: int) -> bool:
        try:
            async with self._session_factory() as db:
                res = await db.execute(select(User.id).where(User.customer_id == customer_id))
                return res.first() is not None
        except (SQLAlchemyError, OSError) as e:
            raise CredentialStoreError(f"Could not look up logins for customer {customer_id}: {e}") from e
