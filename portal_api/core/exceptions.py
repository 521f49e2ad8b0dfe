"""Domain exceptions raised by the store adapters"""


class RecordStoreError(Exception):
    """A record store read or write did not complete."""

    def __init__(self, operation: str, message: str = ""):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}" if message else f"{operation} failed")


class CredentialStoreError(Exception):
    """The credential store rejected or failed a request."""


class EmailAlreadyRegistered(CredentialStoreError):

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"A credential already exists for {email}")


class ConversionAlreadyOpen(Exception):
    """A live conversion session already exists for the lead."""

    def __init__(self, session):
        self.session = session
        super().__init__(f"Lead {session.lead.id} is already being converted in session {session.id}")
