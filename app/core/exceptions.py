"""Domain errors raised by the service layer; routes map them to HTTP statuses."""


class AccountError(Exception):
    """Base class for account-domain failures."""


class EmailAlreadyExistsError(AccountError):
    def __init__(self, email: str) -> None:
        super().__init__(f"Email already exists: {email}")
        self.email = email


class InvalidCurrentPasswordError(AccountError):
    pass


class InvalidGoogleTokenError(AccountError):
    pass
