"""Custom exceptions for the travel journal"""


class TravelJournalError(Exception):
    """Base exception for Travel Journal"""

    status_code = 500

    def __init__(self, message: str = "Internal Server Error"):
        self.message = message
        super().__init__(message)


class ValidationError(TravelJournalError):
    """Missing or malformed input"""
    status_code = 400


class ConflictError(TravelJournalError):
    """Resource already exists (duplicate email)"""
    status_code = 400


class AuthError(TravelJournalError):
    """Invalid, expired or missing session token"""
    status_code = 401


class InvalidCredentialsError(AuthError):
    """Password did not match the stored hash"""
    status_code = 400


class NotFoundError(TravelJournalError):
    """Requested resource does not exist for this user"""
    status_code = 404


class StoreError(TravelJournalError):
    """Document store read/write failure"""
    pass


class ConfigError(TravelJournalError):
    """Configuration error"""
    pass
