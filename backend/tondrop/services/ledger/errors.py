"""
Ledger exceptions with stable error codes and user-facing messages.
"""


class LedgerError(Exception):
    """Base exception for ledger errors."""
    code = 'ledger_error'
    status_code = 400

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message


class InvalidInput(LedgerError):
    """Raised for malformed or missing fields. Nothing has been mutated."""
    code = 'invalid_input'
    status_code = 400


class PlayerNotFound(LedgerError):
    code = 'not_found'
    status_code = 404

    def __init__(self, player_id: str):
        super().__init__(f"Player '{player_id}' not found", 'Player not found')
        self.player_id = player_id


class SelfReferral(LedgerError):
    code = 'self_referral'
    status_code = 400

    def __init__(self, player_id: str):
        super().__init__(f"Player '{player_id}' tried to refer themselves", 'You cannot refer yourself')


class AlreadyReferred(LedgerError):
    code = 'already_referred'
    status_code = 409

    def __init__(self, player_id: str):
        super().__init__(f"Player '{player_id}' already has a referrer", 'Already referred')


class ReferrerNotFound(LedgerError):
    code = 'referrer_not_found'
    status_code = 404

    def __init__(self, identifier: str):
        super().__init__(f"No player matches referrer '{identifier}'", 'Referrer not found')


class StorageError(LedgerError):
    """Raised when a mutation could not be durably stored. Safe to retry."""
    code = 'storage_error'
    status_code = 503

    def __init__(self, operation: str, details: str = None):
        super().__init__(
            f"Storage error during {operation}: {details}",
            'Storage is unavailable. Please try again later.'
        )
        self.operation = operation


class StorageTimeout(StorageError):
    code = 'timeout'
    status_code = 504
