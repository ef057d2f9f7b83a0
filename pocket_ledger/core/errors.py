# pocket_ledger/core/errors.py


class LedgerError(Exception):
    """Base class for errors raised by the ledger core."""


class ValidationError(LedgerError, ValueError):
    """Caller input broke a ledger rule; nothing was changed."""


class PersistenceError(LedgerError):
    """The data file could not be read or written."""
