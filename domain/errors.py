class WalletError(Exception):
    """Base class for wallet failures raised below the application layer."""


class LedgerUnavailableError(WalletError):
    """
    The ledger store could not be reached or failed mid-operation.

    Repositories raise this after rolling back, so no partial effect
    is ever left behind.
    """
