from __future__ import annotations


class VaultError(Exception):
    """Base class for every failure raised by the vault engine."""


class ConfigurationError(VaultError, ValueError):
    pass


class AuthorizationError(VaultError):
    def __init__(self, caller: str | None, message: str | None = None):
        self.caller = caller
        super().__init__(message or f"Unauthorized caller: {caller}")


class LoanGuardError(AuthorizationError):
    """Loan callback invoked outside of an in-flight loan, or a second loan requested."""


class CapacityError(VaultError):
    def __init__(self, requested: int, available: int, message: str | None = None):
        self.requested = requested
        self.available = available
        super().__init__(
            message or f"Capacity exceeded: requested={requested} available={available}"
        )


class SlippageError(VaultError):
    def __init__(self, amount: int, slippage: int, message: str | None = None):
        self.amount = amount
        self.slippage = slippage
        super().__init__(
            message
            or f"Quoted slippage {slippage} consumes the requested amount {amount}"
        )


class InvalidAmountError(VaultError, ValueError):
    pass


class PartialHedgeError(VaultError):
    def __init__(self, message: str | None = None):
        super().__init__(
            message or "Vault is partially hedged; user operations are suspended"
        )


class RebalanceNotEligibleError(VaultError):
    pass


class CollaboratorError(VaultError):
    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation} aborted by collaborator failure{detail}")


class ArithmeticOverflowError(VaultError, ArithmeticError):
    pass


class VenueError(RuntimeError):
    """Raised by in-memory venues; the vault surfaces it as a CollaboratorError."""
