"""Domain exceptions for the Multisig Escrow.

Two families share one base class:
    - InitializationError: rejects vault construction; no state is created.
    - ActionError: rejects one propose/approve/cancel invocation; every
      tentative change of that invocation is rolled back.

The API layer's middleware translates them to HTTP responses using `code`.
"""

from __future__ import annotations


class EscrowError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "ESCROW_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Initialization Errors ---


class InitializationError(EscrowError):
    """Base exception for errors that abort vault construction."""


class InitParseParamsError(InitializationError):
    """Raised when the initialization parameters are malformed."""

    def __init__(self, detail: str) -> None:
        super().__init__(message=f"Malformed parameters: {detail}", code="PARSE_PARAMS")
        self.detail = detail


class IncompleteAccountsError(InitializationError):
    """Raised when fewer than three signers are supplied."""

    def __init__(self, signer_count: int) -> None:
        super().__init__(
            message=f"At least 3 signers are required, got {signer_count}",
            code="INCOMPLETE_ACCOUNTS",
        )
        self.signer_count = signer_count


class AccountsLessThanSupportNeededError(InitializationError):
    """Raised when the quorum is larger than the signer set."""

    def __init__(self, min_signers_required: int, signer_count: int) -> None:
        super().__init__(
            message=(
                f"Quorum of {min_signers_required} cannot be reached "
                f"with {signer_count} signers"
            ),
            code="ACCOUNTS_LESS_THAN_SUPPORT_NEEDED",
        )
        self.min_signers_required = min_signers_required
        self.signer_count = signer_count


# --- Action Errors ---


class ActionError(EscrowError):
    """Base exception for errors that reject a single action."""


class ParseParamsError(ActionError):
    """Raised when action parameters are malformed or reference nothing."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="PARSE_PARAMS")


class VaultNotFoundError(ParseParamsError):
    """Raised when a vault ID does not exist."""

    def __init__(self, vault_id: str) -> None:
        super().__init__(f"Vault not found: {vault_id}")
        self.vault_id = vault_id


class RequestNotFoundError(ParseParamsError):
    """Raised when no active request matches the lookup."""

    def __init__(self, request_id: int | None, account: str | None = None) -> None:
        if request_id is None:
            message = f"No active request owned by {account}"
        else:
            message = f"Transfer request not found: {request_id}"
        super().__init__(message)
        self.request_id = request_id
        self.account = account


class RequestMismatchError(ParseParamsError):
    """Raised when an approval's confirmation values differ from the request."""

    def __init__(self, request_id: int, field: str) -> None:
        super().__init__(f"Approval {field} does not match request {request_id}")
        self.request_id = request_id
        self.field = field


class NotUserAccountError(ActionError):
    """Raised when the caller is not an individual account."""

    def __init__(self, caller: str) -> None:
        super().__init__(
            message=f"Only user accounts may call this vault, got {caller}",
            code="NOT_USER_ACCOUNT",
        )
        self.caller = caller


class NotRegisteredAccountError(ActionError):
    """Raised when the calling account is not one of the vault's signers."""

    def __init__(self, account: str) -> None:
        super().__init__(
            message=f"Account is not a registered signer: {account}",
            code="NOT_REGISTERED_ACCOUNT",
        )
        self.account = account


class TimedOutError(ActionError):
    """Raised when approving a request whose expiry has passed."""

    def __init__(self, request_id: int, expiry_ms: int) -> None:
        super().__init__(
            message=f"Transfer request {request_id} expired at {expiry_ms}",
            code="TIMED_OUT",
        )
        self.request_id = request_id
        self.expiry_ms = expiry_ms


class AlreadyExistsError(ActionError):
    """Raised for a duplicate active request ID or a repeated approval.

    Example: signer B approves request 7 twice.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="ALREADY_EXISTS")


class InsufficientBalanceError(ActionError):
    """Raised when the vault cannot cover the requested amount."""

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            message=f"Insufficient balance: required {required}, available {available}",
            code="INSUFFICIENT_BALANCE",
        )
        self.required = required
        self.available = available


class InvalidRecipientError(ActionError):
    """Raised when the ledger has no account for the transfer destination."""

    def __init__(self, receiver: str) -> None:
        super().__init__(
            message=f"Receiving account does not exist: {receiver}",
            code="INVALID_RECIPIENT",
        )
        self.receiver = receiver


class ValueOverflowError(ActionError):
    """Base exception for arithmetic that leaves the representable range."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="OVERFLOW")


class TimestampOverflowError(ValueOverflowError):
    """Raised when a request expiry falls outside the timestamp range."""

    def __init__(self, now_ms: int, timeout_ms: int) -> None:
        super().__init__(f"Expiry overflows timestamp range: {now_ms} + {timeout_ms}")
        self.now_ms = now_ms
        self.timeout_ms = timeout_ms


class BalanceOverflowError(ValueOverflowError):
    """Raised when a credit would push the held balance past its maximum."""

    def __init__(self, held_balance: int, credit: int) -> None:
        super().__init__(f"Held balance overflows: {held_balance} + {credit}")
        self.held_balance = held_balance
        self.credit = credit


class InvalidStateTransitionError(ActionError):
    """Raised when a request lifecycle transition is not allowed.

    Example: EXECUTED -> CANCELLED (final states never move).
    """

    def __init__(self, current_state: str, attempted_event: str) -> None:
        super().__init__(
            message=f"Invalid request transition: {current_state} -/-> {attempted_event}",
            code="INVALID_STATE_TRANSITION",
        )
        self.current_state = current_state
        self.attempted_event = attempted_event


# --- Ledger Errors ---


class LedgerTransferError(EscrowError):
    """Raised by a transfer primitive when the ledger rejects a transfer.

    The lifecycle controller maps it onto an ActionError before it leaves
    the service layer.
    """

    def __init__(self, failure: str, destination: str, amount: int) -> None:
        super().__init__(
            message=f"Ledger rejected transfer of {amount} to {destination}: {failure}",
            code="LEDGER_TRANSFER_FAILED",
        )
        self.failure = failure
        self.destination = destination
        self.amount = amount
