"""
Typed Exception Hierarchy for the Balance Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Period reconciliation runs entity by entity and reports failures per row.
Callers (the reconciliation driver, the status page, scripts) decide what to
do with a failure by its TYPE and CODE, never by parsing a message:

    try:
        gateway.create(draft)
    except SnapshotConflictError as e:   # typed catch
        snapshot = gateway.get(...)      # another request created it first
    except StoreWriteFailure as e:
        row_error(code=e.code)           # machine-readable

Every exception:
  1. has a CODE class attribute (API-safe, stable),
  2. carries structured attributes (not just a message),
  3. declares whether retrying the same action may succeed (``retryable``).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BalanceKernelError (base)
    |
    +-- StoreError
    |   +-- StoreReadFailure
    |   +-- StoreWriteFailure
    |       +-- SnapshotConflictError
    |
    +-- SnapshotNotFoundError
    +-- EntityNotFoundError
    +-- InvalidPeriodError
    +-- InvalidAdjustmentError
    |
    +-- ProfileError
        +-- UnknownLedgerError
        +-- ProfileValidationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                 | When Raised
-----------|----------------------|---------------------------------------------
Store      | STORE_READ_FAILURE   | Aggregation, entity or snapshot read failed
           | STORE_WRITE_FAILURE  | Insert/update failed
           | SNAPSHOT_CONFLICT    | Unique (ledger, entity, period, dimension)
           |                      | violated by a concurrent create
-----------|----------------------|---------------------------------------------
Lookup     | SNAPSHOT_NOT_FOUND   | Adjustment targets an unknown snapshot id
           | ENTITY_NOT_FOUND     | Entity id not in the master data store
-----------|----------------------|---------------------------------------------
Input      | INVALID_PERIOD       | Unparseable period label ("Foo-2024")
           | INVALID_ADJUSTMENT   | Strict adjustment parsing rejected a value
-----------|----------------------|---------------------------------------------
Profile    | UNKNOWN_LEDGER       | Ledger name has no configured profile
           | PROFILE_INVALID      | Ledger profile failed validation

===============================================================================
"""


class BalanceKernelError(Exception):
    """
    Base exception for all balance kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "BALANCE_KERNEL_ERROR"
    retryable: bool = False


# Store-related exceptions


class StoreError(BalanceKernelError):
    """Base exception for failures raised by a balance store."""

    code: str = "STORE_ERROR"
    retryable: bool = True


class StoreReadFailure(StoreError):
    """A read against the master, transaction or snapshot store failed."""

    code: str = "STORE_READ_FAILURE"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Store read failed during {operation}: {detail}")


class StoreWriteFailure(StoreError):
    """An insert or update against the store failed."""

    code: str = "STORE_WRITE_FAILURE"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Store write failed during {operation}: {detail}")


class SnapshotConflictError(StoreWriteFailure):
    """
    A snapshot for the same key already exists.

    Raised by stores when the uniqueness constraint on
    (ledger, entity, month, year, dimension) rejects an insert.  Re-reading
    the key returns the row the concurrent writer created.
    """

    code: str = "SNAPSHOT_CONFLICT"

    def __init__(self, ledger: str, entity_id: str, period: str, dimension: str):
        self.ledger = ledger
        self.entity_id = entity_id
        self.period = period
        self.dimension = dimension
        super().__init__(
            "write_snapshot",
            f"snapshot already exists for {ledger}/{entity_id}/{period}"
            + (f"/{dimension}" if dimension else ""),
        )


# Lookup exceptions


class SnapshotNotFoundError(BalanceKernelError):
    """Snapshot with the given id does not exist."""

    code: str = "SNAPSHOT_NOT_FOUND"

    def __init__(self, snapshot_id: str):
        self.snapshot_id = snapshot_id
        super().__init__(f"Period snapshot not found: {snapshot_id}")


class EntityNotFoundError(BalanceKernelError):
    """Entity with the given id does not exist in its master source."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, source: str, entity_id: str):
        self.source = source
        self.entity_id = entity_id
        super().__init__(f"{source} entity not found: {entity_id}")


# Input exceptions


class InvalidPeriodError(BalanceKernelError):
    """A period label could not be parsed."""

    code: str = "INVALID_PERIOD"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid period label: {value!r} (expected e.g. 'Mar-2024')")


class InvalidAdjustmentError(BalanceKernelError):
    """
    An adjustment value is not numeric.

    Only raised by ``parse_adjustment(..., strict=True)``.  The reconciliation
    driver parses leniently and records the value as zero instead.
    """

    code: str = "INVALID_ADJUSTMENT"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Adjustment is not a number: {value!r}")


# Profile exceptions


class ProfileError(BalanceKernelError):
    """Base exception for ledger profile errors."""

    code: str = "PROFILE_ERROR"


class UnknownLedgerError(ProfileError):
    """No ledger profile is configured under the given name."""

    code: str = "UNKNOWN_LEDGER"

    def __init__(self, ledger: str, known: tuple[str, ...] = ()):
        self.ledger = ledger
        self.known = known
        suffix = f" (known: {', '.join(known)})" if known else ""
        super().__init__(f"Unknown ledger: {ledger}{suffix}")


class ProfileValidationError(ProfileError):
    """A ledger profile failed structural validation."""

    code: str = "PROFILE_INVALID"

    def __init__(self, ledger: str, errors: list[str]):
        self.ledger = ledger
        self.errors = errors
        super().__init__(f"Ledger profile {ledger!r} is invalid: " + "; ".join(errors))
