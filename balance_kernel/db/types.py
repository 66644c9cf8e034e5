"""
Module: balance_kernel.db.types
Responsibility: Column types for stock quantities.
Architecture position: Kernel > DB.  MUST NOT import from models/,
    services/ or store/.

Invariants enforced:
    - No floats.  PostgreSQL stores quantities as NUMERIC(38, 9).  Dialects
      without a native decimal (SQLite) store the canonical string form, so
      values such as ``0.1`` kg come back exactly as written.
"""

from decimal import Decimal
from typing import Annotated

from sqlalchemy import Numeric, String
from sqlalchemy.types import TypeDecorator

QUANTITY_PRECISION = 38
QUANTITY_SCALE = 9


class ExactDecimal(TypeDecorator):
    """Decimal column that never passes through float."""

    impl = Numeric(QUANTITY_PRECISION, QUANTITY_SCALE)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(64))
        return dialect.type_descriptor(
            Numeric(QUANTITY_PRECISION, QUANTITY_SCALE, asdecimal=True)
        )

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        if dialect.name == "sqlite":
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))


Quantity = Annotated[Decimal, ExactDecimal()]

# Short identifier strings (month labels, process names, ledger names)
ShortCode = Annotated[str, String(50)]
