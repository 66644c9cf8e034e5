"""
Balance Recurrence Engine.

Responsibility:
    closing = opening + sum(inflows) - sum(outflows) + adjustment

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O, no clock.

Invariants enforced:
    - Exact Decimal arithmetic: no quantize, no float, no clamping.  A
      negative closing balance is a valid result (classified OUT).
    - Identical inputs produce identical outputs.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from balance_kernel.domain.profiles import LedgerProfile
from balance_kernel.domain.quantities import ZERO


def compute_closing_balance(
    opening_balance: Decimal,
    inflows: Iterable[Decimal],
    outflows: Iterable[Decimal],
    adjustment: Decimal = ZERO,
) -> Decimal:
    """Closing balance for one period."""
    total_in = sum(inflows, ZERO)
    total_out = sum(outflows, ZERO)
    return opening_balance + total_in - total_out + adjustment


@dataclass(frozen=True, slots=True)
class BalanceComputation:
    """Result of applying the recurrence to one snapshot's inputs."""

    opening_balance: Decimal
    inflow: Decimal
    outflow: Decimal
    adjustment: Decimal
    closing_balance: Decimal

    def with_adjustment(self, adjustment: Decimal) -> BalanceComputation:
        """Recompute closing for a new adjustment; other inputs unchanged."""
        return BalanceComputation(
            opening_balance=self.opening_balance,
            inflow=self.inflow,
            outflow=self.outflow,
            adjustment=adjustment,
            closing_balance=compute_closing_balance(
                self.opening_balance, (self.inflow,), (self.outflow,), adjustment
            ),
        )


def compute_balances(
    opening_balance: Decimal,
    components: Mapping[str, Decimal],
    profile: LedgerProfile,
    adjustment: Decimal = ZERO,
) -> BalanceComputation:
    """
    Split component totals by role and apply the recurrence.

    Memo components are ignored.  A component missing from ``components``
    counts as zero.
    """
    inflows = [components.get(spec.name, ZERO) for spec in profile.inflows]
    outflows = [components.get(spec.name, ZERO) for spec in profile.outflows]
    inflow = sum(inflows, ZERO)
    outflow = sum(outflows, ZERO)
    return BalanceComputation(
        opening_balance=opening_balance,
        inflow=inflow,
        outflow=outflow,
        adjustment=adjustment,
        closing_balance=compute_closing_balance(
            opening_balance, inflows, outflows, adjustment
        ),
    )
