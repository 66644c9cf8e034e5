"""
Hypothesis property tests for the balance recurrence and the classifier.

Properties:
- closing == opening + inflow - outflow + adjustment, exactly
- changing only the adjustment shifts closing by the adjustment delta
- classification is total and consistent with its three regions
- reconciling a generated history twice yields one snapshot per period
"""

from datetime import date
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from balance_kernel.domain.profiles import ComponentRole, ComponentSpec, LedgerProfile
from balance_kernel.domain.recurrence import (
    BalanceComputation,
    compute_balances,
    compute_closing_balance,
)
from balance_kernel.domain.status import StockLevel, classify_stock_level
from balance_kernel.services.reconciliation_service import ReconciliationService
from balance_kernel.store.memory import InMemoryBalanceStore

quantities = st.decimals(
    min_value=Decimal("-1000000"),
    max_value=Decimal("1000000"),
    places=3,
    allow_nan=False,
    allow_infinity=False,
)
non_negative = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100000"),
    places=3,
    allow_nan=False,
    allow_infinity=False,
)

PROFILE = LedgerProfile(
    name="stock",
    entity_source="raw_materials",
    components=(
        ComponentSpec("purchases", ComponentRole.INFLOW, "stock_purchases", "purchase_date", "quantity"),
        ComponentSpec(
            "utilized", ComponentRole.OUTFLOW, "tasks", "date_assigned", "assigned_qty",
            filters={"process": "Cleaning"},
        ),
    ),
)


class TestRecurrenceProperties:
    @given(
        opening=quantities,
        inflows=st.lists(non_negative, max_size=10),
        outflows=st.lists(non_negative, max_size=10),
        adjustment=quantities,
    )
    def test_balance_equation_holds_exactly(self, opening, inflows, outflows, adjustment):
        closing = compute_closing_balance(opening, inflows, outflows, adjustment)
        assert closing - adjustment - opening == sum(inflows, Decimal("0")) - sum(outflows, Decimal("0"))

    @given(opening=quantities, inflow=non_negative, outflow=non_negative, memo=non_negative)
    def test_memo_never_changes_closing(self, opening, inflow, outflow, memo):
        profile = LedgerProfile(
            name="p",
            entity_source="raw_materials",
            components=PROFILE.components
            + (ComponentSpec("pending", ComponentRole.MEMO, "tasks", "date_assigned", "assigned_qty"),),
        )
        with_memo = compute_balances(opening, {"purchases": inflow, "utilized": outflow, "pending": memo}, profile)
        without = compute_balances(opening, {"purchases": inflow, "utilized": outflow}, profile)
        assert with_memo == without

    @given(opening=quantities, inflow=non_negative, outflow=non_negative, first=quantities, second=quantities)
    def test_adjustment_is_replaced_not_accumulated(self, opening, inflow, outflow, first, second):
        base = BalanceComputation(opening, inflow, outflow, Decimal("0"), opening + inflow - outflow)
        via_first = base.with_adjustment(first).with_adjustment(second)
        assert via_first == base.with_adjustment(second)
        assert via_first.closing_balance - base.closing_balance == second


class TestClassifierProperties:
    @given(closing=quantities, threshold=quantities)
    def test_regions(self, closing, threshold):
        level = classify_stock_level(closing, threshold)
        if closing <= 0:
            assert level == StockLevel.OUT
        elif closing < threshold:
            assert level == StockLevel.LOW
        else:
            assert level == StockLevel.NORMAL

    @given(threshold=non_negative.filter(lambda t: t > 0))
    def test_threshold_itself_is_normal(self, threshold):
        assert classify_stock_level(threshold, threshold) == StockLevel.NORMAL


class TestReconciliationProperties:
    @settings(max_examples=30, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    @given(
        seed=non_negative,
        months=st.lists(
            st.tuples(non_negative, non_negative),
            min_size=1,
            max_size=6,
        ),
    )
    def test_chain_and_idempotence(self, seed, months):
        store = InMemoryBalanceStore()
        rm = store.add_entity("raw_materials", name="Turmeric", current_stock=seed, min_stock=Decimal("10"))
        for index, (bought, used) in enumerate(months, start=1):
            store.add_transaction("stock_purchases", raw_material_id=rm, purchase_date=date(2024, index, 10), quantity=bought)
            store.add_transaction("tasks", raw_material_id=rm, process="Cleaning", date_assigned=date(2024, index, 12), assigned_qty=used)

        service = ReconciliationService(store, {"stock": PROFILE})
        expected = seed
        for index, (bought, used) in enumerate(months, start=1):
            [row] = service.reconcile_period("stock", date(2024, index, 1)).rows
            assert row.snapshot.opening_balance == expected
            expected = expected + bought - used
            assert row.snapshot.closing_balance == expected
            assert row.snapshot.balance_holds

        for index in range(1, len(months) + 1):
            service.reconcile_period("stock", date(2024, index, 28))
        assert store.snapshot_count == len(months)
