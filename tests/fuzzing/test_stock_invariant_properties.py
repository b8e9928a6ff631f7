"""
Property-based tests for the stock ledger.

Hypothesis generates arbitrary sequences of manual movements and invoice
confirmations against one product and checks, after every step, that:

- the materialized counter equals the sum of the movement log;
- the counter never goes negative;
- a rejected operation leaves the counter where it was.

A simple in-memory model predicts which operations must be rejected.
"""

from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from ledger_kernel.domain.invoice_state import InvoiceStatus
from ledger_kernel.domain.invoice_totals import compute_totals, line_total
from ledger_kernel.domain.movement_rules import MovementType
from ledger_kernel.exceptions import InsufficientStockError, ValidationError

FIXTURE_SETTINGS = settings(
    max_examples=25,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)

operations = st.lists(
    st.one_of(
        st.tuples(st.just(MovementType.PURCHASE), st.integers(1, 20)),
        st.tuples(st.just(MovementType.RETURN), st.integers(1, 5)),
        st.tuples(st.just(MovementType.LOSS), st.integers(-20, -1)),
        st.tuples(
            st.just(MovementType.ADJUSTMENT),
            st.integers(-20, 20).filter(lambda d: d != 0),
        ),
        st.tuples(st.just("sell"), st.integers(1, 10)),
    ),
    max_size=15,
)


class TestStockReplayProperty:

    @FIXTURE_SETTINGS
    @given(opening=st.integers(0, 30), steps=operations)
    def test_counter_always_matches_replay(
        self, stock_ledger, confirmation, make_product, make_draft, opening, steps
    ):
        product = make_product(stock=opening)
        expected = opening

        for kind, amount in steps:
            if kind == "sell":
                draft = make_draft((product, amount))
                if amount > expected:
                    with pytest.raises(InsufficientStockError):
                        confirmation.confirm(draft.id)
                else:
                    confirmed = confirmation.confirm(draft.id)
                    assert confirmed.status == InvoiceStatus.CONFIRMED.value
                    expected -= amount
            elif expected + amount < 0:
                error = ValidationError if kind is MovementType.ADJUSTMENT else InsufficientStockError
                with pytest.raises(error):
                    stock_ledger.record_movement(product.id, amount, kind)
            else:
                stock_ledger.record_movement(product.id, amount, kind)
                expected += amount

            current = stock_ledger.current_stock(product.id)
            assert current == expected
            assert current >= 0
            assert stock_ledger.replayed_stock(product.id) == current


money = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("9999.99"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


class TestInvoiceTotalsProperty:

    @settings(max_examples=200)
    @given(
        lines=st.lists(st.tuples(st.integers(1, 1000), money), min_size=1, max_size=20),
        tax=money,
    )
    def test_total_is_subtotal_plus_tax(self, lines, tax):
        line_totals = [line_total(quantity, price) for quantity, price in lines]
        totals = compute_totals(line_totals, tax)

        assert totals.subtotal == sum(line_totals, Decimal("0"))
        assert totals.total == totals.subtotal + totals.tax
        assert totals.subtotal.as_tuple().exponent == -2
