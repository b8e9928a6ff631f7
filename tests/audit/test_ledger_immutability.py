"""
ORM write-discipline tests.

Movements and invoice lines are append-only, invoice headers are frozen at
creation, terminal invoices are frozen entirely, and only the stock ledger
may change a product's stock counter.
"""

from decimal import Decimal

import pytest

from ledger_kernel.db.immutability import (
    STOCK_WRITER_FLAG,
    listeners_registered,
    register_immutability_listeners,
    stock_writer,
)
from ledger_kernel.domain.movement_rules import MovementType
from ledger_kernel.exceptions import ImmutabilityViolationError


class TestListenerRegistration:

    def test_registered_by_fixture(self, db_tables):
        assert listeners_registered()

    def test_register_is_idempotent(self, db_tables):
        register_immutability_listeners()
        register_immutability_listeners()
        assert listeners_registered()


class TestStockMovementAppendOnly:

    def test_update_blocked(self, session, stock_ledger, make_product):
        product = make_product()
        movement = stock_ledger.record_movement(product.id, 5, MovementType.PURCHASE)
        movement.note = "rewritten"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "StockMovement"

    def test_delete_blocked(self, session, stock_ledger, make_product):
        product = make_product()
        movement = stock_ledger.record_movement(product.id, 5, MovementType.PURCHASE)
        session.delete(movement)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestSingleStockWriter:

    def test_direct_counter_write_blocked(self, session, make_product, captured_logs):
        product = make_product(stock=5)
        product.stock_quantity = 500
        with pytest.raises(ImmutabilityViolationError, match="stock ledger"):
            session.flush()
        assert any(
            r["message"] == "immutability_violation_blocked" for r in captured_logs()
        )

    def test_other_product_fields_writable(self, session, make_product):
        product = make_product()
        product.name = "Renamed"
        session.flush()
        assert product.name == "Renamed"

    def test_stock_writer_restores_flag(self, session):
        assert not session.info.get(STOCK_WRITER_FLAG)
        with stock_writer(session):
            assert session.info[STOCK_WRITER_FLAG] is True
        assert not session.info.get(STOCK_WRITER_FLAG)


class TestInvoiceImmutability:

    def test_line_update_blocked(self, session, make_product, make_draft):
        draft = make_draft((make_product(), 1))
        draft.lines[0].quantity = 99
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "InvoiceLine"

    def test_header_total_blocked_on_draft(self, session, make_product, make_draft):
        draft = make_draft((make_product(), 1))
        draft.total = Decimal("0.01")
        with pytest.raises(ImmutabilityViolationError, match="total"):
            session.flush()

    def test_draft_notes_writable(self, session, make_product, make_draft):
        draft = make_draft((make_product(), 1))
        draft.notes = "call before delivery"
        session.flush()
        assert draft.notes == "call before delivery"

    def test_confirmed_invoice_frozen(self, session, confirmation, make_product, make_draft):
        draft = make_draft((make_product(stock=5), 1))
        invoice = confirmation.confirm(draft.id)
        invoice.notes = "edited after confirmation"
        with pytest.raises(ImmutabilityViolationError, match="confirmed"):
            session.flush()

    def test_void_invoice_cannot_be_reopened(self, session, confirmation, make_product, make_draft):
        draft = make_draft((make_product(), 1))
        invoice = confirmation.void(draft.id)
        invoice.status = "draft"
        with pytest.raises(ImmutabilityViolationError, match="void"):
            session.flush()

    def test_invoice_delete_blocked(self, session, make_product, make_draft):
        draft = make_draft((make_product(), 1))
        session.delete(draft)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
