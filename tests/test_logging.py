"""
Tests for ledger logging: JSON line format, LogContext scoping and the
context fields every facade operation stamps on its events.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from ledger_kernel.domain.movement_rules import MovementType
from ledger_kernel.exceptions import ConflictError, InsufficientStockError, NotFoundError
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from ledger_services.retry import call_with_conflict_retry


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def stream() -> StringIO:
    out = StringIO()
    handler = logging.StreamHandler(out)
    handler.setFormatter(StructuredFormatter())
    configure_logging(handler=handler)
    return out


def _records(out: StringIO) -> list[dict]:
    return [json.loads(line) for line in out.getvalue().splitlines() if line]


class TestStructuredFormatter:

    def test_one_json_object_per_line(self, stream):
        logger = get_logger("services.stock_ledger")
        with LogContext.bind(operation="record_movement", product_id="p-1"):
            logger.info("stock_movement_recorded", extra={"delta": -3})
        logger.debug("dropped_below_info")

        (record,) = _records(stream)
        assert record["logger"] == "ledger_kernel.services.stock_ledger"
        assert record["level"] == "INFO"
        assert record["message"] == "stock_movement_recorded"
        assert record["operation"] == "record_movement"
        assert record["product_id"] == "p-1"
        assert record["delta"] == -3
        assert "ts" in record

    def test_money_ids_and_dates_are_strings(self, stream):
        invoice_id = uuid4()
        get_logger("test").info(
            "invoice_draft_created",
            extra={
                "customer_id": invoice_id,
                "total": Decimal("12.50"),
                "due_date": date(2024, 1, 31),
            },
        )

        (record,) = _records(stream)
        assert record["customer_id"] == str(invoice_id)
        assert record["total"] == "12.50"
        assert record["due_date"] == "2024-01-31"

    def test_ledger_error_fields_flattened(self, stream):
        product_id = uuid4()
        try:
            raise InsufficientStockError(product_id, requested=5, available=2)
        except InsufficientStockError:
            get_logger("test").error("confirm_failed", exc_info=True)

        (record,) = _records(stream)
        assert record["exc_code"] == "INSUFFICIENT_STOCK"
        assert record["exc_product_id"] == str(product_id)
        assert record["exc_requested"] == 5
        assert record["exc_available"] == 2
        assert "traceback" in record


class TestLogContext:

    def test_bind_nests_and_restores(self):
        with LogContext.bind(operation="confirm", invoice_id="outer"):
            with LogContext.bind(product_id="p", invoice_id="inner"):
                assert LogContext.get_all() == {
                    "operation": "confirm",
                    "invoice_id": "inner",
                    "product_id": "p",
                }
            assert LogContext.get_all() == {"operation": "confirm", "invoice_id": "outer"}
        assert LogContext.get_all() == {}

    def test_bind_skips_none_and_stringifies(self):
        uid = uuid4()
        with LogContext.bind(invoice_id=uid, product_id=None):
            assert LogContext.get_all() == {"invoice_id": str(uid)}

    def test_configure_is_idempotent(self, stream):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert len(logging.getLogger("ledger_kernel").handlers) == 1


class TestOperationContext:
    """Fields the facade binds around every unit of work."""

    def test_confirm_events_share_operation_context(
        self, service, new_product, new_draft, captured_logs
    ):
        first = new_product(stock=5)
        second = new_product(stock=5)
        draft = new_draft((first, 1), (second, 2))

        service.confirm(draft.id)

        records = [r for r in captured_logs() if r.get("operation") == "confirm"]
        messages = [r["message"] for r in records]
        assert messages.count("stock_movement_recorded") == 2
        assert "invoice_confirmed" in messages
        assert messages[-1] == "operation_committed"
        assert len({r["correlation_id"] for r in records}) == 1
        assert {r["invoice_id"] for r in records} == {str(draft.id)}
        moved = {r["product_id"] for r in records if r["message"] == "stock_movement_recorded"}
        assert moved == {str(first.id), str(second.id)}

    def test_each_call_gets_its_own_correlation_id(self, service, new_product, captured_logs):
        product = new_product()
        service.record_movement(product.id, 3, MovementType.PURCHASE)
        service.record_movement(product.id, 1, MovementType.RETURN)

        committed = [
            r for r in captured_logs()
            if r["message"] == "operation_committed" and r["operation"] == "record_movement"
        ]
        assert len(committed) == 2
        assert committed[0]["correlation_id"] != committed[1]["correlation_id"]
        assert {r["product_id"] for r in committed} == {str(product.id)}
        assert all(r["duration_ms"] >= 0 for r in committed)

    def test_draft_event_carries_new_invoice_id(
        self, service, new_product, new_draft, captured_logs
    ):
        draft = new_draft((new_product(), 1))

        (created,) = [r for r in captured_logs() if r["message"] == "invoice_draft_created"]
        assert created["operation"] == "create_draft"
        assert created["invoice_id"] == str(draft.id)
        assert created["invoice_number"] == draft.invoice_number
        assert created["total"] == str(draft.total)

    def test_context_cleared_after_call(self, service, new_product):
        product = new_product()
        service.current_stock(product.id)
        assert LogContext.get_all() == {}

    def test_rejection_keeps_context(self, service, captured_logs):
        missing = uuid4()
        with pytest.raises(NotFoundError):
            service.confirm(missing)

        (rejected,) = [r for r in captured_logs() if r["message"] == "operation_rejected"]
        assert rejected["level"] == "WARNING"
        assert rejected["invoice_id"] == str(missing)
        assert rejected["error_code"] == "NOT_FOUND"
        assert LogContext.get_all() == {}


class TestRetryLogging:

    def test_scheduled_and_exhausted_events(self, captured_logs):
        def _conflict():
            raise ConflictError("void", "deadlock detected")

        with pytest.raises(ConflictError):
            call_with_conflict_retry(_conflict, attempts=2, backoff_seconds=0.5, sleep=lambda _: None)

        records = [r for r in captured_logs() if r["logger"] == "ledger_kernel.services.retry"]
        assert [r["message"] for r in records] == [
            "conflict_retry_scheduled",
            "conflict_retry_exhausted",
        ]
        assert records[0]["delay_seconds"] == 0.5
        assert records[0]["operation"] == "void"
        assert records[1]["attempts"] == 2
