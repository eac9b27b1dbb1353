"""Tests for payment aggregation and the finance report"""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from kivee.application.payments_report import (
    aggregate, partition_payments, summarize_unpaid, build_finance_report,
)
from kivee.application.catalog import CreateProductUseCase
from kivee.application.students import CreateStudentUseCase, AddProductChargeUseCase, MarkPaymentPaidUseCase
from kivee.domain.product import Product


def _player(docs, location_id="north", pid="s1"):
    return SimpleNamespace(id=pid, name="Ana", last_name="Lopez", location_id=location_id, one_time_products=docs)


UNIFORM = Product("p1", "Uniform", Decimal("35"), {"south": Decimal("30")})


class TestAggregate:
    def test_product_not_found(self):
        records = aggregate([_player([{"productId": "missing", "status": "unpaid"}])], {})
        assert records[0].item_name == "Product not found"
        assert records[0].amount == Decimal("0")

    def test_stored_values_win(self):
        doc = {"productId": "p1", "productName": "Old uniform", "amount": "20", "status": "unpaid"}
        record = aggregate([_player([doc])], {"p1": UNIFORM})[0]
        assert record.item_name == "Old uniform"
        assert record.amount == Decimal("20")

    def test_location_price_then_base_price(self):
        doc = {"productId": "p1", "status": "unpaid"}
        assert aggregate([_player([doc], "south")], {"p1": UNIFORM})[0].amount == Decimal("30")
        north = aggregate([_player([doc], "north")], {"p1": UNIFORM})[0]
        assert north.amount == Decimal("35")
        assert north.item_name == "Uniform"

    def test_subscription_record(self):
        doc = {
            "paymentFor": "tier", "itemId": "t1", "itemName": "Monthly Plan",
            "amount": "50", "dueDate": "2024-01-01", "billingPeriod": "monthly", "status": "unpaid",
        }
        record = aggregate([_player([{"productId": "p1"}, doc])], {"p1": UNIFORM})[1]
        assert record.student_name == "Ana Lopez"
        assert record.payment_for == "tier"
        assert record.original_index == 1
        assert record.due_date == date(2024, 1, 1)


class TestPartition:
    def _records(self):
        docs = [
            {"productId": "p1", "status": "unpaid"},
            {"productId": "p1", "status": "unpaid", "dueDate": "2024-03-01"},
            {"productId": "p1", "status": "unpaid", "dueDate": "2024-01-01"},
            {"productId": "p1", "status": "paid", "paidAt": "2024-02-01"},
            {"productId": "p1", "status": "paid"},
            {"productId": "p1", "status": "paid", "paidAt": "2024-03-05"},
        ]
        return aggregate([_player(docs)], {"p1": UNIFORM})

    def test_unpaid_oldest_first_undated_last(self):
        unpaid, _ = partition_payments(self._records())
        assert [r.due_date for r in unpaid] == [date(2024, 1, 1), date(2024, 3, 1), None]

    def test_paid_latest_first(self):
        _, paid = partition_payments(self._records())
        assert [r.paid_at for r in paid] == [date(2024, 3, 5), date(2024, 2, 1), None]

    def test_summary(self):
        summary = summarize_unpaid(self._records())
        assert summary.count == 3
        assert summary.total == Decimal("105")


class TestFinanceReport:
    def test_build_finance_report(self, db_session, academy_id):
        product_id = CreateProductUseCase(db_session).execute(academy_id, "Uniform", "35")
        ana = CreateStudentUseCase(db_session).execute(academy_id, "Ana", "Lopez")
        leo = CreateStudentUseCase(db_session).execute(academy_id, "Leo")
        AddProductChargeUseCase(db_session).execute(academy_id, ana, product_id)
        AddProductChargeUseCase(db_session).execute(academy_id, leo, product_id)
        MarkPaymentPaidUseCase(db_session).execute(
            academy_id, leo, 0, date(2024, 1, 2), "cash", today=date(2024, 1, 5),
        )

        report = build_finance_report(db_session, academy_id)
        assert report.currency == "USD"
        assert report.summary.count == 1
        assert report.summary.total == Decimal("35")
        assert report.unpaid[0].student_name == "Ana Lopez"
        assert report.paid[0].student_name == "Leo"
        assert report.paid[0].payment_method == "cash"
