"""
Tests for receipt number and entity code allocation.
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event, insert
from sqlalchemy.orm import sessionmaker

from branch_finance.models.enums import RecordType
from branch_finance.models.finance import Transaction
from branch_finance.models.sequence import SequenceCounter
from branch_finance.services.identifier_service import (
    IdentifierService,
    format_receipt_number,
    parse_sequence,
)

from tests.conftest import TEST_DATABASE_URL, make_member


class TestReceiptNumbers:

    def test_first_number_in_a_year_is_one(self, world, db_session):
        service = IdentifierService(db_session)
        number = service.allocate_receipt_number(
            RecordType.CONTRIBUTION, "01", year=2025
        )
        assert number == "01-MC-2025-000001"

    def test_numbers_increase_within_a_key(self, world, db_session):
        service = IdentifierService(db_session)
        first = service.allocate_receipt_number(RecordType.TRANSACTION, "01", 2025)
        second = service.allocate_receipt_number(RecordType.TRANSACTION, "01", 2025)
        assert first == "01-TR-2025-000001"
        assert second == "01-TR-2025-000002"

    def test_branches_and_years_count_separately(self, world, db_session):
        service = IdentifierService(db_session)
        service.allocate_receipt_number(RecordType.EXPENDITURE, "01", 2025)

        assert service.allocate_receipt_number(
            RecordType.EXPENDITURE, "02", 2025
        ) == "02-EX-2025-000001"
        assert service.allocate_receipt_number(
            RecordType.EXPENDITURE, "01", 2026
        ) == "01-EX-2026-000001"

    def test_rolled_back_allocation_is_reused(self, world, db_session):
        service = IdentifierService(db_session)
        service.allocate_receipt_number(RecordType.CONTRIBUTION, "01", 2025)
        db_session.commit()

        service.allocate_receipt_number(RecordType.CONTRIBUTION, "01", 2025)
        db_session.rollback()

        again = service.allocate_receipt_number(RecordType.CONTRIBUTION, "01", 2025)
        assert again == "01-MC-2025-000002"


class TestEntityCodes:

    def test_global_codes(self, world, db_session):
        service = IdentifierService(db_session)
        assert service.allocate_code("supplier") == "SUP001"
        assert service.allocate_code("supplier") == "SUP002"
        assert service.allocate_code("asset") == "AST0001"
        assert service.allocate_code("contract") == "CON001"

    def test_head_codes_continue_from_existing_rows(self, world, db_session):
        # Branch 01 already holds revenue head 01R001.
        service = IdentifierService(db_session)
        assert service.allocate_code("revenue_head", "01") == "01R002"
        assert service.allocate_code("expenditure_head", "02") == "02E001"

    def test_head_codes_require_a_branch(self, world, db_session):
        service = IdentifierService(db_session)
        with pytest.raises(ValueError, match="require a branch"):
            service.allocate_code("revenue_head")

    def test_unknown_scope_rejected(self, db_session):
        with pytest.raises(ValueError, match="Unknown entity"):
            IdentifierService(db_session).allocate_code("invoice")


def test_format_and_parse():
    assert format_receipt_number("03", RecordType.TRANSACTION, 2024, 42) == (
        "03-TR-2024-000042"
    )
    assert parse_sequence("01-MC-2025-000042", "01-MC-2025-") == 42
    assert parse_sequence("01-MC-2025-00A042", "01-MC-2025-") is None
    assert parse_sequence("02-MC-2025-000001", "01-MC-2025-") is None


class TestCounterMechanics:

    def test_seeds_from_highest_existing_receipt(self, world, db_session):
        member = make_member(db_session)
        db_session.add(Transaction(
            receipt_number="01-TR-2025-000007",
            member_id=member.id,
            revenue_head_code="01R001",
            branch_code="01",
            amount=Decimal("10.00"),
            currency_code="USD",
            payment_method_id=world["payment_method"].id,
            user_id=world["users"]["cashier"].id,
        ))
        db_session.commit()

        service = IdentifierService(db_session)
        assert service.allocate_receipt_number(
            RecordType.TRANSACTION, "01", 2025
        ) == "01-TR-2025-000008"
        assert service.allocate_receipt_number(
            RecordType.TRANSACTION, "01", 2025
        ) == "01-TR-2025-000009"

    def test_retries_when_counter_row_appears_first(self, db_session, monkeypatch):
        service = IdentifierService(db_session)
        calls = []

        def seed_after_other_writer(column, prefix):
            # Another allocator creates the row and takes 1..3 first.
            calls.append(prefix)
            db_session.execute(insert(SequenceCounter).values(
                scope=RecordType.CONTRIBUTION.value,
                branch_code="01",
                year=2025,
                last_value=3,
            ))
            return 0

        monkeypatch.setattr(service, "_max_existing", seed_after_other_writer)

        number = service.allocate_receipt_number(RecordType.CONTRIBUTION, "01", 2025)

        assert number == "01-MC-2025-000004"
        assert calls == ["01-MC-2025-"]
        db_session.commit()
        counter = db_session.get(
            SequenceCounter, (RecordType.CONTRIBUTION.value, "01", 2025)
        )
        assert counter.last_value == 4


def immediate_engine():
    """A second engine on the test database whose transactions begin
    with BEGIN IMMEDIATE, so SQLite writers queue on the busy timeout
    the way PostgreSQL writers queue on the row lock."""
    concurrent_engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(concurrent_engine, "connect")
    def disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(concurrent_engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return concurrent_engine


def test_concurrent_allocations_are_distinct_and_contiguous():
    concurrent_engine = immediate_engine()
    make_session = sessionmaker(bind=concurrent_engine)

    def allocate(_):
        numbers = []
        for _ in range(5):
            with make_session() as session:
                numbers.append(IdentifierService(session).allocate_receipt_number(
                    RecordType.CONTRIBUTION, "01", 2025
                ))
                session.commit()
        return numbers

    try:
        with ThreadPoolExecutor(max_workers=8) as pool:
            batches = list(pool.map(allocate, range(8)))
    finally:
        concurrent_engine.dispose()

    numbers = [number for batch in batches for number in batch]
    assert len(set(numbers)) == 40
    assert sorted(numbers) == [
        f"01-MC-2025-{sequence:06d}" for sequence in range(1, 41)
    ]
