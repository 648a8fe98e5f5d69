"""
Identifier service: receipt numbers, voucher numbers and entity codes.

Receipt numbers look like 01-MC-2025-000042:
    branch code, record prefix, calendar year, 6-digit sequence.

The sequence for a (record type, branch, year) key lives in the
sequence_counters table. Allocation is a single
    UPDATE sequence_counters SET last_value = last_value + 1
inside the caller's transaction. The row lock taken by that UPDATE
serializes concurrent allocators until the caller commits, so two
requests can never be handed the same number. If the request rolls
back, the increment rolls back with it.

The first allocation for a key inserts the counter row under a
savepoint, seeded from the highest identifier already stored. Two
requests racing to create the same row collide on the primary key;
the loser retries and takes the UPDATE path.

Entity codes (SUP001, AST0001, CON001, 01R001, 01E001) use the same
counter without a year, so a deleted supplier never frees its code
for reuse.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from branch_finance.exceptions import StoreError
from branch_finance.models.enums import RecordType
from branch_finance.models.finance import (
    MemberContribution,
    Transaction,
    Expenditure,
)
from branch_finance.models.procurement import Supplier, Asset, Contract
from branch_finance.models.reference import RevenueHead, ExpenditureHead
from branch_finance.models.sequence import SequenceCounter

logger = logging.getLogger(__name__)

MAX_ALLOCATION_ATTEMPTS = 3

RECEIPT_PREFIXES = {
    RecordType.CONTRIBUTION: "MC",
    RecordType.TRANSACTION: "TR",
    RecordType.EXPENDITURE: "EX",
}

_RECEIPT_COLUMNS = {
    RecordType.CONTRIBUTION: MemberContribution.receipt_number,
    RecordType.TRANSACTION: Transaction.receipt_number,
    RecordType.EXPENDITURE: Expenditure.voucher_number,
}


@dataclass(frozen=True)
class EntityCode:
    """How the codes of one entity table are built."""
    column: object
    prefix: str
    width: int
    per_branch: bool = False

    def prefix_for(self, branch_code: str | None) -> str:
        if self.per_branch:
            return f"{branch_code}{self.prefix}"
        return self.prefix


ENTITY_CODES = {
    "supplier": EntityCode(Supplier.code, "SUP", 3),
    "asset": EntityCode(Asset.asset_number, "AST", 4),
    "contract": EntityCode(Contract.contract_number, "CON", 3),
    "revenue_head": EntityCode(RevenueHead.code, "R", 3, per_branch=True),
    "expenditure_head": EntityCode(
        ExpenditureHead.code, "E", 3, per_branch=True
    ),
}


def current_year(timezone_name: str) -> int:
    """Calendar year in the organization's local timezone."""
    return datetime.now(ZoneInfo(timezone_name)).year


def format_receipt_number(
    branch_code: str, record_type: RecordType, year: int, sequence: int
) -> str:
    prefix = RECEIPT_PREFIXES[record_type]
    return f"{branch_code}-{prefix}-{year}-{sequence:06d}"


def parse_sequence(identifier: str, prefix: str) -> int | None:
    """
    Numeric suffix of an identifier that starts with prefix.

    Returns None when the rest is not all digits, so a malformed
    legacy value never poisons the counter.
    """
    if not identifier or not identifier.startswith(prefix):
        return None
    suffix = identifier[len(prefix):]
    if not suffix.isdigit():
        return None
    return int(suffix)


class IdentifierService:

    def __init__(self, db: Session, timezone_name: str = "UTC"):
        self.db = db
        self.timezone_name = timezone_name

    # --- Receipt / voucher numbers ---

    def allocate_receipt_number(
        self,
        record_type: RecordType,
        branch_code: str,
        year: int | None = None,
    ) -> str:
        """
        Allocate the next identifier for a financial record.

        Must be called inside the unit of work that inserts the
        record; the counter increment commits or rolls back with it.
        """
        if record_type not in RECEIPT_PREFIXES:
            raise ValueError(f"Unknown record type: {record_type}")
        if year is None:
            year = current_year(self.timezone_name)

        # e.g. "01-MC-2025-"
        prefix = f"{branch_code}-{RECEIPT_PREFIXES[record_type]}-{year}-"
        column = _RECEIPT_COLUMNS[record_type]

        sequence = self._next_value(
            scope=record_type.value,
            branch_code=branch_code,
            year=year,
            seed=lambda: self._max_existing(column, prefix),
        )
        return format_receipt_number(branch_code, record_type, year, sequence)

    # --- Entity codes ---

    def allocate_code(self, entity: str, branch_code: str | None = None) -> str:
        """Allocate the next code for a supplier, asset, contract or head."""
        code_format = ENTITY_CODES.get(entity)
        if code_format is None:
            raise ValueError(f"Unknown entity code scope: {entity}")
        if code_format.per_branch and not branch_code:
            raise ValueError(f"{entity} codes require a branch code")

        prefix = code_format.prefix_for(branch_code)
        sequence = self._next_value(
            scope=entity,
            branch_code=branch_code if code_format.per_branch else "",
            year=0,
            seed=lambda: self._max_existing(code_format.column, prefix),
        )
        return f"{prefix}{sequence:0{code_format.width}d}"

    # --- Counter mechanics ---

    def _next_value(self, scope: str, branch_code: str, year: int, seed) -> int:
        key = (
            SequenceCounter.scope == scope,
            SequenceCounter.branch_code == branch_code,
            SequenceCounter.year == year,
        )

        for attempt in range(1, MAX_ALLOCATION_ATTEMPTS + 1):
            result = self.db.execute(
                update(SequenceCounter)
                .where(*key)
                .values(last_value=SequenceCounter.last_value + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                return self.db.execute(
                    select(SequenceCounter.last_value).where(*key)
                ).scalar_one()

            # First allocation for this key: create the counter row.
            first_value = seed() + 1
            try:
                with self.db.begin_nested():
                    self.db.add(SequenceCounter(
                        scope=scope,
                        branch_code=branch_code,
                        year=year,
                        last_value=first_value,
                    ))
                return first_value
            except IntegrityError:
                # Another transaction created the row first.
                logger.info(
                    "Sequence counter %s/%s/%s created concurrently, "
                    "retrying (attempt %d)",
                    scope, branch_code, year, attempt,
                )

        raise StoreError(
            "Could not allocate a sequence number, please retry",
            status_code=503,
        )

    def _max_existing(self, column, prefix: str) -> int:
        """Highest sequence already stored under prefix, 0 if none."""
        values = self.db.execute(
            select(column).where(column.like(f"{prefix}%"))
        ).scalars()
        highest = 0
        for value in values:
            sequence = parse_sequence(value, prefix)
            if sequence is not None and sequence > highest:
                highest = sequence
        return highest
