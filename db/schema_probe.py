"""
db/schema_probe.py
------------------
Diagnostic: lists the columns of a table and checks that an expected
column exists, printing the DDL to add it when it does not.
Run this module directly against the configured database:
    python -m db.schema_probe --table characters --column statistics
"""

import argparse
from dataclasses import dataclass, field
from typing import Optional

from db.client import DatabaseClient
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TABLE = "characters"
DEFAULT_COLUMN = "statistics"

REMEDIATION_SQL = """\
ALTER TABLE {table} ADD COLUMN {column} jsonb DEFAULT '[]'::jsonb;
CREATE INDEX IF NOT EXISTS idx_{table}_{column} ON {table} USING GIN({column});"""


@dataclass
class ProbeReport:
    """Outcome of one probe run."""
    table: str
    column: str
    columns: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def has_column(self) -> bool:
        return self.column in self.columns

    @property
    def remediation(self) -> str:
        return REMEDIATION_SQL.format(table=self.table, column=self.column)


def probe_columns(db: DatabaseClient, table: str, column: str) -> ProbeReport:
    """Query information_schema for `table` and check for `column`."""
    report = ProbeReport(table=table, column=column)
    data, error = (
        db.table("columns", schema="information_schema")
        .select("column_name")
        .eq("table_name", table)
        .order("ordinal_position")
        .execute()
    )
    if error:
        report.error = error.message
        return report
    report.columns = [row["column_name"] for row in data or []]
    return report


def print_report(report: ProbeReport) -> None:
    """Write the human-readable probe result to stdout."""
    print(f"🔍 Checking schema of table '{report.table}'...")
    print(f"📋 Current columns in {report.table} table:")
    for name in report.columns:
        print(f"  - {name}")

    exists = "✅ YES" if report.has_column else "❌ NO"
    print(f"\n📊 {report.column} column exists: {exists}")

    if not report.has_column:
        print("\n🚨 MIGRATION NEEDED:")
        print("Run this SQL against your database:")
        print(report.remediation)


def run(table: str = DEFAULT_TABLE, column: str = DEFAULT_COLUMN, provider: Optional[str] = None) -> Optional[ProbeReport]:
    """
    Build the configured client and probe once.

    Connection failures are logged, not raised; the probe has no exit-code
    contract. When the store rejects the column query the error is logged
    and nothing is printed: no column list and no remediation SQL, since
    an unreadable schema says nothing about whether the column exists.
    """
    from db.factory import create_db_client

    try:
        db = create_db_client(provider)
    except Exception as e:
        logger.error(f"❌ Database connection error: {e}")
        return None

    try:
        report = probe_columns(db, table, column)
    finally:
        db.close()

    if report.error:
        logger.error(f"❌ Database connection error: {report.error}")
        return report
    print_report(report)
    return report


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check a table for an expected column.")
    parser.add_argument("--table", default=DEFAULT_TABLE)
    parser.add_argument("--column", default=DEFAULT_COLUMN)
    parser.add_argument("--provider", choices=("supabase", "postgres"), default=None,
                        help="Override DB_PROVIDER")
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = _parse_args()
    run(args.table, args.column, args.provider)
