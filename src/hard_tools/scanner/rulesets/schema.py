"""
D1 schema and migration ruleset.

Three layers of checks over `.sql` files:

1. Dialect lines: MySQL/Postgres syntax that SQLite (D1) rejects or
   silently rewrites.
2. Structure: well-known auth and billing tables (users, accounts, sessions,
   subscriptions, passkeys) must carry their required columns and indexes.
   Tables and indexes are collected across the whole migration set, so an
   index added by a later migration satisfies a table from an earlier one.
3. Migration set: file count, rollback files and ordering prefixes.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from ..models import ScannedFile, Severity, Violation, rule
from ..sql import IndexDecl, TableDecl, extract_schema
from .base import Ruleset

logger = logging.getLogger(__name__)

_I = re.IGNORECASE

DIALECT_RULES = (
    rule(
        r"\bAUTO_INCREMENT\b",
        "dialect",
        Severity.CRITICAL,
        "AUTO_INCREMENT is MySQL syntax - not supported in D1/SQLite",
        "Use INTEGER PRIMARY KEY (auto-increments) or TEXT with UUID",
        flags=_I,
    ),
    rule(
        r"\bENUM\s*\(",
        "dialect",
        Severity.CRITICAL,
        "ENUM type is not supported in D1/SQLite",
        "Use TEXT with CHECK constraint or validate in application",
        flags=_I,
    ),
    rule(
        r"\bNOW\s*\(\s*\)",
        "dialect",
        Severity.CRITICAL,
        "NOW() is not supported in SQLite/D1",
        "Use datetime('now') or pass timestamp from application",
        flags=_I,
    ),
    rule(
        r"CURRENT_TIMESTAMP\s+ON\s+UPDATE|ON\s+UPDATE\s+CURRENT_TIMESTAMP",
        "dialect",
        Severity.CRITICAL,
        "ON UPDATE CURRENT_TIMESTAMP is MySQL syntax - not supported in D1",
        "Update timestamps in application code or with a trigger",
        flags=_I,
    ),
    rule(
        r"\bUNSIGNED\b",
        "dialect",
        Severity.WARNING,
        "UNSIGNED is not supported in SQLite/D1",
        "Use CHECK constraint for non-negative values",
        flags=_I,
    ),
    rule(
        r"SELECT\s+\*\s+FROM",
        "select-star",
        Severity.WARNING,
        "SELECT * can cause performance issues - specify columns explicitly",
        "Replace SELECT * with specific column names",
        flags=_I,
    ),
    rule(
        r"DROP\s+TABLE(?!\s+IF\s+EXISTS)",
        "unsafe-migration",
        Severity.WARNING,
        "DROP TABLE without IF EXISTS can fail if table does not exist",
        "Use DROP TABLE IF EXISTS for safety",
        flags=_I,
    ),
    rule(
        r"ALTER\s+TABLE\s+\S+\s+ADD\s+COLUMN\b",
        "unsafe-migration",
        Severity.WARNING,
        "ADD COLUMN fails on re-run once the column exists",
        "SQLite has no ADD COLUMN IF NOT EXISTS - keep the change in a migration that runs once",
        flags=_I,
    ),
    rule(
        r"\bVARCHAR\s*\(\s*\d+\s*\)",
        "type-affinity",
        Severity.INFO,
        "D1 uses TEXT type - VARCHAR is converted to TEXT",
        "Use TEXT instead of VARCHAR for clarity",
        flags=_I,
    ),
    rule(
        r"\bBOOLEAN\b",
        "type-affinity",
        Severity.INFO,
        "D1 stores BOOLEAN as INTEGER (0 or 1)",
        "Use INTEGER with CHECK constraint or document 0/1 convention",
        flags=_I,
    ),
    rule(
        r"\b(?:TINYINT|SMALLINT|MEDIUMINT|BIGINT)\b",
        "type-affinity",
        Severity.INFO,
        "All integer types are stored as INTEGER in SQLite/D1",
        "Use INTEGER for clarity",
        flags=_I,
    ),
    rule(
        r"\b(?:DOUBLE|FLOAT)\b",
        "type-affinity",
        Severity.INFO,
        "Floating point types are stored as REAL in SQLite/D1",
        "Use REAL for clarity",
        flags=_I,
    ),
)


# ============================================================================
# Well-known tables (better-auth + Polar.sh)
# ============================================================================


@dataclass(frozen=True)
class Integration:
    """Optional column group; flagged when none of its columns is present."""

    name: str
    columns: tuple[str, ...]
    fix: str


@dataclass(frozen=True)
class TableShape:
    description: str
    required: tuple[str, ...]
    recommended: tuple[str, ...] = ()
    integrations: tuple[Integration, ...] = ()


@dataclass(frozen=True)
class IndexRequirement:
    columns: tuple[str, ...]
    reason: str
    optional: bool = False


REQUIRED_FIELDS = {
    "users": TableShape(
        description="User accounts table (better-auth compatible)",
        required=("id", "email", "created_at"),
        recommended=("updated_at", "email_verified"),
        integrations=(
            Integration(
                "better-auth",
                ("password_hash", "name", "image"),
                "Add if using better-auth: password_hash TEXT, name TEXT, image TEXT",
            ),
            Integration(
                "Polar.sh",
                ("polar_customer_id", "subscription_status"),
                "Add if using Polar.sh: polar_customer_id TEXT UNIQUE, subscription_status TEXT",
            ),
        ),
    ),
    "accounts": TableShape(
        description="OAuth accounts table (better-auth)",
        required=("id", "user_id", "provider", "provider_account_id"),
        recommended=("access_token", "refresh_token", "expires_at", "created_at"),
    ),
    "sessions": TableShape(
        description="Sessions table (better-auth)",
        required=("id", "user_id", "expires_at"),
        recommended=("created_at",),
    ),
    "subscriptions": TableShape(
        description="Subscriptions table (Polar.sh compatible)",
        required=("id", "status"),
        recommended=(
            "polar_customer_id",
            "product_id",
            "price_id",
            "current_period_start",
            "current_period_end",
        ),
        integrations=(
            Integration(
                "Polar.sh",
                ("canceled_at", "created_at", "updated_at"),
                "Add if using Polar.sh: canceled_at TEXT, created_at TEXT, updated_at TEXT",
            ),
        ),
    ),
    "passkeys": TableShape(
        description="Passkeys table (better-auth WebAuthn)",
        required=("id", "user_id", "credential_id", "public_key"),
        recommended=("counter", "created_at"),
    ),
}

REQUIRED_INDEXES = {
    "users": (
        IndexRequirement(("email",), "Login lookups by email"),
        IndexRequirement(("polar_customer_id",), "Polar webhook lookups", optional=True),
    ),
    "accounts": (
        IndexRequirement(("user_id",), "User account lookups"),
        IndexRequirement(("provider", "provider_account_id"), "OAuth provider lookups"),
    ),
    "sessions": (
        IndexRequirement(("user_id",), "User session lookups"),
        IndexRequirement(("expires_at",), "Session expiration queries", optional=True),
    ),
    "subscriptions": (
        IndexRequirement(("polar_customer_id",), "Customer subscription lookups"),
        IndexRequirement(("status",), "Active subscription queries"),
    ),
}

ORDERING_PREFIX = re.compile(r"^\d{4}")
ROLLBACK_NAME = re.compile(r"down|rollback|revert", re.IGNORECASE)


def well_known_table(name: str) -> str | None:
    """Map a table name to its well-known shape key ("user" -> "users")."""
    if name in REQUIRED_FIELDS:
        return name
    if f"{name}s" in REQUIRED_FIELDS:
        return f"{name}s"
    return None


@dataclass
class _TableEntry:
    decl: TableDecl
    file: str
    columns: list[str]


class SchemaRuleset(Ruleset):
    """D1 dialect, schema shape and migration hygiene."""

    name = "d1"
    description = "D1 migrations and schema"
    default_target = "migrations"
    extensions = (".sql",)
    rules = DIALECT_RULES

    def __init__(self):
        self._details: dict = {}

    def skip_line(self, line: str) -> bool:
        return line.strip().startswith("--")

    def check_tree(
        self, target: Path, files: list[ScannedFile], settings
    ) -> list[Violation]:
        tables: dict[str, _TableEntry] = {}
        indexes: list[IndexDecl] = []
        unrecognized = 0

        # Later migrations override earlier declarations of the same table
        for scanned in files:
            schema = extract_schema(scanned.content)
            for table in schema.tables:
                tables[table.name] = _TableEntry(
                    table, scanned.display, list(table.column_names)
                )
            for addition in schema.additions:
                entry = tables.get(addition.table)
                if entry and addition.column.name not in entry.columns:
                    entry.columns.append(addition.column.name)
            indexes.extend(schema.indexes)
            unrecognized += len(schema.unrecognized)

        violations: list[Violation] = []
        for entry in tables.values():
            key = well_known_table(entry.decl.name)
            if key is None:
                continue
            violations.extend(check_required_fields(entry, key))
            violations.extend(check_required_indexes(entry, key, indexes))

        if target.is_dir():
            violations.extend(
                check_migration_set(target, files, settings.migration_file_threshold)
            )

        self._details = {
            "tables": [
                {"name": e.decl.name, "columns": e.columns, "file": e.file}
                for e in tables.values()
            ],
            "indexes": [
                {
                    "name": i.name,
                    "table": i.table,
                    "columns": list(i.columns),
                    "unique": i.unique,
                }
                for i in indexes
            ],
            "unrecognizedStatements": unrecognized,
        }
        logger.debug(
            f"d1: {len(tables)} tables, {len(indexes)} indexes, "
            f"{unrecognized} unrecognized statements"
        )
        return violations

    def details(self) -> dict:
        return self._details


def _table_violation(
    entry: _TableEntry,
    type: str,
    severity: Severity,
    message: str,
    fix: str,
    context: str | None = None,
) -> Violation:
    return Violation(
        file=entry.file,
        line=0,
        code="",
        type=type,
        severity=severity,
        message=message,
        fix=fix,
        context=context,
    )


def check_required_fields(entry: _TableEntry, key: str) -> list[Violation]:
    shape = REQUIRED_FIELDS[key]
    name = entry.decl.name
    violations = []

    for column in shape.required:
        if column not in entry.columns:
            violations.append(
                _table_violation(
                    entry,
                    "missing-required-field",
                    Severity.CRITICAL,
                    f"Missing required field '{column}' in {name} table",
                    f"Add column: {column} TEXT NOT NULL",
                    shape.description,
                )
            )

    for column in shape.recommended:
        if column not in entry.columns:
            violations.append(
                _table_violation(
                    entry,
                    "missing-recommended-field",
                    Severity.WARNING,
                    f"Missing recommended field '{column}' in {name} table",
                    f"Consider adding: {column}",
                    shape.description,
                )
            )

    for integration in shape.integrations:
        if not any(c in entry.columns for c in integration.columns):
            violations.append(
                _table_violation(
                    entry,
                    "integration-fields",
                    Severity.INFO,
                    f"No {integration.name} fields detected in {name} table "
                    f"({', '.join(integration.columns)})",
                    integration.fix,
                    f"{integration.name} integration",
                )
            )

    return violations


def index_satisfied(
    table: TableDecl, required: tuple[str, ...], indexes: list[IndexDecl]
) -> bool:
    """
    Whether an index covering `required` exists for `table`.

    Satisfied by any CREATE INDEX on the table whose leading columns are the
    required columns (in any order), by a UNIQUE or PRIMARY KEY table
    constraint with the same leading columns, or, for a single column, by an
    inline UNIQUE or PRIMARY KEY column.
    """
    wanted = set(required)
    width = len(required)

    for index in indexes:
        if index.table == table.name and set(index.columns[:width]) == wanted:
            return True

    for constraint in table.constraints:
        if constraint.kind in ("unique", "primary_key"):
            if set(constraint.columns[:width]) == wanted:
                return True

    if width == 1:
        for column in table.columns:
            if column.name == required[0] and (column.unique or column.primary_key):
                return True

    return False


def check_required_indexes(
    entry: _TableEntry, key: str, indexes: list[IndexDecl]
) -> list[Violation]:
    name = entry.decl.name
    violations = []

    for required in REQUIRED_INDEXES.get(key, ()):
        # Index checks only apply to columns the table actually has
        if not all(c in entry.columns for c in required.columns):
            continue
        if index_satisfied(entry.decl, required.columns, indexes):
            continue

        column_list = ", ".join(required.columns)
        index_name = f"idx_{name}_{'_'.join(required.columns)}"
        violations.append(
            _table_violation(
                entry,
                "missing-index",
                Severity.INFO if required.optional else Severity.WARNING,
                f"Missing index on {name}({column_list}) - {required.reason}",
                f"CREATE INDEX {index_name} ON {name}({column_list});",
            )
        )

    return violations


def check_migration_set(
    directory: Path, files: list[ScannedFile], threshold: int
) -> list[Violation]:
    violations = []

    if len(files) > threshold:
        violations.append(
            Violation(
                file=str(directory),
                line=0,
                code="",
                type="migration-count",
                severity=Severity.WARNING,
                message=(
                    f"{len(files)} migration files found - too many small "
                    "migration files can slow down deployment"
                ),
                fix="Consider consolidating migrations into fewer files",
            )
        )

    for scanned in files:
        if not ORDERING_PREFIX.match(scanned.path.name):
            violations.append(
                Violation(
                    file=scanned.display,
                    line=0,
                    code="",
                    type="migration-naming",
                    severity=Severity.WARNING,
                    message="Migration file should have a numeric prefix for ordering",
                    fix="Use format: 0001_description.sql or YYYYMMDD_description.sql",
                )
            )

    if files and not any(ROLLBACK_NAME.search(f.path.name) for f in files):
        violations.append(
            Violation(
                file=str(directory),
                line=0,
                code="",
                type="missing-rollback",
                severity=Severity.INFO,
                message="No down migration found - rollbacks will require manual intervention",
                fix="Consider adding down migrations for reversibility",
            )
        )

    return violations
