"""
SQL Extractor - Table, column and index declarations from migration files.

A small tokenizer plus a narrow recursive-descent extractor for the subset
of SQLite DDL that schema checks need:

    CREATE [TEMP] TABLE [IF NOT EXISTS] name ( column-def | table-constraint, ... )
    CREATE [UNIQUE] INDEX [IF NOT EXISTS] name ON table ( column [ASC|DESC], ... )
    ALTER TABLE name ADD [COLUMN] column-def

Anything else becomes an `Unrecognized` result carrying the reason. The
extractor never raises on malformed input.
"""

import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


# ============================================================================
# Tokens
# ============================================================================

IDENT = "ident"
QUOTED = "quoted"
STRING = "string"
NUMBER = "number"
PUNCT = "punct"

_TOKEN_RE = re.compile(
    r"""
    (?P<line_comment>--[^\n]*)
  | (?P<block_comment>/\*.*?(?:\*/|\Z))
  | (?P<ws>\s+)
  | (?P<string>'(?:[^']|'')*'?)
  | (?P<quoted>"(?:[^"]|"")*"?|`[^`]*`?|\[[^\]]*\]?)
  | (?P<number>\d+(?:\.\d+)?)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_$]*)
  | (?P<punct>.)
    """,
    re.VERBOSE | re.DOTALL,
)


@dataclass(frozen=True)
class Token:
    kind: str
    text: str

    @property
    def upper(self) -> str:
        # Quoted identifiers never act as keywords
        return self.text.upper() if self.kind == IDENT else ""

    @property
    def name(self) -> str:
        """Identifier value, unquoted and lowercased."""
        if self.kind in (QUOTED, STRING):
            inner = self.text[1:-1] if len(self.text) > 1 else self.text
            return inner.lower()
        return self.text.lower()


def tokenize(sql: str) -> list[Token]:
    """Split SQL text into tokens, dropping whitespace and comments."""
    tokens = []
    for match in _TOKEN_RE.finditer(sql):
        kind = match.lastgroup
        if kind in ("ws", "line_comment", "block_comment"):
            continue
        tokens.append(Token(kind, match.group()))
    return tokens


def split_statements(tokens: list[Token]) -> list[list[Token]]:
    """Split a token stream on top-level `;`, dropping empty statements."""
    statements: list[list[Token]] = []
    current: list[Token] = []
    for token in tokens:
        if token.kind == PUNCT and token.text == ";":
            if current:
                statements.append(current)
            current = []
        else:
            current.append(token)
    if current:
        statements.append(current)
    return statements


# ============================================================================
# Declarations
# ============================================================================


@dataclass(frozen=True)
class ColumnDecl:
    name: str
    type: str | None = None
    not_null: bool = False
    primary_key: bool = False
    unique: bool = False
    default: str | None = None
    references: str | None = None  # Referenced table


@dataclass(frozen=True)
class TableConstraint:
    kind: str  # primary_key | unique | foreign_key | check
    columns: tuple[str, ...] = ()
    references: str | None = None


@dataclass(frozen=True)
class TableDecl:
    name: str
    columns: tuple[ColumnDecl, ...]
    constraints: tuple[TableConstraint, ...] = ()
    if_not_exists: bool = False

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]


@dataclass(frozen=True)
class IndexDecl:
    name: str
    table: str
    columns: tuple[str, ...]
    unique: bool = False
    partial: bool = False  # Has a WHERE clause


@dataclass(frozen=True)
class ColumnAddition:
    """ALTER TABLE ... ADD COLUMN."""

    table: str
    column: ColumnDecl


@dataclass(frozen=True)
class Unrecognized:
    reason: str
    text: str


Declaration = TableDecl | IndexDecl | ColumnAddition | Unrecognized


@dataclass
class SchemaFile:
    """Everything extracted from one SQL file."""

    tables: list[TableDecl] = field(default_factory=list)
    indexes: list[IndexDecl] = field(default_factory=list)
    additions: list[ColumnAddition] = field(default_factory=list)
    unrecognized: list[Unrecognized] = field(default_factory=list)


# ============================================================================
# Parser
# ============================================================================


class _Unrecognized(Exception):
    pass


_COLUMN_CONSTRAINT_STARTS = {
    "CONSTRAINT",
    "PRIMARY",
    "NOT",
    "NULL",
    "UNIQUE",
    "CHECK",
    "DEFAULT",
    "COLLATE",
    "REFERENCES",
    "GENERATED",
    "AS",
}
_TABLE_CONSTRAINT_STARTS = {"CONSTRAINT", "PRIMARY", "UNIQUE", "CHECK", "FOREIGN"}


class _Parser:
    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0

    # Cursor helpers

    def peek(self, offset: int = 0) -> Token | None:
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def advance(self) -> Token:
        token = self.peek()
        if token is None:
            raise _Unrecognized("unexpected end of statement")
        self.pos += 1
        return token

    def at_keyword(self, *words: str) -> bool:
        token = self.peek()
        return token is not None and token.upper in words

    def at_punct(self, text: str) -> bool:
        token = self.peek()
        return token is not None and token.kind == PUNCT and token.text == text

    def accept_keyword(self, *words: str) -> bool:
        if self.at_keyword(*words):
            self.pos += 1
            return True
        return False

    def accept_keywords(self, *sequence: str) -> bool:
        """Consume a keyword sequence only if it is fully present."""
        for offset, word in enumerate(sequence):
            token = self.peek(offset)
            if token is None or token.upper != word:
                return False
        self.pos += len(sequence)
        return True

    def expect_keyword(self, word: str) -> None:
        if not self.accept_keyword(word):
            raise _Unrecognized(f"expected {word}")

    def expect_punct(self, text: str) -> None:
        if not self.at_punct(text):
            raise _Unrecognized(f"expected '{text}'")
        self.pos += 1

    def identifier(self) -> str:
        token = self.advance()
        if token.kind not in (IDENT, QUOTED, STRING):
            raise _Unrecognized(f"expected a name, got '{token.text}'")
        return token.name

    def qualified_name(self) -> str:
        """`name` or `schema.name`; only the last part is kept."""
        name = self.identifier()
        while self.at_punct("."):
            self.pos += 1
            name = self.identifier()
        return name

    def skip_group(self) -> str:
        """Consume a balanced parenthesized group and return its text."""
        self.expect_punct("(")
        depth = 1
        parts = []
        while depth:
            token = self.advance()
            if token.kind == PUNCT and token.text == "(":
                depth += 1
            elif token.kind == PUNCT and token.text == ")":
                depth -= 1
                if not depth:
                    break
            parts.append(token.text)
        return " ".join(parts)

    def name_list(self) -> tuple[str, ...]:
        """( col [COLLATE x] [ASC|DESC], ... ) with expression entries kept as text."""
        self.expect_punct("(")
        names = []
        while True:
            token = self.peek()
            if token is None:
                raise _Unrecognized("unterminated column list")
            nxt = self.peek(1)
            if nxt is not None and nxt.kind == PUNCT and nxt.text == "(":
                # Expression entry such as lower(email)
                self.pos += 1
                names.append(f"{token.name}({self.skip_group()})")
            else:
                names.append(self.identifier())
            if self.accept_keyword("COLLATE"):
                self.identifier()
            self.accept_keyword("ASC", "DESC")
            if self.at_punct(","):
                self.pos += 1
                continue
            self.expect_punct(")")
            return tuple(names)

    def skip_conflict_clause(self) -> None:
        if self.accept_keywords("ON", "CONFLICT"):
            self.advance()

    # Statements

    def statement(self) -> Declaration:
        if self.accept_keyword("CREATE"):
            self.accept_keyword("TEMP", "TEMPORARY")
            unique = self.accept_keyword("UNIQUE")
            if not unique and self.accept_keyword("TABLE"):
                return self.create_table()
            if self.accept_keyword("INDEX"):
                return self.create_index(unique)
            raise _Unrecognized("not a CREATE TABLE or CREATE INDEX statement")
        if self.accept_keyword("ALTER"):
            return self.alter_table()
        raise _Unrecognized("not a schema declaration")

    def create_table(self) -> TableDecl:
        if_not_exists = self.accept_keywords("IF", "NOT", "EXISTS")
        name = self.qualified_name()
        if self.at_keyword("AS"):
            raise _Unrecognized("CREATE TABLE ... AS SELECT has no column list")

        self.expect_punct("(")
        columns: list[ColumnDecl] = []
        constraints: list[TableConstraint] = []
        while True:
            if self.at_keyword(*_TABLE_CONSTRAINT_STARTS):
                constraints.append(self.table_constraint())
            else:
                columns.append(self.column_def())
            if self.at_punct(","):
                self.pos += 1
                continue
            self.expect_punct(")")
            break
        # Trailing table options (WITHOUT ROWID, STRICT) are ignored

        if not columns:
            raise _Unrecognized(f"table {name} declares no columns")
        return TableDecl(
            name=name,
            columns=tuple(columns),
            constraints=tuple(constraints),
            if_not_exists=if_not_exists,
        )

    def column_def(self) -> ColumnDecl:
        name = self.identifier()

        type_words = []
        while True:
            token = self.peek()
            if token is None or token.kind != IDENT:
                break
            if token.upper in _COLUMN_CONSTRAINT_STARTS:
                break
            type_words.append(token.text.upper())
            self.pos += 1
        column_type = " ".join(type_words) or None
        if column_type and self.at_punct("("):
            column_type += f"({self.skip_group().replace(' ', '')})"

        not_null = primary_key = unique = False
        default = references = None

        while True:
            token = self.peek()
            if token is None or (token.kind == PUNCT and token.text in ",)"):
                break
            if self.accept_keyword("CONSTRAINT"):
                self.identifier()
            elif self.accept_keywords("PRIMARY", "KEY"):
                primary_key = True
                self.accept_keyword("ASC", "DESC")
                self.skip_conflict_clause()
                self.accept_keyword("AUTOINCREMENT")
            elif self.accept_keywords("NOT", "NULL"):
                not_null = True
                self.skip_conflict_clause()
            elif self.accept_keyword("NULL"):
                self.skip_conflict_clause()
            elif self.accept_keyword("UNIQUE"):
                unique = True
                self.skip_conflict_clause()
            elif self.accept_keyword("CHECK"):
                self.skip_group()
            elif self.accept_keyword("DEFAULT"):
                default = self.default_value()
            elif self.accept_keyword("COLLATE"):
                self.identifier()
            elif self.accept_keyword("REFERENCES"):
                references = self.foreign_key_clause()[0]
            elif self.accept_keyword("GENERATED"):
                self.expect_keyword("ALWAYS")
            elif self.accept_keyword("AS"):
                self.skip_group()
                self.accept_keyword("STORED", "VIRTUAL")
            elif self.at_punct("("):
                self.skip_group()
            else:
                # Dialect noise such as AUTO_INCREMENT or UNSIGNED
                self.advance()

        return ColumnDecl(
            name=name,
            type=column_type,
            not_null=not_null,
            primary_key=primary_key,
            unique=unique,
            default=default,
            references=references,
        )

    def default_value(self) -> str:
        if self.at_punct("("):
            return f"({self.skip_group()})"
        token = self.advance()
        if token.kind == PUNCT and token.text in "+-":
            return token.text + self.advance().text
        return token.text

    def foreign_key_clause(self) -> tuple[str, tuple[str, ...]]:
        table = self.qualified_name()
        columns = self.name_list() if self.at_punct("(") else ()
        while True:
            if self.accept_keyword("ON"):
                self.advance()  # DELETE | UPDATE
                if not (
                    self.accept_keywords("SET", "NULL")
                    or self.accept_keywords("SET", "DEFAULT")
                    or self.accept_keywords("NO", "ACTION")
                ):
                    self.advance()  # CASCADE | RESTRICT
            elif self.accept_keyword("MATCH"):
                self.identifier()
            elif self.accept_keywords("NOT", "DEFERRABLE") or self.accept_keyword(
                "DEFERRABLE"
            ):
                if self.accept_keyword("INITIALLY"):
                    self.advance()
            else:
                return table, columns

    def table_constraint(self) -> TableConstraint:
        if self.accept_keyword("CONSTRAINT"):
            self.identifier()
        if self.accept_keywords("PRIMARY", "KEY"):
            columns = self.name_list()
            self.skip_conflict_clause()
            return TableConstraint("primary_key", columns)
        if self.accept_keyword("UNIQUE"):
            columns = self.name_list()
            self.skip_conflict_clause()
            return TableConstraint("unique", columns)
        if self.accept_keyword("CHECK"):
            self.skip_group()
            return TableConstraint("check")
        if self.accept_keywords("FOREIGN", "KEY"):
            columns = self.name_list()
            self.expect_keyword("REFERENCES")
            table, _ = self.foreign_key_clause()
            return TableConstraint("foreign_key", columns, references=table)
        raise _Unrecognized("unsupported table constraint")

    def create_index(self, unique: bool) -> IndexDecl:
        self.accept_keywords("IF", "NOT", "EXISTS")
        name = self.qualified_name()
        self.expect_keyword("ON")
        table = self.qualified_name()
        columns = self.name_list()
        partial = self.accept_keyword("WHERE")
        return IndexDecl(
            name=name, table=table, columns=columns, unique=unique, partial=partial
        )

    def alter_table(self) -> ColumnAddition:
        self.expect_keyword("TABLE")
        table = self.qualified_name()
        if not self.accept_keyword("ADD"):
            raise _Unrecognized("ALTER TABLE other than ADD COLUMN")
        self.accept_keyword("COLUMN")
        return ColumnAddition(table=table, column=self.column_def())


# ============================================================================
# Public API
# ============================================================================


def extract(tokens: list[Token]) -> Declaration:
    """Extract one declaration from a statement's tokens."""
    try:
        return _Parser(tokens).statement()
    except _Unrecognized as e:
        return Unrecognized(reason=str(e), text=" ".join(t.text for t in tokens))


def extract_schema(sql: str) -> SchemaFile:
    """Extract every table, index and column addition from SQL text."""
    schema = SchemaFile()
    for statement in split_statements(tokenize(sql)):
        result = extract(statement)
        if isinstance(result, TableDecl):
            schema.tables.append(result)
        elif isinstance(result, IndexDecl):
            schema.indexes.append(result)
        elif isinstance(result, ColumnAddition):
            schema.additions.append(result)
        else:
            logger.debug(f"Unrecognized SQL statement ({result.reason}): {result.text[:80]}")
            schema.unrecognized.append(result)
    return schema
