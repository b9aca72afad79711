"""Read-only gate and table-prefix rewriting for user-supplied SQL.

This is a lexical check, not a parser. Only the leading keyword decides
whether a statement may run; a ``WITH`` statement additionally has to
contain a ``SELECT`` somewhere after it. The check does not verify that the
``SELECT`` is the final top-level statement, so stacked statements such as
``WITH c AS (SELECT 1) SELECT 1; DROP TABLE users`` are not caught here.
"""

import re
from dataclasses import dataclass

# Leading keywords that may be executed.
READ_ONLY_KEYWORDS = frozenset(
    {
        "SELECT",
        "SHOW",
        "EXPLAIN",
        "DESCRIBE",
        "DESC",
        "WITH",  # must be followed by a SELECT
        "VALUES",  # literal rows
        "TABLE",  # PostgreSQL shorthand for SELECT *
    }
)

# Keywords after which a bare identifier is treated as a table name.
PREFIX_TRIGGER_KEYWORDS = ("FROM", "JOIN", "INTO", "UPDATE", "TABLE", "DESCRIBE", "DESC")

INVALID_QUERY_MESSAGE = "Please pass a valid query"
NOT_READ_ONLY_MESSAGE = (
    "Only read-only queries are allowed (SELECT, SHOW, EXPLAIN, DESCRIBE, DESC, WITH … SELECT)."
)

_TOKEN_SEPARATORS = re.compile(r"[ \t\n\r]+")
_WITH_SELECT_PATTERN = re.compile(r"with\s+.*select\b", re.IGNORECASE | re.DOTALL)
_CTE_NAME_PATTERN = re.compile(r"\b(\w+)\s*(?:\([^)]*\))?\s*AS\s*\(", re.IGNORECASE)
_TABLE_REFERENCE_PATTERN = re.compile(
    r"\b(" + "|".join(PREFIX_TRIGGER_KEYWORDS) + r")\s+([`\"']?)(\w+)\2",
    re.IGNORECASE,
)


class QueryGateError(Exception):
    """Base class for queries refused before reaching a connection."""

    kind = "query_error"


class InvalidQueryError(QueryGateError):
    """No executable content was supplied."""

    kind = "invalid_query"

    def __init__(self, message: str = INVALID_QUERY_MESSAGE):
        super().__init__(message)


class NotReadOnlyError(QueryGateError):
    """The statement is not on the read-only allow-list."""

    kind = "not_read_only"

    def __init__(self, message: str = NOT_READ_ONLY_MESSAGE, keyword: str | None = None):
        super().__init__(message)
        self.keyword = keyword


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying a query by its leading keyword."""

    is_read_only: bool
    keyword: str
    reason: str | None = None


def first_keyword(query: str) -> str | None:
    """Return the first whitespace-delimited token of ``query``, or None."""
    stripped = query.strip()
    if not stripped:
        return None
    return _TOKEN_SEPARATORS.split(stripped, maxsplit=1)[0]


def classify_query(query: str) -> ClassificationResult:
    """Classify a SQL string as read-only or not.

    Raises:
        InvalidQueryError: If the query is empty or whitespace only.
    """
    token = first_keyword(query)
    if token is None:
        raise InvalidQueryError()

    keyword = token.upper()

    if keyword not in READ_ONLY_KEYWORDS:
        return ClassificationResult(
            is_read_only=False,
            keyword=keyword,
            reason=f"'{keyword}' is not an allowed leading keyword",
        )

    if keyword == "WITH" and not _WITH_SELECT_PATTERN.search(query.strip()):
        return ClassificationResult(
            is_read_only=False,
            keyword=keyword,
            reason="WITH clause is not followed by a SELECT",
        )

    return ClassificationResult(is_read_only=True, keyword=keyword)


def ensure_read_only(query: str) -> str:
    """Return the trimmed query if it may run, otherwise raise.

    Raises:
        InvalidQueryError: If the query is empty or whitespace only.
        NotReadOnlyError: If the leading keyword is not allowed.
    """
    result = classify_query(query)
    if not result.is_read_only:
        raise NotReadOnlyError(keyword=result.keyword)
    return query.strip()


def extract_cte_names(query: str) -> list[str]:
    """Extract common table expression names defined in a query.

    Matches ``name AS (`` and ``name (col, ...) AS (``. Order of first
    appearance is kept and duplicates are not removed.
    """
    return _CTE_NAME_PATTERN.findall(query)


def add_table_prefix(query: str, prefix: str) -> str:
    """Prefix bare table names that follow FROM, JOIN, INTO and friends.

    Identifiers that already start with ``prefix`` and names of CTEs defined
    in the same query are left alone. The quote character around a table
    name, if any, is kept.
    """
    if not prefix:
        return query

    cte_names = frozenset(extract_cte_names(query))

    def _replace(match: re.Match) -> str:
        keyword, quote, table_name = match.group(1), match.group(2), match.group(3)

        if table_name.startswith(prefix) or table_name in cte_names:
            return match.group(0)

        return f"{keyword} {quote}{prefix}{table_name}{quote}"

    return _TABLE_REFERENCE_PATTERN.sub(_replace, query)
