"""SQL validation helpers."""

from query_mcp.validation.readonly import (
    INVALID_QUERY_MESSAGE,
    NOT_READ_ONLY_MESSAGE,
    PREFIX_TRIGGER_KEYWORDS,
    READ_ONLY_KEYWORDS,
    ClassificationResult,
    InvalidQueryError,
    NotReadOnlyError,
    QueryGateError,
    add_table_prefix,
    classify_query,
    ensure_read_only,
    extract_cte_names,
)

__all__ = [
    "INVALID_QUERY_MESSAGE",
    "NOT_READ_ONLY_MESSAGE",
    "PREFIX_TRIGGER_KEYWORDS",
    "READ_ONLY_KEYWORDS",
    "ClassificationResult",
    "InvalidQueryError",
    "NotReadOnlyError",
    "QueryGateError",
    "add_table_prefix",
    "classify_query",
    "ensure_read_only",
    "extract_cte_names",
]
