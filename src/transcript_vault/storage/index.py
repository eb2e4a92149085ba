"""
Relational metadata index backed by DuckDB.

One row per (source_id, version). The primary key on (source_id, version)
rejects racing inserts that reuse a version number, and CHECK constraints
enforce the format and processing status enumerations. A lineage table keeps
the highest version ever assigned per source so deleted numbers are never
handed out again while the lineage exists.
"""

import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import duckdb

from transcript_vault.errors import ConflictError, UnavailableError, ValidationError
from transcript_vault.logger import get_default_logger
from transcript_vault.models import FORMAT_VALUES, STATUS_VALUES, TranscriptMetadata
from transcript_vault.pagination import PaginationBounds
from transcript_vault.validation.search import FilterOperation, SearchFilter


logger = get_default_logger()


METADATA_TABLE = "transcript_metadata"
LINEAGE_TABLE = "transcript_lineages"

METADATA_COLUMNS = (
    "source_id",
    "version",
    "title",
    "date",
    "speakers",
    "tags",
    "format",
    "processing_status",
    "uploaded_at",
    "processing_completed_at",
    "blob_key",
    "location",
    "size",
)

# Columns search filters may reference
FILTERABLE_COLUMNS = {"title", "speakers", "tags", "date", "processing_status"}


def _sql_enum(values: Sequence[str]) -> str:
    return ", ".join(f"'{value}'" for value in values)


SCHEMA_STATEMENTS = [
    f"""
    CREATE TABLE IF NOT EXISTS {METADATA_TABLE} (
        source_id VARCHAR NOT NULL,
        version INTEGER NOT NULL CHECK (version >= 1),
        title VARCHAR NOT NULL,
        date VARCHAR NOT NULL,
        speakers VARCHAR[] NOT NULL,
        tags VARCHAR[] NOT NULL,
        format VARCHAR NOT NULL CHECK (format IN ({_sql_enum(FORMAT_VALUES)})),
        processing_status VARCHAR NOT NULL
            CHECK (processing_status IN ({_sql_enum(STATUS_VALUES)})),
        uploaded_at VARCHAR NOT NULL,
        processing_completed_at VARCHAR,
        blob_key VARCHAR NOT NULL UNIQUE,
        location VARCHAR,
        size BIGINT NOT NULL DEFAULT 0,
        PRIMARY KEY (source_id, version)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {LINEAGE_TABLE} (
        source_id VARCHAR PRIMARY KEY,
        last_version INTEGER NOT NULL
    )
    """,
]

# Latest version of every lineage; filters and pagination apply to this set
LATEST_ROWS_SQL = f"""
    SELECT m.*
    FROM {METADATA_TABLE} AS m
    JOIN (
        SELECT source_id, MAX(version) AS version
        FROM {METADATA_TABLE}
        GROUP BY source_id
    ) AS latest
    ON m.source_id = latest.source_id AND m.version = latest.version
"""

_OPERATION_SQL = {
    FilterOperation.EQUALS: "{column} = ?",
    FilterOperation.CONTAINS_CI: "instr(lower({column}), lower(?)) > 0",
    FilterOperation.ARRAY_CONTAINS: "list_contains({column}, ?)",
    FilterOperation.RANGE_LOWER: "{column} >= ?",
    FilterOperation.RANGE_UPPER: "{column} <= ?",
}


def build_where_clause(filters: Sequence[SearchFilter]) -> Tuple[str, List[Any]]:
    """
    Translate search filters into a SQL WHERE clause and parameters.

    Args:
        filters: Filters to combine with AND

    Returns:
        Tuple of (clause, params); clause is "" when there are no filters

    Raises:
        ValueError: If a filter references an unknown column

    Example:
        >>> build_where_clause([SearchFilter("title", FilterOperation.CONTAINS_CI, "ep")])
        ('WHERE instr(lower(title), lower(?)) > 0', ['ep'])
    """
    conditions = []
    params: List[Any] = []

    for search_filter in filters:
        if search_filter.column not in FILTERABLE_COLUMNS:
            raise ValueError(f"Cannot filter on column: {search_filter.column}")
        template = _OPERATION_SQL[FilterOperation(search_filter.operation)]
        conditions.append(template.format(column=search_filter.column))
        params.append(search_filter.value)

    if not conditions:
        return "", params
    return "WHERE " + " AND ".join(conditions), params


def _rows_to_records(cursor) -> List[Dict[str, Any]]:
    columns = [description[0] for description in cursor.description]
    return [dict(zip(columns, row)) for row in cursor.fetchall()]


def _translate_error(
    error: duckdb.Error,
    operation: str,
    source_id: Optional[str] = None,
    version: Optional[int] = None,
) -> Exception:
    """Map a DuckDB exception onto the storage error taxonomy."""
    message = str(error)
    context = f"sourceId '{source_id}'" if source_id is not None else "metadata index"
    if version is not None:
        context += f" version {version}"

    if isinstance(error, duckdb.ConstraintException):
        if "CHECK constraint" in message:
            return ValidationError(
                f"Metadata rejected by index constraint for {context}: {message}",
                source_id=source_id,
                version=version,
                operation=operation,
            )
        return ConflictError(
            f"Version conflict for {context}: {message}",
            source_id=source_id,
            version=version,
            operation=operation,
        )
    if isinstance(error, duckdb.TransactionException):
        return ConflictError(
            f"Concurrent write conflict for {context}: {message}",
            source_id=source_id,
            version=version,
            operation=operation,
        )
    return UnavailableError(
        f"Metadata index failure during {operation} for {context}: {message}",
        source_id=source_id,
        version=version,
        operation=operation,
    )


class MetadataIndex:
    """
    DuckDB-backed index of transcript metadata rows.

    Each operation runs on its own cursor so the index can be shared across
    threads. Pass ":memory:" for an ephemeral database.
    """

    def __init__(self, database: Union[str, Path] = ":memory:"):
        """
        Open (or create) the metadata database.

        Args:
            database: Path to a DuckDB file, or ":memory:"
        """
        self.database = str(database)
        if self.database != ":memory:":
            Path(self.database).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._connection = duckdb.connect(self.database)
        except duckdb.Error as e:
            raise UnavailableError(
                f"Cannot open metadata index {self.database}: {e}", operation="connect"
            ) from e

        self._lock = threading.Lock()
        self._closed = False
        logger.debug(f"Opened metadata index at {self.database}")

    def _cursor(self):
        with self._lock:
            if self._closed:
                raise UnavailableError("Metadata index is closed", operation="cursor")
            return self._connection.cursor()

    def close(self) -> None:
        with self._lock:
            if not self._closed:
                self._connection.close()
                self._closed = True

    def __enter__(self) -> "MetadataIndex":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def initialize(self) -> None:
        """Create tables and constraints if they do not exist. Idempotent."""
        try:
            with self._cursor() as cursor:
                for statement in SCHEMA_STATEMENTS:
                    cursor.execute(statement)
        except duckdb.Error as e:
            raise _translate_error(e, "initialize_database") from e
        logger.info(f"Metadata index schema ready ({self.database})")

    def insert(
        self,
        metadata: TranscriptMetadata,
        blob_key: str,
        location: str,
        size: int,
    ) -> None:
        """
        Insert one metadata row and advance the lineage high-water mark.

        Raises:
            ConflictError: If (source_id, version) already exists
            ValidationError: If a CHECK constraint rejects the row
        """
        row = metadata.to_dict()
        try:
            with self._cursor() as cursor:
                cursor.begin()
                try:
                    cursor.execute(
                        f"""
                        INSERT INTO {METADATA_TABLE} (
                            source_id, version, title, date, speakers, tags, format,
                            processing_status, uploaded_at, processing_completed_at,
                            blob_key, location, size
                        ) VALUES (?, ?, ?, ?, CAST(? AS VARCHAR[]), CAST(? AS VARCHAR[]),
                                  ?, ?, ?, ?, ?, ?, ?)
                        """,
                        [
                            row["source_id"], row["version"], row["title"], row["date"],
                            row["speakers"], row["tags"], row["format"],
                            row["processing_status"], row["uploaded_at"],
                            row["processing_completed_at"], blob_key, location, size,
                        ],
                    )
                    cursor.execute(
                        f"""
                        INSERT INTO {LINEAGE_TABLE} (source_id, last_version) VALUES (?, ?)
                        ON CONFLICT (source_id) DO UPDATE
                        SET last_version = greatest(last_version, excluded.last_version)
                        """,
                        [row["source_id"], row["version"]],
                    )
                    cursor.commit()
                except duckdb.Error:
                    cursor.rollback()
                    raise
        except duckdb.Error as e:
            raise _translate_error(e, "insert", metadata.source_id, metadata.version) from e

    def max_version(self, source_id: str) -> int:
        """
        Highest version ever assigned in the lineage (0 if it does not exist).
        """
        try:
            with self._cursor() as cursor:
                result = cursor.execute(
                    f"""
                    SELECT greatest(
                        coalesce((SELECT MAX(version) FROM {METADATA_TABLE} WHERE source_id = ?), 0),
                        coalesce((SELECT last_version FROM {LINEAGE_TABLE} WHERE source_id = ?), 0)
                    )
                    """,
                    [source_id, source_id],
                ).fetchone()
        except duckdb.Error as e:
            raise _translate_error(e, "max_version", source_id) from e
        return int(result[0]) if result and result[0] is not None else 0

    def get(self, source_id: str, version: int) -> Optional[Dict[str, Any]]:
        """Fetch the row for (source_id, version), or None."""
        try:
            with self._cursor() as cursor:
                cursor.execute(
                    f"SELECT * FROM {METADATA_TABLE} WHERE source_id = ? AND version = ?",
                    [source_id, version],
                )
                records = _rows_to_records(cursor)
        except duckdb.Error as e:
            raise _translate_error(e, "get", source_id, version) from e
        return records[0] if records else None

    def get_latest(self, source_id: str) -> Optional[Dict[str, Any]]:
        """Fetch the highest-version row of a lineage, or None."""
        records = self.list_versions(source_id, limit=1)
        return records[0] if records else None

    def list_versions(self, source_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Rows of a lineage, newest version first (ties by upload time, newest first)."""
        sql = (
            f"SELECT * FROM {METADATA_TABLE} WHERE source_id = ? "
            f"ORDER BY version DESC, uploaded_at DESC"
        )
        params: List[Any] = [source_id]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        try:
            with self._cursor() as cursor:
                cursor.execute(sql, params)
                return _rows_to_records(cursor)
        except duckdb.Error as e:
            raise _translate_error(e, "list_versions", source_id) from e

    def query_latest(
        self,
        filters: Sequence[SearchFilter],
        bounds: PaginationBounds,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Page through the latest version of every lineage.

        The latest-per-lineage reduction happens first; filters and the
        pagination window are applied to the reduced set only.

        Args:
            filters: Filters combined with AND
            bounds: Inclusive row window

        Returns:
            Tuple of (rows for the window, total matching lineages)
        """
        where, params = build_where_clause(filters)
        base = f"SELECT * FROM ({LATEST_ROWS_SQL}) AS latest_rows {where}"

        try:
            with self._cursor() as cursor:
                total = cursor.execute(
                    f"SELECT COUNT(*) FROM ({base}) AS counted", params
                ).fetchone()[0]

                if bounds.size == 0:
                    return [], int(total)

                cursor.execute(
                    f"{base} ORDER BY uploaded_at DESC, source_id ASC LIMIT ? OFFSET ?",
                    params + [bounds.size, bounds.from_],
                )
                records = _rows_to_records(cursor)
        except duckdb.Error as e:
            raise _translate_error(e, "query_latest") from e

        logger.debug(
            f"query_latest: {len(filters)} filter(s), rows {bounds.from_}..{bounds.to}, "
            f"{len(records)} returned of {total}"
        )
        return records, int(total)

    def update_status(
        self,
        source_id: str,
        version: int,
        status: str,
        completed_at: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Set processing_status on one row.

        processing_completed_at is set to `completed_at` only if it is
        currently null; an existing value is never overwritten.

        Returns:
            The updated row, or None if the row does not exist
        """
        try:
            with self._cursor() as cursor:
                cursor.begin()
                try:
                    exists = cursor.execute(
                        f"SELECT COUNT(*) FROM {METADATA_TABLE} WHERE source_id = ? AND version = ?",
                        [source_id, version],
                    ).fetchone()[0]
                    if not exists:
                        cursor.rollback()
                        return None

                    cursor.execute(
                        f"""
                        UPDATE {METADATA_TABLE}
                        SET processing_status = ?,
                            processing_completed_at = coalesce(processing_completed_at, ?)
                        WHERE source_id = ? AND version = ?
                        """,
                        [status, completed_at, source_id, version],
                    )
                    cursor.execute(
                        f"SELECT * FROM {METADATA_TABLE} WHERE source_id = ? AND version = ?",
                        [source_id, version],
                    )
                    records = _rows_to_records(cursor)
                    cursor.commit()
                except duckdb.Error:
                    cursor.rollback()
                    raise
        except duckdb.Error as e:
            raise _translate_error(e, "update_processing_status", source_id, version) from e
        return records[0] if records else None

    def delete(self, source_id: str, version: int) -> Optional[Dict[str, Any]]:
        """
        Delete one row. Drops the lineage high-water mark if it was the last row.

        Returns:
            The deleted row, or None if it did not exist
        """
        try:
            with self._cursor() as cursor:
                cursor.begin()
                try:
                    cursor.execute(
                        f"SELECT * FROM {METADATA_TABLE} WHERE source_id = ? AND version = ?",
                        [source_id, version],
                    )
                    records = _rows_to_records(cursor)
                    if not records:
                        cursor.rollback()
                        return None

                    cursor.execute(
                        f"DELETE FROM {METADATA_TABLE} WHERE source_id = ? AND version = ?",
                        [source_id, version],
                    )
                    remaining = cursor.execute(
                        f"SELECT COUNT(*) FROM {METADATA_TABLE} WHERE source_id = ?",
                        [source_id],
                    ).fetchone()[0]
                    if remaining == 0:
                        cursor.execute(
                            f"DELETE FROM {LINEAGE_TABLE} WHERE source_id = ?", [source_id]
                        )
                    cursor.commit()
                except duckdb.Error:
                    cursor.rollback()
                    raise
        except duckdb.Error as e:
            raise _translate_error(e, "delete_transcript_version", source_id, version) from e
        return records[0]

    def delete_lineage(self, source_id: str) -> List[Dict[str, Any]]:
        """
        Delete every row of a lineage and its high-water mark.

        Returns:
            The deleted rows (empty if the lineage did not exist)
        """
        try:
            with self._cursor() as cursor:
                cursor.begin()
                try:
                    cursor.execute(
                        f"SELECT * FROM {METADATA_TABLE} WHERE source_id = ? ORDER BY version",
                        [source_id],
                    )
                    records = _rows_to_records(cursor)
                    cursor.execute(f"DELETE FROM {METADATA_TABLE} WHERE source_id = ?", [source_id])
                    cursor.execute(f"DELETE FROM {LINEAGE_TABLE} WHERE source_id = ?", [source_id])
                    cursor.commit()
                except duckdb.Error:
                    cursor.rollback()
                    raise
        except duckdb.Error as e:
            raise _translate_error(e, "delete_all_versions", source_id) from e
        return records

    def blob_keys(self) -> set:
        """All blob keys referenced by metadata rows."""
        try:
            with self._cursor() as cursor:
                rows = cursor.execute(f"SELECT blob_key FROM {METADATA_TABLE}").fetchall()
        except duckdb.Error as e:
            raise _translate_error(e, "blob_keys") from e
        return {row[0] for row in rows}

    def count(self) -> Dict[str, int]:
        """Row and lineage counts."""
        try:
            with self._cursor() as cursor:
                rows, lineages = cursor.execute(
                    f"SELECT COUNT(*), COUNT(DISTINCT source_id) FROM {METADATA_TABLE}"
                ).fetchone()
        except duckdb.Error as e:
            raise _translate_error(e, "count") from e
        return {"rows": int(rows), "lineages": int(lineages)}
