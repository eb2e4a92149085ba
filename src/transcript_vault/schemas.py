"""
PyArrow schema definitions for exported transcript catalogs.

These schemas fix column types of the Parquet files written by the catalog
exporter so that exports stay readable across versions.
"""

import pyarrow as pa


# Latest-version catalog (one row per lineage)
TRANSCRIPT_CATALOG_SCHEMA = pa.schema([
    pa.field("source_id", pa.string(), nullable=False),
    pa.field("version", pa.int64(), nullable=False),
    pa.field("title", pa.string(), nullable=False),
    pa.field("date", pa.string(), nullable=False),
    pa.field("speakers", pa.list_(pa.string()), nullable=False),
    pa.field("tags", pa.list_(pa.string()), nullable=False),
    pa.field("format", pa.string(), nullable=False),
    pa.field("processing_status", pa.string(), nullable=False),
    pa.field("uploaded_at", pa.string(), nullable=False),
    pa.field("processing_completed_at", pa.string(), nullable=True),
    pa.field("storage_key", pa.string(), nullable=False),
    pa.field("location", pa.string(), nullable=False),
    pa.field("size", pa.int64(), nullable=False),
])


def get_schema(catalog_type: str) -> pa.Schema:
    """
    Get the PyArrow schema for a catalog type.

    Args:
        catalog_type: Type of catalog ("transcript_catalog")

    Raises:
        ValueError: If catalog_type is not recognized
    """
    schema_map = {
        "transcript_catalog": TRANSCRIPT_CATALOG_SCHEMA,
    }

    if catalog_type not in schema_map:
        raise ValueError(
            f"Unknown catalog_type: {catalog_type}. "
            f"Valid types: {list(schema_map.keys())}"
        )

    return schema_map[catalog_type]

