"""
Transcript catalog export.

Writes the latest version of every lineage to a Parquet file with a fixed
schema, and reads such files back into a DataFrame.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from transcript_vault.logger import get_default_logger
from transcript_vault.models import TranscriptListItem
from transcript_vault.schemas import TRANSCRIPT_CATALOG_SCHEMA


logger = get_default_logger()


DEFAULT_PAGE_SIZE = 100


def catalog_row(item: TranscriptListItem) -> Dict[str, Any]:
    """Flatten a listing entry into a catalog row."""
    metadata = item.metadata.to_dict()
    return {
        "source_id": metadata["source_id"],
        "version": metadata["version"],
        "title": metadata["title"],
        "date": metadata["date"],
        "speakers": metadata["speakers"],
        "tags": metadata["tags"],
        "format": metadata["format"],
        "processing_status": metadata["processing_status"],
        "uploaded_at": item.uploaded_at,
        "processing_completed_at": metadata["processing_completed_at"],
        "storage_key": item.storage_key,
        "location": item.location,
        "size": item.size,
    }


def collect_catalog(storage, page_size: int = DEFAULT_PAGE_SIZE) -> List[Dict[str, Any]]:
    """
    Page through the latest-version listing and collect catalog rows.

    Args:
        storage: TranscriptStorage to read from
        page_size: Number of lineages fetched per page

    Returns:
        List of catalog rows, newest upload first
    """
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")

    rows: List[Dict[str, Any]] = []
    offset = 0
    while True:
        page = storage.list_transcripts(limit=page_size, offset=offset)
        rows.extend(catalog_row(item) for item in page.items)
        offset += page_size
        if not page.items or offset >= page.total:
            break

    return rows


def export_catalog(
    storage,
    output_path: Union[str, Path],
    page_size: int = DEFAULT_PAGE_SIZE,
    compression: str = "snappy",
    overwrite: bool = False,
) -> int:
    """
    Export the latest-version catalog to a Parquet file.

    Args:
        storage: TranscriptStorage to export
        output_path: Path to output Parquet file
        page_size: Number of lineages fetched per page
        compression: Parquet compression codec
        overwrite: Whether to overwrite an existing file

    Returns:
        Number of rows written

    Raises:
        FileExistsError: If the file exists and overwrite=False

    Example:
        >>> export_catalog(storage, "exports/catalog.parquet")
        3
    """
    output_path = Path(output_path)
    if output_path.exists() and not overwrite:
        raise FileExistsError(
            f"Output file already exists: {output_path}. Use overwrite=True to replace."
        )
    output_path.parent.mkdir(parents=True, exist_ok=True)

    rows = collect_catalog(storage, page_size=page_size)
    df = pd.DataFrame(rows, columns=TRANSCRIPT_CATALOG_SCHEMA.names)
    if df.empty:
        logger.warning(f"Writing empty catalog to {output_path}")

    try:
        table = pa.Table.from_pandas(df, schema=TRANSCRIPT_CATALOG_SCHEMA, preserve_index=False)
    except (pa.ArrowInvalid, pa.ArrowTypeError) as e:
        logger.error(f"Catalog schema validation failed: {e}")
        raise ValueError(f"Catalog rows do not conform to the catalog schema: {e}") from e

    pq.write_table(table, output_path, compression=compression, write_statistics=True)

    file_size = output_path.stat().st_size / 1024  # KB
    logger.info(f"Exported {len(df)} transcript(s) to {output_path} ({file_size:.1f} KB)")
    return len(df)


def read_catalog(file_path: Union[str, Path], columns: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Read an exported catalog into a DataFrame.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Catalog file not found: {file_path}")

    df = pd.read_parquet(file_path, columns=columns)
    logger.debug(f"Read {len(df)} catalog rows from {file_path}")
    return df
