"""Catalog export for stored transcripts."""

from transcript_vault.catalogs.export import export_catalog, read_catalog


__all__ = ["export_catalog", "read_catalog"]
