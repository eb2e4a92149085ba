"""
Transcript Vault

Versioned storage for text transcripts and their structured metadata.
Transcript content lives in a blob store, per-version metadata lives in a
relational index, and every upload for the same source becomes a new version.
"""

__version__ = "0.1.0"
