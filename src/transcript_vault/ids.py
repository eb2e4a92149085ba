"""
Identifier and storage key generation.

Blob keys embed the sanitized source id, the version and a random token so
that concurrent uploads for the same source never collide in the blob store,
even when they race for the same version number.
"""

import re
import secrets
import uuid
from typing import Optional


DEFAULT_KEY_PREFIX = "transcripts"
TOKEN_LENGTH = 8

# Blob key layout: {prefix}/{sanitized_source_id}/v{version}_{token}
BLOB_KEY_PATTERN = re.compile(r"^(?P<prefix>.+)/(?P<source>[^/]+)/v(?P<version>\d+)_(?P<token>[0-9a-f]+)$")

_UNSAFE_CHARS = re.compile(r'[<>:"|?*\\]')
_WHITESPACE = re.compile(r"\s+")


def sanitize_source_id(source_id: str) -> str:
    """
    Make a source id safe to use as a single path segment.

    Slashes and path-hostile characters become hyphens, whitespace runs
    become underscores, and leading dots are stripped.

    Example:
        >>> sanitize_source_id("show/episode 12")
        'show-episode_12'
    """
    sanitized = source_id.replace("/", "-")
    sanitized = _WHITESPACE.sub("_", sanitized)
    sanitized = _UNSAFE_CHARS.sub("-", sanitized)
    sanitized = sanitized.lstrip(".")
    return sanitized or "_"


def generate_token(length: int = TOKEN_LENGTH) -> str:
    """Random lowercase hex token."""
    return secrets.token_hex((length + 1) // 2)[:length]


def generate_blob_key(
    source_id: str,
    version: int,
    prefix: str = DEFAULT_KEY_PREFIX,
    token: Optional[str] = None,
) -> str:
    """
    Generate a blob key for one transcript version.

    Args:
        source_id: Lineage identifier
        version: Version number (>= 1)
        prefix: Key prefix, e.g. "transcripts"
        token: Uniqueness token (random if not given)

    Returns:
        Key of the form "{prefix}/{source}/v{version}_{token}"

    Example:
        >>> generate_blob_key("s1", 2, token="0a1b2c3d")
        'transcripts/s1/v2_0a1b2c3d'
    """
    token = token or generate_token()
    prefix = prefix.strip("/")
    return f"{prefix}/{sanitize_source_id(source_id)}/v{version}_{token}"


def parse_blob_key(key: str) -> Optional[dict]:
    """
    Split a blob key into its components.

    Returns:
        Dict with prefix, source, version and token, or None if the key
        does not follow the blob key layout
    """
    match = BLOB_KEY_PATTERN.match(key)
    if not match:
        return None
    parts = match.groupdict()
    parts["version"] = int(parts["version"])
    return parts


def generate_source_id() -> str:
    """
    Generate a collision-resistant source id for a new lineage.

    Used by adapters when the caller does not supply one; the storage engine
    never invents identifiers itself.
    """
    return f"transcript_{uuid.uuid4().hex}"
