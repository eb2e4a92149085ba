"""
Unit tests for identifier and blob key generation.

Tests ensure that blob keys:
- Embed the source id, version and a random token
- Never collide for the same (source_id, version)
- Stay a single safe path segment per source id
"""

import re

import pytest
from transcript_vault.ids import (
    generate_blob_key,
    generate_source_id,
    generate_token,
    parse_blob_key,
    sanitize_source_id,
)


class TestSanitizeSourceId:
    """Test source id sanitization."""

    def test_plain_id_unchanged(self):
        assert sanitize_source_id("s1") == "s1"

    def test_slashes_and_whitespace(self):
        """Slashes become hyphens and whitespace becomes underscores."""
        assert sanitize_source_id("show/episode 12") == "show-episode_12"

    def test_leading_dots_stripped(self):
        """Relative path components cannot be formed."""
        assert sanitize_source_id("../secret") == "-secret"
        assert sanitize_source_id("..") == "_"


class TestBlobKeyGeneration:
    """Test blob key layout and uniqueness."""

    def test_key_layout(self):
        key = generate_blob_key("s1", 2, prefix="transcripts", token="0a1b2c3d")
        assert key == "transcripts/s1/v2_0a1b2c3d"

    def test_prefix_slashes_trimmed(self):
        key = generate_blob_key("s1", 1, prefix="/archive/", token="ff")
        assert key == "archive/s1/v1_ff"

    def test_same_version_never_collides(self):
        """Two uploads racing for one version still get distinct keys."""
        keys = {generate_blob_key("s1", 1) for _ in range(50)}
        assert len(keys) == 50

    def test_token_is_hex(self):
        token = generate_token()
        assert len(token) == 8
        assert re.fullmatch(r"[0-9a-f]+", token)

    def test_parse_round_trip(self):
        key = generate_blob_key("show/ep 1", 7, token="abcd1234")
        parts = parse_blob_key(key)

        assert parts == {
            "prefix": "transcripts",
            "source": "show-ep_1",
            "version": 7,
            "token": "abcd1234",
        }

    @pytest.mark.parametrize("key", ["", "transcripts/s1", "transcripts/s1/2_abc", "s1/vX_abc"])
    def test_parse_rejects_foreign_keys(self, key):
        assert parse_blob_key(key) is None


class TestSourceIdGeneration:
    """Test generated lineage identifiers."""

    def test_format(self):
        assert re.fullmatch(r"transcript_[0-9a-f]{32}", generate_source_id())

    def test_unique(self):
        assert len({generate_source_id() for _ in range(100)}) == 100
