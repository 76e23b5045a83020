"""Unit tests for client address hashing service."""

from app.services.client_hasher import ClientHasher


class TestClientHasher:
    """Test suite for ClientHasher class."""

    def test_deterministic_hashing(self):
        """Test that same input produces same hash."""
        address = "203.0.113.7"

        assert ClientHasher.hash_client(address) == ClientHasher.hash_client(address)

    def test_hash_format(self):
        """Test that hash is 64-character hex string."""
        client_hash = ClientHasher.hash_client("203.0.113.7")

        # SHA-256 produces 64-character hex string
        assert len(client_hash) == 64
        assert all(c in '0123456789abcdef' for c in client_hash)

    def test_different_addresses_produce_different_hashes(self):
        assert ClientHasher.hash_client("203.0.113.7") != ClientHasher.hash_client("203.0.113.8")

    def test_normalization(self):
        """Whitespace and IPv6 case do not change the hash."""
        assert ClientHasher.normalize_address(" 2001:DB8::1 ") == "2001:db8::1"
        assert ClientHasher.hash_client(" 2001:DB8::1 ") == ClientHasher.hash_client("2001:db8::1")

    def test_missing_address(self):
        assert ClientHasher.hash_client(None) is None
        assert ClientHasher.hash_client("   ") is None

    def test_truncation_format(self):
        """Test that truncation produces 12 chars + '...'."""
        client_hash = ClientHasher.hash_client("203.0.113.7")

        truncated = ClientHasher.truncate_for_logging(client_hash)

        assert len(truncated) == 15
        assert truncated == f"{client_hash[:12]}..."

    def test_truncation_without_hash(self):
        assert ClientHasher.truncate_for_logging(None) == "unknown"
