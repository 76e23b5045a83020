"""Client address hashing for respondent privacy.

Respondent IP addresses are hashed with SHA-256 and an application salt the
moment a response arrives. Only the hash is stored, which is enough to spot
duplicate submissions without keeping the address itself.
"""

import hashlib
from typing import Optional

from app.config import get_settings


class ClientHasher:
    """One-way hashing of client IP addresses.

    Security notes:
    - The salt must be kept secret and never committed to git
    - Changing the salt makes earlier hashes incomparable with new ones

    Usage example:
        client_hash = ClientHasher.hash_client(request.client.host)
        logger.info(f"Response from {ClientHasher.truncate_for_logging(client_hash)}")
    """

    @staticmethod
    def normalize_address(address: str) -> str:
        """Strip whitespace and lower-case (IPv6 hex digits are case-insensitive).

        Example:
            >>> ClientHasher.normalize_address(" 2001:DB8::1 ")
            '2001:db8::1'
        """
        return address.strip().lower()

    @staticmethod
    def hash_client(address: Optional[str]) -> Optional[str]:
        """Salted SHA-256 of a client address.

        Args:
            address: IP address as reported by the server, or None

        Returns:
            64-character hex digest, or None when no address is known
        """
        if not address or not address.strip():
            return None

        settings = get_settings()
        salted = f"{ClientHasher.normalize_address(address)}:{settings.client_hash_salt}"
        return hashlib.sha256(salted.encode('utf-8')).hexdigest()

    @staticmethod
    def truncate_for_logging(client_hash: Optional[str]) -> str:
        """First 12 characters of a hash for log output."""
        if not client_hash:
            return "unknown"
        return f"{client_hash[:12]}..."
