"""SHA-256 checksum used by the token exchange endpoints."""

import hashlib

from kitelink.domain.interfaces.checksum import Checksum


class Sha256Checksum(Checksum):
    """hex(sha256(api_key + token + api_secret))."""

    def hexdigest(self, text: str) -> str:
        return hashlib.sha256(text.encode('utf-8')).hexdigest()
