"""Interface for the keyed hash used by the session handshake."""

import abc


class Checksum(abc.ABC):
    """Computes the hex digest sent as `checksum` during token exchange."""

    @abc.abstractmethod
    def hexdigest(self, text: str) -> str:
        """Returns the lowercase hex digest of the UTF-8 encoded text."""
        pass
