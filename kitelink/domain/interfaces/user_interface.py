"""Interface for presenting command results to the user.

Lets the CLI commands stay independent of the concrete console renderer.
"""

import abc
from typing import Any, Sequence


class UserInterface(abc.ABC):
    """Abstract Base Class for user-facing output."""

    @abc.abstractmethod
    def display_output(self, data: Any, **kwargs: Any) -> None:
        """Displays an API result (dicts/lists rendered as JSON).

        Args:
            data: The decoded response data.
            **kwargs: Additional arguments for formatting (e.g. title).
        """
        pass

    @abc.abstractmethod
    def display_table(self, columns: Sequence[str], rows: Sequence[Sequence[Any]], **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        pass
