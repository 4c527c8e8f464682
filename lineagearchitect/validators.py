"""Custom validators for argument parsing."""

import argparse
from typing import Any, Sequence


class PositiveIntegerAction(argparse.Action):
    """Argparse action that validates the value is >= 1."""

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: str | Sequence[Any] | None,
        option_string: str | None = None,
    ) -> None:
        # Used with type=int, so argparse has already converted the value
        if not isinstance(values, int):
            parser.error(f"{option_string} must be an integer")
            return

        if values < 1:
            parser.error(f"Minimum value for {option_string} is 1")
        setattr(namespace, self.dest, values)


class NonNegativeFloatAction(argparse.Action):
    """Argparse action that validates the value is >= 0."""

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: str | Sequence[Any] | None,
        option_string: str | None = None,
    ) -> None:
        if not isinstance(values, float):
            parser.error(f"{option_string} must be a number")
            return

        if values < 0:
            parser.error(f"{option_string} must not be negative")
        setattr(namespace, self.dest, values)
