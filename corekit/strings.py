"""Small string helpers for path components and token splitting."""

from __future__ import annotations

__all__ = ["first_valid_path_component", "split"]


def first_valid_path_component(path_str: str) -> str:
    """Return the first path component that is neither empty nor the root.

    Repeated separators are treated as one, and a leading root is skipped.
    An empty string is returned when the path holds no such component.
    """
    return next((part for part in path_str.split("/") if part), "")


def split(s: str, delimiter: str) -> list[str]:
    """Split ``s`` on a single-character ``delimiter``, dropping empty tokens."""
    if len(delimiter) != 1:
        raise ValueError(f"delimiter must be a single character, got {delimiter!r}")
    return [token for token in s.split(delimiter) if token]