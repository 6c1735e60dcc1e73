"""Random (version 4) UUID strings."""

from __future__ import annotations

import uuid

__all__ = ["generate"]


def generate() -> str:
    """Return a random RFC 4122 version 4 UUID in lower-case hyphenated form.

    The layout is ``xxxxxxxx-xxxx-4xxx-yxxx-xxxxxxxxxxxx`` where ``y`` is one of
    8, 9, a or b.
    """
    return str(uuid.uuid4())