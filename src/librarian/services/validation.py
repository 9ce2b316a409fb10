"""Field-presence validation for bookmarks."""
from typing import Any

REQUIRED_FIELDS = ("title", "url")


def validate_bookmark(candidate: Any) -> list[str]:
    """
    Check that every required field is present and non-empty.

    Works on anything exposing the fields as attributes (schemas and ORM rows).
    URLs are not checked for syntax or reachability.

    Returns:
        Names of all failing fields in declaration order; empty when valid.
    """
    invalid = []
    for field in REQUIRED_FIELDS:
        value = getattr(candidate, field, None)
        if value is None or value == "":
            invalid.append(field)
    return invalid
