"""Normalization and validation of store names.

A store name becomes both the helm release name and the namespace, so it must
be a valid DNS label.
"""

from slugify import slugify

from .exceptions import ValidationError

__all__ = [
    "normalize",
    "validate",
]

MIN_LENGTH = 3
MAX_LENGTH = 63


def normalize(name: str) -> str:
    """Return the closest valid identity for a user supplied name.

    Letters are lowercased, runs of any other characters become a single
    hyphen, and leading or trailing hyphens are dropped.
    """
    return slugify(name, lowercase=True, separator="-", regex_pattern=r"[^a-z0-9]+")


def validate(name: str | None) -> str:
    """Check that a name is already a valid identity and return it."""
    if not name:
        raise ValidationError("Store name is required")
    normalized = normalize(name)
    if len(normalized) < MIN_LENGTH:
        raise ValidationError(
            f"Store name must be at least {MIN_LENGTH} characters "
            "(letters, numbers, hyphens)"
        )
    if len(normalized) > MAX_LENGTH:
        raise ValidationError(
            f"Store name must be at most {MAX_LENGTH} characters"
        )
    if name != normalized:
        raise ValidationError(f"Invalid name. Suggested: {normalized}")
    return normalized
