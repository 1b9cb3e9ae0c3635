"""Name normalization and structural validation."""

import re

from .exceptions import InvalidNameFormat

MAX_NAME_LENGTH = 255

_ALLOWED_PATTERN = re.compile(r"^[a-z0-9.\-@_]+$")


def normalize_name(raw: str) -> str:
    """
    Canonicalize and validate a raw name.

    Lowercases and trims surrounding whitespace; the internal structure is
    left untouched. Normalizing an already-normalized name is a no-op.

    Raises:
        InvalidNameFormat: empty after trimming, longer than 255 characters,
            characters outside ``[a-z0-9.-@_]``, consecutive dots, or a leading
            or trailing ``.`` or ``-``.
    """
    if not isinstance(raw, str):
        raise InvalidNameFormat(f"Name must be a string, got {type(raw).__name__}")

    name = raw.strip().lower()

    if not name:
        raise InvalidNameFormat("Name cannot be empty", name=raw)

    if len(name) > MAX_NAME_LENGTH:
        raise InvalidNameFormat(
            f"Name exceeds maximum length of {MAX_NAME_LENGTH} characters",
            name=raw,
        )

    if not _ALLOWED_PATTERN.match(name):
        raise InvalidNameFormat("Name contains invalid characters", name=raw)

    if ".." in name:
        raise InvalidNameFormat("Name cannot contain consecutive dots", name=raw)

    if name[0] in ".-" or name[-1] in ".-":
        raise InvalidNameFormat("Name cannot start or end with '.' or '-'", name=raw)

    return name


def is_valid_name(raw: str) -> bool:
    """Check whether a name normalizes without error."""
    try:
        normalize_name(raw)
    except InvalidNameFormat:
        return False
    return True


def split_labels(name: str) -> list[str]:
    """Split a normalized name into its dot-separated labels."""
    return name.split(".")


def get_tld(name: str) -> str | None:
    """
    Return the top-level label of a dotted name.

    Names without a dot (``@alice``, ``alice``) have no TLD.
    """
    if "." not in name:
        return None
    return name.rsplit(".", 1)[1]


def strip_suffix(name: str, suffix: str) -> str:
    """
    Remove a TLD suffix from a name.

    ``strip_suffix("toly.sol", ".sol") -> "toly"``
    """
    if not suffix.startswith("."):
        suffix = f".{suffix}"
    if name.endswith(suffix):
        return name[: -len(suffix)]
    return name
