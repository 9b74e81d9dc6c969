"""Helpers for naming releases and merging Helm values."""

import random
import string

_ALPHABET = string.ascii_lowercase + string.digits


def random_name(prefix: str = "test") -> str:
    """Return a unique, DNS-compatible name such as ``test-k3j9x2``."""
    suffix = "".join(random.choices(_ALPHABET, k=6))
    return f"{prefix}-{suffix}"


def merge_maps(dest: dict[str, str], source: dict[str, str]) -> dict[str, str]:
    """Copy every key of ``source`` into ``dest`` and return ``dest``.

    Keys already present in ``dest`` are overwritten.
    """
    for key, value in source.items():
        dest[key] = value
    return dest


def format_bool(value: bool) -> str:
    """Format a boolean the way Helm ``--set`` expects it."""
    return "true" if value else "false"
