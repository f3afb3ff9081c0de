"""
Cell id extraction from records of unknown shape.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Optional, Sequence

from ..h3_utils import normalize_cell
from .schema import ID_ALIASES


def candidate_cell(record, aliases: Sequence[str] = ID_ALIASES):
    """
    First present id-like field of a record, unvalidated.

    A bare string or integer record is its own candidate. Mappings are
    searched through ``aliases`` in order; objects are searched by attribute
    (methods are not ids). A present empty string still ends the search.
    """
    if record is None or isinstance(record, bool):
        return None
    if isinstance(record, (str, int)):
        return record
    if isinstance(record, Mapping):
        for key in aliases:
            value = record.get(key)
            if value is not None:
                return value
        return None
    for key in aliases:
        value = getattr(record, key, None)
        if value is not None and not callable(value):
            return value
    return None


def resolve_cell_id(record, aliases: Sequence[str] = ID_ALIASES) -> Optional[str]:
    """
    Return the record's cell id if it names a valid H3 cell, else None.

    Only the first present candidate is considered; a present but invalid
    candidate rejects the record rather than falling through to the next
    alias. Never raises.
    """
    return normalize_cell(candidate_cell(record, aliases))
