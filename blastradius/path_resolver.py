"""Suggest graph node ids for a target that is not in the graph."""

from __future__ import annotations

import difflib
import posixpath
from typing import Iterable, List

MAX_SUGGESTIONS = 5
SIMILARITY_CUTOFF = 0.6


def suggest(target: str, node_ids: Iterable[str], limit: int = MAX_SUGGESTIONS) -> List[str]:
    """Return up to ``limit`` node ids that look like ``target``.

    Candidates are ranked in tiers: case-insensitive exact ids, ids ending
    with the target path, ids whose basename equals the target's basename,
    then ids whose full path or basename is close by
    :func:`difflib.get_close_matches`.
    """
    ids = list(node_ids)
    if not target or not ids:
        return []

    wanted = target.lower()
    wanted_base = posixpath.basename(wanted)
    picked: List[str] = []

    def add(candidates: Iterable[str]) -> None:
        for node_id in candidates:
            if node_id not in picked:
                picked.append(node_id)

    add(i for i in ids if i.lower() == wanted)
    add(i for i in ids if i.lower().endswith("/" + wanted) or wanted.endswith("/" + i.lower()))
    add(i for i in ids if posixpath.basename(i.lower()) == wanted_base)

    lowered = {i.lower(): i for i in ids}
    add(lowered[m] for m in difflib.get_close_matches(wanted, list(lowered), n=limit, cutoff=SIMILARITY_CUTOFF))

    by_base = {}
    for i in ids:
        by_base.setdefault(posixpath.basename(i.lower()), []).append(i)
    for match in difflib.get_close_matches(wanted_base, list(by_base), n=limit, cutoff=SIMILARITY_CUTOFF):
        add(by_base[match])

    return picked[:limit]
