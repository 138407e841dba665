"""Edit-distance helpers for "did you mean" suggestions."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal

from docdrift.index.protocol import CodebaseIndex

BASENAME_MAX_DISTANCE = 2
FULL_PATH_MAX_DISTANCE = 3


@dataclass(frozen=True)
class CloseMatch:
    name: str
    distance: int


@dataclass(frozen=True)
class SimilarPath:
    path: str
    distance: int
    match_type: Literal["basename", "full_path"]


def levenshtein(a: str, b: str) -> int:
    """Levenshtein edit distance (insert, delete, substitute)."""
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def find_close_match(target: str, candidates: Iterable[str], max_distance: int) -> CloseMatch | None:
    """Closest candidate within ``max_distance``; identical strings never match.

    Ties go to the earliest candidate.
    """
    best: CloseMatch | None = None
    for candidate in candidates:
        distance = levenshtein(target, candidate)
        if 0 < distance <= max_distance and (best is None or distance < best.distance):
            best = CloseMatch(name=candidate, distance=distance)
    return best


def _basename(path: str) -> str:
    return path.rsplit("/", 1)[-1] or path


async def find_similar_paths(index: CodebaseIndex, target: str, max_results: int = 5) -> list[SimilarPath]:
    """Files whose path is a near miss for ``target``.

    Basenames within distance 2 are tried first; only when none exist are
    full paths within distance 3 considered. Sorted by distance, then path.
    """
    file_tree = await index.get_file_tree()
    target_base = _basename(target)

    results = []
    for path in file_tree:
        distance = levenshtein(target_base, _basename(path))
        if 0 < distance <= BASENAME_MAX_DISTANCE:
            results.append(SimilarPath(path, distance, "basename"))

    if not results:
        for path in file_tree:
            distance = levenshtein(target, path)
            if 0 < distance <= FULL_PATH_MAX_DISTANCE:
                results.append(SimilarPath(path, distance, "full_path"))

    results.sort(key=lambda r: (r.distance, r.path))
    return results[:max_results]
