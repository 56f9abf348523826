"""Fuzzy endpoint filter.

A filter matches when its characters appear in the candidate label in
order (case-insensitive, not necessarily contiguous). Lower scores rank
higher: the score is the sum of the positions where each character matched.
"""

from collections.abc import Sequence

from xhark.parser.base import Endpoint


def fuzzy_score(needle: str, haystack: str) -> tuple[int, bool]:
    """Return (score, matched). Lower score is better."""
    needle = needle.lower()
    haystack = haystack.lower()
    if not needle:
        return 0, True

    score = 0
    j = 0
    for i, ch in enumerate(haystack):
        if j == len(needle):
            break
        if ch == needle[j]:
            score += i
            j += 1
    if j != len(needle):
        return 0, False
    return score, True


def candidate_label(endpoint: Endpoint) -> str:
    return f"{endpoint.method} {endpoint.path} {endpoint.label}".lower()


def rank_endpoints(needle: str, endpoints: Sequence[Endpoint]) -> list[int]:
    """Catalog indices matching ``needle``, best first, ties in catalog order."""
    needle = needle.strip()
    if not needle:
        return list(range(len(endpoints)))

    scored = []
    for idx, ep in enumerate(endpoints):
        score, matched = fuzzy_score(needle, candidate_label(ep))
        if matched:
            scored.append((score, idx))
    scored.sort()
    return [idx for _, idx in scored]
