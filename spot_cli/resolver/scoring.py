"""
Fuzzy matching of free-text queries against playlist names.

Scoring (query Q against candidate C, both lowercased; tokens are the
whitespace-split words of Q with surrounding '*' globs stripped):

    - No tokens: 0
    - C equals the normalized query: 1.0
    - length_penalty = max(0, len(C) - len(Q)) / max(1, len(C)) * 0.3
    - One token T: 0.9 if C starts with T, 0.85 if a word of C starts
      with T, 0.7 if C contains T, else 0; minus length_penalty
    - Several tokens: matched/len(tokens) where matched counts tokens that
      start some word of C (0 matched scores 0), +0.1 if C starts with the
      first token, +0.1 if C contains the whole query; minus length_penalty

Scores are clamped to [0, 1] and non-exact matches never exceed
MAX_PARTIAL_SCORE, so 1.0 always means an exact name match.
"""

from typing import Protocol

from spot_cli.core.exceptions import UserInputError


MAX_PARTIAL_SCORE = 0.99
LENGTH_PENALTY_WEIGHT = 0.3


class WritableCandidate(Protocol):
    owner: str | None
    collaborative: bool


def query_tokens(query: str) -> list[str]:
    tokens = (t.strip("*") for t in (query or "").lower().split())
    return [t for t in tokens if t]


def fuzzy_score(query: str, candidate: str) -> float:
    tokens = query_tokens(query)
    if not tokens:
        return 0.0

    normalized_query = " ".join(tokens)
    name = " ".join((candidate or "").lower().split())
    if name == normalized_query:
        return 1.0

    penalty = (
        max(0, len(name) - len(normalized_query)) / max(1, len(name)) * LENGTH_PENALTY_WEIGHT
    )
    words = name.split()

    if len(tokens) == 1:
        token = tokens[0]
        if name.startswith(token):
            base = 0.9
        elif any(word.startswith(token) for word in words):
            base = 0.85
        elif token in name:
            base = 0.7
        else:
            return 0.0
        score = base - penalty
    else:
        matched = sum(1 for t in tokens if any(word.startswith(t) for word in words))
        if matched == 0:
            return 0.0
        score = matched / len(tokens)
        if name.startswith(tokens[0]):
            score += 0.1
        if normalized_query in name:
            score += 0.1
        score -= penalty

    return min(max(score, 0.0), MAX_PARTIAL_SCORE)


def is_writable(playlist: WritableCandidate, user: str | None) -> bool:
    """A playlist is writable if it is collaborative or owned by user."""
    if playlist.collaborative:
        return True
    if not user or not playlist.owner:
        return False
    return playlist.owner.lower() == user.lower()


def build_query(query: str) -> str:
    """Remote search query with every token wrapped as a *glob*."""
    return " ".join(f"*{t}*" for t in query_tokens(query))


def validate_pick(pick: int | None, count: int) -> int:
    """
    Turn a 1-indexed pick into a 0-based index.

    Raises:
        UserInputError: pick is 0 or beyond count.
    """
    if pick is None:
        return 0
    if pick < 1:
        raise UserInputError("pick must be 1 or greater")
    if pick > count:
        raise UserInputError(f"pick out of range; got {pick}, max {count}")
    return pick - 1
