"""텍스트 유사도 유틸리티 — 순수 함수만 포함.

Text similarity helpers used by duplicate report detection.
All functions are pure and accept ``None`` (treated as an empty string).

Usage:
    from app.utils.similarity import combined_similarity, normalize
    normalize("Broken Air-Conditioner!!! Unit #123")  # "broken air conditioner unit 123"
    combined_similarity("light flickering", "lights flickering")
"""

import re

# 혼합 점수 가중치 — Blend weights for combined_similarity (sum to 1.0)
JACCARD_WEIGHT: float = 0.4
LEVENSHTEIN_WEIGHT: float = 0.3
NGRAM_WEIGHT: float = 0.3
NGRAM_SIZE: int = 2

_PUNCTUATION = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")


def _text(value: str | None) -> str:
    return value if isinstance(value, str) else ""


def normalize(text: str | None) -> str:
    """소문자화, 구두점 제거, 공백 정리.

    Lower-case, replace punctuation with spaces, collapse whitespace and trim.
    """
    lowered = _text(text).lower()
    return _WHITESPACE.sub(" ", _PUNCTUATION.sub(" ", lowered)).strip()


def tokenize(text: str | None) -> set[str]:
    normalized = normalize(text)
    return set(normalized.split(" ")) if normalized else set()


def jaccard(a: str | None, b: str | None) -> float:
    """단어 집합 Jaccard 유사도 — |A∩B| / |A∪B|.

    Word-set Jaccard similarity over normalized text.
    Two empty inputs score 0.0 rather than dividing by zero.
    """
    words_a = tokenize(a)
    words_b = tokenize(b)
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def levenshtein(a: str | None, b: str | None) -> int:
    """편집 거리 — Classic insert/delete/substitute edit distance."""
    s, t = _text(a), _text(b)
    if len(s) < len(t):
        s, t = t, s
    if not t:
        return len(s)

    previous = list(range(len(t) + 1))
    for i, sc in enumerate(s, start=1):
        current = [i]
        for j, tc in enumerate(t, start=1):
            cost = 0 if sc == tc else 1
            current.append(min(
                previous[j] + 1,  # deletion
                current[j - 1] + 1,  # insertion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current
    return previous[-1]


def levenshtein_similarity(a: str | None, b: str | None) -> float:
    """1 - distance / max_len over normalized text; 1.0 when both are empty."""
    s, t = normalize(a), normalize(b)
    longest = max(len(s), len(t))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(s, t) / longest


def ngrams(text: str | None, n: int = NGRAM_SIZE) -> set[str]:
    """정규화 텍스트의 길이 n 부분 문자열 집합 (공백 제외).

    Set of contiguous length-``n`` substrings of the normalized text with
    whitespace removed. Input shorter than ``n`` yields an empty set.
    """
    if n < 1:
        raise ValueError("n must be positive")
    compact = normalize(text).replace(" ", "")
    return {compact[i:i + n] for i in range(len(compact) - n + 1)}


def ngram_similarity(a: str | None, b: str | None, n: int = NGRAM_SIZE) -> float:
    grams_a = ngrams(a, n)
    grams_b = ngrams(b, n)
    union = grams_a | grams_b
    if not union:
        return 0.0
    return len(grams_a & grams_b) / len(union)


def combined_similarity(a: str | None, b: str | None) -> float:
    """Jaccard, 편집 거리, n-gram 유사도의 가중 평균 [0, 1].

    Weighted blend of word Jaccard, normalized Levenshtein and character
    bigram similarity. Identical normalized input (including two empty strings)
    scores exactly 1.0, and every component is symmetric.
    """
    s, t = normalize(a), normalize(b)
    if s == t:
        return 1.0
    score = (
        JACCARD_WEIGHT * jaccard(s, t)
        + LEVENSHTEIN_WEIGHT * levenshtein_similarity(s, t)
        + NGRAM_WEIGHT * ngram_similarity(s, t)
    )
    return min(1.0, max(0.0, score))
