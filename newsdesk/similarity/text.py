"""String similarity metrics used by duplicate detection.

All functions are pure and return a float in [0.0, 1.0].

Tokenisation (Jaccard, cosine): lowercase, strip every character that is not
an ASCII word character, whitespace or a Spanish accented letter, split on
whitespace and keep tokens longer than two characters.  N-gram similarity
works on the normalised string without tokenising it.  Levenshtein works on
the raw strings.
"""

import math
import re
from collections import Counter

from rapidfuzz.distance import Levenshtein

_STRIP_RE = re.compile(r"[^\w\sáéíóúñü]", re.ASCII)

MIN_TOKEN_LENGTH = 3


def normalize_text(text: str) -> str:
    return _STRIP_RE.sub("", text.lower())


def tokenize(text: str) -> list[str]:
    """Split *text* into normalised tokens of at least MIN_TOKEN_LENGTH chars."""
    return [word for word in normalize_text(text).split() if len(word) >= MIN_TOKEN_LENGTH]


def jaccard_similarity(text1: str, text2: str) -> float:
    """Jaccard index of the token sets of two texts (0 when both are empty)."""
    set1 = set(tokenize(text1))
    set2 = set(tokenize(text2))
    union = set1 | set2
    if not union:
        return 0.0
    return len(set1 & set2) / len(union)


def cosine_similarity(text1: str, text2: str) -> float:
    """Cosine similarity of bag-of-words term-frequency vectors."""
    freq1 = Counter(tokenize(text1))
    freq2 = Counter(tokenize(text2))

    dot = sum(count * freq2[word] for word, count in freq1.items())
    magnitude1 = math.sqrt(sum(count * count for count in freq1.values()))
    magnitude2 = math.sqrt(sum(count * count for count in freq2.values()))

    if magnitude1 == 0 or magnitude2 == 0:
        return 0.0
    return dot / (magnitude1 * magnitude2)


def levenshtein_distance(str1: str, str2: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    return Levenshtein.distance(str1, str2)


def levenshtein_similarity(str1: str, str2: str) -> float:
    """1 - distance / max(len); two empty strings are identical."""
    max_length = max(len(str1), len(str2))
    if max_length == 0:
        return 1.0
    if not str1 or not str2:
        return 0.0
    return 1.0 - levenshtein_distance(str1, str2) / max_length


def _ngrams(text: str, n: int) -> set[str]:
    return {text[i:i + n] for i in range(len(text) - n + 1)}


def ngram_similarity(text1: str, text2: str, n: int = 3) -> float:
    """Jaccard index of character n-grams of the normalised texts.

    Texts shorter than *n* have no n-grams; Levenshtein similarity of the
    normalised texts is used for them instead.
    """
    norm1 = normalize_text(text1)
    norm2 = normalize_text(text2)

    if len(norm1) < n or len(norm2) < n:
        return levenshtein_similarity(norm1, norm2)

    grams1 = _ngrams(norm1, n)
    grams2 = _ngrams(norm2, n)
    return len(grams1 & grams2) / len(grams1 | grams2)
