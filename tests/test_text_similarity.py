"""Tests for the string similarity metrics."""

import pytest

from newsdesk.similarity.text import (
    cosine_similarity,
    jaccard_similarity,
    levenshtein_distance,
    levenshtein_similarity,
    ngram_similarity,
    normalize_text,
    tokenize,
)


def test_tokenize_lowercases_strips_punctuation_and_short_words():
    assert tokenize("El Bitcoin, ¡sube de nuevo!") == ["bitcoin", "sube", "nuevo"]


def test_normalize_keeps_spanish_letters():
    assert normalize_text("Niño: Año") == "niño año"


def test_jaccard_identical_and_disjoint():
    assert jaccard_similarity("bitcoin sube fuerte", "bitcoin sube fuerte") == 1.0
    assert jaccard_similarity("bitcoin sube", "ethereum cae") == 0.0


def test_jaccard_partial_overlap():
    # {bitcoin, sube, hoy} vs {bitcoin, baja, hoy}: 2 shared of 4
    assert jaccard_similarity("bitcoin sube hoy", "bitcoin baja hoy") == pytest.approx(0.5)


def test_jaccard_empty_texts():
    assert jaccard_similarity("", "") == 0.0
    assert jaccard_similarity("a b", "de") == 0.0


def test_cosine_uses_term_frequency():
    assert cosine_similarity("bitcoin bitcoin", "bitcoin") == pytest.approx(1.0)
    assert cosine_similarity("bitcoin sube", "ethereum cae") == 0.0
    assert cosine_similarity("", "bitcoin") == 0.0


def test_levenshtein_distance_classic_cases():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("abc", "abc") == 0


def test_levenshtein_similarity_edges():
    assert levenshtein_similarity("", "") == 1.0
    assert levenshtein_similarity("abc", "") == 0.0
    assert levenshtein_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)


def test_ngram_similarity_identical_and_short_fallback():
    assert ngram_similarity("criptomonedas", "criptomonedas") == 1.0
    # Shorter than the n-gram size: Levenshtein on normalised text
    assert ngram_similarity("ab", "AB") == 1.0
    assert ngram_similarity("ab", "ac") == pytest.approx(0.5)


@pytest.mark.parametrize(
    "metric", [jaccard_similarity, cosine_similarity, levenshtein_similarity, ngram_similarity]
)
def test_metrics_stay_in_unit_interval(metric):
    value = metric("Mercado cripto sube con fuerza", "El mercado de criptomonedas cae")
    assert 0.0 <= value <= 1.0


def test_normalize_strips_non_ascii_letters_outside_spanish_set():
    assert normalize_text("Über français") == "über franais"
    assert normalize_text("Zürich → Köln") == "zürich  kln"
    assert jaccard_similarity("français", "franais") == 1.0


def test_levenshtein_distance_counts_unicode_characters():
    assert levenshtein_distance("año", "ano") == 1
    assert levenshtein_similarity("año", "ano") == pytest.approx(2 / 3)
