"""Multi-signal duplicate classification and grouping for news items.

Pairwise classification combines a weighted text similarity with URL,
publication-time and content-length heuristics into a confidence value.
Grouping compares every unclaimed item with every later unclaimed item
(O(n^2) over a bounded candidate pool) and picks a primary per group.

Everything here is pure: callers load ``NewsCandidate`` records from the
database (see ``newsdesk.similarity.scan``) and persist nothing.
"""

from __future__ import annotations

import datetime
import functools
import logging
from dataclasses import dataclass, field
from typing import Iterable
from urllib.parse import urlparse

from newsdesk.config import settings
from newsdesk.similarity.text import (
    cosine_similarity,
    jaccard_similarity,
    levenshtein_similarity,
    ngram_similarity,
)

logger = logging.getLogger(__name__)

# Title metric weights: jaccard, cosine, levenshtein, ngram
_TITLE_WEIGHTS = (0.3, 0.3, 0.2, 0.2)
# Content metric weights: jaccard, cosine, ngram
_CONTENT_WEIGHTS = (0.4, 0.4, 0.2)

_TITLE_PREVIEW_CHARS = 100


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass
class NewsCandidate:
    """The subset of a news row needed for duplicate detection."""

    id: str
    title: str
    content: str = ""
    source_url: str | None = None
    source_name: str | None = None
    published_at: datetime.datetime | None = None
    created_at: datetime.datetime | None = None
    processed: bool = False

    def summary(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "source_url": self.source_url,
            "source_name": self.source_name,
            "published_at": self.published_at,
            "created_at": self.created_at,
            "processed": self.processed,
        }


@dataclass
class DetectionConfig:
    similarity_threshold: float = 0.8
    min_confidence: float = 0.6
    title_weight: float = 0.6
    content_weight: float = 0.4
    content_prefix_chars: int = 1000

    @classmethod
    def from_settings(cls, similarity_threshold: float | None = None) -> "DetectionConfig":
        return cls(
            similarity_threshold=(
                settings.duplicate_similarity_threshold
                if similarity_threshold is None
                else similarity_threshold
            ),
            min_confidence=settings.duplicate_min_confidence,
            title_weight=settings.duplicate_title_weight,
            content_weight=settings.duplicate_content_weight,
        )


@dataclass
class DuplicateDetection:
    is_duplicate: bool
    similarity: float
    reasons: list[str]
    confidence: float


@dataclass
class GroupMember:
    item: NewsCandidate
    similarity: float
    confidence: float
    reasons: list[str] = field(default_factory=list)


@dataclass
class DuplicateGroup:
    group_id: str
    primary: GroupMember
    duplicates: list[GroupMember]

    @property
    def total_items(self) -> int:
        return len(self.duplicates) + 1

    @property
    def avg_similarity(self) -> float:
        return sum(d.similarity for d in self.duplicates) / len(self.duplicates)

    @property
    def avg_confidence(self) -> float:
        return sum(d.confidence for d in self.duplicates) / len(self.duplicates)

    @property
    def recommended_action(self) -> str:
        if self.avg_confidence < 0.7:
            return "manual_review_required"
        if self.avg_similarity > 0.95:
            return "auto_delete_duplicates"
        return "keep_primary_delete_others"

    @property
    def risk_level(self) -> str:
        if self.avg_confidence > 0.8:
            return "low"
        if self.avg_confidence > 0.6:
            return "medium"
        return "high"

    def to_dict(self) -> dict:
        similarities = [d.similarity for d in self.duplicates]
        return {
            "group_id": self.group_id,
            "primary_item": self.primary.item.summary(),
            "duplicate_items": [d.item.summary() for d in self.duplicates],
            "detection_details": [
                {
                    "id": d.item.id,
                    "similarity": d.similarity,
                    "confidence": d.confidence,
                    "reasons": list(d.reasons),
                    "title": _preview(d.item.title),
                }
                for d in self.duplicates
            ],
            "group_statistics": {
                "total_items": self.total_items,
                "avg_similarity": round(self.avg_similarity, 2),
                "avg_confidence": round(self.avg_confidence, 2),
                "min_similarity": min(similarities),
                "max_similarity": max(similarities),
            },
            "recommended_action": self.recommended_action,
            "risk_level": self.risk_level,
        }


def _preview(title: str) -> str:
    if len(title) > _TITLE_PREVIEW_CHARS:
        return title[:_TITLE_PREVIEW_CHARS] + "..."
    return title


# ---------------------------------------------------------------------------
# Pairwise classification
# ---------------------------------------------------------------------------


def title_similarity(title1: str, title2: str) -> float:
    w_jaccard, w_cosine, w_levenshtein, w_ngram = _TITLE_WEIGHTS
    return (
        jaccard_similarity(title1, title2) * w_jaccard
        + cosine_similarity(title1, title2) * w_cosine
        + levenshtein_similarity(title1, title2) * w_levenshtein
        + ngram_similarity(title1, title2) * w_ngram
    )


def body_similarity(content1: str, content2: str) -> float:
    w_jaccard, w_cosine, w_ngram = _CONTENT_WEIGHTS
    return (
        jaccard_similarity(content1, content2) * w_jaccard
        + cosine_similarity(content1, content2) * w_cosine
        + ngram_similarity(content1, content2) * w_ngram
    )


def content_similarity(
    item1: NewsCandidate, item2: NewsCandidate, config: DetectionConfig
) -> float:
    """Blend title and content-prefix similarity into one score in [0, 1]."""
    prefix = config.content_prefix_chars
    title_score = title_similarity(item1.title, item2.title)
    content_score = body_similarity(
        (item1.content or "")[:prefix], (item2.content or "")[:prefix]
    )
    return title_score * config.title_weight + content_score * config.content_weight


def _split_url(url: str) -> tuple[str, str] | None:
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError:
        logger.debug("Ignoring unparseable source URL %r", url)
        return None
    if not parsed.scheme or not hostname:
        return None
    return hostname, parsed.path


def detect_duplicate(
    item1: NewsCandidate, item2: NewsCandidate, config: DetectionConfig
) -> DuplicateDetection:
    """Classify a pair of news items.

    Signals, in order:

    1. Identical non-empty source URLs short-circuit to a certain duplicate.
    2. Same host with Levenshtein path similarity > 0.8: confidence +0.3.
    3. Title cosine > 0.9: +0.4, otherwise > 0.7: +0.2.
    4. Publication times < 2 h apart: +0.1, otherwise < 24 h: +0.05.
    5. Content length ratio (min / max) > 0.8: +0.1.

    Final confidence is ``min(1, confidence + 0.5 * similarity)``.  The pair is
    a duplicate when similarity reaches the configured threshold and
    confidence reaches the configured minimum.
    """
    if item1.source_url and item1.source_url == item2.source_url:
        return DuplicateDetection(
            is_duplicate=True,
            similarity=1.0,
            reasons=["identical_source_url"],
            confidence=1.0,
        )

    similarity = content_similarity(item1, item2, config)
    reasons: list[str] = []
    confidence = 0.0

    if item1.source_url and item2.source_url:
        parts1 = _split_url(item1.source_url)
        parts2 = _split_url(item2.source_url)
        if parts1 and parts2 and parts1[0] == parts2[0]:
            if levenshtein_similarity(parts1[1], parts2[1]) > 0.8:
                reasons.append("similar_source_url")
                confidence += 0.3

    title_cosine = cosine_similarity(item1.title, item2.title)
    if title_cosine > 0.9:
        reasons.append("very_similar_title")
        confidence += 0.4
    elif title_cosine > 0.7:
        reasons.append("similar_title")
        confidence += 0.2

    if item1.published_at and item2.published_at:
        hours_apart = abs((item1.published_at - item2.published_at).total_seconds()) / 3600
        if hours_apart < 2:
            reasons.append("published_within_2_hours")
            confidence += 0.1
        elif hours_apart < 24:
            reasons.append("published_same_day")
            confidence += 0.05

    length1 = len(item1.content or "")
    length2 = len(item2.content or "")
    longest = max(length1, length2)
    if longest > 0 and min(length1, length2) / longest > 0.8:
        reasons.append("similar_content_length")
        confidence += 0.1

    confidence = min(1.0, confidence + similarity * 0.5)

    return DuplicateDetection(
        is_duplicate=(
            similarity >= config.similarity_threshold
            and confidence >= config.min_confidence
        ),
        similarity=similarity,
        reasons=reasons,
        confidence=confidence,
    )


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


def _created_ts(member: GroupMember) -> float:
    created = member.item.created_at
    return created.timestamp() if created else 0.0


def _compare_members(a: GroupMember, b: GroupMember) -> int:
    # Processed items first
    if a.item.processed != b.item.processed:
        return -1 if a.item.processed else 1
    # Then higher confidence when the gap is meaningful
    if abs(a.confidence - b.confidence) > 0.1:
        return -1 if a.confidence > b.confidence else 1
    # Newest first
    ts_a, ts_b = _created_ts(a), _created_ts(b)
    if ts_a == ts_b:
        return 0
    return -1 if ts_a > ts_b else 1


def order_group_members(members: list[GroupMember]) -> list[GroupMember]:
    """Return *members* with the primary candidate first.

    Processed items come first; then higher confidence when the gap exceeds
    0.1; then newest ``created_at`` (missing timestamps sort last).
    """
    return sorted(members, key=functools.cmp_to_key(_compare_members))


def find_duplicate_groups(
    items: list[NewsCandidate], config: DetectionConfig
) -> list[DuplicateGroup]:
    """Group duplicates by pairwise comparison against each unclaimed seed.

    Items are visited in the given order.  Each unclaimed item seeds a group
    and claims every later unclaimed item it is judged a duplicate of.  Only
    groups with at least two members are returned, with ids ``group_1``,
    ``group_2``, ... in discovery order.
    """
    claimed: set[str] = set()
    groups: list[DuplicateGroup] = []

    for i, seed in enumerate(items):
        if seed.id in claimed:
            continue

        members = [GroupMember(item=seed, similarity=1.0, confidence=1.0, reasons=["original"])]

        for other in items[i + 1:]:
            if other.id in claimed:
                continue
            detection = detect_duplicate(seed, other, config)
            if detection.is_duplicate:
                members.append(
                    GroupMember(
                        item=other,
                        similarity=detection.similarity,
                        confidence=detection.confidence,
                        reasons=detection.reasons,
                    )
                )
                claimed.add(other.id)

        if len(members) > 1:
            members = order_group_members(members)
            groups.append(
                DuplicateGroup(
                    group_id=f"group_{len(groups) + 1}",
                    primary=members[0],
                    duplicates=members[1:],
                )
            )
            claimed.add(seed.id)

    logger.debug(
        "Duplicate grouping: %d candidates, %d groups", len(items), len(groups)
    )
    return groups


def summarise_groups(
    groups: Iterable[DuplicateGroup],
    total_checked: int,
    similarity_threshold: float,
    date_range_days: int,
) -> dict:
    """Scan statistics over all groups found (before any result limit)."""
    groups = list(groups)
    by_source: dict[str, int] = {}
    for group in groups:
        source = group.primary.item.source_name or "unknown"
        by_source[source] = by_source.get(source, 0) + 1

    return {
        "total_checked": total_checked,
        "duplicates_found": len(groups),
        "total_duplicate_items": sum(len(g.duplicates) for g in groups),
        "by_source": by_source,
        "similarity_threshold": similarity_threshold,
        "date_range_days": date_range_days,
    }
