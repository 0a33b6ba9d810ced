"""Tests for duplicate classification, grouping and the database scan."""

import datetime
import uuid

import pytest
import sqlalchemy as sa

from newsdesk.db.models import ContentInteraction, InteractionType, News
from newsdesk.similarity.duplicates import (
    DetectionConfig,
    DuplicateGroup,
    GroupMember,
    NewsCandidate,
    content_similarity,
    detect_duplicate,
    find_duplicate_groups,
    order_group_members,
    summarise_groups,
)
from newsdesk.similarity.scan import resolve_duplicates, scan_duplicates

NOW = datetime.datetime(2026, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)

BITCOIN_TITLE = "Bitcoin supera los cien mil dolares por primera vez"
BITCOIN_BODY = (
    "El precio de bitcoin supero hoy la barrera de los cien mil dolares "
    "impulsado por la demanda institucional y los fondos cotizados."
)


def _candidate(id, title=BITCOIN_TITLE, content=BITCOIN_BODY, **fields):
    fields.setdefault("published_at", NOW)
    fields.setdefault("created_at", NOW)
    return NewsCandidate(id=id, title=title, content=content, **fields)


@pytest.fixture
def config():
    return DetectionConfig()


# ---------------------------------------------------------------------------
# Pairwise classification
# ---------------------------------------------------------------------------


def test_identical_source_url_short_circuits(config):
    a = _candidate("a", source_url="https://example.com/a", title="Uno")
    b = _candidate("b", source_url="https://example.com/a", title="Otro completamente distinto")

    detection = detect_duplicate(a, b, config)

    assert detection.is_duplicate
    assert detection.similarity == 1.0
    assert detection.confidence == 1.0
    assert detection.reasons == ["identical_source_url"]


def test_same_story_is_duplicate(config):
    a = _candidate("a")
    b = _candidate("b", published_at=NOW + datetime.timedelta(minutes=30))

    detection = detect_duplicate(a, b, config)

    assert detection.is_duplicate
    assert detection.similarity == pytest.approx(1.0)
    assert "very_similar_title" in detection.reasons
    assert "published_within_2_hours" in detection.reasons
    assert "similar_content_length" in detection.reasons
    assert detection.confidence == 1.0


def test_unrelated_stories_are_not_duplicates(config):
    a = _candidate("a")
    b = _candidate(
        "b",
        title="Ethereum completa la actualizacion de su red principal",
        content="Los desarrolladores confirmaron el despliegue sin incidentes en la red.",
        published_at=NOW - datetime.timedelta(days=3),
    )

    detection = detect_duplicate(a, b, config)

    assert not detection.is_duplicate
    assert detection.similarity < config.similarity_threshold
    assert "published_within_2_hours" not in detection.reasons


def test_similar_source_url_on_same_host_adds_reason(config):
    a = _candidate("a", source_url="https://news.example.com/crypto/bitcoin-100k")
    b = _candidate("b", source_url="https://news.example.com/crypto/bitcoin-100k-2")

    detection = detect_duplicate(a, b, config)

    assert "similar_source_url" in detection.reasons


def test_published_same_day_bonus(config):
    a = _candidate("a")
    b = _candidate("b", published_at=NOW + datetime.timedelta(hours=5))

    detection = detect_duplicate(a, b, config)

    assert "published_same_day" in detection.reasons


def test_malformed_source_url_skips_url_signal(config):
    a = _candidate("a", source_url="http://[bad")
    b = _candidate("b", source_url="http://example.com/a")

    detection = detect_duplicate(a, b, config)

    assert detection.is_duplicate
    assert "similar_source_url" not in detection.reasons


def test_similarity_equal_to_threshold_is_duplicate():
    a = _candidate("a")
    b = _candidate("b", title=BITCOIN_TITLE + " hoy")
    similarity = content_similarity(a, b, DetectionConfig())

    at_threshold = detect_duplicate(a, b, DetectionConfig(similarity_threshold=similarity))
    above_threshold = detect_duplicate(
        a, b, DetectionConfig(similarity_threshold=similarity + 1e-9)
    )

    assert at_threshold.is_duplicate
    assert not above_threshold.is_duplicate


def test_empty_contents_have_no_length_signal(config):
    a = _candidate("a", content="")
    b = _candidate("b", content="")

    detection = detect_duplicate(a, b, config)

    assert "similar_content_length" not in detection.reasons


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


def test_grouping_prefers_processed_primary(config):
    a = _candidate("a")
    b = _candidate("b", processed=True, source_name="CoinDesk")
    c = _candidate(
        "c",
        title="La inflacion se modera en la zona euro",
        content="Los datos de Eurostat muestran una desaceleracion de los precios.",
    )

    groups = find_duplicate_groups([a, b, c], config)

    assert len(groups) == 1
    group = groups[0]
    assert group.group_id == "group_1"
    assert group.primary.item.id == "b"
    assert [d.item.id for d in group.duplicates] == ["a"]
    assert group.total_items == 2


def _member(id, confidence, created_at=NOW, processed=False):
    return GroupMember(
        item=_candidate(id, created_at=created_at, processed=processed),
        similarity=0.9,
        confidence=confidence,
    )


def test_ordering_prefers_clearly_higher_confidence():
    older_confident = _member("old", 0.95, created_at=NOW - datetime.timedelta(hours=3))
    newer = _member("new", 0.8)

    ordered = order_group_members([newer, older_confident])

    assert [m.item.id for m in ordered] == ["old", "new"]


def test_ordering_falls_back_to_newest_when_confidence_is_close():
    older = _member("old", 0.9, created_at=NOW - datetime.timedelta(hours=3))
    newer = _member("new", 0.85)

    ordered = order_group_members([older, newer])

    assert [m.item.id for m in ordered] == ["new", "old"]


def test_ordering_puts_missing_created_at_last():
    undated = _member("undated", 0.9, created_at=None)
    dated = _member("dated", 0.9, created_at=NOW - datetime.timedelta(days=2))

    ordered = order_group_members([undated, dated])

    assert [m.item.id for m in ordered] == ["dated", "undated"]


def test_ordering_processed_beats_confidence():
    processed = _member("processed", 0.6, processed=True)
    confident = _member("confident", 1.0)

    ordered = order_group_members([confident, processed])

    assert [m.item.id for m in ordered] == ["processed", "confident"]


def test_grouping_picks_newest_item_as_primary():
    older = _candidate("old", created_at=NOW - datetime.timedelta(hours=5))
    newer = _candidate("new", created_at=NOW)

    groups = find_duplicate_groups([older, newer], DetectionConfig())

    assert groups[0].primary.item.id == "new"
    assert [d.item.id for d in groups[0].duplicates] == ["old"]


def test_grouping_claims_items_once(config):
    items = [_candidate(str(i)) for i in range(3)]

    groups = find_duplicate_groups(items, config)

    assert len(groups) == 1
    ids = {groups[0].primary.item.id} | {d.item.id for d in groups[0].duplicates}
    assert ids == {"0", "1", "2"}


def test_no_groups_for_unique_items(config):
    a = _candidate("a")
    b = _candidate("b", title="Nada que ver", content="Texto independiente sobre deportes.")
    assert find_duplicate_groups([a, b], config) == []


def _group(similarity, confidence):
    primary = GroupMember(item=_candidate("p"), similarity=1.0, confidence=1.0)
    duplicate = GroupMember(item=_candidate("d"), similarity=similarity, confidence=confidence)
    return DuplicateGroup(group_id="group_1", primary=primary, duplicates=[duplicate])


@pytest.mark.parametrize(
    "similarity, confidence, action, risk",
    [
        (0.97, 0.9, "auto_delete_duplicates", "low"),
        (0.85, 0.75, "keep_primary_delete_others", "medium"),
        (0.9, 0.65, "manual_review_required", "medium"),
        (0.9, 0.5, "manual_review_required", "high"),
    ],
)
def test_group_recommendation_and_risk(similarity, confidence, action, risk):
    group = _group(similarity, confidence)
    assert group.recommended_action == action
    assert group.risk_level == risk


def test_group_to_dict_statistics():
    data = _group(0.9, 0.8).to_dict()

    assert data["primary_item"]["id"] == "p"
    assert data["group_statistics"]["total_items"] == 2
    assert data["group_statistics"]["min_similarity"] == 0.9
    assert data["detection_details"][0]["id"] == "d"


def test_summarise_groups_counts_by_primary_source():
    g1 = _group(0.9, 0.9)
    g1.primary.item.source_name = "Reuters"
    g2 = _group(0.9, 0.9)

    stats = summarise_groups([g1, g2], total_checked=10, similarity_threshold=0.8, date_range_days=7)

    assert stats["duplicates_found"] == 2
    assert stats["total_duplicate_items"] == 2
    assert stats["by_source"] == {"Reuters": 1, "unknown": 1}
    assert stats["total_checked"] == 10


# ---------------------------------------------------------------------------
# Database scan and resolution
# ---------------------------------------------------------------------------


def test_scan_finds_duplicates_and_skips_processed(db, make_news):
    make_news(BITCOIN_TITLE, content=BITCOIN_BODY)
    make_news(BITCOIN_TITLE, content=BITCOIN_BODY)
    make_news(BITCOIN_TITLE, content=BITCOIN_BODY, processed=True)

    groups, stats = scan_duplicates(
        db, DetectionConfig(), include_processed=False, date_range_days=7, pool_size=100
    )

    assert stats["total_checked"] == 2
    assert len(groups) == 1

    groups, stats = scan_duplicates(
        db, DetectionConfig(), include_processed=True, date_range_days=7, pool_size=100
    )
    assert stats["total_checked"] == 3
    assert groups[0].total_items == 3
    assert groups[0].primary.item.processed


def test_scan_tolerates_malformed_source_url(db, make_news):
    make_news(BITCOIN_TITLE, content=BITCOIN_BODY, source_url="http://[bad")
    make_news(BITCOIN_TITLE, content=BITCOIN_BODY, source_url="https://example.com/btc")

    groups, stats = scan_duplicates(
        db, DetectionConfig(), include_processed=True, date_range_days=7, pool_size=100
    )

    assert stats["total_checked"] == 2
    assert len(groups) == 1


def test_scan_with_fewer_than_two_candidates(db, make_news):
    make_news()
    groups, stats = scan_duplicates(
        db, DetectionConfig(), include_processed=True, date_range_days=7, pool_size=100
    )
    assert groups == []
    assert stats["duplicates_found"] == 0


def test_resolve_deletes_duplicates_and_their_interactions(db, make_news):
    keep = make_news()
    drop = make_news()
    db.add(
        ContentInteraction(
            content_id=drop.id, content_type="news", interaction_type=InteractionType.view
        )
    )
    db.commit()

    result = resolve_duplicates(db, keep.id, [drop.id])

    assert result["deleted_count"] == 1
    assert result["kept_item"]["id"] == str(keep.id)
    assert db.get(News, drop.id) is None
    assert db.scalar(sa.select(sa.func.count()).select_from(ContentInteraction)) == 0


def test_resolve_rejects_keep_in_delete_list(db, make_news):
    keep = make_news()
    with pytest.raises(ValueError):
        resolve_duplicates(db, keep.id, [keep.id])


def test_resolve_missing_keep_item(db):
    with pytest.raises(LookupError):
        resolve_duplicates(db, uuid.uuid4(), [uuid.uuid4()])
