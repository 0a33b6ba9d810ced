"""HTTP tests for health, authentication, news, trending, personalization and duplicates."""

import datetime
import uuid

from newsdesk.db.models import ContentInteraction, InteractionType, News, utcnow
from newsdesk.server.auth import create_token

BITCOIN_TITLE = "Bitcoin supera los cien mil dolares por primera vez"
BITCOIN_BODY = (
    "El precio de bitcoin supero hoy la barrera de los cien mil dolares "
    "impulsado por la demanda institucional y los fondos cotizados."
)


def _news(**fields):
    fields.setdefault("title", "Mercado cripto en alza")
    fields.setdefault("content", "Contenido de la noticia.")
    fields.setdefault("published_at", utcnow() - datetime.timedelta(hours=1))
    return News(**fields)


# ---------------------------------------------------------------------------
# Health and authentication
# ---------------------------------------------------------------------------


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "newsdesk"}


async def test_missing_token_is_unauthorized(client):
    response = await client.post("/api/v1/admin/news", json={"title": "Hola"})
    assert response.status_code == 401
    body = response.json()
    assert body["data"] is None
    assert body["error"]["code"] == "UNAUTHORIZED"


async def test_invalid_token_is_unauthorized(client):
    response = await client.get(
        "/api/v1/news/personalized", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


async def test_user_without_profile_is_forbidden(client, users):
    headers = {"Authorization": f"Bearer {create_token(uuid.uuid4())}"}
    response = await client.post("/api/v1/admin/news", json={"title": "Hola"}, headers=headers)
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


async def test_token_from_session_cookie(client, users):
    client.cookies.set("sb-access-token", create_token(users["student"]))
    response = await client.get("/api/v1/news/personalized")
    client.cookies.clear()
    assert response.status_code == 200


async def test_request_validation_maps_to_400(client, headers):
    response = await client.post(
        "/api/v1/admin/news", json={"summary": "no title"}, headers=headers("editor")
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


# ---------------------------------------------------------------------------
# News CRUD and interactions
# ---------------------------------------------------------------------------


async def test_create_news_requires_editor(client, headers):
    payload = {"title": "Nueva ley cripto", "keywords": ["regulacion"]}

    forbidden = await client.post("/api/v1/admin/news", json=payload, headers=headers("author"))
    assert forbidden.status_code == 403

    created = await client.post("/api/v1/admin/news", json=payload, headers=headers("editor"))
    assert created.status_code == 201
    data = created.json()["data"]
    assert data["title"] == "Nueva ley cripto"
    assert data["keywords"] == ["regulacion"]
    assert created.json()["error"] is None


async def test_update_and_delete_news(client, headers, add_rows):
    (news,) = await add_rows(_news())

    updated = await client.put(
        f"/api/v1/admin/news/{news.id}", json={"processed": True}, headers=headers("admin")
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["processed"] is True

    deleted = await client.delete(f"/api/v1/admin/news/{news.id}", headers=headers("admin"))
    assert deleted.status_code == 200
    missing = await client.get(f"/api/v1/news/{news.id}")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "NOT_FOUND"


async def test_list_news_shows_only_published(client, add_rows):
    await add_rows(
        _news(title="Publicada"),
        _news(title="Futura", published_at=utcnow() + datetime.timedelta(days=1)),
        _news(title="Borrador", published_at=None),
    )

    response = await client.get("/api/v1/news")

    assert response.status_code == 200
    data = response.json()["data"]
    assert [item["title"] for item in data["items"]] == ["Publicada"]
    assert data["pagination"]["total"] == 1


async def test_interactions_anonymous_view_only(client, headers, add_rows):
    (news,) = await add_rows(_news())
    url = f"/api/v1/news/{news.id}/interactions"

    view = await client.post(url, json={"interaction_type": "view"})
    assert view.status_code == 201

    like = await client.post(url, json={"interaction_type": "like"})
    assert like.status_code == 401

    like = await client.post(url, json={"interaction_type": "like"}, headers=headers("student"))
    assert like.status_code == 201
    assert like.json()["data"]["interaction_type"] == "like"


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------

TRANSLATION = {"title": "Bitcoin rises", "content": "Full content", "locale": "en"}


async def test_translation_requires_authentication(client, add_rows):
    (news,) = await add_rows(_news())

    response = await client.put(f"/api/v1/news/{news.id}/translation", json=TRANSLATION)

    assert response.status_code == 401
    error = response.json()["error"]
    assert error["code"] == "UNAUTHORIZED"
    assert error["request_id"]
    assert error["timestamp"]


async def test_translation_forbidden_for_students(client, headers, add_rows):
    (news,) = await add_rows(_news())
    response = await client.put(
        f"/api/v1/news/{news.id}/translation", json=TRANSLATION, headers=headers("student")
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


async def test_translation_validation_error(client, headers, add_rows):
    (news,) = await add_rows(_news())
    response = await client.put(
        f"/api/v1/news/{news.id}/translation",
        json={**TRANSLATION, "locale": "fr"},
        headers=headers("editor"),
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"]


async def test_translation_invalid_token_uses_translation_error(client, add_rows):
    (news,) = await add_rows(_news())

    response = await client.put(
        f"/api/v1/news/{news.id}/translation",
        json=TRANSLATION,
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401
    error = response.json()["error"]
    assert error["code"] == "UNAUTHORIZED"
    assert error["request_id"]


async def test_translation_rejects_non_object_body(client, headers, add_rows):
    (news,) = await add_rows(_news())

    listed = await client.put(
        f"/api/v1/news/{news.id}/translation", json=[TRANSLATION], headers=headers("editor")
    )
    garbled = await client.put(
        f"/api/v1/news/{news.id}/translation",
        content=b"{not json",
        headers={**headers("editor"), "Content-Type": "application/json"},
    )
    bad_id = await client.put(
        "/api/v1/news/nope/translation", json=TRANSLATION, headers=headers("editor")
    )

    for response in (listed, garbled, bad_id):
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["timestamp"]


async def test_translation_unknown_news(client, headers):
    response = await client.put(
        f"/api/v1/news/{uuid.uuid4()}/translation", json=TRANSLATION, headers=headers("editor")
    )
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NEWS_NOT_FOUND"


async def test_authors_translate_only_their_own_news(client, users, headers, add_rows):
    own, foreign = await add_rows(_news(author_id=users["author"]), _news())

    denied = await client.put(
        f"/api/v1/news/{foreign.id}/translation", json=TRANSLATION, headers=headers("author")
    )
    assert denied.status_code == 403

    allowed = await client.put(
        f"/api/v1/news/{own.id}/translation", json=TRANSLATION, headers=headers("author")
    )
    assert allowed.status_code == 200
    assert allowed.json()["data"]["locale"] == "en"


async def test_ai_translation_records_metadata(client, users, headers, add_rows, session_factory):
    (news,) = await add_rows(_news())

    response = await client.put(
        f"/api/v1/news/{news.id}/translation",
        json={**TRANSLATION, "ai_translated": True, "translation_confidence": 0.92},
        headers=headers("editor"),
    )

    assert response.status_code == 200
    async with session_factory() as session:
        stored = await session.get(News, news.id)
    assert stored.translations["en"]["title"] == "Bitcoin rises"
    meta = stored.ai_metadata["translation"]["en"]
    assert meta["confidence"] == 0.92
    assert meta["source_locale"] == "es"
    assert meta["translated_by"] == str(users["editor"])


async def test_translation_stats(client, headers, add_rows):
    (news,) = await add_rows(_news(summary="Resumen"))

    overall = await client.get("/api/v1/translation/stats", headers=headers("student"))
    assert overall.status_code == 200
    assert overall.json()["data"]["total_content"] == 1

    single = await client.get(
        "/api/v1/translation/stats", params={"content_id": str(news.id)}, headers=headers("student")
    )
    assert single.status_code == 200
    assert single.json()["data"]["by_content_type"]["news"]["total"] == 1

    bad = await client.get(
        "/api/v1/translation/stats", params={"content_id": "nope"}, headers=headers("student")
    )
    assert bad.status_code == 400

    missing = await client.get(
        "/api/v1/translation/stats",
        params={"content_id": str(uuid.uuid4())},
        headers=headers("student"),
    )
    assert missing.status_code == 404


# ---------------------------------------------------------------------------
# Trending and personalized feeds
# ---------------------------------------------------------------------------


async def test_trending_ranks_and_filters(client, add_rows):
    hot, _ = await add_rows(
        _news(title="Caliente"),
        _news(title="Vieja", published_at=utcnow() - datetime.timedelta(hours=40)),
    )
    await add_rows(
        *[
            ContentInteraction(
                content_id=hot.id, content_type="news", interaction_type=InteractionType.share
            )
            for _ in range(3)
        ]
    )

    response = await client.get("/api/v1/news/trending", params={"min_score": 1.0})

    assert response.status_code == 200
    data = response.json()["data"]
    assert [a["title"] for a in data["articles"]] == ["Caliente"]
    assert data["articles"][0]["trending_metrics"]["shares"] == 3
    assert data["metadata"]["articles_analyzed"] == 2
    assert data["metadata"]["trending_articles_found"] == 1


async def test_trending_recompute_requires_news_write(client, headers, add_rows):
    (news,) = await add_rows(_news())
    payload = {"article_ids": [str(news.id)], "time_window": 24}

    denied = await client.post("/api/v1/news/trending", json=payload, headers=headers("student"))
    assert denied.status_code == 403

    response = await client.post("/api/v1/news/trending", json=payload, headers=headers("editor"))
    assert response.status_code == 200
    assert response.json()["data"]["updated"] == 1


async def test_personalized_feed(client, users, headers, add_rows):
    await add_rows(
        _news(title="Relevante", relevance_score=8.0, keywords=["bitcoin"]),
        _news(title="Irrelevante", relevance_score=2.0),
    )

    unauthenticated = await client.get("/api/v1/news/personalized")
    assert unauthenticated.status_code == 401

    response = await client.get(
        "/api/v1/news/personalized", params={"limit": 5}, headers=headers("student")
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert [a["title"] for a in data["articles"]] == ["Relevante"]
    assert data["pagination"]["page"] == 0
    assert data["articles"][0]["personalization_score"] > 0


# ---------------------------------------------------------------------------
# Duplicates
# ---------------------------------------------------------------------------


async def test_duplicate_scan_and_resolve(client, headers, add_rows):
    first, second = await add_rows(
        _news(title=BITCOIN_TITLE, content=BITCOIN_BODY, source_name="CoinDesk"),
        _news(title=BITCOIN_TITLE, content=BITCOIN_BODY, source_name="Reuters"),
    )

    denied = await client.get("/api/v1/admin/news/duplicates", headers=headers("author"))
    assert denied.status_code == 403

    scan = await client.get("/api/v1/admin/news/duplicates", headers=headers("editor"))
    assert scan.status_code == 200
    data = scan.json()["data"]
    assert data["stats"]["duplicates_found"] == 1
    assert data["has_more"] is False
    group = data["duplicates"][0]
    keep_id = group["primary_item"]["id"]
    delete_ids = [item["id"] for item in group["duplicate_items"]]
    assert {keep_id, *delete_ids} == {str(first.id), str(second.id)}

    resolved = await client.post(
        "/api/v1/admin/news/duplicates",
        json={
            "action": "resolve_duplicates",
            "group_id": group["group_id"],
            "keep_id": keep_id,
            "delete_ids": delete_ids,
        },
        headers=headers("editor"),
    )
    assert resolved.status_code == 200
    assert resolved.json()["data"]["deleted_count"] == 1
    assert resolved.json()["data"]["group_id"] == "group_1"


async def test_resolve_validation(client, headers, add_rows):
    (news,) = await add_rows(_news())
    url = "/api/v1/admin/news/duplicates"

    wrong_action = await client.post(
        url,
        json={"action": "delete", "keep_id": str(news.id), "delete_ids": [str(uuid.uuid4())]},
        headers=headers("editor"),
    )
    assert wrong_action.status_code == 400

    overlapping = await client.post(
        url,
        json={"action": "resolve_duplicates", "keep_id": str(news.id), "delete_ids": [str(news.id)]},
        headers=headers("editor"),
    )
    assert overlapping.status_code == 400

    empty = await client.post(
        url,
        json={"action": "resolve_duplicates", "keep_id": str(news.id), "delete_ids": []},
        headers=headers("editor"),
    )
    assert empty.status_code == 400

    missing = await client.post(
        url,
        json={
            "action": "resolve_duplicates",
            "keep_id": str(uuid.uuid4()),
            "delete_ids": [str(news.id)],
        },
        headers=headers("editor"),
    )
    assert missing.status_code == 404
