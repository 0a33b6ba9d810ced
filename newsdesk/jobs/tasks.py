"""Celery tasks for Newsdesk maintenance jobs.

The periodic jobs are the same functions exposed by the cron endpoints and
the CLI.  Tasks open a sync session through ``newsdesk.cli.client``.

Beat schedule:
- trending-every-15m         : recompute news trending scores
- publish-scheduled-every-5m : publish articles whose schedule has passed
- tag-cleanup-daily          : delete old unused tags (03:00 UTC)
- popularity-hourly          : award popularity milestone points
"""

from celery import Celery

# ---------------------------------------------------------------------------
# Celery application
# ---------------------------------------------------------------------------

celery_app = Celery("newsdesk")


def configure_celery(redis_url: str) -> None:
    """Configure the Celery broker, result backend and beat schedule.

    Called from the server lifespan and by the worker entry point.

    Args:
        redis_url: Redis connection URL (e.g. "redis://localhost:6379/0").
    """
    from celery.schedules import crontab  # noqa: PLC0415

    celery_app.conf.broker_url = redis_url
    celery_app.conf.result_backend = redis_url
    celery_app.conf.task_serializer = "json"
    celery_app.conf.accept_content = ["json"]
    celery_app.conf.timezone = "UTC"

    celery_app.conf.beat_schedule = {
        "trending-every-15m": {
            "task": "newsdesk.recompute_trending",
            "schedule": crontab(minute="*/15"),
        },
        "publish-scheduled-every-5m": {
            "task": "newsdesk.publish_scheduled",
            "schedule": crontab(minute="*/5"),
        },
        "tag-cleanup-daily": {
            "task": "newsdesk.cleanup_tags",
            "schedule": crontab(hour=3, minute=0),
        },
        "popularity-hourly": {
            "task": "newsdesk.award_popularity",
            "schedule": crontab(minute=30),
        },
    }


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


@celery_app.task(name="newsdesk.recompute_trending")
def recompute_trending_task() -> dict:
    """Recompute trending scores of news published within twice the window."""
    from newsdesk.cli.client import run_recompute_trending  # noqa: PLC0415

    return run_recompute_trending()


@celery_app.task(name="newsdesk.publish_scheduled")
def publish_scheduled_task() -> dict:
    from newsdesk.cli.client import run_publish_scheduled  # noqa: PLC0415

    return run_publish_scheduled()


@celery_app.task(name="newsdesk.cleanup_tags")
def cleanup_tags_task() -> dict:
    from newsdesk.cli.client import run_cleanup_tags  # noqa: PLC0415

    return run_cleanup_tags()


@celery_app.task(name="newsdesk.award_popularity")
def award_popularity_task() -> dict:
    from newsdesk.cli.client import run_award_popularity  # noqa: PLC0415

    return run_award_popularity()
