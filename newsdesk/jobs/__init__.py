"""Celery application and periodic maintenance tasks."""
