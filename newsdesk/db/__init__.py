"""Database layer for Newsdesk (ORM models and session factories)."""
