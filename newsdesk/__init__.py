"""Newsdesk: content management and news aggregation service."""
