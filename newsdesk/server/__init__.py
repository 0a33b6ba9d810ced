"""Newsdesk HTTP server package.

Entry point:
    uvicorn newsdesk.server.main:app --host 0.0.0.0 --port 8000
"""
