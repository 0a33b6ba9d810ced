"""Newsdesk REST API package.

Mount point: /api/v1/
Auth:        Bearer JWT (or the auth provider's session cookie), verified
             locally; roles come from the ``profiles`` table and are checked
             with Casbin.
Envelope:    every response is ``{"data": ..., "error": ...}``.
"""
