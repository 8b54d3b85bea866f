"""
PicHealth API — Security Package
=================================

Request admission for the external /api/v1 surface:

    api_keys      → x-api-key allow-list check
    rate_limiter  → fixed-window counter per API key
    cors          → origin allow-list + preflight middleware
"""
