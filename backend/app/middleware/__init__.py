"""
X Tracking API — Middleware Package
=====================================

Cross-cutting request concerns plus the auth gate dependencies.

Middleware chain (outermost first):
    Request → [Request ID] → [Credential Rate Limit] → [Logging] → [CORS] → Router

Per-route gates (auth.py) run inside the router, before body validation.
"""
