"""
X Tracking API — Route Tables
===============================

Route Inventory:
    - table.py:       RouteSpec / RouteTable and build_router()
    - auth.py:        /api/auth/*                (AUTH_TABLE)
    - accounts.py:    /api/accounts/*            (ACCOUNT_TABLE)
    - categories.py:  /api/categories/*          (build_category_table(policy))
    - health.py:      GET /health

Handlers stay thin: they read the already-validated body, path params and
query params from the RequestContext, call a service, and shape the JSON
response.
"""
