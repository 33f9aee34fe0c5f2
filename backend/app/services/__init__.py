"""
X Tracking API — Services Layer
=================================

Service Inventory:
    - AuthService:      registration, login, profile, password, preferences
    - CategoryService:  category CRUD and account membership
    - AccountService:   tracked-account CRUD and category counts

Services receive the request's AsyncSession and never touch HTTP objects,
so they are tested directly with a mocked session.
"""
