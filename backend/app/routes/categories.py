"""
X Tracking API — Category Routes
==================================

What:  The category route table and the one builder that produces it.
How:   `build_category_table(policy)` is the only place the category routes
       are declared. The auth policy is a parameter, so every mount of the
       table gets identical routes and rules and differs only in who may
       call them. The application mounts it with REQUIRE_AUTH.

Routes (relative to the mount prefix):
    GET    /                 list categories
    POST   /                 create (name is required)
    GET    /{id}             one category
    PUT    /{id}             partial update
    DELETE /{id}             delete
    GET    /{id}/accounts    member accounts
    POST   /{id}/accounts    attach {"accountIds": [...]}
    DELETE /{id}/accounts    detach {"accountIds": [...]}

Path ids are passed to the service untouched; it decides what a malformed
id means (404).
"""

from typing import Any, Dict, Iterable

from fastapi import APIRouter

from app.middleware.auth import AuthRequirement
from app.routes.table import RequestContext, RouteSpec, RouteTable, build_router
from app.schemas.account import AccountResponse
from app.schemas.category import CategoryResponse
from app.services.category_service import category_service
from app.validation import NonEmpty

CATEGORY_PREFIX = "/api/categories"

CREATE_CATEGORY_RULES = (
    NonEmpty("name", "Category name is required"),
)


def _categories_json(categories: Iterable[Any]) -> list:
    return [CategoryResponse.model_validate(c).to_json() for c in categories]


# ══════════════════════════════════════════════════════════════════════════
# Handlers
# ══════════════════════════════════════════════════════════════════════════

async def list_categories(ctx: RequestContext) -> Dict[str, Any]:
    data = _categories_json(await category_service.list_categories(ctx.db))
    return {"success": True, "count": len(data), "data": data}


async def get_category(ctx: RequestContext) -> Dict[str, Any]:
    category = await category_service.get_category(ctx.db, ctx.path_params["id"])
    return {"success": True, "data": CategoryResponse.model_validate(category).to_json()}


async def create_category(ctx: RequestContext) -> Dict[str, Any]:
    category = await category_service.create_category(ctx.db, ctx.body)
    return {"success": True, "data": CategoryResponse.model_validate(category).to_json()}


async def update_category(ctx: RequestContext) -> Dict[str, Any]:
    category = await category_service.update_category(ctx.db, ctx.path_params["id"], ctx.body)
    return {"success": True, "data": CategoryResponse.model_validate(category).to_json()}


async def delete_category(ctx: RequestContext) -> Dict[str, Any]:
    await category_service.delete_category(ctx.db, ctx.path_params["id"])
    return {"success": True, "data": {}}


async def list_category_accounts(ctx: RequestContext) -> Dict[str, Any]:
    accounts = await category_service.list_category_accounts(ctx.db, ctx.path_params["id"])
    data = [AccountResponse.model_validate(a).to_json() for a in accounts]
    return {"success": True, "count": len(data), "data": data}


async def add_accounts_to_category(ctx: RequestContext) -> Dict[str, Any]:
    count = await category_service.add_accounts(ctx.db, ctx.path_params["id"], ctx.body)
    return {"success": True, "data": {"accountCount": count}}


async def remove_accounts_from_category(ctx: RequestContext) -> Dict[str, Any]:
    count = await category_service.remove_accounts(ctx.db, ctx.path_params["id"], ctx.body)
    return {"success": True, "data": {"accountCount": count}}


# ══════════════════════════════════════════════════════════════════════════
# Table Builder
# ══════════════════════════════════════════════════════════════════════════

def build_category_table(policy: AuthRequirement, prefix: str = CATEGORY_PREFIX) -> RouteTable:
    """Declare the category routes under `prefix`, all guarded by `policy`."""
    return RouteTable(
        prefix=prefix,
        policy=policy,
        tags=("Categories",),
        routes=(
            RouteSpec("GET", "", list_categories, summary="List categories"),
            RouteSpec("POST", "", create_category, rules=CREATE_CATEGORY_RULES,
                      status_code=201, summary="Create a category"),
            RouteSpec("GET", "/{id}", get_category, summary="Get a category"),
            RouteSpec("PUT", "/{id}", update_category, summary="Update a category"),
            RouteSpec("DELETE", "/{id}", delete_category, summary="Delete a category"),
            RouteSpec("GET", "/{id}/accounts", list_category_accounts,
                      summary="List accounts in a category"),
            RouteSpec("POST", "/{id}/accounts", add_accounts_to_category,
                      summary="Add accounts to a category"),
            RouteSpec("DELETE", "/{id}/accounts", remove_accounts_from_category,
                      summary="Remove accounts from a category"),
        ),
    )


def build_category_router(policy: AuthRequirement, prefix: str = CATEGORY_PREFIX) -> APIRouter:
    return build_router(build_category_table(policy, prefix))
