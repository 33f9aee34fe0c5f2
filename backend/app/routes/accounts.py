"""
X Tracking API — Tracked Account Routes
=========================================

Routes (all require an authenticated user):
    GET    /api/accounts          list (?category, priority, search, sort, page, limit)
    POST   /api/accounts          create (username required, priority 1-5)
    GET    /api/accounts/{id}     one account with its categories
    PUT    /api/accounts/{id}     partial update; `categories` replaces the list
    DELETE /api/accounts/{id}     delete
"""

from typing import Any, Dict

from app.middleware.auth import REQUIRE_AUTH
from app.models.account import Account
from app.routes.table import RequestContext, RouteSpec, RouteTable, build_router
from app.schemas.account import AccountResponse, CategorySummary
from app.services.account_service import account_service
from app.validation import IntRange, NonEmpty

ACCOUNT_PREFIX = "/api/accounts"

CREATE_ACCOUNT_RULES = (
    NonEmpty("username", "Username is required"),
    IntRange("priority", 1, 5, "Priority must be between 1 and 5"),
)


async def account_payload(ctx: RequestContext, account: Account) -> Dict[str, Any]:
    categories = await account_service.list_account_categories(ctx.db, account)
    data = AccountResponse.model_validate(account).to_json()
    data["categories"] = [CategorySummary.model_validate(c).to_json() for c in categories]
    return data


async def list_accounts(ctx: RequestContext) -> Dict[str, Any]:
    page = await account_service.list_accounts(ctx.db, ctx.query_params)
    data = [AccountResponse.model_validate(a).to_json() for a in page.accounts]
    return {
        "success": True,
        "count": len(data),
        "total": page.total,
        "pagination": {
            "totalPages": page.total_pages,
            "currentPage": page.page,
            "pageSize": page.limit,
        },
        "data": data,
    }


async def get_account(ctx: RequestContext) -> Dict[str, Any]:
    account = await account_service.get_account(ctx.db, ctx.path_params["id"])
    return {"success": True, "data": await account_payload(ctx, account)}


async def create_account(ctx: RequestContext) -> Dict[str, Any]:
    account = await account_service.create_account(ctx.db, ctx.body)
    return {"success": True, "data": await account_payload(ctx, account)}


async def update_account(ctx: RequestContext) -> Dict[str, Any]:
    account = await account_service.update_account(ctx.db, ctx.path_params["id"], ctx.body)
    return {"success": True, "data": await account_payload(ctx, account)}


async def delete_account(ctx: RequestContext) -> Dict[str, Any]:
    await account_service.delete_account(ctx.db, ctx.path_params["id"])
    return {"success": True, "data": {}}


ACCOUNT_TABLE = RouteTable(
    prefix=ACCOUNT_PREFIX,
    policy=REQUIRE_AUTH,
    tags=("Accounts",),
    routes=(
        RouteSpec("GET", "", list_accounts, summary="List tracked accounts"),
        RouteSpec("POST", "", create_account, rules=CREATE_ACCOUNT_RULES,
                  status_code=201, summary="Track a new account"),
        RouteSpec("GET", "/{id}", get_account, summary="Get a tracked account"),
        RouteSpec("PUT", "/{id}", update_account, summary="Update a tracked account"),
        RouteSpec("DELETE", "/{id}", delete_account, summary="Stop tracking an account"),
    ),
)

router = build_router(ACCOUNT_TABLE)
