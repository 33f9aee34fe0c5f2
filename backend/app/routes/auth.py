"""
X Tracking API — Auth Routes
==============================

What:  /api/auth route table: registration, login and the signed-in user's
       profile, password and report preferences.
How:   Every route is a RouteSpec. Field rules and the auth requirement
       live here as data; handlers are thin and delegate to AuthService.

Routes:
    POST /register         Open         → 201 {"success", "token"} + cookie
    POST /login            Open         → {"success", "token"} + cookie
    GET  /me               RequireAuth  → {"success", "data": user}
    PUT  /updatedetails    RequireAuth  → {"success", "data": user}
    PUT  /updatepassword   RequireAuth  → {"success", "token"} + cookie
    PUT  /preferences      RequireAuth  → {"success", "data": preferences}
"""

from datetime import timedelta
from typing import Any, Dict

from fastapi import Response

from app.config import settings
from app.middleware.auth import OPEN, REQUIRE_AUTH, TOKEN_COOKIE_NAME
from app.models.user import User
from app.routes.table import RequestContext, RouteSpec, RouteTable, build_router
from app.schemas.auth import TokenResponse, UserResponse
from app.services.auth_service import auth_service
from app.validation import Exists, IsEmail, MinLength, NonEmpty, OptionalRule


# ══════════════════════════════════════════════════════════════════════════
# Field Rules
# ══════════════════════════════════════════════════════════════════════════

REGISTER_RULES = (
    NonEmpty("name", "Name is required"),
    IsEmail("email", "Please include a valid email"),
    MinLength("password", 6, "Please enter a password with 6 or more characters"),
)

LOGIN_RULES = (
    IsEmail("email", "Please include a valid email"),
    Exists("password", "Password is required"),
)

UPDATE_DETAILS_RULES = (
    NonEmpty("name", "Name is required"),
    OptionalRule(IsEmail("email", "Please include a valid email")),
)

UPDATE_PASSWORD_RULES = (
    Exists("currentPassword", "Current password is required"),
    MinLength("newPassword", 6, "Please enter a new password with 6 or more characters"),
)


# ══════════════════════════════════════════════════════════════════════════
# Handlers
# ══════════════════════════════════════════════════════════════════════════

def send_token_response(user: User, response: Response) -> Dict[str, Any]:
    """Issue a JWT for `user`, set it as an HttpOnly cookie and return the body."""
    token = auth_service.issue_token(user)
    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value=token,
        max_age=int(timedelta(days=settings.jwt_cookie_expire_days).total_seconds()),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return TokenResponse(token=token).to_json()


def user_payload(user: User) -> Dict[str, Any]:
    return {"success": True, "data": UserResponse.model_validate(user).to_json()}


async def register(ctx: RequestContext) -> Dict[str, Any]:
    """Register a new user and sign them in."""
    user = await auth_service.register(
        ctx.db,
        name=str(ctx.body["name"]),
        email=ctx.body["email"],
        password=str(ctx.body["password"]),
    )
    return send_token_response(user, ctx.response)


async def login(ctx: RequestContext) -> Dict[str, Any]:
    """Exchange email and password for a token."""
    user = await auth_service.login(ctx.db, email=ctx.body["email"], password=ctx.body["password"])
    return send_token_response(user, ctx.response)


async def get_me(ctx: RequestContext) -> Dict[str, Any]:
    """Return the signed-in user."""
    return user_payload(ctx.user)


async def update_details(ctx: RequestContext) -> Dict[str, Any]:
    user = await auth_service.update_details(
        ctx.db,
        ctx.user,
        name=str(ctx.body["name"]),
        email=ctx.body.get("email"),
    )
    return user_payload(user)


async def update_password(ctx: RequestContext) -> Dict[str, Any]:
    user = await auth_service.update_password(
        ctx.db,
        ctx.user,
        current_password=ctx.body["currentPassword"],
        new_password=str(ctx.body["newPassword"]),
    )
    return send_token_response(user, ctx.response)


async def update_preferences(ctx: RequestContext) -> Dict[str, Any]:
    preferences = await auth_service.update_preferences(ctx.db, ctx.user, ctx.body)
    return {"success": True, "data": preferences.to_json()}


# ══════════════════════════════════════════════════════════════════════════
# Table
# ══════════════════════════════════════════════════════════════════════════

AUTH_TABLE = RouteTable(
    prefix="/api/auth",
    policy=OPEN,
    tags=("Auth",),
    routes=(
        RouteSpec("POST", "/register", register, rules=REGISTER_RULES,
                  status_code=201, summary="Register a user"),
        RouteSpec("POST", "/login", login, rules=LOGIN_RULES, summary="Log in"),
        RouteSpec("GET", "/me", get_me, auth=REQUIRE_AUTH, summary="Current user"),
        RouteSpec("PUT", "/updatedetails", update_details, rules=UPDATE_DETAILS_RULES,
                  auth=REQUIRE_AUTH, summary="Update name and email"),
        RouteSpec("PUT", "/updatepassword", update_password, rules=UPDATE_PASSWORD_RULES,
                  auth=REQUIRE_AUTH, summary="Change password"),
        RouteSpec("PUT", "/preferences", update_preferences, auth=REQUIRE_AUTH,
                  summary="Replace report preferences"),
    ),
)

router = build_router(AUTH_TABLE)
