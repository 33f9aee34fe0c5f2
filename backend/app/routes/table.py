"""
X Tracking API — Declarative Route Tables
===========================================

What:  Immutable route descriptors and the builder that turns a table of
       them into a FastAPI APIRouter.
How:   Each RouteSpec becomes one `add_api_route` call whose endpoint
       declares its dependencies in a fixed order:

           gate  →  body rules  →  db session  →  handler

       FastAPI resolves dependencies sequentially, so the auth gate always
       runs (and can reject) before the body is validated, and the handler
       only runs when both have passed. The session is cached per request,
       so the gate and the handler share one transaction.

Tables are built at import time and never change afterwards. A table's
`policy` applies to every route that does not name its own requirement.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.middleware.auth import AuthRequirement, Open, RequireRole, gate_for
from app.models.user import User
from app.schemas.common import ErrorResponse, ValidationErrorResponse
from app.validation import RuleSet, validate_body


@dataclass
class RequestContext:
    """Everything a handler may need, resolved before it is called."""

    db: AsyncSession
    body: Dict[str, Any]
    path_params: Dict[str, Any]
    query_params: Dict[str, Any]
    user: Optional[User]
    response: Response


Handler = Callable[[RequestContext], Awaitable[Any]]


@dataclass(frozen=True)
class RouteSpec:
    method: str
    path: str
    handler: Handler
    rules: RuleSet = ()
    auth: Optional[AuthRequirement] = None
    status_code: int = 200
    summary: str = ""


@dataclass(frozen=True)
class RouteTable:
    prefix: str
    policy: AuthRequirement
    routes: Tuple[RouteSpec, ...]
    tags: Tuple[str, ...] = ()

    def requirement_for(self, spec: RouteSpec) -> AuthRequirement:
        return spec.auth if spec.auth is not None else self.policy


def _endpoint(spec: RouteSpec, requirement: AuthRequirement) -> Callable[..., Awaitable[Any]]:
    gate = gate_for(requirement)
    body_rules = validate_body(spec.rules)

    async def endpoint(
        request: Request,
        response: Response,
        user: Optional[User] = Depends(gate),
        body: Dict[str, Any] = Depends(body_rules),
        db: AsyncSession = Depends(get_db_session),
    ):
        ctx = RequestContext(
            db=db,
            body=body,
            path_params=dict(request.path_params),
            query_params=dict(request.query_params),
            user=user,
            response=response,
        )
        return await spec.handler(ctx)

    endpoint.__name__ = spec.handler.__name__
    endpoint.__doc__ = spec.handler.__doc__
    return endpoint


BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def error_responses(spec: RouteSpec, requirement: AuthRequirement) -> Dict[int, Dict[str, Any]]:
    """OpenAPI `responses` for the error statuses a route can produce."""
    responses: Dict[int, Dict[str, Any]] = {}
    if spec.rules or spec.method in BODY_METHODS:
        responses[400] = {"description": "Invalid request data", "model": ValidationErrorResponse}
    if not isinstance(requirement, Open):
        responses[401] = {"description": "Missing or invalid credential", "model": ErrorResponse}
    if isinstance(requirement, RequireRole):
        responses[403] = {"description": "Role not allowed", "model": ErrorResponse}
    if "{id}" in spec.path:
        responses[404] = {"description": "Resource not found", "model": ErrorResponse}
    responses[500] = {"description": "Server error", "model": ErrorResponse}
    return responses


def build_router(table: RouteTable) -> APIRouter:
    """Turn a route table into an APIRouter ready for `app.include_router`."""
    tags: List[str] = list(table.tags)
    router = APIRouter(prefix=table.prefix, tags=tags)
    for spec in table.routes:
        router.add_api_route(
            spec.path,
            _endpoint(spec, table.requirement_for(spec)),
            methods=[spec.method],
            status_code=spec.status_code,
            response_model=None,
            summary=spec.summary or None,
            responses=error_responses(spec, table.requirement_for(spec)),
        )
    return router
