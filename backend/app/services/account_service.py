"""
X Tracking API — Tracked Account Service
==========================================

What:  CRUD for the X accounts being tracked, including which categories
       each account belongs to.
Who:   Called by the account route handlers after the table's auth gate
       (and, for creation, the username and priority rules) has passed.

Identifiers:
    As with categories, a path id that is not a UUID is reported like a
    missing account (404 "Account not found with id of <id>").

Category counts:
    Whenever an account joins or leaves categories (create, update with
    `categories`, delete), Category.account_count of every affected
    category is recomputed from `account_categories`.

Listing:
    GET /api/accounts supports ?category=&priority=&search=&sort=&page=&limit=.
    `sort` is "field" or "field:desc"; the default order is priority
    descending, then username.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utc_now
from app.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError
from app.models.account import Account, account_categories
from app.models.category import Category
from app.schemas.account import AccountCreate, AccountListQuery, AccountUpdate
from app.services.category_service import parse_uuid
from app.validation import parse_payload

logger = logging.getLogger(__name__)

CATEGORIES_NOT_FOUND = "One or more categories not found"

SORTABLE_COLUMNS = {
    "username": Account.username,
    "displayName": Account.display_name,
    "priority": Account.priority,
    "followerCount": Account.follower_count,
    "followingCount": Account.following_count,
    "accuracyScore": Account.accuracy_score,
    "lastScraped": Account.last_scraped,
    "createdAt": Account.created_at,
    "updatedAt": Account.updated_at,
}

# Columns that may not be set to null through a partial update
_NON_NULLABLE_UPDATES = {"username", "priority", "active", "accuracy_score"}


@dataclass
class AccountPage:
    accounts: List[Account]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit)


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def order_by_for(sort: Optional[str]) -> list:
    """
    Translate "field" / "field:desc" into ORDER BY clauses.

    Raises:
        ValidationError: the field is not sortable
    """
    if not sort:
        return [Account.priority.desc(), Account.username.asc()]
    field, _, direction = sort.partition(":")
    column = SORTABLE_COLUMNS.get(field)
    if column is None:
        raise ValidationError(
            message=f"Cannot sort accounts by {field!r}",
            violations=[{"field": "sort", "message": f"Cannot sort accounts by {field!r}", "location": "query"}],
        )
    primary = column.desc() if direction.lower() == "desc" else column.asc()
    return [primary, Account.username.asc()]


def unique_ids(ids: Iterable[uuid.UUID]) -> List[uuid.UUID]:
    return list(dict.fromkeys(ids))


async def recount_category_accounts(db: AsyncSession, category_ids: Iterable[uuid.UUID]) -> None:
    """Recompute Category.account_count from the link table for `category_ids`."""
    ids = unique_ids(category_ids)
    if not ids:
        return
    member_count = (
        select(func.count())
        .select_from(account_categories)
        .where(account_categories.c.category_id == Category.id)
        .scalar_subquery()
    )
    await db.execute(
        update(Category)
        .where(Category.id.in_(ids))
        .values(account_count=member_count, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )


class AccountService:

    async def get_account(self, db: AsyncSession, account_id: str) -> Account:
        """
        Raises:
            NotFoundError: no account with this id (or the id is not a UUID)
        """
        parsed = parse_uuid(account_id)
        account = await db.get(Account, parsed) if parsed is not None else None
        if account is None:
            raise NotFoundError(resource="account", resource_id=str(account_id))
        return account

    async def list_accounts(self, db: AsyncSession, params: Dict[str, Any]) -> AccountPage:
        query = parse_payload(AccountListQuery, params, location="query")
        order_by = order_by_for(query.sort)

        conditions = []
        if query.category is not None:
            conditions.append(
                Account.id.in_(
                    select(account_categories.c.account_id).where(
                        account_categories.c.category_id == query.category
                    )
                )
            )
        if query.priority is not None:
            conditions.append(Account.priority == query.priority)
        if query.search:
            pattern = _like_pattern(query.search)
            conditions.append(
                or_(
                    Account.username.ilike(pattern, escape="\\"),
                    Account.display_name.ilike(pattern, escape="\\"),
                )
            )

        try:
            result = await db.execute(select(func.count()).select_from(Account).where(*conditions))
            total = int(result.scalar_one())
            result = await db.execute(
                select(Account)
                .where(*conditions)
                .order_by(*order_by)
                .offset((query.page - 1) * query.limit)
                .limit(query.limit)
            )
            accounts = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing accounts: %s", e)
            raise DatabaseError(context={"operation": "list_accounts"})

        return AccountPage(accounts=accounts, total=total, page=query.page, limit=query.limit)

    async def list_account_categories(self, db: AsyncSession, account: Account) -> List[Category]:
        try:
            result = await db.execute(
                select(Category)
                .join(account_categories, account_categories.c.category_id == Category.id)
                .where(account_categories.c.account_id == account.id)
                .order_by(Category.name.asc())
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing categories of account %s: %s", account.id, e)
            raise DatabaseError(context={"operation": "list_account_categories"})

    async def _ensure_username_available(
        self,
        db: AsyncSession,
        username: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        # X handles are case-insensitive
        query = select(Account).where(func.lower(Account.username) == username.lower())
        if exclude_id is not None:
            query = query.where(Account.id != exclude_id)
        result = await db.execute(query)
        if result.scalar_one_or_none() is not None:
            raise ConflictError(
                message="Account with this username already exists",
                context={"field": "username"},
            )

    async def _ensure_categories_exist(self, db: AsyncSession, category_ids: Sequence[uuid.UUID]) -> None:
        if not category_ids:
            return
        result = await db.execute(
            select(func.count()).select_from(Category).where(Category.id.in_(category_ids))
        )
        if int(result.scalar_one()) != len(category_ids):
            raise ValidationError(message=CATEGORIES_NOT_FOUND, field="categories")

    async def _linked_category_ids(self, db: AsyncSession, account: Account) -> List[uuid.UUID]:
        result = await db.execute(
            select(account_categories.c.category_id).where(
                account_categories.c.account_id == account.id
            )
        )
        return list(result.scalars().all())

    async def _link(self, db: AsyncSession, account: Account, category_ids: Sequence[uuid.UUID]) -> None:
        if category_ids:
            await db.execute(
                insert(account_categories),
                [{"account_id": account.id, "category_id": category_id} for category_id in category_ids],
            )

    async def create_account(self, db: AsyncSession, payload: Dict[str, Any]) -> Account:
        data = parse_payload(AccountCreate, payload)
        category_ids = unique_ids(data.categories)
        try:
            await self._ensure_username_available(db, data.username)
            await self._ensure_categories_exist(db, category_ids)
            account = Account(
                username=data.username,
                display_name=data.display_name,
                profile_image_url=data.profile_image_url,
                bio=data.bio,
                priority=data.priority,
                active=data.active,
                notes=data.notes,
            )
            db.add(account)
            await db.flush()
            await self._link(db, account, category_ids)
            await recount_category_accounts(db, category_ids)
        except IntegrityError:
            raise ConflictError(
                message="Account with this username already exists",
                context={"field": "username"},
            )
        except SQLAlchemyError as e:
            logger.error("Database error creating account: %s", e)
            raise DatabaseError(context={"operation": "create_account"})

        logger.info("Account created: %s (@%s, priority %d)", account.id, account.username, account.priority)
        return account

    async def update_account(
        self,
        db: AsyncSession,
        account_id: str,
        payload: Dict[str, Any],
    ) -> Account:
        data = parse_payload(AccountUpdate, payload)
        changes = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key not in _NON_NULLABLE_UPDATES
        }
        new_category_ids = changes.pop("categories", None)

        account = await self.get_account(db, account_id)
        try:
            if "username" in changes and changes["username"].lower() != account.username.lower():
                await self._ensure_username_available(db, changes["username"], exclude_id=account.id)
            if new_category_ids is not None:
                new_category_ids = unique_ids(new_category_ids)
                await self._ensure_categories_exist(db, new_category_ids)

            for key, value in changes.items():
                setattr(account, key, value)
            account.updated_at = utc_now()
            await db.flush()

            if new_category_ids is not None:
                current = await self._linked_category_ids(db, account)
                removed = [c for c in current if c not in new_category_ids]
                added = [c for c in new_category_ids if c not in current]
                if removed:
                    await db.execute(
                        delete(account_categories).where(
                            account_categories.c.account_id == account.id,
                            account_categories.c.category_id.in_(removed),
                        )
                    )
                await self._link(db, account, added)
                await recount_category_accounts(db, removed + added)
        except IntegrityError:
            raise ConflictError(
                message="Account with this username already exists",
                context={"field": "username"},
            )
        except SQLAlchemyError as e:
            logger.error("Database error updating account %s: %s", account_id, e)
            raise DatabaseError(context={"operation": "update_account"})

        logger.info("Account updated: %s (%s)", account.id, ", ".join(sorted(data.model_fields_set)) or "no changes")
        return account

    async def delete_account(self, db: AsyncSession, account_id: str) -> None:
        account = await self.get_account(db, account_id)
        try:
            category_ids = await self._linked_category_ids(db, account)
            await db.delete(account)
            await db.flush()
            # Links go with the account (ON DELETE CASCADE)
            await recount_category_accounts(db, category_ids)
        except SQLAlchemyError as e:
            logger.error("Database error deleting account %s: %s", account_id, e)
            raise DatabaseError(context={"operation": "delete_account"})
        logger.info("Account deleted: %s (@%s)", account.id, account.username)


account_service = AccountService()
