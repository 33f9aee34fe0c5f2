"""
X Tracking API — Category Service
===================================

What:  Category CRUD and membership of tracked accounts in categories.
Who:   Called by the category route handlers after the table's auth gate
       (and, for creation, the name rule) has passed.

Identifiers:
    Path ids arrive untouched from the router. An id that is not a UUID
    cannot name a row, so it is reported exactly like a missing category
    (404 "Category not found with id of <id>").

Membership:
    Links live in `account_categories`. Attaching is idempotent, unknown
    account ids are skipped, and Category.account_count is recomputed from
    the link table after every attach/detach.
"""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utc_now
from app.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError
from app.models.account import Account, account_categories
from app.models.category import Category
from app.schemas.category import CategoryCreate, CategoryUpdate
from app.validation import parse_payload

logger = logging.getLogger(__name__)

ACCOUNT_IDS_MESSAGE = "Please provide an array of account IDs"

# Columns that may not be set to null through a partial update
_NON_NULLABLE_UPDATES = {"name", "color", "is_default", "sentiment_score", "sentiment_confidence"}


def parse_uuid(raw: Any) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(raw))
    except (TypeError, ValueError):
        return None


def account_ids_from(body: Dict[str, Any]) -> List[Any]:
    """`accountIds` must be a non-empty JSON array."""
    account_ids = body.get("accountIds")
    if not isinstance(account_ids, list) or not account_ids:
        raise ValidationError(message=ACCOUNT_IDS_MESSAGE, field="accountIds")
    return account_ids


def _valid_uuids(raw_ids: Iterable[Any]) -> Set[uuid.UUID]:
    return {parsed for parsed in (parse_uuid(raw) for raw in raw_ids) if parsed is not None}


class CategoryService:

    async def get_category(self, db: AsyncSession, category_id: str) -> Category:
        """
        Raises:
            NotFoundError: no category with this id (or the id is not a UUID)
        """
        parsed = parse_uuid(category_id)
        category = await db.get(Category, parsed) if parsed is not None else None
        if category is None:
            raise NotFoundError(resource="category", resource_id=str(category_id))
        return category

    async def list_categories(self, db: AsyncSession) -> List[Category]:
        try:
            result = await db.execute(select(Category).order_by(Category.name.asc()))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing categories: %s", e)
            raise DatabaseError(context={"operation": "list_categories"})

    async def _ensure_name_available(
        self,
        db: AsyncSession,
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        # Case-insensitive: "News" and "news" are the same category
        query = select(Category).where(func.lower(Category.name) == name.lower())
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        result = await db.execute(query)
        if result.scalar_one_or_none() is not None:
            raise ConflictError(
                message=f'Category with name "{name}" already exists',
                context={"field": "name"},
            )

    async def create_category(self, db: AsyncSession, payload: Dict[str, Any]) -> Category:
        data = parse_payload(CategoryCreate, payload)
        try:
            await self._ensure_name_available(db, data.name)
            category = Category(
                name=data.name,
                description=data.description,
                color=data.color,
                is_default=data.is_default,
            )
            db.add(category)
            await db.flush()
        except IntegrityError:
            raise ConflictError(
                message=f'Category with name "{data.name}" already exists',
                context={"field": "name"},
            )
        except SQLAlchemyError as e:
            logger.error("Database error creating category: %s", e)
            raise DatabaseError(context={"operation": "create_category"})

        logger.info("Category created: %s (%s)", category.id, category.name)
        return category

    async def update_category(
        self,
        db: AsyncSession,
        category_id: str,
        payload: Dict[str, Any],
    ) -> Category:
        data = parse_payload(CategoryUpdate, payload)
        changes = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key not in _NON_NULLABLE_UPDATES
        }

        category = await self.get_category(db, category_id)
        try:
            if "name" in changes and changes["name"].lower() != category.name.lower():
                await self._ensure_name_available(db, changes["name"], exclude_id=category.id)
            for key, value in changes.items():
                setattr(category, key, value)
            category.updated_at = utc_now()
            await db.flush()
        except IntegrityError:
            raise ConflictError(
                message=f'Category with name "{changes.get("name")}" already exists',
                context={"field": "name"},
            )
        except SQLAlchemyError as e:
            logger.error("Database error updating category %s: %s", category_id, e)
            raise DatabaseError(context={"operation": "update_category"})

        logger.info("Category updated: %s (%s)", category.id, ", ".join(sorted(changes)) or "no changes")
        return category

    async def delete_category(self, db: AsyncSession, category_id: str) -> None:
        category = await self.get_category(db, category_id)
        try:
            await db.delete(category)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting category %s: %s", category_id, e)
            raise DatabaseError(context={"operation": "delete_category"})
        logger.info("Category deleted: %s", category.id)

    async def list_category_accounts(self, db: AsyncSession, category_id: str) -> List[Account]:
        """Member accounts, highest priority first, then alphabetically."""
        category = await self.get_category(db, category_id)
        try:
            result = await db.execute(
                select(Account)
                .join(account_categories, account_categories.c.account_id == Account.id)
                .where(account_categories.c.category_id == category.id)
                .order_by(Account.priority.desc(), Account.username.asc())
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing accounts of category %s: %s", category_id, e)
            raise DatabaseError(context={"operation": "list_category_accounts"})

    async def _refresh_account_count(self, db: AsyncSession, category: Category) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(account_categories)
            .where(account_categories.c.category_id == category.id)
        )
        category.account_count = int(result.scalar_one())
        category.updated_at = utc_now()
        await db.flush()
        return category.account_count

    async def add_accounts(self, db: AsyncSession, category_id: str, body: Dict[str, Any]) -> int:
        """
        Attach accounts to a category.

        Returns:
            The category's member count after the change.
        """
        requested = _valid_uuids(account_ids_from(body))
        category = await self.get_category(db, category_id)
        try:
            if requested:
                result = await db.execute(select(Account.id).where(Account.id.in_(requested)))
                known = set(result.scalars().all())
                if known:
                    result = await db.execute(
                        select(account_categories.c.account_id).where(
                            account_categories.c.category_id == category.id,
                            account_categories.c.account_id.in_(known),
                        )
                    )
                    to_link = known - set(result.scalars().all())
                    if to_link:
                        await db.execute(
                            insert(account_categories),
                            [
                                {"account_id": account_id, "category_id": category.id}
                                for account_id in sorted(to_link, key=str)
                            ],
                        )
            count = await self._refresh_account_count(db, category)
        except SQLAlchemyError as e:
            logger.error("Database error attaching accounts to %s: %s", category_id, e)
            raise DatabaseError(context={"operation": "add_accounts"})

        logger.info("Category %s now has %d account(s)", category.id, count)
        return count

    async def remove_accounts(self, db: AsyncSession, category_id: str, body: Dict[str, Any]) -> int:
        """Detach accounts; ids that are not members are ignored."""
        requested = _valid_uuids(account_ids_from(body))
        category = await self.get_category(db, category_id)
        try:
            if requested:
                await db.execute(
                    delete(account_categories).where(
                        account_categories.c.category_id == category.id,
                        account_categories.c.account_id.in_(requested),
                    )
                )
            count = await self._refresh_account_count(db, category)
        except SQLAlchemyError as e:
            logger.error("Database error detaching accounts from %s: %s", category_id, e)
            raise DatabaseError(context={"operation": "remove_accounts"})

        logger.info("Category %s now has %d account(s)", category.id, count)
        return count


category_service = CategoryService()
