"""
X Tracking API — Account Service Unit Tests
=============================================

What we test:
    ✅ Lookup by id, including malformed ids (404 without a query)
    ✅ Create: defaults, priority-driven scraping frequency, duplicate
       usernames, unknown categories, category links and counts
    ✅ Update: partial fields, category list replacement
    ✅ Delete: affected categories are recounted
    ✅ List: query parsing, sort validation, pagination maths
"""

import pytest
from sqlalchemy.exc import OperationalError
from unittest.mock import AsyncMock
from uuid import uuid4

from app.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError
from app.services.account_service import AccountPage, AccountService, order_by_for, unique_ids


class TestHelpers:

    def test_unique_ids_keeps_first_occurrence_order(self):
        a, b = uuid4(), uuid4()
        assert unique_ids([b, a, b, a]) == [b, a]

    def test_default_order(self):
        clauses = [str(c) for c in order_by_for(None)]
        assert clauses == ["accounts.priority DESC", "accounts.username ASC"]

    def test_sort_descending(self):
        clauses = [str(c) for c in order_by_for("followerCount:desc")]
        assert clauses == ["accounts.follower_count DESC", "accounts.username ASC"]

    def test_unknown_sort_field(self):
        with pytest.raises(ValidationError) as exc_info:
            order_by_for("password:asc")
        assert exc_info.value.violations[0]["field"] == "sort"
        assert exc_info.value.violations[0]["location"] == "query"

    @pytest.mark.parametrize("total, limit, pages", [(0, 10, 0), (10, 10, 1), (11, 10, 2), (1, 100, 1)])
    def test_total_pages(self, total, limit, pages):
        assert AccountPage(accounts=[], total=total, page=1, limit=limit).total_pages == pages


class TestGetAccount:

    def setup_method(self):
        self.service = AccountService()

    @pytest.mark.asyncio
    async def test_malformed_id(self, mock_db_session):
        with pytest.raises(NotFoundError) as exc_info:
            await self.service.get_account(mock_db_session, "nasa")
        assert exc_info.value.message == "Account not found with id of nasa"
        mock_db_session.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_found(self, mock_db_session, make_account):
        account = make_account()
        mock_db_session.get.return_value = account
        assert await self.service.get_account(mock_db_session, str(account.id)) is account


class TestCreateAccount:

    def setup_method(self):
        self.service = AccountService()

    @pytest.mark.asyncio
    async def test_defaults(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(scalar=None)

        account = await self.service.create_account(mock_db_session, {"username": " nasa "})

        assert account.username == "nasa"
        assert account.priority == 3
        assert account.scraping_frequency == 360
        assert account.active is True
        mock_db_session.add.assert_called_once_with(account)
        mock_db_session.flush.assert_awaited_once()
        # Only the username check: no categories to validate, link or recount
        assert mock_db_session.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_priority_sets_scraping_frequency(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(scalar=None)
        account = await self.service.create_account(
            mock_db_session, {"username": "nasa", "priority": "5", "displayName": "NASA"}
        )
        assert account.priority == 5
        assert account.scraping_frequency == 60
        assert account.display_name == "NASA"

    @pytest.mark.asyncio
    async def test_duplicate_username(self, mock_db_session, make_result, make_account):
        mock_db_session.execute.return_value = make_result(scalar=make_account(username="NASA"))

        with pytest.raises(ConflictError) as exc_info:
            await self.service.create_account(mock_db_session, {"username": "nasa"})

        assert exc_info.value.message == "Account with this username already exists"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_category(self, mock_db_session, make_result):
        mock_db_session.execute.side_effect = [make_result(scalar=None), make_result(count=1)]

        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_account(
                mock_db_session, {"username": "nasa", "categories": [str(uuid4()), str(uuid4())]}
            )

        assert exc_info.value.message == "One or more categories not found"
        assert exc_info.value.violations[0]["field"] == "categories"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_links_categories_once_each(self, mock_db_session, make_result):
        tech, finance = uuid4(), uuid4()
        mock_db_session.execute.side_effect = [
            make_result(scalar=None),   # username check
            make_result(count=2),       # categories exist
            make_result(),              # insert links
            make_result(),              # recount
        ]

        account = await self.service.create_account(
            mock_db_session,
            {"username": "nasa", "categories": [str(tech), str(finance), str(tech)]},
        )

        inserted_rows = mock_db_session.execute.await_args_list[2].args[1]
        assert inserted_rows == [
            {"account_id": account.id, "category_id": tech},
            {"account_id": account.id, "category_id": finance},
        ]
        assert mock_db_session.execute.await_count == 4

    @pytest.mark.asyncio
    async def test_invalid_priority_in_payload(self, mock_db_session):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_account(mock_db_session, {"username": "nasa", "priority": 7})
        assert exc_info.value.violations[0]["field"] == "priority"

    @pytest.mark.asyncio
    async def test_database_failure(self, mock_db_session):
        mock_db_session.execute = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection refused"))
        )
        with pytest.raises(DatabaseError):
            await self.service.create_account(mock_db_session, {"username": "nasa"})


class TestUpdateAccount:

    def setup_method(self):
        self.service = AccountService()

    @pytest.mark.asyncio
    async def test_partial_update(self, mock_db_session, make_account):
        account = make_account(notes="launches")
        mock_db_session.get.return_value = account

        updated = await self.service.update_account(
            mock_db_session, str(account.id), {"priority": 1, "active": None, "notes": None}
        )

        assert updated.priority == 1
        assert updated.scraping_frequency == 1440
        assert updated.active is True
        assert updated.notes is None
        mock_db_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_rename_to_taken_username(self, mock_db_session, make_result, make_account):
        account = make_account(username="nasa")
        mock_db_session.get.return_value = account
        mock_db_session.execute.return_value = make_result(scalar=make_account(username="esa"))

        with pytest.raises(ConflictError):
            await self.service.update_account(mock_db_session, str(account.id), {"username": "ESA"})
        assert account.username == "nasa"

    @pytest.mark.asyncio
    async def test_replace_categories(self, mock_db_session, make_result, make_account):
        account = make_account()
        mock_db_session.get.return_value = account
        old, kept, new = uuid4(), uuid4(), uuid4()
        mock_db_session.execute.side_effect = [
            make_result(count=2),                # categories exist
            make_result(scalars=[old, kept]),    # current links
            make_result(),                       # delete removed
            make_result(),                       # insert added
            make_result(),                       # recount
        ]

        await self.service.update_account(
            mock_db_session, str(account.id), {"categories": [str(kept), str(new)]}
        )

        inserted_rows = mock_db_session.execute.await_args_list[3].args[1]
        assert inserted_rows == [{"account_id": account.id, "category_id": new}]
        assert mock_db_session.execute.await_count == 5

    @pytest.mark.asyncio
    async def test_missing_account(self, mock_db_session):
        with pytest.raises(NotFoundError):
            await self.service.update_account(mock_db_session, str(uuid4()), {"priority": 2})


class TestDeleteAccount:

    def setup_method(self):
        self.service = AccountService()

    @pytest.mark.asyncio
    async def test_delete_recounts_categories(self, mock_db_session, make_result, make_account):
        account = make_account()
        mock_db_session.get.return_value = account
        mock_db_session.execute.side_effect = [make_result(scalars=[uuid4()]), make_result()]

        await self.service.delete_account(mock_db_session, str(account.id))

        mock_db_session.delete.assert_awaited_once_with(account)
        assert mock_db_session.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_delete_without_categories(self, mock_db_session, make_result, make_account):
        account = make_account()
        mock_db_session.get.return_value = account
        mock_db_session.execute.return_value = make_result(scalars=[])

        await self.service.delete_account(mock_db_session, str(account.id))

        assert mock_db_session.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_delete_missing(self, mock_db_session):
        with pytest.raises(NotFoundError):
            await self.service.delete_account(mock_db_session, str(uuid4()))
        mock_db_session.delete.assert_not_called()


class TestListAccounts:

    def setup_method(self):
        self.service = AccountService()

    @pytest.mark.asyncio
    async def test_page(self, mock_db_session, make_result, make_account):
        accounts = [make_account(username="esa"), make_account(username="nasa")]
        mock_db_session.execute.side_effect = [make_result(count=12), make_result(scalars=accounts)]

        page = await self.service.list_accounts(
            mock_db_session, {"page": "2", "limit": "5", "search": "a_", "priority": "3"}
        )

        assert page.accounts == accounts
        assert (page.total, page.page, page.limit, page.total_pages) == (12, 2, 5, 3)

    @pytest.mark.asyncio
    async def test_invalid_query(self, mock_db_session):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.list_accounts(mock_db_session, {"priority": "9", "category": "tech"})
        assert sorted(v["field"] for v in exc_info.value.violations) == ["category", "priority"]
        assert {v["location"] for v in exc_info.value.violations} == {"query"}
        mock_db_session.execute.assert_not_called()
