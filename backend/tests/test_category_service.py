"""
X Tracking API — Category Service Unit Tests
==============================================

What we test:
    ✅ Lookup by id, including malformed ids (404 without a query)
    ✅ Case-insensitive duplicate names on create and rename
    ✅ Partial updates
    ✅ Attach/detach: payload check, unknown ids skipped, idempotent links,
       recomputed accountCount
"""

import pytest
from uuid import uuid4

from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.services.category_service import CategoryService, account_ids_from, parse_uuid


class TestHelpers:

    def test_parse_uuid(self):
        value = uuid4()
        assert parse_uuid(str(value)) == value
        assert parse_uuid("abc") is None
        assert parse_uuid(None) is None

    @pytest.mark.parametrize("body", [{}, {"accountIds": []}, {"accountIds": "a"}, {"accountIds": None}])
    def test_account_ids_payload(self, body):
        with pytest.raises(ValidationError) as exc_info:
            account_ids_from(body)
        assert exc_info.value.message == "Please provide an array of account IDs"
        assert exc_info.value.violations[0]["field"] == "accountIds"


class TestCategoryCrud:

    def setup_method(self):
        self.service = CategoryService()

    @pytest.mark.asyncio
    async def test_get_malformed_id(self, mock_db_session):
        with pytest.raises(NotFoundError) as exc_info:
            await self.service.get_category(mock_db_session, "42")
        assert exc_info.value.message == "Category not found with id of 42"
        mock_db_session.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_missing(self, mock_db_session):
        category_id = str(uuid4())
        with pytest.raises(NotFoundError) as exc_info:
            await self.service.get_category(mock_db_session, category_id)
        assert exc_info.value.message == f"Category not found with id of {category_id}"

    @pytest.mark.asyncio
    async def test_get_found(self, mock_db_session, make_category):
        category = make_category()
        mock_db_session.get.return_value = category
        assert await self.service.get_category(mock_db_session, str(category.id)) is category

    @pytest.mark.asyncio
    async def test_list(self, mock_db_session, make_result, make_category):
        categories = [make_category(name="Finance"), make_category(name="Tech")]
        mock_db_session.execute.return_value = make_result(scalars=categories)
        assert await self.service.list_categories(mock_db_session) == categories

    @pytest.mark.asyncio
    async def test_create(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(scalar=None)

        category = await self.service.create_category(
            mock_db_session, {"name": "  Politics ", "description": "Elected officials"}
        )

        assert category.name == "Politics"
        assert category.color == "#3498db"
        assert category.is_default is False
        mock_db_session.add.assert_called_once_with(category)

    @pytest.mark.asyncio
    async def test_create_duplicate_name(self, mock_db_session, make_result, make_category):
        mock_db_session.execute.return_value = make_result(scalar=make_category(name="Tech"))

        with pytest.raises(ConflictError) as exc_info:
            await self.service.create_category(mock_db_session, {"name": "tech"})

        assert exc_info.value.message == 'Category with name "tech" already exists'
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_whitespace_name(self, mock_db_session):
        with pytest.raises(ValidationError):
            await self.service.create_category(mock_db_session, {"name": "   "})

    @pytest.mark.asyncio
    async def test_partial_update(self, mock_db_session, make_category):
        category = make_category(name="Tech", description="Engineers")
        mock_db_session.get.return_value = category

        updated = await self.service.update_category(
            mock_db_session, str(category.id), {"color": "#e74c3c", "name": None}
        )

        assert updated.color == "#e74c3c"
        assert updated.name == "Tech"
        assert updated.description == "Engineers"
        mock_db_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_clears_description(self, mock_db_session, make_category):
        category = make_category(description="Engineers")
        mock_db_session.get.return_value = category
        updated = await self.service.update_category(
            mock_db_session, str(category.id), {"description": None}
        )
        assert updated.description is None

    @pytest.mark.asyncio
    async def test_rename_to_existing_name(self, mock_db_session, make_result, make_category):
        category = make_category(name="Tech")
        mock_db_session.get.return_value = category
        mock_db_session.execute.return_value = make_result(scalar=make_category(name="Finance"))

        with pytest.raises(ConflictError):
            await self.service.update_category(mock_db_session, str(category.id), {"name": "Finance"})
        assert category.name == "Tech"

    @pytest.mark.asyncio
    async def test_recase_own_name(self, mock_db_session, make_category):
        category = make_category(name="Tech")
        mock_db_session.get.return_value = category

        updated = await self.service.update_category(mock_db_session, str(category.id), {"name": "TECH"})

        assert updated.name == "TECH"
        mock_db_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_out_of_range_sentiment(self, mock_db_session):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.update_category(mock_db_session, str(uuid4()), {"sentimentScore": 250})
        assert exc_info.value.violations[0]["field"] == "sentimentScore"

    @pytest.mark.asyncio
    async def test_delete(self, mock_db_session, make_category):
        category = make_category()
        mock_db_session.get.return_value = category
        await self.service.delete_category(mock_db_session, str(category.id))
        mock_db_session.delete.assert_awaited_once_with(category)

    @pytest.mark.asyncio
    async def test_delete_missing(self, mock_db_session):
        with pytest.raises(NotFoundError):
            await self.service.delete_category(mock_db_session, str(uuid4()))
        mock_db_session.delete.assert_not_called()


class TestMembership:

    def setup_method(self):
        self.service = CategoryService()

    @pytest.mark.asyncio
    async def test_list_accounts(self, mock_db_session, make_result, make_category):
        category = make_category()
        mock_db_session.get.return_value = category
        accounts = [object(), object()]
        mock_db_session.execute.return_value = make_result(scalars=accounts)

        assert await self.service.list_category_accounts(mock_db_session, str(category.id)) == accounts

    @pytest.mark.asyncio
    async def test_payload_checked_before_lookup(self, mock_db_session):
        with pytest.raises(ValidationError):
            await self.service.add_accounts(mock_db_session, "missing", {"accountIds": []})
        mock_db_session.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_to_missing_category(self, mock_db_session):
        with pytest.raises(NotFoundError):
            await self.service.add_accounts(mock_db_session, str(uuid4()), {"accountIds": [str(uuid4())]})

    @pytest.mark.asyncio
    async def test_add_links_only_new_known_accounts(self, mock_db_session, make_result, make_category):
        category = make_category(account_count=1)
        mock_db_session.get.return_value = category
        already_linked, new_account, unknown = uuid4(), uuid4(), uuid4()
        mock_db_session.execute.side_effect = [
            make_result(scalars=[already_linked, new_account]),  # known accounts
            make_result(scalars=[already_linked]),               # existing links
            make_result(),                                       # insert
            make_result(count=2),                                # recount
        ]

        count = await self.service.add_accounts(
            mock_db_session,
            str(category.id),
            {"accountIds": [str(already_linked), str(new_account), str(unknown), "garbage"]},
        )

        assert count == 2
        assert category.account_count == 2
        inserted_rows = mock_db_session.execute.await_args_list[2].args[1]
        assert inserted_rows == [{"account_id": new_account, "category_id": category.id}]

    @pytest.mark.asyncio
    async def test_add_is_idempotent(self, mock_db_session, make_result, make_category):
        category = make_category(account_count=1)
        mock_db_session.get.return_value = category
        linked = uuid4()
        mock_db_session.execute.side_effect = [
            make_result(scalars=[linked]),
            make_result(scalars=[linked]),
            make_result(count=1),
        ]

        count = await self.service.add_accounts(mock_db_session, str(category.id), {"accountIds": [str(linked)]})

        assert count == 1
        assert mock_db_session.execute.await_count == 3

    @pytest.mark.asyncio
    async def test_add_only_invalid_ids_just_recounts(self, mock_db_session, make_result, make_category):
        category = make_category(account_count=4)
        mock_db_session.get.return_value = category
        mock_db_session.execute.return_value = make_result(count=4)

        count = await self.service.add_accounts(mock_db_session, str(category.id), {"accountIds": ["x", 7]})

        assert count == 4
        assert mock_db_session.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_remove(self, mock_db_session, make_result, make_category):
        category = make_category(account_count=3)
        mock_db_session.get.return_value = category
        mock_db_session.execute.side_effect = [make_result(), make_result(count=1)]

        count = await self.service.remove_accounts(
            mock_db_session, str(category.id), {"accountIds": [str(uuid4()), str(uuid4())]}
        )

        assert count == 1
        assert category.account_count == 1
        assert mock_db_session.execute.await_count == 2
