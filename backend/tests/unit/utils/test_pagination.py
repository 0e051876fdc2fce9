"""
Unit Tests for pagination helpers
"""
import pytest
from sqlalchemy import select

from irp.models import User, UserRole
from irp.utils.pagination import MAX_PAGE_SIZE, clamp_page, create_paginated_response, paginate


class TestClampPage:

    @pytest.mark.parametrize("page,size,expected", [
        (1, 10, (1, 10, 0)),
        (3, 20, (3, 20, 40)),
        (0, 10, (1, 10, 0)),
        (2, 0, (2, 1, 1)),
        (1, 5000, (1, MAX_PAGE_SIZE, 0)),
    ])
    def test_clamp(self, page, size, expected):
        assert clamp_page(page, size) == expected


class TestPaginatedResponse:

    def test_empty_result_has_one_page(self):
        meta = create_paginated_response([], 0, 1, 10)

        assert meta["total_pages"] == 1
        assert meta["has_next"] is False
        assert meta["has_previous"] is False

    def test_middle_page(self):
        meta = create_paginated_response(["x"], 25, 2, 10)

        assert meta["total_pages"] == 3
        assert meta["has_next"] is True
        assert meta["has_previous"] is True


@pytest.mark.asyncio
class TestPaginate:

    async def test_pages_through_query(self, db_session, make_user):
        for _ in range(3):
            await make_user(UserRole.COORDINATOR)

        query = select(User).order_by(User.email)
        first = await paginate(db_session, query, page=1, page_size=2)
        second = await paginate(db_session, query, page=2, page_size=2)

        assert first["total"] == 3
        assert len(first["items"]) == 2
        assert len(second["items"]) == 1
        assert {u.id for u in first["items"]}.isdisjoint({u.id for u in second["items"]})
