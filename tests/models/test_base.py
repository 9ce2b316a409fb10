"""Tests for the UTC datetime column type."""
from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import StatementError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from librarian.models.bookmark import Bookmark


def make_bookmark(stamp: datetime, title: str = "T", url: str = "https://t") -> Bookmark:
    return Bookmark(
        title=title, url=url, tags=[], notes="", document="",
        created_at=stamp, updated_at=stamp,
    )


async def test_utc_datetime_round_trips_as_utc(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """A value stored with any offset comes back as the same instant in UTC."""
    plus_two = timezone(timedelta(hours=2))
    stamp = datetime(2024, 5, 1, 12, 30, 15, 123456, tzinfo=plus_two)

    async with session_factory() as session:
        session.add(make_bookmark(stamp))
        await session.commit()

    async with session_factory() as session:
        stored = (await session.execute(select(Bookmark))).scalar_one()

    assert stored.created_at == stamp
    assert stored.created_at.tzinfo == UTC
    assert stored.created_at.hour == 10
    assert stored.created_at.microsecond == 123456


async def test_utc_datetime_rejects_naive_values(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    async with session_factory() as session:
        session.add(make_bookmark(datetime(2024, 5, 1, 12, 0, 0)))
        with pytest.raises(StatementError, match="naive datetime"):
            await session.commit()


async def test_bookmark_tags_default_to_empty_list(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    stamp = datetime(2024, 1, 1, tzinfo=UTC)
    async with session_factory() as session:
        session.add(Bookmark(title="T", url="https://t", created_at=stamp, updated_at=stamp))
        await session.commit()

    async with session_factory() as session:
        stored = (await session.execute(select(Bookmark))).scalar_one()

    assert stored.tags == []
    assert stored.notes == ""
    assert stored.document == ""
    assert "https://t" in repr(stored)
