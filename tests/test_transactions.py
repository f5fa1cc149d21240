"""Tests for the session transaction boundary."""

import pytest

from pkgallery.services.transactions import SessionTransactionBoundary


class TestSessionTransactionBoundary:
    """Tests for begin() and commit_changes()."""

    @pytest.mark.asyncio
    async def test_scope_commits_on_success(self, mock_session):
        boundary = SessionTransactionBoundary(mock_session)

        async with boundary.begin():
            assert boundary.in_scope

        assert not boundary.in_scope
        mock_session.commit.assert_awaited_once()
        mock_session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_scope_rolls_back_and_reraises(self, mock_session):
        boundary = SessionTransactionBoundary(mock_session)

        with pytest.raises(ValueError, match="boom"):
            async with boundary.begin():
                raise ValueError("boom")

        assert not boundary.in_scope
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_commit_rolls_back(self, mock_session):
        mock_session.commit.side_effect = RuntimeError("connection lost")
        boundary = SessionTransactionBoundary(mock_session)

        with pytest.raises(RuntimeError):
            async with boundary.begin():
                pass

        mock_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_nested_scope_defers_to_outer(self, mock_session):
        boundary = SessionTransactionBoundary(mock_session)

        async with boundary.begin():
            async with boundary.begin():
                pass
            mock_session.commit.assert_not_awaited()

        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_commit_changes_outside_scope_commits(self, mock_session):
        await SessionTransactionBoundary(mock_session).commit_changes()

        mock_session.commit.assert_awaited_once()
        mock_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commit_changes_inside_scope_flushes(self, mock_session):
        boundary = SessionTransactionBoundary(mock_session)

        async with boundary.begin():
            await boundary.commit_changes()
            mock_session.flush.assert_awaited_once()
            mock_session.commit.assert_not_awaited()
