"""Tests for the validation admin search."""

import uuid

import pytest

from pkgallery.core.config import ValidationAdminSettings
from pkgallery.core.errors import InvalidArgumentError
from pkgallery.db.models import PackageStatus, PackageValidationSet
from pkgallery.services.validation_admin import (
    PackageDeletedStatus,
    ValidationAdminService,
    create_validation_admin_service,
    normalize_version,
)
from tests.factories import make_execute_result


def _validation_set(key: int, package_id: str = "NuGet.Versioning", version: str = "4.3.0"):
    return PackageValidationSet(
        validation_set_key=key,
        validation_tracking_id=uuid.uuid4(),
        package_key=key * 10,
        package_id=package_id,
        package_normalized_version=version,
    )


class TestParseQueryToLines:
    """Tests for parse_query_to_lines."""

    def test_collapses_whitespace_and_trims(self):
        lines = ValidationAdminService.parse_query_to_lines("  NuGet.Core \t  2.14.0  \r\n\n  other ")
        assert lines == ["NuGet.Core 2.14.0", "other"]

    def test_deduplicates_case_insensitively(self):
        lines = ValidationAdminService.parse_query_to_lines("NuGet.Core\nnuget.core\nNUGET.CORE\nb")
        assert lines == ["NuGet.Core", "b"]

    def test_empty_query(self):
        assert ValidationAdminService.parse_query_to_lines("") == []
        assert ValidationAdminService.parse_query_to_lines(" \n\t\n") == []

    def test_null_query_raises(self):
        with pytest.raises(InvalidArgumentError):
            ValidationAdminService.parse_query_to_lines(None)

    def test_caps_line_count(self):
        query = "\n".join(f"id{i}" for i in range(10))
        assert ValidationAdminService.parse_query_to_lines(query, max_lines=3) == ["id0", "id1", "id2"]


class TestNormalizeVersion:
    """Tests for normalize_version."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1.0", "1.0.0"),
            ("1", "1.0.0"),
            ("01.002.0003", "1.2.3"),
            ("1.2.3.0", "1.2.3"),
            ("1.2.3.4", "1.2.3.4"),
            ("1.0.0-beta.1", "1.0.0-beta.1"),
            ("1.0.0+build.5", "1.0.0"),
            ("2.0-RC1+sha.abc", "2.0.0-RC1"),
        ],
    )
    def test_normalizes(self, text, expected):
        assert normalize_version(text) == expected

    @pytest.mark.parametrize("text", ["", None, "abc", "1.0.0.0.0", "1.0-", "1..0"])
    def test_rejects(self, text):
        assert normalize_version(text) is None


class TestSearch:
    """Tests for search."""

    @pytest.mark.asyncio
    async def test_empty_query_runs_no_queries(self, mock_session):
        assert await ValidationAdminService(mock_session).search("") == []
        mock_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_plain_id_only_searches_by_package_id(self, mock_session):
        """A bare id is neither a UUID, an integer nor an id/version pair."""
        found = _validation_set(1)
        mock_session.execute.return_value = make_execute_result(many=[found])

        results = await ValidationAdminService(mock_session).search("NuGet.Versioning")

        assert results == [found]
        assert mock_session.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_uuid_line_tries_tracking_and_validation_ids(self, mock_session):
        """Sets found through several interpretations are returned once."""
        found = _validation_set(1)
        mock_session.execute.side_effect = [
            make_execute_result(many=[found]),  # tracking id
            make_execute_result(many=[found]),  # validation id
            make_execute_result(many=[]),  # package id
        ]

        results = await ValidationAdminService(mock_session).search(str(found.validation_tracking_id))

        assert results == [found]
        assert mock_session.execute.await_count == 3

    @pytest.mark.asyncio
    async def test_integer_line_searches_set_key(self, mock_session):
        found = _validation_set(42)
        mock_session.execute.side_effect = [
            make_execute_result(many=[found]),  # set key
            make_execute_result(many=[]),  # package id
        ]

        results = await ValidationAdminService(mock_session).search("42")

        assert results == [found]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("line", ["1_0", "٤٢", "9223372036854775808", "12.5"])
    async def test_non_integer_lines_skip_set_key(self, mock_session, line):
        """Only plain ASCII integers within 64 bits are treated as set keys."""
        mock_session.execute.return_value = make_execute_result(many=[])

        await ValidationAdminService(mock_session).search(line)

        queries = [str(call.args[0].whereclause) for call in mock_session.execute.await_args_list]
        assert not any("validation_set_key" in q for q in queries)

    @pytest.mark.asyncio
    async def test_negative_integer_searches_set_key(self, mock_session):
        mock_session.execute.return_value = make_execute_result(many=[])

        await ValidationAdminService(mock_session).search("-5")

        first = mock_session.execute.await_args_list[0].args[0]
        assert "validation_set_key" in str(first.whereclause)
        assert -5 in first.compile().params.values()

    @pytest.mark.asyncio
    async def test_id_and_version_line(self, mock_session):
        found = _validation_set(7, "NuGet.Core", "2.14.0")
        mock_session.execute.side_effect = [
            make_execute_result(many=[found]),  # id + version
            make_execute_result(many=[]),  # package id
        ]

        results = await ValidationAdminService(mock_session).search("NuGet.Core 2.14")

        assert results == [found]
        query = mock_session.execute.await_args_list[0].args[0]
        params = query.compile().params
        assert "2.14.0" in params.values()

    @pytest.mark.asyncio
    async def test_results_keep_discovery_order(self, mock_session):
        first = _validation_set(2, "A")
        second = _validation_set(1, "B")
        mock_session.execute.side_effect = [
            make_execute_result(many=[first]),
            make_execute_result(many=[second, first]),
        ]

        results = await ValidationAdminService(mock_session).search("A\nB")

        assert results == [first, second]


class TestGetPackageDeletedStatus:
    """Tests for get_package_deleted_status."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (None, PackageDeletedStatus.UNKNOWN),
            (PackageStatus.DELETED, PackageDeletedStatus.SOFT_DELETED),
            (PackageStatus.AVAILABLE, PackageDeletedStatus.NOT_DELETED),
            (PackageStatus.VALIDATING, PackageDeletedStatus.NOT_DELETED),
        ],
    )
    async def test_status(self, mock_session, status, expected):
        mock_session.execute.return_value = make_execute_result(one=status)

        assert await ValidationAdminService(mock_session).get_package_deleted_status(5) == expected


class TestCreateValidationAdminService:
    """Tests for create_validation_admin_service."""

    @pytest.mark.asyncio
    async def test_line_cap_comes_from_settings(self, mock_session):
        service = create_validation_admin_service(
            mock_session, ValidationAdminSettings(max_query_lines=2)
        )
        mock_session.execute.return_value = make_execute_result(many=[])

        await service.search("a\nb\nc\nd")

        # Plain ids only run the package id query, once per line
        assert mock_session.execute.await_count == 2
