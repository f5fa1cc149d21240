"""Tests for reserved namespace ownership."""

import pytest

from pkgallery.core.errors import InvalidArgumentError, NotFoundError
from pkgallery.services.reserved_namespaces import ReservedNamespaceService
from tests.factories import (
    create_namespace,
    create_registration,
    create_user,
    make_execute_result,
)


class TestNamespaceMatching:
    """Tests for ReservedNamespace.matches."""

    def test_prefix_match_is_case_insensitive(self):
        namespace = create_namespace("Contoso.")
        assert namespace.matches("contoso.Tools")
        assert not namespace.matches("Fabrikam.Tools")

    def test_exact_namespace_needs_full_id(self):
        namespace = create_namespace("Contoso", is_prefix=False)
        assert namespace.matches("CONTOSO")
        assert not namespace.matches("Contoso.Tools")


class TestDeleteOwner:
    """Tests for delete_owner_from_reserved_namespace."""

    @pytest.mark.asyncio
    async def test_missing_namespace_raises(self, mock_session):
        mock_session.execute.return_value = make_execute_result(one=None)

        with pytest.raises(NotFoundError) as exc_info:
            await ReservedNamespaceService(mock_session).delete_owner_from_reserved_namespace(
                "Missing.", "TestUser"
            )

        assert exc_info.value.identifier == "Missing."

    @pytest.mark.asyncio
    async def test_non_owner_raises(self, mock_session):
        namespace = create_namespace("Contoso.", create_user("Owner"))
        mock_session.execute.return_value = make_execute_result(one=namespace)

        with pytest.raises(InvalidArgumentError):
            await ReservedNamespaceService(mock_session).delete_owner_from_reserved_namespace(
                "Contoso.", "Stranger"
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("prefix", ["", "   ", None])
    async def test_blank_prefix_raises(self, mock_session, prefix):
        with pytest.raises(InvalidArgumentError):
            await ReservedNamespaceService(mock_session).delete_owner_from_reserved_namespace(
                prefix, "TestUser"
            )
        mock_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_last_owner_releases_namespace(self, mock_session):
        """Removing the last owner detaches registrations and deletes the row."""
        owner = create_user("Owner")
        registration = create_registration("Contoso.Tools", owner)
        namespace = create_namespace("Contoso.", owner)
        namespace.package_registrations.append(registration)
        registration.is_verified = True
        mock_session.execute.return_value = make_execute_result(one=namespace)

        await ReservedNamespaceService(mock_session).delete_owner_from_reserved_namespace(
            "contoso.", "owner"
        )

        assert namespace.owners == []
        assert owner.reserved_namespaces == []
        assert registration.reserved_namespaces == []
        assert registration.is_verified is False
        mock_session.delete.assert_awaited_once_with(namespace)
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_remaining_owner_keeps_namespace(self, mock_session):
        """With owners left, only registrations covered by the removed owner are detached."""
        owner = create_user("Owner")
        other = create_user("Other")
        mine = create_registration("Contoso.Mine", owner)
        theirs = create_registration("Contoso.Theirs", other)
        namespace = create_namespace("Contoso.", owner, other)
        namespace.package_registrations.extend([mine, theirs])
        mock_session.execute.return_value = make_execute_result(one=namespace)

        await ReservedNamespaceService(mock_session).delete_owner_from_reserved_namespace(
            "Contoso.", "Owner", commit=False
        )

        assert namespace.owners == [other]
        assert namespace.package_registrations == [theirs]
        mock_session.delete.assert_not_awaited()
        mock_session.commit.assert_not_awaited()


class TestAddOwner:
    """Tests for add_owner_to_reserved_namespace."""

    @pytest.mark.asyncio
    async def test_add_owner_verifies_matching_packages(self, mock_session):
        user = create_user("NewOwner")
        matching = create_registration("Contoso.Tools", user)
        other = create_registration("Fabrikam.Tools", user)
        namespace = create_namespace("Contoso.")
        mock_session.execute.side_effect = [
            make_execute_result(one=namespace),
            make_execute_result(one=user),
        ]

        await ReservedNamespaceService(mock_session).add_owner_to_reserved_namespace(
            "Contoso.", "NewOwner"
        )

        assert namespace.owners == [user]
        assert namespace.package_registrations == [matching]
        assert matching.is_verified is True
        assert other.is_verified is False
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_account_raises(self, mock_session):
        mock_session.execute.side_effect = [
            make_execute_result(one=create_namespace("Contoso.")),
            make_execute_result(one=None),
        ]

        with pytest.raises(NotFoundError) as exc_info:
            await ReservedNamespaceService(mock_session).add_owner_to_reserved_namespace(
                "Contoso.", "Nobody"
            )

        assert exc_info.value.resource == "Account"
