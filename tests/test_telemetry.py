"""Tests for telemetry events."""

import logging
from unittest.mock import MagicMock

import pytest

from pkgallery.core.config import TelemetrySettings
from pkgallery.core.errors import InvalidArgumentError
from pkgallery.services.account_deletion import DeletionResult
from pkgallery.services.authentication import (
    AuthenticationTypes,
    Claim,
    Claims,
    create_identity,
)
from pkgallery.services.telemetry import (
    Events,
    LoggingTelemetryClient,
    ReadMeState,
    TelemetryService,
    create_telemetry_service,
)
from tests.factories import create_registration, create_user


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def service(client):
    return TelemetryService(client)


@pytest.fixture
def user():
    return create_user("testuser")


@pytest.fixture
def identity(user):
    return create_identity(
        user,
        AuthenticationTypes.API_KEY,
        Claim(Claims.CLIENT_VERSION, "6.0.0"),
        Claim(Claims.PROTOCOL_VERSION, "4.1.0"),
    )


@pytest.fixture
def package(user):
    return create_registration("TestPackage", user, versions=("1.2.3",)).packages[0]


def _event_names():
    return [v for k, v in vars(Events).items() if not k.startswith("_")]


class TestEventNames:
    """Each tracking method emits its own event exactly once."""

    @pytest.fixture
    def tracked(self, service, client, package, user, identity):
        service.track_odata_query_filter_event("callContext", True, True, "queryPattern")
        service.track_package_push_event(package, user, identity)
        service.track_create_package_verification_key_event("TestPackage", "1.2.3", user, identity)
        service.track_verify_package_key_event("TestPackage", "1.2.3", user, identity, 0)
        service.track_package_readme_change_event(package, "written", ReadMeState.CHANGED)
        service.track_package_push_namespace_conflict_event("TestPackage", "1.2.3", user, identity)
        service.track_account_deleted_event(
            DeletionResult(account_name="testuser", description="deleted", success=True)
        )
        return [call.args[0] for call in client.track_event.call_args_list]

    def test_every_event_is_tracked_once(self, tracked):
        assert sorted(tracked) == sorted(_event_names())

    def test_event_names(self):
        assert set(_event_names()) == {
            "ODataQueryFilter",
            "PackagePush",
            "CreatePackageVerificationKey",
            "VerifyPackageKey",
            "PackageReadMeChanged",
            "PackagePushNamespaceConflict",
            "AccountDeleted",
        }


class TestProperties:
    """Tests for event properties."""

    def test_push_event_properties(self, service, client, package, user, identity):
        service.track_package_push_event(package, user, identity)

        name, properties, metrics = client.track_event.call_args.args
        assert name == "PackagePush"
        assert properties["ClientVersion"] == "6.0.0"
        assert properties["ProtocolVersion"] == "4.1.0"
        assert "ClientInformation" not in properties
        assert properties["IsScoped"] == "False"
        assert properties["AuthenticationMethod"] == "ApiKey"
        assert properties["AccountCreationDate"] == "2020-01-15"
        assert properties["PackageId"] == "TestPackage"
        assert properties["PackageVersion"] == "1.2.3"
        assert metrics == {}

    def test_verify_key_includes_status_code(self, service, client, user, identity):
        service.track_verify_package_key_event("Pkg", "1.0.0", user, identity, 403)

        properties = client.track_event.call_args.args[1]
        assert properties["StatusCode"] == "403"

    def test_account_deleted_metrics(self, service, client):
        record = MagicMock(deleted_account_key=17)
        service.track_account_deleted_event(
            DeletionResult(account_name="u", description="d", success=True, audit_record=record)
        )

        _, properties, metrics = client.track_event.call_args.args
        assert properties == {"AccountName": "u", "Description": "d"}
        assert metrics == {"DeletedAccountKey": 17.0}


class TestRequiredArguments:
    """Tests for argument checks."""

    def test_client_required(self):
        with pytest.raises(InvalidArgumentError):
            TelemetryService(None)

    def test_push_requires_package(self, service, user, identity):
        with pytest.raises(InvalidArgumentError):
            service.track_package_push_event(None, user, identity)

    def test_push_requires_user(self, service, package, identity):
        with pytest.raises(InvalidArgumentError):
            service.track_package_push_event(package, None, identity)

    def test_push_requires_identity(self, service, package, user):
        with pytest.raises(InvalidArgumentError):
            service.track_package_push_event(package, user, None)

    def test_readme_requires_package(self, service):
        with pytest.raises(InvalidArgumentError):
            service.track_package_readme_change_event(None, "written", ReadMeState.CHANGED)

    @pytest.mark.parametrize("source_type", ["", None])
    def test_readme_requires_source_type(self, service, package, source_type):
        with pytest.raises(InvalidArgumentError):
            service.track_package_readme_change_event(package, source_type, ReadMeState.CHANGED)

    def test_verification_key_requires_user(self, service, identity):
        with pytest.raises(InvalidArgumentError):
            service.track_create_package_verification_key_event("Pkg", "1.0.0", None, identity)

    def test_verify_key_requires_identity(self, service, user):
        with pytest.raises(InvalidArgumentError):
            service.track_verify_package_key_event("Pkg", "1.0.0", user, None, 200)


class TestExceptions:
    """Tests for trace_exception and track_exception."""

    def test_trace_exception_requires_exception(self, service):
        with pytest.raises(InvalidArgumentError):
            service.trace_exception(None)

    def test_trace_exception_logs_warning_with_type(self, service, caplog):
        with caplog.at_level(logging.WARNING, logger="pkgallery.telemetry"):
            service.trace_exception(RuntimeError("Example"))

        assert len(caplog.records) == 1
        assert caplog.records[0].levelno == logging.WARNING
        assert "RuntimeError" in caplog.records[0].getMessage()

    def test_track_exception_collects_properties(self, service, client):
        error = ValueError("bad")

        service.track_exception(error, lambda props: props.update({"Operation": "push"}))

        client.track_exception.assert_called_once_with(error, {"Operation": "push"})


class TestLoggingTelemetryClient:
    """Tests for the log-backed client."""

    def test_event_is_logged(self, caplog):
        client = LoggingTelemetryClient("pkgallery.telemetry.test")

        with caplog.at_level(logging.INFO, logger="pkgallery.telemetry.test"):
            client.track_event("PackagePush", {"PackageId": "Pkg"}, {})

        assert "event=PackagePush" in caplog.text
        assert caplog.records[0].telemetry_event == "PackagePush"

    def test_factory_respects_enabled_flag(self):
        assert create_telemetry_service(TelemetrySettings(enabled=False)) is None
        assert isinstance(create_telemetry_service(TelemetrySettings()), TelemetryService)
