"""Product telemetry events.

Events are handed to a ``TelemetryClient``. The default client writes them
to the standard logging system under the configured trace source; shipping
them to an analytics backend is left to other client implementations.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from pkgallery.core.errors import InvalidArgumentError, require
from pkgallery.services.authentication import Claims

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from pkgallery.core.config import TelemetrySettings
    from pkgallery.db.models import Account, Package
    from pkgallery.services.account_deletion import DeletionResult
    from pkgallery.services.authentication import Identity

logger = logging.getLogger(__name__)

DEFAULT_TRACE_SOURCE = "pkgallery.telemetry"


class Events:
    """Telemetry event names."""

    ODATA_QUERY_FILTER = "ODataQueryFilter"
    PACKAGE_PUSH = "PackagePush"
    CREATE_PACKAGE_VERIFICATION_KEY = "CreatePackageVerificationKey"
    VERIFY_PACKAGE_KEY = "VerifyPackageKey"
    PACKAGE_README_CHANGED = "PackageReadMeChanged"
    PACKAGE_PUSH_NAMESPACE_CONFLICT = "PackagePushNamespaceConflict"
    ACCOUNT_DELETED = "AccountDeleted"


class ReadMeState(str, Enum):
    """What an edit did to a package readme."""

    UNCHANGED = "unchanged"
    CHANGED = "changed"
    DELETED = "deleted"


class TelemetryClient(Protocol):
    def track_event(
        self,
        name: str,
        properties: Mapping[str, str],
        metrics: Mapping[str, float],
    ) -> None: ...

    def track_exception(self, exception: BaseException, properties: Mapping[str, str]) -> None: ...


class LoggingTelemetryClient:
    """Telemetry client that emits one log record per event."""

    def __init__(self, trace_source: str = DEFAULT_TRACE_SOURCE) -> None:
        self._logger = logging.getLogger(trace_source)

    def track_event(
        self,
        name: str,
        properties: Mapping[str, str],
        metrics: Mapping[str, float],
    ) -> None:
        self._logger.info(
            "event=%s properties=%s metrics=%s",
            name,
            dict(properties),
            dict(metrics),
            extra={"telemetry_event": name},
        )

    def track_exception(self, exception: BaseException, properties: Mapping[str, str]) -> None:
        self._logger.warning(
            "exception=%s properties=%s",
            type(exception).__name__,
            dict(properties),
            exc_info=exception,
        )


class TelemetryService:
    """Builds gallery telemetry events and forwards them to a client."""

    # Property names
    CLIENT_VERSION = "ClientVersion"
    PROTOCOL_VERSION = "ProtocolVersion"
    CLIENT_INFORMATION = "ClientInformation"
    IS_SCOPED = "IsScoped"
    AUTHENTICATION_METHOD = "AuthenticationMethod"
    ACCOUNT_CREATION_DATE = "AccountCreationDate"
    PACKAGE_ID = "PackageId"
    PACKAGE_VERSION = "PackageVersion"
    CALL_CONTEXT = "CallContext"
    IS_ENABLED = "IsEnabled"
    IS_ALLOWED = "IsAllowed"
    QUERY_PATTERN = "QueryPattern"
    README_SOURCE_TYPE = "ReadMeSourceType"
    README_STATE = "ReadMeState"
    STATUS_CODE = "StatusCode"
    ACCOUNT_NAME = "AccountName"
    DESCRIPTION = "Description"

    def __init__(
        self,
        client: TelemetryClient,
        trace_logger: logging.Logger | None = None,
    ) -> None:
        if client is None:
            raise InvalidArgumentError("client")
        self._client = client
        self._trace_logger = trace_logger or logging.getLogger(DEFAULT_TRACE_SOURCE)

    def track_odata_query_filter_event(
        self,
        call_context: str,
        is_enabled: bool,
        is_allowed: bool,
        query_pattern: str,
    ) -> None:
        self._track(
            Events.ODATA_QUERY_FILTER,
            {
                self.CALL_CONTEXT: call_context,
                self.IS_ENABLED: str(is_enabled),
                self.IS_ALLOWED: str(is_allowed),
                self.QUERY_PATTERN: query_pattern,
            },
        )

    def track_package_push_event(self, package: Package, user: Account, identity: Identity) -> None:
        require(package, "package")
        require(user, "user")
        require(identity, "identity")

        properties = self._identity_properties(user, identity)
        properties[self.PACKAGE_ID] = package.id or ""
        properties[self.PACKAGE_VERSION] = package.version
        self._track(Events.PACKAGE_PUSH, properties)

    def track_package_readme_change_event(
        self,
        package: Package,
        readme_source_type: str,
        readme_state: ReadMeState,
    ) -> None:
        require(package, "package")
        if not readme_source_type:
            raise InvalidArgumentError("readme_source_type")

        self._track(
            Events.PACKAGE_README_CHANGED,
            {
                self.PACKAGE_ID: package.id or "",
                self.PACKAGE_VERSION: package.version,
                self.README_SOURCE_TYPE: readme_source_type,
                self.README_STATE: ReadMeState(readme_state).value,
            },
        )

    def track_create_package_verification_key_event(
        self,
        package_id: str,
        package_version: str,
        user: Account,
        identity: Identity,
    ) -> None:
        self._track_package_key_event(
            Events.CREATE_PACKAGE_VERIFICATION_KEY, package_id, package_version, user, identity
        )

    def track_package_push_namespace_conflict_event(
        self,
        package_id: str,
        package_version: str,
        user: Account,
        identity: Identity,
    ) -> None:
        self._track_package_key_event(
            Events.PACKAGE_PUSH_NAMESPACE_CONFLICT, package_id, package_version, user, identity
        )

    def track_verify_package_key_event(
        self,
        package_id: str,
        package_version: str,
        user: Account,
        identity: Identity,
        status_code: int,
    ) -> None:
        self._track_package_key_event(
            Events.VERIFY_PACKAGE_KEY,
            package_id,
            package_version,
            user,
            identity,
            {self.STATUS_CODE: str(status_code)},
        )

    def track_account_deleted_event(self, result: DeletionResult) -> None:
        require(result, "result")

        properties = {
            self.ACCOUNT_NAME: result.account_name,
            self.DESCRIPTION: result.description,
        }
        metrics: dict[str, float] = {}
        if result.audit_record is not None:
            metrics["DeletedAccountKey"] = float(result.audit_record.deleted_account_key)
        self._track(Events.ACCOUNT_DELETED, properties, metrics)

    def trace_exception(self, exception: BaseException) -> None:
        """Record an exception for support investigations (warning level)."""
        require(exception, "exception")
        self._trace_logger.warning(
            "%s: %s",
            type(exception).__name__,
            exception,
        )

    def track_exception(
        self,
        exception: BaseException,
        add_properties: Callable[[dict[str, str]], None] | None = None,
    ) -> None:
        """Report an exception, letting the caller attach extra properties."""
        require(exception, "exception")

        properties: dict[str, str] = {}
        if add_properties is not None:
            add_properties(properties)
        self._client.track_exception(exception, properties)

    def _track_package_key_event(
        self,
        event_name: str,
        package_id: str,
        package_version: str,
        user: Account,
        identity: Identity,
        extra: Mapping[str, str] | None = None,
    ) -> None:
        require(user, "user")
        require(identity, "identity")

        properties = self._identity_properties(user, identity)
        properties[self.PACKAGE_ID] = package_id
        properties[self.PACKAGE_VERSION] = package_version
        if extra:
            properties.update(extra)
        self._track(event_name, properties)

    def _identity_properties(self, user: Account, identity: Identity) -> dict[str, str]:
        properties: dict[str, str] = {}

        for claim_type, name in (
            (Claims.CLIENT_VERSION, self.CLIENT_VERSION),
            (Claims.PROTOCOL_VERSION, self.PROTOCOL_VERSION),
            (Claims.CLIENT_INFORMATION, self.CLIENT_INFORMATION),
        ):
            value = identity.find_first(claim_type)
            if value is not None:
                properties[name] = value

        properties[self.IS_SCOPED] = str(identity.has_claim(Claims.SCOPE))
        properties[self.AUTHENTICATION_METHOD] = identity.authentication_type
        if user.created_at is not None:
            properties[self.ACCOUNT_CREATION_DATE] = user.created_at.date().isoformat()
        return properties

    def _track(
        self,
        event_name: str,
        properties: Mapping[str, str],
        metrics: Mapping[str, float] | None = None,
    ) -> None:
        self._client.track_event(event_name, properties, metrics or {})


def create_telemetry_service(settings: TelemetrySettings) -> TelemetryService | None:
    """Logging-backed telemetry service, or None when telemetry is disabled."""
    if not settings.enabled:
        logger.debug("Telemetry disabled")
        return None
    return TelemetryService(
        LoggingTelemetryClient(settings.trace_source),
        trace_logger=logging.getLogger(settings.trace_source),
    )
