"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html
"""

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings
from src.platform.database.orm_db_setting import Database
from src.service.booking.driven_adapter.notification.logging_booking_notifier import (
    LoggingBookingNotifier,
)
from src.service.booking.driven_adapter.notification.logging_otp_sender import LoggingOtpSender
from src.service.booking.driven_adapter.repo.booking_command_repo_impl import (
    BookingCommandRepoImpl,
)
from src.service.booking.driven_adapter.repo.booking_lock_command_repo_impl import (
    BookingLockCommandRepoImpl,
)
from src.service.booking.driven_adapter.repo.catalog_query_repo_impl import CatalogQueryRepoImpl
from src.service.booking.driven_adapter.repo.otp_session_repo_impl import OtpSessionRepoImpl
from src.service.booking.driven_adapter.repo.package_query_repo_impl import PackageQueryRepoImpl
from src.service.booking.driven_adapter.repo.slot_query_repo_impl import SlotQueryRepoImpl
from src.service.booking.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    database = providers.Singleton(Database)

    # Repositories (stateless - use session_factory per-request)
    catalog_query_repo = providers.Singleton(
        CatalogQueryRepoImpl, session_factory=database.provided.session
    )
    slot_query_repo = providers.Singleton(
        SlotQueryRepoImpl, session_factory=database.provided.session
    )
    package_query_repo = providers.Singleton(
        PackageQueryRepoImpl, session_factory=database.provided.session
    )
    booking_lock_command_repo = providers.Singleton(
        BookingLockCommandRepoImpl, session_factory=database.provided.session
    )
    booking_command_repo = providers.Singleton(
        BookingCommandRepoImpl, session_factory=database.provided.session
    )
    otp_session_repo = providers.Singleton(
        OtpSessionRepoImpl, session_factory=database.provided.session
    )

    # Auth service
    jwt_auth = providers.Singleton(JwtAuth)

    # Outbound notifications (log-only until a tenant channel is configured)
    booking_notifier = providers.Singleton(LoggingBookingNotifier)
    otp_sender = providers.Singleton(LoggingOtpSender)


container = Container()


def setup() -> None:
    container.config_service()
    container.database()


def cleanup() -> None:
    container.reset_singletons()
