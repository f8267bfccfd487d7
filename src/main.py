"""
Production FastAPI Application

Booking API plus the background sweep that expires abandoned booking locks.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from src.platform.app_factory import create_app
from src.platform.config.core_setting import settings
from src.platform.config.di import container
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.database.orm_db_setting import (
    create_db_and_tables,
    dispose_engine,
    get_engine,
    is_sqlite_url,
)
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig
from src.service.booking.app.command.expire_booking_locks_use_case import (
    ExpireBookingLocksUseCase,
)


async def sweep_expired_locks(*, interval_seconds: float) -> None:
    """Return capacity held by locks past their TTL, forever"""
    use_case = ExpireBookingLocksUseCase(
        booking_lock_command_repo=container.booking_lock_command_repo()
    )
    while True:
        try:
            await use_case.execute()
        except Exception as e:
            Logger.base.error(f'❌ [LOCK-SWEEP] Sweep failed: {e}')
        await anyio.sleep(interval_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage unified application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Booking Service] Starting up...')

    tracing = TracingConfig()
    tracing.setup()
    Logger.base.info(
        f'📊 [Booking Service] OpenTelemetry tracing configured (exporting={tracing.is_exporting})'
    )

    container.wire(modules=WIRE_MODULES)
    Logger.base.info('🔌 [Booking Service] Dependency injection wired')

    engine = get_engine()
    tracing.instrument_sqlalchemy(engine=engine)
    Logger.base.info('🗄️  [Booking Service] Database engine ready + instrumented')

    # Postgres schemas come from alembic; a local sqlite file is created on the fly
    if is_sqlite_url(settings.DATABASE_URL_ASYNC):
        await create_db_and_tables()

    async with anyio.create_task_group() as tg:
        tg.start_soon(
            lambda: sweep_expired_locks(interval_seconds=settings.LOCK_SWEEP_INTERVAL_SECONDS)
        )
        Logger.base.info('✅ [Booking Service] Ready to serve requests')

        yield

        Logger.base.info('🛑 [Booking Service] Shutting down...')
        tg.cancel_scope.cancel()

    await dispose_engine()
    Logger.base.info('🗄️  [Booking Service] Database engine disposed')

    tracing.shutdown()
    container.unwire()

    Logger.base.info('👋 [Booking Service] Shutdown complete')


app = create_app(lifespan=lifespan)


@app.get('/')
async def root() -> RedirectResponse:
    """Root endpoint - redirect to docs."""
    return RedirectResponse(url='/docs')
