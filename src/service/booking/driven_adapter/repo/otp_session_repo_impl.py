from typing import AsyncContextManager, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.database.orm_db_setting import dialect_insert
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_otp_session_repo import IOtpSessionRepo
from src.service.booking.domain.clock import ensure_utc, utc_now
from src.service.booking.domain.entity.otp_session_entity import OtpSession
from src.service.booking.domain.enum.otp_state import OtpState
from src.service.booking.driven_adapter.model.otp_session_model import OtpSessionModel


class OtpSessionRepoImpl(IOtpSessionRepo):
    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory

    @staticmethod
    def _to_entity(model: OtpSessionModel) -> OtpSession:
        return OtpSession(
            id=model.id,
            tenant_id=model.tenant_id,
            phone=model.phone,
            state=OtpState(model.state),
            code_hash=model.code_hash,
            code_expires_at=ensure_utc(model.code_expires_at),
            resend_available_at=ensure_utc(model.resend_available_at),
            verified_at=ensure_utc(model.verified_at),
            session_expires_at=ensure_utc(model.session_expires_at),
            attempts=model.attempts,
        )

    @staticmethod
    async def _fetch(session: AsyncSession, *, tenant_id: int, phone: str) -> Optional[OtpSessionModel]:
        return await session.scalar(
            select(OtpSessionModel).where(
                OtpSessionModel.tenant_id == tenant_id, OtpSessionModel.phone == phone
            )
        )

    @Logger.io
    async def get(self, *, tenant_id: int, phone: str) -> Optional[OtpSession]:
        async with self.session_factory() as session:
            model = await self._fetch(session, tenant_id=tenant_id, phone=phone)
            return self._to_entity(model) if model else None

    @Logger.io
    async def save(self, *, session: OtpSession) -> OtpSession:
        values = {
            'state': session.state.value,
            'code_hash': session.code_hash,
            'code_expires_at': session.code_expires_at,
            'resend_available_at': session.resend_available_at,
            'verified_at': session.verified_at,
            'session_expires_at': session.session_expires_at,
            'attempts': session.attempts,
            'updated_at': utc_now(),
        }
        async with self.session_factory() as db_session:
            async with db_session.begin():
                await db_session.execute(
                    dialect_insert(db_session, OtpSessionModel)
                    .values(tenant_id=session.tenant_id, phone=session.phone, **values)
                    .on_conflict_do_update(index_elements=['tenant_id', 'phone'], set_=values)
                )
                model = await self._fetch(
                    db_session, tenant_id=session.tenant_id, phone=session.phone
                )
                assert model is not None
                return self._to_entity(model)
