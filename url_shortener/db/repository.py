"""
URL Repository

Every query the service layer runs against the urls and analytics tables.
No business rules live here.

Design Decisions:
- SQLAlchemy statements only (always parameterized, never string-built SQL)
- Each write commits on its own; on failure the session is rolled back and
  a DatabaseError is raised, so one failed write never poisons the next
- Unique-constraint violations on insert surface as DuplicateShortCodeError,
  the last-resort guard for races between the uniqueness check and the insert
- Access counter is incremented with a single UPDATE (no read-modify-write)
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from url_shortener.core.exceptions import DatabaseError, DuplicateShortCodeError
from url_shortener.core.validators import utcnow
from url_shortener.db.models import AccessRecord, ShortURL

logger = logging.getLogger(__name__)


class URLRepository:
    """Data access for short URLs and their access records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _rollback(self) -> None:
        try:
            await self.session.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback failed")

    async def insert_url(self, short_url: ShortURL) -> ShortURL:
        """
        Persist a new short URL.

        Raises:
            DuplicateShortCodeError: If the short code already exists
            DatabaseError: On any other storage failure
        """
        short_code = short_url.short_code
        try:
            self.session.add(short_url)
            await self.session.commit()
            await self.session.refresh(short_url)
            return short_url
        except IntegrityError as e:
            await self._rollback()
            raise DuplicateShortCodeError(short_code, original_error=e)
        except SQLAlchemyError as e:
            await self._rollback()
            raise DatabaseError(f"Failed to save URL: {e}", original_error=e)

    async def find_by_code(self, short_code: str) -> Optional[ShortURL]:
        try:
            statement = (
                select(ShortURL)
                .where(ShortURL.short_code == short_code)
                .execution_options(populate_existing=True)
            )
            result = await self.session.execute(statement)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to get URL by short code: {e}", original_error=e)

    async def code_exists(self, short_code: str) -> bool:
        try:
            statement = select(exists().where(ShortURL.short_code == short_code))
            result = await self.session.execute(statement)
            return bool(result.scalar())
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to check short code {short_code}: {e}", original_error=e)

    async def update_access_info(self, short_code: str, accessed_at: Optional[datetime] = None) -> None:
        """Increment access_count and stamp last_accessed atomically."""
        statement = (
            update(ShortURL)
            .where(ShortURL.short_code == short_code)
            .values(
                access_count=ShortURL.access_count + 1,
                last_accessed=accessed_at or utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        try:
            await self.session.execute(statement)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self._rollback()
            raise DatabaseError(f"Failed to update access info: {e}", original_error=e)

    async def deactivate(self, short_code: str) -> None:
        statement = (
            update(ShortURL)
            .where(ShortURL.short_code == short_code)
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        try:
            await self.session.execute(statement)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self._rollback()
            raise DatabaseError(f"Failed to deactivate URL: {e}", original_error=e)
        logger.info("URL deactivated: %s", short_code)

    async def insert_access_record(self, record: AccessRecord) -> AccessRecord:
        try:
            self.session.add(record)
            await self.session.commit()
            return record
        except SQLAlchemyError as e:
            await self._rollback()
            raise DatabaseError(f"Failed to record analytics: {e}", original_error=e)

    async def list_access_records(self, short_code: str) -> List[AccessRecord]:
        """Access records for a code, most recent first."""
        try:
            statement = (
                select(AccessRecord)
                .where(AccessRecord.short_code == short_code)
                .order_by(AccessRecord.accessed_at.desc(), AccessRecord.id.desc())
            )
            result = await self.session.execute(statement)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to get click data: {e}", original_error=e)
