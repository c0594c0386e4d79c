from datetime import datetime, timezone
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from otp_auth.database import session_scope
from otp_auth.errors import ConflictError, InternalError
from otp_auth.models.user import UserEntry

LOGGER = logging.getLogger(__name__)


class UserStore:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def find_by_phone(self, phone: str) -> UserEntry | None:
        try:
            with session_scope(self._session_factory) as session:
                result = session.execute(select(UserEntry).where(UserEntry.phone == phone))
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            LOGGER.error("Failed to look up user by phone=%s: %s", phone, exc)
            raise InternalError("Identity store unavailable") from exc

    def get_user(self, user_id: int) -> UserEntry | None:
        try:
            with session_scope(self._session_factory) as session:
                return session.get(UserEntry, user_id)
        except SQLAlchemyError as exc:
            LOGGER.error("Failed to load user id=%s: %s", user_id, exc)
            raise InternalError("Identity store unavailable") from exc

    def create(self, phone: str) -> UserEntry:
        try:
            with session_scope(self._session_factory) as session:
                entry = UserEntry(phone=phone, registered_at=datetime.now(timezone.utc))
                session.add(entry)
                session.flush()
                return entry
        except IntegrityError as exc:
            raise ConflictError(f"User with phone {phone} already exists") from exc
        except SQLAlchemyError as exc:
            LOGGER.error("Failed to create user phone=%s: %s", phone, exc)
            raise InternalError("Identity store unavailable") from exc

    def ensure_user_for_phone(self, phone: str) -> tuple[UserEntry, bool]:
        """Find the user for ``phone`` or create it.

        Returns the entry and whether this call created it. Losing a creation
        race surfaces as a unique-constraint conflict, after which the winner's
        row is read back.
        """
        entry = self.find_by_phone(phone)
        if entry is not None:
            return entry, False
        try:
            return self.create(phone), True
        except ConflictError:
            LOGGER.info("Concurrent registration for phone=%s, re-reading", phone)
        entry = self.find_by_phone(phone)
        if entry is None:
            raise InternalError(f"User for phone {phone} vanished after conflict")
        return entry, False

    def list_users(self, search: str, offset: int, limit: int) -> tuple[list[UserEntry], int]:
        conditions = []
        if search:
            conditions.append(UserEntry.phone.contains(search, autoescape=True))
        try:
            with session_scope(self._session_factory) as session:
                items = (
                    session.execute(
                        select(UserEntry)
                        .where(*conditions)
                        .order_by(UserEntry.id)
                        .offset(offset)
                        .limit(limit)
                    )
                    .scalars()
                    .all()
                )
                total = session.execute(
                    select(func.count()).select_from(UserEntry).where(*conditions)
                ).scalar_one()
                return list(items), total
        except (SQLAlchemyError, OverflowError) as exc:
            LOGGER.error("Failed to list users: %s", exc)
            raise InternalError("Identity store unavailable") from exc
