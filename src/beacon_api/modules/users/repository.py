"""
User Repository

Database operations for durable users and pending signups.
"""

import logging
import uuid
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from beacon_api.modules.users.models import PendingUser, User, UserRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> User | None:
        """Get a user by ID."""
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """
        Get a user by (already normalized) email address.

        Args:
            db: Database session
            email: Lower-cased, trimmed email address

        Returns:
            User instance or None if not found
        """
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    @staticmethod
    async def email_exists(db: AsyncSession, email: str) -> bool:
        """Check if an email address already belongs to a user."""
        return await UserRepository.get_by_email(db, email) is not None

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: UserRole = UserRole.USER,
        is_verified: bool = False,
        sport: str | None = None,
    ) -> User:
        """Create and commit a user record."""
        user = User(
            name=name,
            email=email,
            password_hash=password_hash,
            role=role,
            is_verified=is_verified,
            sport=sport,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)

        logger.info(f"Created user: {user.id} - {user.email} ({user.role.value})")
        return user

    @staticmethod
    async def list_users(
        db: AsyncSession,
        *,
        role: UserRole | None = None,
        search: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[User], int]:
        """
        List users newest first with optional role and name/email search.

        Returns:
            Tuple of (users page, total matching count)
        """
        conditions = []
        if role:
            conditions.append(User.role == role)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

        count_result = await db.execute(select(func.count(User.id)).where(*conditions))
        total = count_result.scalar() or 0

        result = await db.execute(
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def count_by_role(db: AsyncSession) -> dict[UserRole, int]:
        """Count users grouped by role. Roles with no users map to 0."""
        result = await db.execute(select(User.role, func.count(User.id)).group_by(User.role))
        counts = {role: 0 for role in UserRole}
        for role, count in result.all():
            counts[role] = count
        return counts

    @staticmethod
    async def count_created_since(db: AsyncSession, since: datetime) -> int:
        """Count users created at or after ``since``."""
        result = await db.execute(select(func.count(User.id)).where(User.created_at >= since))
        return result.scalar() or 0

    @staticmethod
    async def created_at_since(db: AsyncSession, since: datetime) -> list[datetime]:
        """Creation timestamps of users created at or after ``since``."""
        result = await db.execute(select(User.created_at).where(User.created_at >= since))
        return list(result.scalars().all())

    @staticmethod
    async def update(db: AsyncSession, user: User, **fields) -> User:
        """Apply field updates to a user and commit."""
        for key, value in fields.items():
            setattr(user, key, value)
        await db.commit()
        await db.refresh(user)
        return user

    @staticmethod
    async def delete(db: AsyncSession, user: User) -> None:
        """Delete a user. Applications and payments cascade at the database level."""
        await db.delete(user)
        await db.commit()
        logger.info(f"Deleted user: {user.id} - {user.email}")


class PendingUserRepository:
    """Repository for pending (unverified) signups."""

    @staticmethod
    async def upsert(
        db: AsyncSession,
        *,
        name: str,
        email: str,
        password_hash: str,
        otp_code: str,
        otp_expires_at: datetime,
        sport: str | None = None,
    ) -> None:
        """
        Insert or replace the pending signup for ``email``.

        A repeated signup overwrites every field and resets ``created_at``,
        restarting the retention window.
        """
        values = {
            "name": name,
            "password_hash": password_hash,
            "otp_code": otp_code,
            "otp_expires_at": otp_expires_at,
            "sport": sport,
        }
        stmt = insert(PendingUser).values(id=uuid.uuid4(), email=email, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[PendingUser.email],
            set_={**values, "created_at": func.now()},
        )
        await db.execute(stmt)
        await db.commit()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> PendingUser | None:
        """Get the pending signup for a normalized email."""
        result = await db.execute(select(PendingUser).where(PendingUser.email == email))
        return result.scalar_one_or_none()

    @staticmethod
    async def promote(db: AsyncSession, pending: PendingUser) -> User:
        """
        Turn a pending signup into a verified user in a single transaction.

        The User insert and the PendingUser delete are committed together.
        On any failure the transaction is rolled back and the pending record
        is left intact.

        Args:
            db: Database session
            pending: The pending signup, loaded in this session

        Returns:
            The created User
        """
        user = User(
            name=pending.name,
            email=pending.email,
            password_hash=pending.password_hash,
            sport=pending.sport,
            role=UserRole.USER,
            is_verified=True,
        )

        try:
            db.add(user)
            await db.delete(pending)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        await db.refresh(user)
        logger.info(f"Promoted pending signup to user: {user.id} - {user.email}")
        return user

    @staticmethod
    async def purge_created_before(db: AsyncSession, cutoff: datetime) -> int:
        """
        Delete pending signups created before ``cutoff``.

        Returns:
            Number of rows deleted
        """
        result = await db.execute(delete(PendingUser).where(PendingUser.created_at < cutoff))
        await db.commit()
        return result.rowcount or 0
