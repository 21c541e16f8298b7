from datetime import datetime, timezone
from typing import Optional, Tuple
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ConflictError
from app.core.security import verify_password, get_password_hash, create_access_token
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


class AuthService:
    """Authentication service for user login and token management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email.lower())
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate a user by email and password.

        Returns:
            User object if authentication successful, None otherwise
        """
        user = await self.get_user_by_email(email)
        if user is None:
            return None

        if not verify_password(password, user.password_hash):
            return None

        if not user.is_active:
            return None

        user.last_login_at = datetime.now(timezone.utc)
        await self.db.commit()
        return user

    async def create_user(
        self,
        name: str,
        email: str,
        password: str,
        role: UserRole = UserRole.USER,
    ) -> User:
        if await self.get_user_by_email(email):
            raise ConflictError("User with this email already exists")

        user = User(
            name=name,
            email=email.lower(),
            password_hash=get_password_hash(password),
            role=role.value,
            is_active=True,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"User {user.email} created with role {user.role}")
        return user

    def create_token(self, user: User) -> Tuple[str, int]:
        """Returns (access_token, expires_in_seconds)."""
        token = create_access_token(user.id, additional_claims={"role": user.role})
        return token, settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    async def bootstrap_admin(self) -> Optional[User]:
        """
        Create the first admin from FIRST_ADMIN_* settings when no users exist.

        Returns the new admin, or None when nothing was created.
        """
        if not settings.FIRST_ADMIN_EMAIL or not settings.FIRST_ADMIN_PASSWORD:
            return None

        user_count = (await self.db.execute(select(func.count(User.id)))).scalar() or 0
        if user_count:
            return None

        admin = await self.create_user(
            name=settings.FIRST_ADMIN_NAME,
            email=settings.FIRST_ADMIN_EMAIL,
            password=settings.FIRST_ADMIN_PASSWORD,
            role=UserRole.ADMIN,
        )
        logger.info(f"Bootstrap admin created: {admin.email}")
        return admin
