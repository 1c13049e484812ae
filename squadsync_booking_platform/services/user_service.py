"""
User service for handling user-related operations.
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from ..config import get_settings
from ..models.user import User, UserRole, UserStatus
from ..schemas.auth import UserProfileUpdate, UserRegistration
from ..utils.auth import get_password_hash
from ..utils.exceptions import AlreadyExistsError, UserNotFoundError, ValidationError
from ..utils.logging_config import log_business_event, log_security_event

logger = logging.getLogger(__name__)


class UserService:
    """Service class for user operations."""

    def __init__(self, db: AsyncSession):
        """
        Initialize the user service.

        Args:
            db: Database session
        """
        self.db = db

    async def create_user(
        self,
        user_data: UserRegistration,
        role: UserRole = UserRole.STUDENT
    ) -> User:
        """
        Create a new user.

        Args:
            user_data: User registration data
            role: Role of the new account

        Returns:
            The created user

        Raises:
            AlreadyExistsError: If email already exists
        """
        email = user_data.email.lower()
        if await self.get_user_by_email(email):
            raise AlreadyExistsError("user", "email", email)

        user = User(
            email=email,
            full_name=user_data.full_name,
            phone=user_data.phone,
            student_id=user_data.student_id,
            role=role,
            status=UserStatus.ACTIVE,
            is_representative=False,
            password_hash=get_password_hash(user_data.password),
        )

        try:
            self.db.add(user)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise AlreadyExistsError("user", "email", email)

        log_business_event("user_registered", {"role": role.value}, user_id=str(user.id))
        return user

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """
        Get a user by ID.

        Returns:
            The user if found, None otherwise
        """
        return await self.db.get(User, user_id)

    async def get_user(self, user_id: UUID) -> User:
        """
        Get a user by ID.

        Raises:
            UserNotFoundError: If user is not found
        """
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate a user with email and password.

        Suspended accounts are returned too; callers decide how to reject them.

        Returns:
            The user if the credentials match, None otherwise
        """
        user = await self.get_user_by_email(email)
        if not user:
            log_security_event("login_unknown_email", {"email": email})
            return None

        if not user.verify_password(password):
            log_security_event("login_bad_password", {"email": email}, user_id=str(user.id))
            return None

        return user

    async def update_user_profile(self, user_id: UUID, update_data: UserProfileUpdate) -> User:
        """Update a user's profile; only provided fields change."""
        user = await self.get_user(user_id)

        for field, value in update_data.model_dump(exclude_unset=True).items():
            setattr(user, field, value)

        await self.db.commit()
        return user

    async def change_password(
        self,
        user_id: UUID,
        current_password: str,
        new_password: str
    ) -> bool:
        """
        Change a user's password.

        Returns:
            True if password changed successfully, False if the current password is wrong
        """
        user = await self.get_user(user_id)

        if not user.verify_password(current_password):
            return False

        user.set_password(new_password)
        await self.db.commit()
        log_security_event("password_changed", {}, severity="INFO", user_id=str(user.id))
        return True

    # Administration

    async def list_users(
        self,
        role: Optional[UserRole] = None,
        status: Optional[UserStatus] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[User], int]:
        """
        List users with optional filters, ordered by name.

        Args:
            search: Matches name, email or student ID (case-insensitive)
        """
        conditions = []
        if role is not None:
            conditions.append(User.role == role)
        if status is not None:
            conditions.append(User.status == status)
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(
                or_(
                    func.lower(User.full_name).like(pattern),
                    func.lower(User.email).like(pattern),
                    func.lower(func.coalesce(User.student_id, "")).like(pattern),
                )
            )

        query = select(User).where(*conditions).order_by(User.full_name).limit(limit).offset(offset)
        count_query = select(func.count(User.id)).where(*conditions)

        users = (await self.db.execute(query)).scalars().all()
        total = (await self.db.execute(count_query)).scalar_one()
        return list(users), total

    async def update_role(self, user_id: UUID, role: UserRole, actor: User) -> User:
        """Change a user's role. Admins cannot change their own role."""
        user = await self.get_user(user_id)
        if user.id == actor.id:
            raise ValidationError("You cannot change your own role")

        old_role = user.role
        user.role = role
        await self.db.commit()

        log_security_event(
            "role_changed",
            {"target_user_id": str(user.id), "from": old_role.value, "to": role.value},
            user_id=str(actor.id),
        )
        return user

    async def update_status(self, user_id: UUID, status: UserStatus, actor: User) -> User:
        """Activate, suspend or park a user account. Admins cannot suspend themselves."""
        user = await self.get_user(user_id)
        if user.id == actor.id and status != UserStatus.ACTIVE:
            raise ValidationError("You cannot suspend your own account")

        old_status = user.status
        user.status = status
        await self.db.commit()

        log_security_event(
            "account_status_changed",
            {"target_user_id": str(user.id), "from": old_status.value, "to": status.value},
            user_id=str(actor.id),
        )
        return user

    async def ensure_demo_admin(
        self,
        email: Optional[str] = None,
        password: Optional[str] = None,
        full_name: Optional[str] = None,
    ) -> Tuple[User, bool]:
        """
        Create the demo admin account, or promote and reset it if it exists.

        Returns:
            Tuple of (admin user, whether it was created)
        """
        settings = get_settings()
        email = (email or settings.demo_admin_email).lower()
        password = password or settings.demo_admin_password
        full_name = full_name or settings.demo_admin_name

        user = await self.get_user_by_email(email)
        created = user is None
        if created:
            user = User(email=email, full_name=full_name, is_representative=False)
            self.db.add(user)

        user.role = UserRole.ADMIN
        user.status = UserStatus.ACTIVE
        user.set_password(password)
        await self.db.commit()

        logger.info(f"Demo admin {email} {'created' if created else 'updated'}")
        return user, created
