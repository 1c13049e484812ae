"""
Class service for class registration, class codes and representative login.
"""

import logging
import secrets
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models.sports_class import SportsClass
from ..models.user import User, UserRole, UserStatus
from ..schemas.sports_class import ClassRegistration, ClassUpdate
from ..utils.auth import get_password_hash
from ..utils.exceptions import (
    AlreadyExistsError,
    AuthenticationError,
    ClassNotFoundError,
    InvalidClassCodeError,
    SquadSyncError,
)
from ..utils.logging_config import log_business_event, log_security_event
from .user_service import UserService

logger = logging.getLogger(__name__)

# A-Z and 2-9 without the look-alikes O, I, 0 and 1
CLASS_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

MAX_CODE_ATTEMPTS = 10


def generate_class_code(length: Optional[int] = None) -> str:
    """Random class login code drawn from ``CLASS_CODE_ALPHABET``."""
    length = length or get_settings().class_code_length
    return "".join(secrets.choice(CLASS_CODE_ALPHABET) for _ in range(length))


class ClassService:
    """Service class for class and representative operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserService(db)

    async def register_class(self, registration: ClassRegistration) -> Tuple[SportsClass, User]:
        """
        Register a class together with its representative account.

        The account and the class are written in one transaction, so a failed
        class insert leaves no orphan user behind.

        Returns:
            Tuple of (class, representative)

        Raises:
            AlreadyExistsError: When the email or class identifier is taken
        """
        if await self.users.get_user_by_email(registration.email):
            raise AlreadyExistsError("user", "email", registration.email)
        if await self._get_by_identifier(registration.class_identifier):
            raise AlreadyExistsError("class", "class_identifier", registration.class_identifier)

        try:
            representative = User(
                email=registration.email,
                full_name=registration.full_name,
                phone=registration.phone,
                student_id=registration.student_id,
                role=UserRole.STUDENT,
                status=UserStatus.ACTIVE,
                is_representative=True,
                password_hash=get_password_hash(registration.password),
            )
            self.db.add(representative)
            await self.db.flush()

            sports_class = SportsClass(
                name=registration.class_name,
                class_identifier=registration.class_identifier,
                department=registration.department,
                year=registration.year,
                student_count=registration.student_count,
                class_code=await self._unique_class_code(),
                representative_user_id=representative.id,
                is_active=True,
            )
            self.db.add(sports_class)
            await self.db.flush()

            representative.class_id = sports_class.id
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise AlreadyExistsError("class", "class_identifier", registration.class_identifier)

        self._queue_class_code_email(sports_class.id)
        log_business_event(
            "class_registered",
            {"class_id": str(sports_class.id), "class_identifier": sports_class.class_identifier},
            user_id=str(representative.id),
        )
        return sports_class, representative

    async def validate_class_login(self, email: str, password: str, class_code: str) -> Tuple[User, SportsClass]:
        """
        Check a representative's credentials against a class code.

        Raises:
            InvalidClassCodeError: When the code is unknown, inactive or not theirs
            AuthenticationError: When the password is wrong or the account is suspended
        """
        code = class_code.strip().upper()
        result = await self.db.execute(select(SportsClass).where(SportsClass.class_code == code))
        sports_class = result.scalar_one_or_none()
        if sports_class is None or not sports_class.is_active:
            log_security_event("class_login_bad_code", {"email": email})
            raise InvalidClassCodeError()

        user = await self.users.authenticate_user(email, password)
        if user is None:
            raise AuthenticationError("Incorrect email or password")

        if sports_class.representative_user_id != user.id:
            log_security_event("class_login_wrong_representative", {"class_id": str(sports_class.id)}, user_id=str(user.id))
            raise InvalidClassCodeError("This class code belongs to a different representative")

        if not user.is_active:
            raise AuthenticationError("Account is not active")

        return user, sports_class

    async def list_classes(self, active_only: bool = False) -> List[SportsClass]:
        query = select(SportsClass).order_by(SportsClass.class_identifier)
        if active_only:
            query = query.where(SportsClass.is_active.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_class(self, class_id: UUID) -> SportsClass:
        """
        Get a class by ID.

        Raises:
            ClassNotFoundError: If class is not found
        """
        sports_class = await self.db.get(SportsClass, class_id)
        if sports_class is None:
            raise ClassNotFoundError(str(class_id))
        return sports_class

    async def get_user_class(self, user: User) -> Optional[SportsClass]:
        """The class a user belongs to, if any."""
        if user.class_id is None:
            return None
        return await self.db.get(SportsClass, user.class_id)

    async def update_class(self, class_id: UUID, update_data: ClassUpdate) -> SportsClass:
        sports_class = await self.get_class(class_id)
        for field, value in update_data.model_dump(exclude_unset=True).items():
            setattr(sports_class, field, value)
        await self.db.commit()
        return sports_class

    async def regenerate_class_code(self, class_id: UUID) -> SportsClass:
        """Issue a new class code and email it to the representative."""
        sports_class = await self.get_class(class_id)
        sports_class.class_code = await self._unique_class_code()
        await self.db.commit()

        self._queue_class_code_email(sports_class.id)
        log_security_event("class_code_regenerated", {"class_id": str(sports_class.id)}, severity="INFO")
        return sports_class

    async def _get_by_identifier(self, class_identifier: str) -> Optional[SportsClass]:
        result = await self.db.execute(
            select(SportsClass).where(SportsClass.class_identifier == class_identifier)
        )
        return result.scalar_one_or_none()

    async def _unique_class_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_class_code()
            result = await self.db.execute(select(SportsClass.id).where(SportsClass.class_code == code))
            if result.first() is None:
                return code
        raise SquadSyncError("Could not generate a unique class code")

    def _queue_class_code_email(self, class_id: UUID) -> None:
        try:
            from ..tasks.notification_tasks import send_class_code_email_task
            send_class_code_email_task.delay(str(class_id))
        except Exception as e:
            logger.warning(f"Failed to queue class code email for class {class_id}: {e}")
