import logging
from typing import Optional, Tuple

from coffeeshop.core.config import Settings
from coffeeshop.core.errors import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from coffeeshop.core.security import create_access_token, hash_password, verify_password
from coffeeshop.models.schemas import (
    ProfileUpdate,
    SigninRequest,
    SignupRequest,
    User,
    UserProfile,
    UserSummary,
    UserUpdate,
    utcnow,
)
from coffeeshop.repositories.base import UnitOfWork

logger = logging.getLogger(__name__)


def to_profile(user: User) -> UserProfile:
    """Public view of a user, without the password hash"""
    return UserProfile.model_validate(user.model_dump())


class UserService:
    """
    Account management: signup, signin and self-service profile edits.

    Usernames and emails are unique ignoring case; emails are stored
    lower-cased.
    """

    def __init__(self, uow: UnitOfWork, settings: Settings):
        self.uow = uow
        self.settings = settings

    def get_user(self, user_id: int) -> User:
        user = self.uow.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User")
        return user

    def _ensure_unique(self, username: Optional[str], email: Optional[str], user_id: Optional[int] = None) -> None:
        exclude = {"id__ne": user_id} if user_id is not None else {}
        if username and self.uow.users.find_one({"username__iexact": username, **exclude}):
            raise ConflictError("Username already taken")
        if email and self.uow.users.find_one({"email__iexact": email, **exclude}):
            raise ConflictError("Email already registered")

    def signup(self, data: SignupRequest) -> UserSummary:
        email = data.email.lower()
        self._ensure_unique(data.username, email)
        user = self.uow.users.create({
            "username": data.username,
            "email": email,
            "password_hash": hash_password(data.password, self.settings.bcrypt_rounds),
        })
        self.uow.commit()
        logger.info(f"New user registered: {user.id}")
        return UserSummary.model_validate(user.model_dump())

    def signin(self, data: SigninRequest) -> Tuple[str, UserProfile]:
        # Same error for unknown email and wrong password
        user = self.uow.users.find_one({"email__iexact": data.email})
        if user is None or not user.is_active or not verify_password(data.password, user.password_hash):
            raise UnauthorizedError("Invalid credentials")

        user = self.uow.users.update(user.id, {"last_login": utcnow()})
        self.uow.commit()
        token = create_access_token(user.id, user.email, self.settings)
        return token, to_profile(user)

    def get_profile(self, user_id: int) -> UserProfile:
        return to_profile(self.get_user(user_id))

    def update_profile(self, user_id: int, data: ProfileUpdate) -> UserProfile:
        user = self.get_user(user_id)
        changes = {}
        email = data.email.lower() if data.email else None
        self._ensure_unique(data.username, email, user_id)
        if data.username:
            changes["username"] = data.username
        if email:
            changes["email"] = email

        if data.new_password:
            if not data.current_password:
                raise ValidationError("Current password is required to set a new password")
            if not verify_password(data.current_password, user.password_hash):
                raise UnauthorizedError("Current password is incorrect")
            changes["password_hash"] = hash_password(data.new_password, self.settings.bcrypt_rounds)

        user = self.uow.users.update(user_id, changes)
        self.uow.commit()
        return to_profile(user)

    def delete_profile(self, user_id: int, password: str) -> None:
        user = self.get_user(user_id)
        if not verify_password(password, user.password_hash):
            raise UnauthorizedError("Incorrect password")
        self.uow.users.delete(user_id)
        self.uow.commit()
        logger.info(f"Deleted user {user_id}")

    def update_user(self, caller_id: int, target_id: int, data: UserUpdate) -> UserProfile:
        if caller_id != target_id:
            raise ForbiddenError("You can only update your own account")
        return self.update_profile(target_id, ProfileUpdate(username=data.username, email=data.email))
