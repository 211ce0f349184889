# email/password identity: sign-up, sign-in and the bootstrap admin account
from __future__ import annotations

from typing import Optional

import bcrypt
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from timberline.db import activity, store, users
from timberline.db.models import UserAccount, UserRole
from timberline.utils.errors import PermissionDeniedError, ValidationError
from timberline.utils.logger import get_logger

_logger = get_logger(__name__)

BAD_CREDENTIALS = "Incorrect email or password."

# bcrypt refuses anything longer
MAX_PASSWORD_BYTES = 72
MIN_PASSWORD_LENGTH = 8


class SignUpForm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    display_name: str = Field(min_length=1, max_length=80)

    @field_validator("password")
    @classmethod
    def _fits_bcrypt(cls, value: str) -> str:
        problem = password_problem(value)
        if problem:
            raise ValueError(problem)
        return value


def password_problem(password: str) -> Optional[str]:
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return "Password is too long."
    return None


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash or len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        _logger.warning("Stored password hash is malformed")
        return False


def _validated(email: str, password: str, display_name: str) -> SignUpForm:
    try:
        return SignUpForm(email=email, password=password, display_name=display_name)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


async def _create_account(form: SignUpForm, role: UserRole, is_system: bool) -> UserAccount:
    email = form.email.lower()
    if await users.find_by_email(email) is not None:
        raise ValidationError.single("email", "An account with this email already exists.")
    user_id = await store.add_document(
        users.COLLECTION,
        {
            "email": email,
            "display_name": form.display_name,
            "role": role,
            "is_system": is_system,
            "disabled": False,
            "password_hash": hash_password(form.password),
        },
    )
    _logger.info(f"Created {role} account {email}")
    return await users.require_user(user_id)


async def sign_up(email: str, password: str, display_name: str) -> UserAccount:
    user = await _create_account(_validated(email, password, display_name), UserRole.CUSTOMER, False)
    await activity.log_activity(user.id, "sign_up", {"email": user.email})
    return user


async def sign_in(email: str, password: str) -> UserAccount:
    doc = await users.find_by_email(email or "")
    if doc is None or not check_password(password or "", doc.get("password_hash")):
        _logger.info(f"Failed sign-in for {email!r}")
        raise ValidationError.single("password", BAD_CREDENTIALS)
    user = UserAccount.from_doc(doc)
    if user.disabled:
        raise PermissionDeniedError("This account has been disabled.")
    _logger.info(f"{user.email} signed in")
    return user


async def change_password(user_id: str, current_password: str, new_password: str) -> None:
    user = await users.require_user(user_id)
    doc = await users.find_by_email(user.email)
    if doc is None or not check_password(current_password, doc.get("password_hash")):
        raise ValidationError.single("current_password", "Current password is incorrect.")
    problem = password_problem(new_password)
    if problem:
        raise ValidationError.single("new_password", problem)
    await store.update_document(users.COLLECTION, user_id, {"password_hash": hash_password(new_password)})
    _logger.info(f"Password changed for {user.email}")


async def ensure_admin_account(email: str, password: str) -> UserAccount:
    """Create the protected super-admin account unless it already exists."""
    doc = await users.find_by_email(email)
    if doc is not None:
        if not doc.get("is_system") or doc.get("role") != UserRole.SUPER_ADMIN:
            await store.update_document(
                users.COLLECTION, doc["id"], {"is_system": True, "role": UserRole.SUPER_ADMIN}
            )
        return await users.require_user(doc["id"])
    form = _validated(email, password, "Administrator")
    return await _create_account(form, UserRole.SUPER_ADMIN, True)
