# user accounts and role management
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from timberline.db import store
from timberline.db.models import UserAccount, UserRole
from timberline.utils.errors import NotFoundError, PermissionDeniedError, ValidationError
from timberline.utils.logger import get_logger

_logger = get_logger(__name__)

COLLECTION = "users"
PROTECTED_MESSAGE = "This is a protected system account and cannot be modified."


def _role(value: Any, field: str = "role") -> UserRole:
    try:
        return UserRole(value)
    except ValueError:
        allowed = ", ".join(r.value for r in UserRole)
        raise ValidationError.single(field, f"Role must be one of: {allowed}.") from None


def _guard(user: UserAccount) -> None:
    if user.is_system:
        _logger.warning(f"Refused change to protected account {user.email}")
        raise PermissionDeniedError(PROTECTED_MESSAGE)


async def list_users(role: Optional[str] = None, order_by: str = "email") -> List[UserAccount]:
    where = {"role": _role(role)} if role is not None else None
    docs = await store.query_documents(COLLECTION, where=where, order_by=order_by)
    return [UserAccount.from_doc(d) for d in docs]


async def get_user(user_id: str) -> Optional[UserAccount]:
    doc = await store.get_document(COLLECTION, user_id)
    return UserAccount.from_doc(doc) if doc else None


async def find_by_email(email: str) -> Optional[Dict[str, Any]]:
    """Raw user document (password hash included) for ``email``."""
    docs = await store.query_documents(COLLECTION, where={"email": email.strip().lower()}, limit=1)
    return docs[0] if docs else None


async def require_user(user_id: str) -> UserAccount:
    user = await get_user(user_id)
    if user is None:
        raise NotFoundError("user", user_id)
    return user


async def update_user_role(user_id: str, role: str) -> UserAccount:
    new_role = _role(role)
    user = await require_user(user_id)
    _guard(user)
    await store.update_document(COLLECTION, user_id, {"role": new_role})
    _logger.info(f"Role of {user.email}: {user.role} -> {new_role}")
    return await require_user(user_id)


def _normalise_update(update: Any) -> Tuple[str, Any]:
    if isinstance(update, dict):
        return update.get("user_id") or update.get("userId") or "", update.get("role")
    user_id, role = update
    return user_id, role


async def batch_update_roles(updates: Iterable[Any]) -> List[UserAccount]:
    """
    Change several roles at once. ``updates`` holds (user_id, role) pairs or
    ``{"user_id"/"userId", "role"}`` dicts. Every update is checked before
    anything is written, and the writes land in a single batch.
    """
    pairs = [_normalise_update(u) for u in updates]
    if not pairs:
        return []

    checked: List[Tuple[str, UserRole]] = []
    for index, (user_id, role) in enumerate(pairs):
        if not user_id:
            raise ValidationError.single(f"updates.{index}.userId", "User id is required.")
        new_role = _role(role, f"updates.{index}.role")
        _guard(await require_user(user_id))
        checked.append((user_id, new_role))

    async with store.batch() as b:
        for user_id, new_role in checked:
            b.update(COLLECTION, user_id, {"role": new_role})
    _logger.info(f"Batch role update of {len(checked)} users")

    return [await require_user(user_id) for user_id, _ in checked]


async def set_disabled(user_id: str, disabled: bool) -> UserAccount:
    user = await require_user(user_id)
    _guard(user)
    await store.update_document(COLLECTION, user_id, {"disabled": bool(disabled)})
    _logger.info(f"{'Disabled' if disabled else 'Enabled'} {user.email}")
    return await require_user(user_id)


async def delete_user(user_id: str) -> None:
    """Delete the account and its basket. Absent accounts are ignored."""
    user = await get_user(user_id)
    if user is None:
        return
    _guard(user)
    basket_docs = await store.query_documents("basket", where={"user_id": user_id})
    async with store.batch() as b:
        b.delete(COLLECTION, user_id)
        for doc in basket_docs:
            b.delete("basket", doc["id"])
    _logger.info(f"Deleted user {user.email}")


async def customer_count() -> int:
    return await store.count_documents(COLLECTION, {"role": UserRole.CUSTOMER})
