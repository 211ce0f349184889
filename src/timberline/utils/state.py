from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from timberline.db.models import STAFF_ROLES, BasketLineItem, UserAccount, UserRole
from timberline.shop import basket


@dataclass
class GlobalState:
    """
    Centralized application state shared by screens.

    Fields:
      - user_id / email / display_name: the signed-in account, None if signed out
      - role: UserRole of the signed-in account (GUEST when signed out)
      - _basket: cached basket lines; the store stays the source of truth and
        every basket mutation must call invalidate_basket()
    """

    user_id: Optional[str] = None
    email: Optional[str] = None
    display_name: Optional[str] = None
    role: UserRole = UserRole.GUEST

    _basket: Optional[List[BasketLineItem]] = field(default=None, repr=False)

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def sign_in(self, user: UserAccount) -> None:
        self.user_id = user.id
        self.email = user.email
        self.display_name = user.display_name
        self.role = user.role
        self._basket = None

    def sign_out(self) -> None:
        self.user_id = None
        self.email = None
        self.display_name = None
        self.role = UserRole.GUEST
        self._basket = None

    async def basket_items(self) -> List[BasketLineItem]:
        if self.user_id is None:
            return []
        if self._basket is None:
            self._basket = await basket.list_items(self.user_id)
        return list(self._basket)

    def invalidate_basket(self) -> None:
        self._basket = None
