from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the user signs out
    """

    bubble = True


class UserLoginMessage(Message):
    """
    Fired when a user signed in, so the screen can refresh
    """

    bubble = True


class BasketChangedMessage(Message):
    """
    Fired after any basket mutation (add from configure/deals, quantity, remove, clear).
    The basket cache in GlobalState is already invalidated when this is posted.

    If posted from outside BasketScreen, make sure to post at App level
    """

    bubble = True


class NewOrderMessage(Message):
    """
    Fired when an order is placed.
    Listened to by past orders and the admin order screens
    """

    bubble = True


class ModeSwitchedMessage(Message):
    """
    fired whenever switch_mode is called
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode
