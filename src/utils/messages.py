from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the user confirmed logging out
    """

    bubble = True


class UserLoginMessage(Message):
    """
    Fired when a user logged in from the login screen
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired whenever GlobalState.cart changes, so the cart screen and the
    sidebar badge can refresh. Post it at App level from modals.
    """

    bubble = True


class WishlistChangedMessage(Message):
    """
    Fired when a product is added to or removed from the wishlist
    """

    bubble = True


class NewOrderMessage(Message):
    """
    Fired when a new order is placed.
    Listened to by track orders and the dashboard
    """

    bubble = True

    def __init__(self, order_id: str) -> None:
        super().__init__()
        self.order_id = order_id


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
