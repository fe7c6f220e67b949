class MarketError(Exception):
    """
    Base class for every failure an operation reports to its caller.
    The message is meant to be shown to the user as-is.
    """

    default_message = "Something went wrong."

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)


class InvalidCredentials(MarketError):
    default_message = "Invalid email or password."


class EmailAlreadyRegistered(MarketError):
    default_message = "An account with this email already exists."


class InvalidOtp(MarketError):
    default_message = "Invalid OTP. Please try again."


class NotAuthenticated(MarketError):
    default_message = "Not authenticated."


class NotAuthorized(MarketError):
    default_message = "You can only change your own profile."


class AiGatewayFailure(MarketError):
    default_message = "Failed to get AI suggestions. Please check your API key and try again."


class EmptyCart(MarketError):
    default_message = "Cart is empty."


class InvalidDeliveryDetails(MarketError):
    default_message = "Please fill in all delivery details."


class InvalidStatusTransition(MarketError):
    default_message = "Order cannot move to that status."


class ProductNotFound(MarketError):
    default_message = "Product not found."


class OrderNotFound(MarketError):
    default_message = "Order not found."
