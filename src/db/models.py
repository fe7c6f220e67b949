# provide dataclass models

from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal, Optional, Tuple

OrderStatus = Literal["Placed", "Shipped", "Out for Delivery", "Delivered"]
PaymentMethod = Literal["Credit Card", "PayPal", "Cash on Delivery"]

# forward-only lifecycle, in order
ORDER_STATUSES: Tuple[OrderStatus, ...] = (
    "Placed",
    "Shipped",
    "Out for Delivery",
    "Delivered",
)
PAYMENT_METHODS: Tuple[PaymentMethod, ...] = (
    "Credit Card",
    "PayPal",
    "Cash on Delivery",
)


@dataclass(frozen=True)
class PortfolioItem:
    id: str
    title: str
    image_url: str
    description: str


@dataclass(frozen=True)
class ArtisanProfile:
    id: Optional[str]  # None until persisted
    name: str
    specialty: str
    avatar_url: str = ""
    location: str = ""
    experience: str = ""
    availability: str = ""
    workplace: str = ""
    phone: str = ""
    instagram: str = ""
    portfolio: Tuple[PortfolioItem, ...] = ()


@dataclass(frozen=True)
class Credential:
    email: str  # lower-cased
    pwd_hash: str
    profile_id: str


@dataclass(frozen=True)
class OtpRecord:
    email: str
    code: str  # 6 ascii digits
    issued_at: datetime


@dataclass(frozen=True)
class Product:
    id: Optional[str]  # None until created
    name: str
    category: str
    price: float
    stock: int
    image_url: str = ""
    description: str = ""
    short_description: str = ""
    artisan_name: str = ""


@dataclass(frozen=True)
class CartItem:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class DeliveryDetails:
    name: str
    email: str
    phone: str
    address: str
    payment_method: PaymentMethod = "Credit Card"


@dataclass(frozen=True)
class Order:
    id: str
    owner_id: str
    order_date: datetime
    items: Tuple[CartItem, ...]
    total: float
    delivery_details: DeliveryDetails
    status: OrderStatus
    expected_delivery: date
    current_location: str


@dataclass(frozen=True)
class PeriodValue:
    label: str  # "Jan", "Week 1", ...
    value: float


@dataclass(frozen=True)
class EngagementPoint:
    label: str
    views: int
    likes: int
    follows: int


@dataclass(frozen=True)
class DashboardData:
    sales: Tuple[PeriodValue, ...] = ()
    profit: Tuple[PeriodValue, ...] = ()
    engagement: Tuple[EngagementPoint, ...] = ()
