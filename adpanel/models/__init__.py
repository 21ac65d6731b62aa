from .user import User
from .group import Group
from .media import Media
from .link import Link
from .package import Package
from .subscription import Subscription
from .payment import Payment, PaymentSetting

__all__ = [
    "User",
    "Group",
    "Media",
    "Link",
    "Package",
    "Subscription",
    "Payment",
    "PaymentSetting",
]
