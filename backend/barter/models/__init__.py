from barter.models.user import User, Role
from barter.models.category import Category
from barter.models.item import Item
from barter.models.media import Media
from barter.models.booking import Booking

__all__ = ["User", "Role", "Category", "Item", "Media", "Booking"]
