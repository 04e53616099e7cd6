"""Data Access Objects (DAOs) for database operations."""

from api.daos.trade_dao import TradeDAO
from api.daos.order_dao import OrderDAO
from api.daos.rating_dao import RatingDAO
from api.daos.notification_dao import NotificationDAO
from api.daos.audit_dao import AuditLogDAO
from api.daos.catalog_dao import UserDAO, ProductDAO

__all__ = ["TradeDAO", "OrderDAO", "RatingDAO", "NotificationDAO", "AuditLogDAO", "UserDAO", "ProductDAO"]
