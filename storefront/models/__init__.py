from storefront.models.user import User
from storefront.models.pending_registration import PendingRegistration
from storefront.models.product import Product, ProductStock
from storefront.models.cart import CartItem
from storefront.models.order import Order
from storefront.models.order_item import OrderItem
from storefront.models.order_event import OrderEvent
from storefront.models.special_order import SpecialOrder
from storefront.models.return_request import ReturnRequest, ReturnItem, ReturnSpecialRequest

# add ALL models here
