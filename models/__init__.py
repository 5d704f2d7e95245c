from models.users import User
from models.addresses import Address
from models.products import Product
from models.carts import Cart
from models.cart_items import CartItem
from models.orders import Order
from models.order_items import OrderItem
from models.payments import Payment

__all__ = ["User", "Address", "Product", "Cart", "CartItem", "Order", "OrderItem", "Payment"]
