import pytest
from decimal import Decimal

from core.exceptions import ValidationError, ForbiddenError, NotFoundError, StateConflictError, InsufficientStockError
from models import CartItem, Order, Payment, Product
from models.enums import CartStatus, OrderStatus, PaymentMethod, PaymentStatus, ProductStatus
from schemas.order_schemas import CartCheckout, InstantPurchase, ManualOrder, ManualOrderItem
from services.order_service import OrderService


def test_cart_checkout_snapshot(session, customer_ctx, address, make_product, make_cart):
    book_a = make_product("Book A", price="10.00", stock=5)
    book_b = make_product("Book B", price="5.00", stock=5)
    cart = make_cart(address.user, [(book_a, 2), (book_b, 1)])
    item_ids = [item.id for item in cart.items]

    order = OrderService.create_order(session, customer_ctx, CartCheckout(
        cart_id=cart.id, address_id=address.id, cart_item_ids=item_ids
    ))

    assert order.status == OrderStatus.PENDING
    assert order.total_amount == Decimal("25.00")
    assert order.placed_at is not None
    assert order.created_by == customer_ctx.user_id
    assert len(order.items) == 2

    payments = session.query(Payment).filter(Payment.order_id == order.id).all()
    assert len(payments) == 1
    assert payments[0].status == PaymentStatus.PENDING
    assert payments[0].payment_method == PaymentMethod.COD
    assert payments[0].amount == Decimal("25.00")

    assert session.query(CartItem).filter(CartItem.cart_id == cart.id).count() == 0
    session.refresh(cart)
    assert cart.status == CartStatus.CHECKED_OUT

    # Creating an order never touches stock
    assert session.get(Product, book_a.id).stock == 5


def test_partial_cart_checkout_keeps_rest(session, customer_ctx, address, make_product, make_cart):
    book_a = make_product("Book A", price="10.00")
    book_b = make_product("Book B", price="5.00")
    cart = make_cart(address.user, [(book_a, 1), (book_b, 3)])
    first, second = cart.items

    order = OrderService.create_order(session, customer_ctx, CartCheckout(
        cart_id=cart.id, address_id=address.id, cart_item_ids=[first.id]
    ))

    assert order.total_amount == Decimal("10.00")
    remaining = session.query(CartItem).filter(CartItem.cart_id == cart.id).all()
    assert [item.id for item in remaining] == [second.id]
    session.refresh(cart)
    assert cart.status == CartStatus.ACTIVE


def test_price_change_does_not_alter_order(session, customer_ctx, address, make_product):
    book = make_product(price="12.50")
    order = OrderService.create_order(session, customer_ctx, InstantPurchase(
        address_id=address.id, product_id=book.id, quantity=2
    ))

    book.price = Decimal("99.00")
    session.commit()

    session.refresh(order)
    assert order.total_amount == Decimal("25.00")
    assert order.items[0].price == Decimal("12.50")


def test_foreign_cart_forbidden(session, customer_ctx, other_customer, address, make_product, make_cart):
    cart = make_cart(other_customer, [(make_product(), 1)])

    with pytest.raises(ForbiddenError):
        OrderService.create_order(session, customer_ctx, CartCheckout(
            cart_id=cart.id, address_id=address.id, cart_item_ids=[cart.items[0].id]
        ))

    assert session.query(Order).count() == 0


def test_missing_cart(session, customer_ctx, address):
    with pytest.raises(NotFoundError):
        OrderService.create_order(session, customer_ctx, CartCheckout(
            cart_id=999, address_id=address.id, cart_item_ids=[1]
        ))


def test_checked_out_cart_conflict(session, customer_ctx, address, make_product, make_cart):
    cart = make_cart(address.user, [(make_product(), 1)])
    cart.status = CartStatus.CHECKED_OUT
    session.commit()

    with pytest.raises(StateConflictError):
        OrderService.create_order(session, customer_ctx, CartCheckout(
            cart_id=cart.id, address_id=address.id, cart_item_ids=[cart.items[0].id]
        ))


def test_item_from_another_cart_rejected(session, customer_ctx, other_customer, address,
                                         make_product, make_cart):
    book = make_product()
    mine = make_cart(address.user, [(book, 1)])
    theirs = make_cart(other_customer, [(book, 1)])

    with pytest.raises(ValidationError):
        OrderService.create_order(session, customer_ctx, CartCheckout(
            cart_id=mine.id, address_id=address.id, cart_item_ids=[theirs.items[0].id]
        ))

    assert session.query(Order).count() == 0
    assert session.query(CartItem).count() == 2


def test_foreign_address_rejected(session, customer_ctx, other_address, make_product):
    with pytest.raises(ValidationError):
        OrderService.create_order(session, customer_ctx, InstantPurchase(
            address_id=other_address.id, product_id=make_product().id
        ))


def test_inactive_product_rejected(session, customer_ctx, address, make_product):
    book = make_product(status=ProductStatus.INACTIVE)

    with pytest.raises(ValidationError):
        OrderService.create_order(session, customer_ctx, InstantPurchase(
            address_id=address.id, product_id=book.id
        ))


def test_quantity_above_stock_rejected(session, customer_ctx, address, make_product):
    book = make_product(stock=2)

    with pytest.raises(InsufficientStockError):
        OrderService.create_order(session, customer_ctx, InstantPurchase(
            address_id=address.id, product_id=book.id, quantity=3
        ))

    assert session.query(Order).count() == 0
    assert session.query(Payment).count() == 0


def test_zero_total_rejected(session, customer_ctx, address, make_product):
    book = make_product(price="0.00")

    with pytest.raises(ValidationError):
        OrderService.create_order(session, customer_ctx, InstantPurchase(
            address_id=address.id, product_id=book.id
        ))

    assert session.query(Order).count() == 0


def test_manual_order_by_admin(session, admin_ctx, customer, address, make_product):
    book_a = make_product(price="10.00")
    book_b = make_product(price="8.00")

    order = OrderService.create_order(session, admin_ctx, ManualOrder(
        user_id=customer.id,
        address_id=address.id,
        items=[
            ManualOrderItem(product_id=book_a.id, quantity=2),
            ManualOrderItem(product_id=book_b.id, quantity=1, price=Decimal("6.00")),
        ],
        payment_method=PaymentMethod.VNPAY
    ))

    assert order.user_id == customer.id
    assert order.created_by == admin_ctx.user_id
    assert order.total_amount == Decimal("26.00")
    assert order.payments[0].payment_method == PaymentMethod.VNPAY


def test_manual_order_requires_admin(session, customer_ctx, customer, address, make_product):
    with pytest.raises(ForbiddenError):
        OrderService.create_order(session, customer_ctx, ManualOrder(
            user_id=customer.id,
            address_id=address.id,
            items=[ManualOrderItem(product_id=make_product().id)]
        ))
