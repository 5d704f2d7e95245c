import pytest

from core.exceptions import InsufficientStockError, ValidationError
from models import Cart, CartItem
from models.enums import CartStatus, ProductStatus
from services.cart_service import CartService


def _guest_cart(session, token, lines):
    cart, created = CartService.get_or_create_guest_cart(session, token)
    assert created
    for product, quantity in lines:
        session.add(CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity))
    session.commit()
    return cart


def test_guest_cart_created_once(session):
    first, created = CartService.get_or_create_guest_cart(session, "guest-abc")
    again, created_again = CartService.get_or_create_guest_cart(session, "  guest-abc ")

    assert created is True
    assert created_again is False
    assert first.id == again.id
    assert first.user_id is None


def test_blank_guest_token_rejected(session):
    with pytest.raises(ValidationError):
        CartService.get_or_create_guest_cart(session, "   ")


def test_merge_adds_quantities(session, customer_ctx, customer, make_product, make_cart):
    shared = make_product("Shared", stock=10)
    guest_only = make_product("Guest only", stock=10)
    user_cart = make_cart(customer, [(shared, 2)])
    guest = _guest_cart(session, "guest-1", [(shared, 3), (guest_only, 1)])

    cart = CartService.merge_guest_cart(session, customer_ctx, "guest-1")

    assert cart.id == user_cart.id
    quantities = {item.product_id: item.quantity for item in cart.items}
    assert quantities == {shared.id: 5, guest_only.id: 1}

    session.refresh(guest)
    assert guest.status == CartStatus.INACTIVE
    assert guest.deleted_at is not None
    assert session.query(CartItem).filter(CartItem.cart_id == guest.id).count() == 0


def test_merge_creates_user_cart(session, customer_ctx, make_product):
    book = make_product(stock=4)
    _guest_cart(session, "guest-2", [(book, 2)])

    cart = CartService.merge_guest_cart(session, customer_ctx, "guest-2")

    assert cart.user_id == customer_ctx.user_id
    assert cart.status == CartStatus.ACTIVE
    assert [(item.product_id, item.quantity) for item in cart.items] == [(book.id, 2)]


def test_merge_skips_inactive_products(session, customer_ctx, make_product):
    gone = make_product("Gone", status=ProductStatus.INACTIVE)
    kept = make_product("Kept")
    _guest_cart(session, "guest-3", [(gone, 1), (kept, 1)])

    cart = CartService.merge_guest_cart(session, customer_ctx, "guest-3")

    assert [item.product_id for item in cart.items] == [kept.id]


def test_merge_beyond_stock_changes_nothing(session, customer_ctx, customer, make_product, make_cart):
    book = make_product(stock=4)
    make_cart(customer, [(book, 3)])
    guest = _guest_cart(session, "guest-4", [(book, 2)])

    with pytest.raises(InsufficientStockError):
        CartService.merge_guest_cart(session, customer_ctx, "guest-4")

    session.refresh(guest)
    assert guest.status == CartStatus.ACTIVE
    assert session.query(CartItem).filter(CartItem.cart_id == guest.id).count() == 1


def test_merge_twice_is_harmless(session, customer_ctx, make_product):
    book = make_product(stock=10)
    _guest_cart(session, "guest-5", [(book, 2)])

    CartService.merge_guest_cart(session, customer_ctx, "guest-5")
    cart = CartService.merge_guest_cart(session, customer_ctx, "guest-5")

    assert [(item.product_id, item.quantity) for item in cart.items] == [(book.id, 2)]
    assert session.query(Cart).filter(Cart.user_id == customer_ctx.user_id).count() == 1


def test_get_my_cart_is_lazy(session, customer_ctx):
    first = CartService.get_my_cart(session, customer_ctx)
    second = CartService.get_my_cart(session, customer_ctx)

    assert first.id == second.id
    assert first.items == []
