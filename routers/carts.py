from fastapi import APIRouter, Request, Response
from starlette import status
from utils.deps import db_dependency, context_dependency
from schemas.cart_schemas import GuestTokenRequest, CartResponse
from services.cart_service import CartService
from middleware.rate_limiter import limiter
from utils.logger import get_logger

# Setup logger
logger = get_logger(__name__)


router = APIRouter(
    prefix="/carts",
    tags=["carts"]
)


@router.post("/guest", response_model=CartResponse)
@limiter.limit("30/minute")
async def get_or_create_guest_cart(request: Request, response: Response, body: GuestTokenRequest, db: db_dependency):
    cart, created = CartService.get_or_create_guest_cart(db, body.guest_token)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return cart


@router.post("/merge", status_code=status.HTTP_200_OK, response_model=CartResponse)
@limiter.limit("10/minute")
async def merge_guest_cart(request: Request, body: GuestTokenRequest, ctx: context_dependency, db: db_dependency):
    """
    Merge a guest cart into the caller's cart after login.
    """
    return CartService.merge_guest_cart(db, ctx, body.guest_token)


@router.get("/me", status_code=status.HTTP_200_OK, response_model=CartResponse)
async def get_my_cart(ctx: context_dependency, db: db_dependency):
    return CartService.get_my_cart(db, ctx)
