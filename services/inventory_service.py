from core.exceptions import InsufficientStockError
from core.unit_of_work import UnitOfWork
from models.products import Product
from utils.logger import get_logger

logger = get_logger(__name__)


class InventoryService:

    @staticmethod
    def reserve(uow: UnitOfWork, product_id: int, quantity: int) -> int:
        """
        Atomically take `quantity` units of a product's stock.

        A single conditional UPDATE does the check and the decrement, so two
        transactions can never both pass the check on the same units. Only the
        payment completion transaction calls this.

        Raises:
            InsufficientStockError: if the product is missing or short
        """
        qty = max(1, int(quantity))

        affected = uow.session.query(Product).filter(
            Product.id == product_id,
            Product.deleted_at.is_(None),
            Product.stock >= qty
        ).update(
            {Product.stock: Product.stock - qty},
            synchronize_session=False
        )

        if affected == 0:
            logger.warning(
                "Stock reservation failed",
                extra={"product_id": product_id, "quantity": qty}
            )
            raise InsufficientStockError(product_id)

        logger.debug(
            "Stock reserved",
            extra={"product_id": product_id, "quantity": qty}
        )
        return qty
