from sqlalchemy.orm import Session
from utils.logger import get_logger

logger = get_logger(__name__)


class UnitOfWork:
    """
    One atomic scope over a database session.

    Used as a context manager it commits when the block exits normally and
    rolls back on any exception, which is then re-raised. Functions that must
    take part in the same transaction receive the UnitOfWork as an argument
    instead of opening their own.

    Usage:
        with UnitOfWork(db) as uow:
            InventoryService.reserve(uow, product_id, 2)
    """

    def __init__(self, session: Session):
        self.session = session

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.session.commit()
        else:
            logger.debug(
                "Rolling back unit of work",
                extra={"error_type": exc_type.__name__}
            )
            self.session.rollback()
        return False

    def flush(self):
        self.session.flush()
