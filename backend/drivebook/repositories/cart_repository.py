"""Cart Repository."""

import logging
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.cart import CartItem
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CartRepository(BaseRepository[CartItem]):
    def __init__(self, db: Session):
        super().__init__(db, CartItem)

    def list_items(self, user_id: str) -> List[CartItem]:
        stmt = select(CartItem).where(CartItem.user_id == user_id).order_by(CartItem.created_at)
        return list(self.db.execute(stmt).scalars().all())

    def clear(self, user_id: str) -> int:
        try:
            result = self.db.execute(
                delete(CartItem)
                .where(CartItem.user_id == user_id)
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error clearing cart for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to clear cart: {str(e)}")
        return int(result.rowcount or 0)
