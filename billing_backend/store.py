"""SQLAlchemy access to the billing columns of the ``users`` table."""
import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import User

logger = logging.getLogger(__name__)


class UserStore:
    """Single-row reads and writes keyed by user id, email or Stripe customer id.

    Every write is one ``UPDATE ... WHERE id = ?`` committed on its own; a
    failed write rolls the session back and re-raises so callers can map the
    error to their own outcome.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def find_user_id_by_customer(self, customer_id: Optional[str]) -> Optional[int]:
        """Reverse lookup of a Stripe customer id. Never raises."""
        if not customer_id:
            return None
        try:
            row = (
                self.db.query(User.id)
                .filter(User.stripe_customer_id == customer_id)
                .first()
            )
        except SQLAlchemyError:
            logger.exception("Lookup by Stripe customer failed customer=%s", customer_id)
            self.db.rollback()
            return None
        return row[0] if row else None

    def find_user_id_by_email(self, email: str) -> Optional[int]:
        row = (
            self.db.query(User.id)
            .filter(User.email == email)
            .order_by(User.id)
            .first()
        )
        return row[0] if row else None

    def update(self, user_id: int, **fields: Any) -> bool:
        """Apply ``fields`` to one row. Returns False when the row does not exist."""
        try:
            count = (
                self.db.query(User)
                .filter(User.id == user_id)
                .update(fields, synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return count > 0
