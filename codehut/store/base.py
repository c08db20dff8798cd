"""Repository interface shared by the SQL and in-memory stores.

Exactly one implementation backs an application instance; it is picked once
at startup from configuration (see ``build_store``) and never swapped at
runtime.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from codehut.modules.auth.models import User, UserSession
from codehut.modules.snippets.models import Snippet
from codehut.modules.purchases.models import Purchase
from codehut.modules.payments.models import Order, OrderStatus, PaymentTransaction, TransactionStatus

SNIPPET_SORT_FIELDS = ("created_at", "rating", "downloads", "price", "title")
USER_SORT_FIELDS = ("created_at", "username", "rating", "total_downloads", "total_snippets")


def transaction_status_for(status: OrderStatus) -> TransactionStatus:
    if status == OrderStatus.PAID:
        return TransactionStatus.SUCCESS
    if status == OrderStatus.FAILED:
        return TransactionStatus.FAILED
    return TransactionStatus.PENDING


@dataclass
class SnippetQuery:
    language: Optional[str] = None
    framework: Optional[str] = None
    author: Optional[str] = None
    author_id: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    search: Optional[str] = None
    sort_by: str = "created_at"
    descending: bool = True
    offset: int = 0
    limit: int = 20


class MarketplaceStore:
    async def init(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def bulk_load(self, users: List[User], snippets: List[Snippet], purchases: List[Purchase]) -> None:
        """Inserts records as given, counters included. Used for sample data."""
        raise NotImplementedError

    # Users
    async def get_user(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    async def get_user_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    async def get_user_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    async def add_user(self, user: User) -> User:
        """Raises DuplicateRecordError when the username or email is taken."""
        raise NotImplementedError

    async def update_user(self, user_id: str, **changes) -> Optional[User]:
        raise NotImplementedError

    async def list_users(self, sort_by: str, descending: bool, offset: int, limit: int) -> Tuple[List[User], int]:
        raise NotImplementedError

    async def all_users(self) -> List[User]:
        raise NotImplementedError

    # Sessions
    async def replace_session(self, session: UserSession) -> UserSession:
        """Stores the session, dropping whatever session the user had before."""
        raise NotImplementedError

    async def get_session(self, user_id: str) -> Optional[UserSession]:
        raise NotImplementedError

    async def delete_session(self, user_id: str) -> None:
        raise NotImplementedError

    async def touch_session(self, user_id: str, when: datetime) -> None:
        raise NotImplementedError

    async def list_sessions(self) -> List[UserSession]:
        raise NotImplementedError

    # Snippets
    async def get_snippet(self, snippet_id: str) -> Optional[Snippet]:
        raise NotImplementedError

    async def add_snippet(self, snippet: Snippet) -> Snippet:
        """Inserts the snippet and bumps the author's total_snippets together."""
        raise NotImplementedError

    async def query_snippets(self, query: SnippetQuery) -> Tuple[List[Snippet], int]:
        raise NotImplementedError

    async def all_snippets(self) -> List[Snippet]:
        raise NotImplementedError

    # Purchases
    async def get_purchase(self, user_id: str, snippet_id: str) -> Optional[Purchase]:
        raise NotImplementedError

    async def purchases_for_user(self, user_id: str, offset: int, limit: int) -> Tuple[List[Purchase], int]:
        raise NotImplementedError

    async def purchases_for_snippet(self, snippet_id: str) -> List[Purchase]:
        raise NotImplementedError

    async def all_purchases(self) -> List[Purchase]:
        raise NotImplementedError

    async def record_purchase(self, purchase: Purchase) -> Purchase:
        """Direct purchase: inserts the row and bumps the snippet download counter.

        Raises DuplicateRecordError when the user already owns the snippet.
        """
        raise NotImplementedError

    # Orders
    async def add_order(self, order: Order, transaction: PaymentTransaction) -> Order:
        raise NotImplementedError

    async def get_order(self, razorpay_order_id: str, buyer_id: Optional[str] = None) -> Optional[Order]:
        raise NotImplementedError

    async def get_order_by_id(self, order_id: str) -> Optional[Order]:
        raise NotImplementedError

    async def get_transaction(self, order_id: str) -> Optional[PaymentTransaction]:
        raise NotImplementedError

    async def orders_for_buyer(self, buyer_id: str) -> List[Order]:
        raise NotImplementedError

    async def complete_order(self, order_id: str, payment_id: str, signature: Optional[str], when: datetime) -> Purchase:
        """Marks an order paid and grants the entitlement in one unit of work.

        Sets order -> paid, transaction -> success, inserts the purchase and
        bumps the snippet downloads and seller total_downloads. Completing an
        order whose buyer already owns the snippet returns the existing
        purchase and changes no counters.
        """
        raise NotImplementedError

    async def set_order_status(self, razorpay_order_id: str, status: OrderStatus,
                               payment_id: Optional[str] = None) -> Optional[Order]:
        """Moves order and transaction together. A paid order is never downgraded."""
        raise NotImplementedError
