import asyncio
import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from codehut.core.db import as_utc, new_id
from codehut.core.errors import DuplicateRecordError
from codehut.modules.auth.models import User, UserSession
from codehut.modules.snippets.models import Snippet
from codehut.modules.purchases.models import Purchase
from codehut.modules.payments.models import Order, OrderStatus, PaymentTransaction, TransactionStatus
from codehut.store.base import (
    MarketplaceStore, SnippetQuery, SNIPPET_SORT_FIELDS, USER_SORT_FIELDS, transaction_status_for,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1)


def _sort_value(entity, field: str):
    value = getattr(entity, field)
    if field in ("created_at", "purchase_date"):
        return as_utc(value) or as_utc(_EPOCH)
    if isinstance(value, str):
        return value.lower()
    if value is None:
        return 0
    return value


def snippet_matches(snippet: Snippet, query: SnippetQuery) -> bool:
    if query.author_id and snippet.author_id != query.author_id:
        return False
    if query.language and (snippet.language or "").lower() != query.language.lower():
        return False
    if query.framework and (snippet.framework or "").lower() != query.framework.lower():
        return False
    if query.author and query.author.lower() not in (snippet.author_username or "").lower():
        return False
    price = Decimal(snippet.price)
    if query.min_price is not None and price < query.min_price:
        return False
    if query.max_price is not None and price > query.max_price:
        return False
    if query.search:
        term = query.search.lower()
        haystack = [snippet.title or "", snippet.description or ""] + list(snippet.tags or [])
        if not any(term in text.lower() for text in haystack):
            return False
    return True


class MemoryStore(MarketplaceStore):
    """Process-local store used when no database is configured, and by tests.

    Every write that touches more than one record runs under a single lock and
    validates before it mutates, so a failure leaves nothing half-applied.
    """

    def __init__(self):
        self.users: Dict[str, User] = {}
        self.sessions: Dict[str, UserSession] = {}
        self.snippets: Dict[str, Snippet] = {}
        self.purchases: Dict[str, Purchase] = {}
        self.orders: Dict[str, Order] = {}
        self.transactions: Dict[str, PaymentTransaction] = {}
        self._lock = asyncio.Lock()

    async def bulk_load(self, users: List[User], snippets: List[Snippet], purchases: List[Purchase]) -> None:
        async with self._lock:
            self.users.update((u.id, u) for u in users)
            self.snippets.update((s.id, s) for s in snippets)
            self.purchases.update((p.id, p) for p in purchases)

    # Users
    async def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self.users.values():
            if user.username == username:
                return user
        return None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        email = email.lower()
        for user in self.users.values():
            if user.email.lower() == email:
                return user
        return None

    async def add_user(self, user: User) -> User:
        async with self._lock:
            for existing in self.users.values():
                if existing.username == user.username:
                    raise DuplicateRecordError("Username already taken")
                if existing.email.lower() == user.email.lower():
                    raise DuplicateRecordError("Email already registered")
            self.users[user.id] = user
        return user

    async def update_user(self, user_id: str, **changes) -> Optional[User]:
        async with self._lock:
            user = self.users.get(user_id)
            if user is None:
                return None
            for key, value in changes.items():
                setattr(user, key, value)
        return user

    async def list_users(self, sort_by: str, descending: bool, offset: int, limit: int) -> Tuple[List[User], int]:
        field = sort_by if sort_by in USER_SORT_FIELDS else "created_at"
        ordered = sorted(self.users.values(), key=lambda u: _sort_value(u, field), reverse=descending)
        return ordered[offset:offset + limit], len(ordered)

    async def all_users(self) -> List[User]:
        return list(self.users.values())

    # Sessions
    async def replace_session(self, session: UserSession) -> UserSession:
        async with self._lock:
            self.sessions[session.user_id] = session
        return session

    async def get_session(self, user_id: str) -> Optional[UserSession]:
        return self.sessions.get(user_id)

    async def delete_session(self, user_id: str) -> None:
        async with self._lock:
            self.sessions.pop(user_id, None)

    async def touch_session(self, user_id: str, when: datetime) -> None:
        session = self.sessions.get(user_id)
        if session is not None:
            session.last_activity = when

    async def list_sessions(self) -> List[UserSession]:
        return list(self.sessions.values())

    # Snippets
    async def get_snippet(self, snippet_id: str) -> Optional[Snippet]:
        return self.snippets.get(snippet_id)

    async def add_snippet(self, snippet: Snippet) -> Snippet:
        async with self._lock:
            author = self.users.get(snippet.author_id)
            if author is None:
                raise LookupError(f"Unknown author {snippet.author_id}")
            self.snippets[snippet.id] = snippet
            author.total_snippets = (author.total_snippets or 0) + 1
        return snippet

    async def query_snippets(self, query: SnippetQuery) -> Tuple[List[Snippet], int]:
        field = query.sort_by if query.sort_by in SNIPPET_SORT_FIELDS else "created_at"
        matched = [s for s in self.snippets.values() if snippet_matches(s, query)]
        matched.sort(key=lambda s: _sort_value(s, field), reverse=query.descending)
        return matched[query.offset:query.offset + query.limit], len(matched)

    async def all_snippets(self) -> List[Snippet]:
        return list(self.snippets.values())

    # Purchases
    def _find_purchase(self, user_id: str, snippet_id: str) -> Optional[Purchase]:
        for purchase in self.purchases.values():
            if purchase.user_id == user_id and purchase.snippet_id == snippet_id:
                return purchase
        return None

    async def get_purchase(self, user_id: str, snippet_id: str) -> Optional[Purchase]:
        return self._find_purchase(user_id, snippet_id)

    async def purchases_for_user(self, user_id: str, offset: int, limit: int) -> Tuple[List[Purchase], int]:
        owned = [p for p in self.purchases.values() if p.user_id == user_id]
        owned.sort(key=lambda p: _sort_value(p, "purchase_date"), reverse=True)
        return owned[offset:offset + limit], len(owned)

    async def purchases_for_snippet(self, snippet_id: str) -> List[Purchase]:
        return [p for p in self.purchases.values() if p.snippet_id == snippet_id]

    async def all_purchases(self) -> List[Purchase]:
        return list(self.purchases.values())

    async def record_purchase(self, purchase: Purchase) -> Purchase:
        async with self._lock:
            if self._find_purchase(purchase.user_id, purchase.snippet_id) is not None:
                raise DuplicateRecordError("You have already purchased this snippet")
            snippet = self.snippets.get(purchase.snippet_id)
            if snippet is None:
                raise LookupError(f"Unknown snippet {purchase.snippet_id}")
            self.purchases[purchase.id] = purchase
            snippet.downloads = (snippet.downloads or 0) + 1
        return purchase

    # Orders
    async def add_order(self, order: Order, transaction: PaymentTransaction) -> Order:
        async with self._lock:
            if order.razorpay_order_id in self.orders:
                raise DuplicateRecordError("Order already recorded")
            self.orders[order.razorpay_order_id] = order
            self.transactions[order.id] = transaction
        return order

    async def get_order(self, razorpay_order_id: str, buyer_id: Optional[str] = None) -> Optional[Order]:
        order = self.orders.get(razorpay_order_id)
        if order is None or (buyer_id is not None and order.buyer_id != buyer_id):
            return None
        return order

    def _order_by_id(self, order_id: str) -> Optional[Order]:
        for order in self.orders.values():
            if order.id == order_id:
                return order
        return None

    async def get_order_by_id(self, order_id: str) -> Optional[Order]:
        return self._order_by_id(order_id)

    async def get_transaction(self, order_id: str) -> Optional[PaymentTransaction]:
        return self.transactions.get(order_id)

    async def orders_for_buyer(self, buyer_id: str) -> List[Order]:
        mine = [o for o in self.orders.values() if o.buyer_id == buyer_id]
        mine.sort(key=lambda o: _sort_value(o, "created_at"), reverse=True)
        return mine

    async def complete_order(self, order_id: str, payment_id: str, signature: Optional[str], when: datetime) -> Purchase:
        async with self._lock:
            order = self._order_by_id(order_id)
            if order is None:
                raise LookupError(f"Unknown order {order_id}")
            transaction = self.transactions.get(order.id)
            snippet = self.snippets.get(order.snippet_id)
            if snippet is None:
                raise LookupError(f"Unknown snippet {order.snippet_id}")
            seller = self.users.get(order.seller_id)

            existing = self._find_purchase(order.buyer_id, order.snippet_id)
            purchase = existing
            if existing is None:
                purchase = Purchase(
                    id=new_id("purchase"),
                    user_id=order.buyer_id,
                    snippet_id=order.snippet_id,
                    price=order.amount,
                    purchase_date=when,
                    order_id=order.id,
                )

            # All lookups done, apply
            order.status = OrderStatus.PAID
            order.razorpay_payment_id = payment_id
            order.updated_at = when
            if transaction is not None:
                transaction.status = TransactionStatus.SUCCESS
                transaction.razorpay_payment_id = payment_id
                if signature:
                    transaction.razorpay_signature = signature
                transaction.updated_at = when
            if existing is None:
                self.purchases[purchase.id] = purchase
                snippet.downloads = (snippet.downloads or 0) + 1
                if seller is not None:
                    seller.total_downloads = (seller.total_downloads or 0) + 1
        return purchase

    async def set_order_status(self, razorpay_order_id: str, status: OrderStatus,
                               payment_id: Optional[str] = None) -> Optional[Order]:
        async with self._lock:
            order = self.orders.get(razorpay_order_id)
            if order is None:
                return None
            if order.status == OrderStatus.PAID and status != OrderStatus.PAID:
                logger.warning(f"[Store] Refusing to move paid order {razorpay_order_id} to {status.value}")
                return order
            order.status = status
            if payment_id:
                order.razorpay_payment_id = payment_id
            transaction = self.transactions.get(order.id)
            if transaction is not None:
                transaction.status = transaction_status_for(status)
                if payment_id:
                    transaction.razorpay_payment_id = payment_id
        return order
