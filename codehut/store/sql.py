import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, func, update, delete, or_, String, cast
from sqlalchemy.exc import IntegrityError

from codehut.core.db import Base, make_engine, make_session_factory, new_id
from codehut.core.errors import DuplicateRecordError
from codehut.modules.auth.models import User, UserSession
from codehut.modules.snippets.models import Snippet
from codehut.modules.purchases.models import Purchase
from codehut.modules.payments.models import Order, OrderStatus, PaymentTransaction, TransactionStatus
from codehut.store.base import (
    MarketplaceStore, SnippetQuery, SNIPPET_SORT_FIELDS, USER_SORT_FIELDS, transaction_status_for,
)

logger = logging.getLogger(__name__)


class SqlStore(MarketplaceStore):
    """Async SQLAlchemy store. Each method is its own transaction."""

    def __init__(self, url: str, echo: bool = False):
        self.engine = make_engine(url, echo=echo)
        self.SessionLocal = make_session_factory(self.engine)

    async def init(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(f"[Store] SQL store ready on {self.engine.url.render_as_string(hide_password=True)}")

    async def close(self) -> None:
        await self.engine.dispose()

    async def bulk_load(self, users: List[User], snippets: List[Snippet], purchases: List[Purchase]) -> None:
        async with self.SessionLocal.begin() as db:
            db.add_all(users)
            await db.flush()
            db.add_all(snippets)
            await db.flush()
            db.add_all(purchases)

    # Users
    async def get_user(self, user_id: str) -> Optional[User]:
        async with self.SessionLocal() as db:
            return await db.get(User, user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        async with self.SessionLocal() as db:
            result = await db.execute(select(User).where(User.username == username))
            return result.scalars().first()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        async with self.SessionLocal() as db:
            result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
            return result.scalars().first()

    async def add_user(self, user: User) -> User:
        try:
            async with self.SessionLocal.begin() as db:
                db.add(user)
        except IntegrityError:
            raise DuplicateRecordError("Username or email already registered")
        return user

    async def update_user(self, user_id: str, **changes) -> Optional[User]:
        async with self.SessionLocal.begin() as db:
            user = await db.get(User, user_id)
            if user is None:
                return None
            for key, value in changes.items():
                setattr(user, key, value)
        return user

    async def list_users(self, sort_by: str, descending: bool, offset: int, limit: int) -> Tuple[List[User], int]:
        field = sort_by if sort_by in USER_SORT_FIELDS else "created_at"
        column = getattr(User, field)
        async with self.SessionLocal() as db:
            total = (await db.execute(select(func.count(User.id)))).scalar() or 0
            result = await db.execute(
                select(User)
                .order_by(column.desc() if descending else column.asc())
                .offset(offset)
                .limit(limit)
            )
            return list(result.scalars().all()), total

    async def all_users(self) -> List[User]:
        async with self.SessionLocal() as db:
            result = await db.execute(select(User))
            return list(result.scalars().all())

    # Sessions
    async def replace_session(self, session: UserSession) -> UserSession:
        async with self.SessionLocal.begin() as db:
            await db.execute(delete(UserSession).where(UserSession.user_id == session.user_id))
            db.add(session)
        return session

    async def get_session(self, user_id: str) -> Optional[UserSession]:
        async with self.SessionLocal() as db:
            result = await db.execute(select(UserSession).where(UserSession.user_id == user_id))
            return result.scalars().first()

    async def delete_session(self, user_id: str) -> None:
        async with self.SessionLocal.begin() as db:
            await db.execute(delete(UserSession).where(UserSession.user_id == user_id))

    async def touch_session(self, user_id: str, when: datetime) -> None:
        async with self.SessionLocal.begin() as db:
            await db.execute(
                update(UserSession).where(UserSession.user_id == user_id).values(last_activity=when)
            )

    async def list_sessions(self) -> List[UserSession]:
        async with self.SessionLocal() as db:
            result = await db.execute(select(UserSession))
            return list(result.scalars().all())

    # Snippets
    async def get_snippet(self, snippet_id: str) -> Optional[Snippet]:
        async with self.SessionLocal() as db:
            return await db.get(Snippet, snippet_id)

    async def add_snippet(self, snippet: Snippet) -> Snippet:
        async with self.SessionLocal.begin() as db:
            author = await db.get(User, snippet.author_id)
            if author is None:
                raise LookupError(f"Unknown author {snippet.author_id}")
            db.add(snippet)
            await db.execute(
                update(User)
                .where(User.id == snippet.author_id)
                .values(total_snippets=User.total_snippets + 1)
            )
        return snippet

    def _snippet_filters(self, query: SnippetQuery) -> list:
        conditions = []
        if query.author_id:
            conditions.append(Snippet.author_id == query.author_id)
        if query.language:
            conditions.append(func.lower(Snippet.language) == query.language.lower())
        if query.framework:
            conditions.append(func.lower(Snippet.framework) == query.framework.lower())
        if query.author:
            conditions.append(Snippet.author_username.ilike(f"%{query.author}%"))
        if query.min_price is not None:
            conditions.append(Snippet.price >= query.min_price)
        if query.max_price is not None:
            conditions.append(Snippet.price <= query.max_price)
        if query.search:
            pattern = f"%{query.search}%"
            conditions.append(or_(
                Snippet.title.ilike(pattern),
                Snippet.description.ilike(pattern),
                # Tags are a JSON list; match against its serialized form
                cast(Snippet.tags, String).ilike(pattern),
            ))
        return conditions

    async def query_snippets(self, query: SnippetQuery) -> Tuple[List[Snippet], int]:
        field = query.sort_by if query.sort_by in SNIPPET_SORT_FIELDS else "created_at"
        column = getattr(Snippet, field)
        if field == "title":
            column = func.lower(Snippet.title)
        conditions = self._snippet_filters(query)
        async with self.SessionLocal() as db:
            total = (await db.execute(select(func.count(Snippet.id)).where(*conditions))).scalar() or 0
            result = await db.execute(
                select(Snippet)
                .where(*conditions)
                .order_by(column.desc() if query.descending else column.asc())
                .offset(query.offset)
                .limit(query.limit)
            )
            return list(result.scalars().all()), total

    async def all_snippets(self) -> List[Snippet]:
        async with self.SessionLocal() as db:
            result = await db.execute(select(Snippet))
            return list(result.scalars().all())

    # Purchases
    async def get_purchase(self, user_id: str, snippet_id: str) -> Optional[Purchase]:
        async with self.SessionLocal() as db:
            result = await db.execute(
                select(Purchase).where(Purchase.user_id == user_id, Purchase.snippet_id == snippet_id)
            )
            return result.scalars().first()

    async def purchases_for_user(self, user_id: str, offset: int, limit: int) -> Tuple[List[Purchase], int]:
        async with self.SessionLocal() as db:
            total = (await db.execute(
                select(func.count(Purchase.id)).where(Purchase.user_id == user_id)
            )).scalar() or 0
            result = await db.execute(
                select(Purchase)
                .where(Purchase.user_id == user_id)
                .order_by(Purchase.purchase_date.desc())
                .offset(offset)
                .limit(limit)
            )
            return list(result.scalars().all()), total

    async def purchases_for_snippet(self, snippet_id: str) -> List[Purchase]:
        async with self.SessionLocal() as db:
            result = await db.execute(select(Purchase).where(Purchase.snippet_id == snippet_id))
            return list(result.scalars().all())

    async def all_purchases(self) -> List[Purchase]:
        async with self.SessionLocal() as db:
            result = await db.execute(select(Purchase))
            return list(result.scalars().all())

    async def record_purchase(self, purchase: Purchase) -> Purchase:
        try:
            async with self.SessionLocal.begin() as db:
                db.add(purchase)
                await db.flush()
                await db.execute(
                    update(Snippet)
                    .where(Snippet.id == purchase.snippet_id)
                    .values(downloads=Snippet.downloads + 1)
                )
        except IntegrityError:
            raise DuplicateRecordError("You have already purchased this snippet")
        return purchase

    # Orders
    async def add_order(self, order: Order, transaction: PaymentTransaction) -> Order:
        async with self.SessionLocal.begin() as db:
            db.add(order)
            await db.flush()
            db.add(transaction)
        return order

    async def get_order(self, razorpay_order_id: str, buyer_id: Optional[str] = None) -> Optional[Order]:
        stmt = select(Order).where(Order.razorpay_order_id == razorpay_order_id)
        if buyer_id is not None:
            stmt = stmt.where(Order.buyer_id == buyer_id)
        async with self.SessionLocal() as db:
            result = await db.execute(stmt)
            return result.scalars().first()

    async def get_order_by_id(self, order_id: str) -> Optional[Order]:
        async with self.SessionLocal() as db:
            return await db.get(Order, order_id)

    async def get_transaction(self, order_id: str) -> Optional[PaymentTransaction]:
        async with self.SessionLocal() as db:
            result = await db.execute(select(PaymentTransaction).where(PaymentTransaction.order_id == order_id))
            return result.scalars().first()

    async def orders_for_buyer(self, buyer_id: str) -> List[Order]:
        async with self.SessionLocal() as db:
            result = await db.execute(
                select(Order).where(Order.buyer_id == buyer_id).order_by(Order.created_at.desc())
            )
            return list(result.scalars().all())

    async def complete_order(self, order_id: str, payment_id: str, signature: Optional[str], when: datetime) -> Purchase:
        async with self.SessionLocal.begin() as db:
            order = await db.get(Order, order_id, with_for_update=True)
            if order is None:
                raise LookupError(f"Unknown order {order_id}")

            order.status = OrderStatus.PAID
            order.razorpay_payment_id = payment_id
            order.updated_at = when

            tx_result = await db.execute(
                select(PaymentTransaction).where(PaymentTransaction.order_id == order.id)
            )
            transaction = tx_result.scalars().first()
            if transaction is not None:
                transaction.status = TransactionStatus.SUCCESS
                transaction.razorpay_payment_id = payment_id
                if signature:
                    transaction.razorpay_signature = signature
                transaction.updated_at = when

            existing = (await db.execute(
                select(Purchase).where(Purchase.user_id == order.buyer_id, Purchase.snippet_id == order.snippet_id)
            )).scalars().first()
            if existing is not None:
                return existing

            purchase = Purchase(
                id=new_id("purchase"),
                user_id=order.buyer_id,
                snippet_id=order.snippet_id,
                price=order.amount,
                purchase_date=when,
                order_id=order.id,
            )
            db.add(purchase)
            bumped = await db.execute(
                update(Snippet).where(Snippet.id == order.snippet_id).values(downloads=Snippet.downloads + 1)
            )
            # Raising inside begin() rolls back the status changes above
            if bumped.rowcount != 1:
                raise LookupError(f"Unknown snippet {order.snippet_id}")
            await db.execute(
                update(User).where(User.id == order.seller_id).values(total_downloads=User.total_downloads + 1)
            )
        return purchase

    async def set_order_status(self, razorpay_order_id: str, status: OrderStatus,
                               payment_id: Optional[str] = None) -> Optional[Order]:
        async with self.SessionLocal.begin() as db:
            result = await db.execute(
                select(Order).where(Order.razorpay_order_id == razorpay_order_id).with_for_update()
            )
            order = result.scalars().first()
            if order is None:
                return None
            if order.status == OrderStatus.PAID and status != OrderStatus.PAID:
                logger.warning(f"[Store] Refusing to move paid order {razorpay_order_id} to {status.value}")
                return order
            order.status = status
            if payment_id:
                order.razorpay_payment_id = payment_id
            await db.execute(
                update(PaymentTransaction)
                .where(PaymentTransaction.order_id == order.id)
                .values(
                    status=transaction_status_for(status),
                    **({"razorpay_payment_id": payment_id} if payment_id else {}),
                )
            )
        return order
