from decimal import Decimal

import pytest

from codehut.core.db import new_id, utcnow
from codehut.core.errors import DuplicateRecordError
from codehut.modules.auth.models import UserSession
from codehut.modules.payments.models import Order, OrderStatus, PaymentTransaction, TransactionStatus
from codehut.modules.purchases.models import Purchase
from codehut.store.base import SnippetQuery
from codehut.store.memory import MemoryStore
from codehut.store.sample_data import sample_marketplace
from codehut.store.sql import SqlStore


@pytest.fixture(params=["memory", "sqlite"])
async def store(request, tmp_path):
    """A seeded store of each kind."""
    if request.param == "memory":
        store = MemoryStore()
    else:
        store = SqlStore(f"sqlite+aiosqlite:///{tmp_path / 'codehut.db'}")
    await store.init()
    await store.bulk_load(*sample_marketplace(rounds=4))
    yield store
    await store.close()


async def open_order(store, buyer_id="user-3", snippet_id="snippet-1", remote_id="order_rzp_1"):
    now = utcnow()
    order = Order(
        id=new_id("order"),
        buyer_id=buyer_id,
        seller_id="user-1",
        snippet_id=snippet_id,
        amount=Decimal("5.00"),
        commission=Decimal("0.50"),
        seller_earning=Decimal("4.50"),
        currency="INR",
        status=OrderStatus.CREATED,
        razorpay_order_id=remote_id,
        created_at=now,
        updated_at=now,
    )
    transaction = PaymentTransaction(
        id=new_id("txn"),
        order_id=order.id,
        user_id=buyer_id,
        status=TransactionStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
    await store.add_order(order, transaction)
    return order


async def test_complete_order_grants_purchase_and_bumps_counters(store):
    order = await open_order(store)

    purchase = await store.complete_order(order.id, "pay_1", "sig_1", utcnow())

    assert purchase.user_id == "user-3"
    assert purchase.order_id == order.id
    assert (await store.get_purchase("user-3", "snippet-1")) is not None
    assert (await store.get_order("order_rzp_1")).status == OrderStatus.PAID
    transaction = await store.get_transaction(order.id)
    assert transaction.status == TransactionStatus.SUCCESS
    assert transaction.razorpay_signature == "sig_1"
    assert (await store.get_snippet("snippet-1")).downloads == 90
    assert (await store.get_user("user-1")).total_downloads == 246


async def test_complete_order_twice_is_idempotent(store):
    order = await open_order(store)
    first = await store.complete_order(order.id, "pay_1", "sig_1", utcnow())
    second = await store.complete_order(order.id, "pay_1", None, utcnow())

    assert first.id == second.id
    assert len(await store.purchases_for_snippet("snippet-1")) == 2
    assert (await store.get_snippet("snippet-1")).downloads == 90


async def test_complete_unknown_order_changes_nothing(store):
    with pytest.raises(LookupError):
        await store.complete_order("order-missing", "pay_1", None, utcnow())
    assert (await store.get_snippet("snippet-1")).downloads == 89


async def test_paid_order_is_never_downgraded(store):
    order = await open_order(store)
    await store.complete_order(order.id, "pay_1", "sig_1", utcnow())

    result = await store.set_order_status("order_rzp_1", OrderStatus.FAILED)

    assert result.status == OrderStatus.PAID
    assert (await store.get_order("order_rzp_1")).status == OrderStatus.PAID
    assert (await store.get_transaction(order.id)).status == TransactionStatus.SUCCESS


async def test_failed_status_reaches_transaction(store):
    order = await open_order(store)
    await store.set_order_status("order_rzp_1", OrderStatus.FAILED, "pay_bad")

    assert (await store.get_order("order_rzp_1")).status == OrderStatus.FAILED
    transaction = await store.get_transaction(order.id)
    assert transaction.status == TransactionStatus.FAILED
    assert transaction.razorpay_payment_id == "pay_bad"


async def test_orders_are_scoped_to_their_buyer(store):
    await open_order(store)
    assert await store.get_order("order_rzp_1", buyer_id="user-5") is None
    assert await store.get_order("order_rzp_1", buyer_id="user-3") is not None
    assert [o.razorpay_order_id for o in await store.orders_for_buyer("user-3")] == ["order_rzp_1"]


async def test_duplicate_purchase_is_rejected(store):
    duplicate = Purchase(id=new_id("purchase"), user_id="user-1", snippet_id="snippet-2",
                         price=Decimal("15"), purchase_date=utcnow())
    with pytest.raises(DuplicateRecordError):
        await store.record_purchase(duplicate)


async def test_query_snippets(store):
    snippets, total = await store.query_snippets(SnippetQuery(search="middleware", limit=10))
    assert total == 1
    assert snippets[0].id == "snippet-3"

    snippets, total = await store.query_snippets(
        SnippetQuery(min_price=Decimal("6"), sort_by="price", descending=False, limit=2)
    )
    assert total == 4
    assert [s.id for s in snippets] == ["snippet-6", "snippet-3"]


async def test_sessions_replace_each_other(store):
    for token in ("first", "second"):
        now = utcnow()
        await store.replace_session(UserSession(
            id=new_id("session"), user_id="user-3", refresh_token=token,
            expires_at=now, created_at=now, last_activity=now,
        ))
    session = await store.get_session("user-3")
    assert session.refresh_token == "second"
    assert len(await store.list_sessions()) == 1

    await store.delete_session("user-3")
    assert await store.get_session("user-3") is None


async def test_failed_completion_rolls_everything_back(store):
    order = await open_order(store, snippet_id="snippet-missing")

    with pytest.raises(LookupError):
        await store.complete_order(order.id, "pay_1", "sig_1", utcnow())

    assert (await store.get_order("order_rzp_1")).status == OrderStatus.CREATED
    transaction = await store.get_transaction(order.id)
    assert transaction.status == TransactionStatus.PENDING
    assert transaction.razorpay_signature is None
    assert await store.get_purchase("user-3", "snippet-missing") is None
    assert (await store.get_user("user-1")).total_downloads == 245
