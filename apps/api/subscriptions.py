# apps/api/subscriptions.py
import logging
import uuid
from typing import Dict, Iterable, Optional, Set

from sqlalchemy import func
from sqlalchemy.orm import Session

from db import upsert_insert
from errors import InvalidOperationError, NotFoundError
from models import Subscription, User

log = logging.getLogger("subscriptions")


def toggle_subscription(db: Session, subscriber: User, target_id: uuid.UUID) -> bool:
    """Subscribe to or unsubscribe from `target_id`; returns the new state."""
    if subscriber.id == target_id:
        raise InvalidOperationError("You cannot subscribe to your own channel")
    if not db.get(User, target_id):
        raise NotFoundError("user", target_id)

    removed = (
        db.query(Subscription)
        .filter(
            Subscription.subscriber_id == subscriber.id,
            Subscription.subscribed_to_id == target_id,
        )
        .delete(synchronize_session=False)
    )
    if removed:
        db.commit()
        log.info("user %s unsubscribed from %s", subscriber.id, target_id)
        return False

    insert = upsert_insert(db)
    stmt = (
        insert(Subscription)
        .values(subscriber_id=subscriber.id, subscribed_to_id=target_id)
        .on_conflict_do_nothing(index_elements=["subscriber_id", "subscribed_to_id"])
    )
    db.execute(stmt)
    db.commit()
    log.info("user %s subscribed to %s", subscriber.id, target_id)
    return True


def is_subscribed(db: Session, subscriber: Optional[User], target_id: uuid.UUID) -> bool:
    if subscriber is None:
        return False
    q = db.query(Subscription.id).filter(
        Subscription.subscriber_id == subscriber.id,
        Subscription.subscribed_to_id == target_id,
    )
    return db.query(q.exists()).scalar()


def count_subscribers(db: Session, target_id: uuid.UUID) -> int:
    return (
        db.query(func.count(Subscription.id))
        .filter(Subscription.subscribed_to_id == target_id)
        .scalar()
        or 0
    )


def subscriptions_of(db: Session, subscriber_id: uuid.UUID) -> Set[uuid.UUID]:
    rows = (
        db.query(Subscription.subscribed_to_id)
        .filter(Subscription.subscriber_id == subscriber_id)
        .all()
    )
    return {target for (target,) in rows}


def subscriber_counts(db: Session, user_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, int]:
    ids = list(user_ids)
    if not ids:
        return {}
    rows = (
        db.query(Subscription.subscribed_to_id, func.count(Subscription.id))
        .filter(Subscription.subscribed_to_id.in_(ids))
        .group_by(Subscription.subscribed_to_id)
        .all()
    )
    counts = {uid: 0 for uid in ids}
    counts.update({uid: int(n) for uid, n in rows})
    return counts


def subscribed_targets(
    db: Session, subscriber: Optional[User], user_ids: Iterable[uuid.UUID]
) -> Set[uuid.UUID]:
    """Subset of `user_ids` the subscriber follows (empty for anonymous)."""
    ids = list(user_ids)
    if subscriber is None or not ids:
        return set()
    rows = (
        db.query(Subscription.subscribed_to_id)
        .filter(
            Subscription.subscriber_id == subscriber.id,
            Subscription.subscribed_to_id.in_(ids),
        )
        .all()
    )
    return {target for (target,) in rows}
