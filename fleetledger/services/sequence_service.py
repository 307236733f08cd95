"""
Sequence generator for tenant-scoped document numbers.
"""
import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fleetledger.models.counter import Counter

logger = logging.getLogger(__name__)


def _increment(db: Session, tenant_id: int, model: str) -> int:
    return db.query(Counter).filter(
        Counter.model == model,
        Counter.tenant_id == tenant_id,
    ).update({Counter.seq: Counter.seq + 1}, synchronize_session=False)


def next_sequence(db: Session, tenant_id: int, model: str) -> int:
    """
    Atomically increment and return the counter for (model, tenant).

    The increment is a single UPDATE, so the row lock it takes serializes
    concurrent callers until their transaction ends. The first caller for a
    pair inserts the row inside a savepoint; losing that insert race falls
    back to the UPDATE. Runs inside the caller's transaction and does not
    commit.
    """
    if not _increment(db, tenant_id, model):
        try:
            with db.begin_nested():
                db.add(Counter(model=model, tenant_id=tenant_id, seq=1))
            logger.info(f"Created counter {model} for tenant {tenant_id}")
            return 1
        except IntegrityError:
            logger.info(f"Counter {model} for tenant {tenant_id} created concurrently, retrying increment")
            _increment(db, tenant_id, model)

    return db.query(Counter.seq).filter(
        Counter.model == model,
        Counter.tenant_id == tenant_id,
    ).scalar()
