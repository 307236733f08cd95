"""
Tests for tenant-scoped sequence numbers.
"""
import threading

from fleetledger.models.counter import Counter
from fleetledger.services.sequence_service import next_sequence


def test_first_call_creates_counter(db, seed):
    assert next_sequence(db, seed.tenant.id, "Invoice") == 1
    assert next_sequence(db, seed.tenant.id, "Invoice") == 2
    db.commit()

    counter = db.query(Counter).filter(Counter.model == "Invoice", Counter.tenant_id == seed.tenant.id).one()
    assert counter.seq == 2


def test_counters_are_per_model_and_tenant(db, seed):
    assert next_sequence(db, seed.tenant.id, "Invoice") == 1
    assert next_sequence(db, seed.tenant.id, "DriverSalary") == 1
    assert next_sequence(db, seed.other_tenant.id, "Invoice") == 1
    assert next_sequence(db, seed.tenant.id, "Invoice") == 2


def test_rolled_back_allocation_is_not_consumed(db, seed):
    next_sequence(db, seed.tenant.id, "Invoice")
    db.commit()

    next_sequence(db, seed.tenant.id, "Invoice")
    db.rollback()

    assert next_sequence(db, seed.tenant.id, "Invoice") == 2


def test_concurrent_callers_get_distinct_contiguous_numbers(session_factory, seed):
    """Parallel allocations from separate sessions never collide."""
    tenant_id = seed.tenant.id
    setup = session_factory()
    first = next_sequence(setup, tenant_id, "Invoice")
    setup.commit()
    setup.close()

    results = []
    errors = []
    lock = threading.Lock()

    def allocate():
        session = session_factory()
        try:
            value = next_sequence(session, tenant_id, "Invoice")
            session.commit()
            with lock:
                results.append(value)
        except Exception as exc:
            session.rollback()
            with lock:
                errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=allocate) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert sorted(results) == list(range(first + 1, first + 9))
