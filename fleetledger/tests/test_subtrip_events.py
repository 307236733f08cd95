"""
Tests for the subtrip audit trail.
"""
from datetime import datetime, timedelta
from decimal import Decimal

from fleetledger.models.subtrip_event import SubtripEvent, SubtripEventType
from fleetledger.schemas.invoice import InvoiceCreate
from fleetledger.schemas.subtrip import SubtripPatch
from fleetledger.services.invoice_service import create_invoice
from fleetledger.services.subtrip_event_service import (
    list_events_between,
    list_events_for_subtrip,
    record_subtrip_event,
    render_event,
)
from fleetledger.services.subtrip_service import update_subtrip


def test_lifecycle_leaves_ordered_trail(db, seed, make_subtrip):
    subtrip = make_subtrip()
    create_invoice(db, seed.tenant.id, InvoiceCreate(customer_id=seed.customer_intra.id, subtrip_ids=[subtrip.id]), seed.user)

    events = list_events_for_subtrip(db, seed.tenant.id, subtrip.id)
    assert [e.event_type for e in events] == [
        SubtripEventType.CREATED.value,
        SubtripEventType.MATERIAL_ADDED.value,
        SubtripEventType.RECEIVED.value,
        SubtripEventType.INVOICE_GENERATED.value,
    ]
    assert all(e.user_id == "1" and e.user_name == "Asha" for e in events)
    assert events[1].details["generated_expenses"] == 3


def test_render_messages(db, seed, make_subtrip):
    subtrip = make_subtrip()
    update_subtrip(db, seed.tenant.id, subtrip.id, SubtripPatch(rate=Decimal("550"), consignee="Hassan"), seed.user)

    messages = [render_event(e) for e in list_events_for_subtrip(db, seed.tenant.id, subtrip.id)]
    assert messages[0] == "Subtrip created by Asha"
    assert messages[1].startswith("Material Cement loaded")
    assert messages[-1] == "Subtrip updated: consignee, rate by Asha"


def test_render_tolerates_missing_details():
    event = SubtripEvent(subtrip_id=1, event_type=SubtripEventType.INVOICE_GENERATED.value, details={})
    assert render_event(event) == "Invoice - generated for -"

    unknown = SubtripEvent(subtrip_id=1, event_type="LEGACY_EVENT", details={})
    assert render_event(unknown) == "LEGACY_EVENT"


def test_events_without_user(db, seed):
    event = record_subtrip_event(db, 42, SubtripEventType.STATUS_CHANGED,
                                 {"from_status": "loaded", "to_status": "received"}, None, seed.tenant.id)
    db.commit()

    assert event.user_id is None
    assert render_event(event) == "Status changed from loaded to received"


def test_events_between_dates_and_types(db, seed, make_subtrip):
    make_subtrip()
    other = make_subtrip(receive=False)
    today = datetime.utcnow().date()

    created = list_events_between(db, seed.tenant.id, today - timedelta(days=1), today + timedelta(days=1),
                                  [SubtripEventType.CREATED])
    assert len(created) == 2

    everything = list_events_between(db, seed.tenant.id, today - timedelta(days=1), today + timedelta(days=1))
    assert len(everything) == 5
    assert everything[-1].subtrip_id == other.id

    assert list_events_between(db, seed.other_tenant.id, today, today) == []
    assert list_events_between(db, seed.tenant.id, today + timedelta(days=2), today + timedelta(days=3)) == []
