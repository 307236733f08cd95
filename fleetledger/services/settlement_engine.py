"""
Settlement document engine.

One claim protocol shared by invoices, driver salary receipts and
transporter payment receipts:

    resolve counterparty -> lock and check eligibility -> snapshot ->
    allocate number -> persist document -> claim subtrips -> audit

Everything from the eligibility check on runs inside a single transaction.
The claim itself is a conditional UPDATE (claim field still NULL) whose row
count must match the batch, so two overlapping requests can never both
claim the same subtrip.
"""
import logging
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from sqlalchemy.orm import Session
from fleetledger.core.exceptions import (
    BatchItemError,
    ConflictError,
    FleetLedgerError,
    NotFoundError,
    PartialEligibilityError,
    ValidationError,
)
from fleetledger.db.session import atomic
from fleetledger.models.subtrip import Subtrip, SubtripStatus
from fleetledger.models.subtrip_event import SubtripEventType
from fleetledger.models.tenant import Tenant
from fleetledger.models.vehicle import Vehicle
from fleetledger.schemas.common import CurrentUser
from fleetledger.services.sequence_service import next_sequence
from fleetledger.services.settlement_calc import SettlementKind
from fleetledger.services.subtrip_event_service import record_subtrip_event

logger = logging.getLogger(__name__)


class SettlementContext(NamedTuple):
    """Lookups resolved before the transaction opens."""
    counterparty: Any
    own_state: Optional[str]


class SettlementEngine:
    """
    Base class for the three settlement documents.

    Subclasses describe what differs: the document model, the claim field,
    which subtrips are eligible, how a subtrip is snapshotted and how the
    document and its totals are built.
    """
    kind: SettlementKind
    label: str
    document_model = None
    counterparty_model = None
    counter_model: str
    claim_field: str
    eligible_statuses: Sequence[SubtripStatus] = (SubtripStatus.RECEIVED,)
    claimed_status: Optional[SubtripStatus] = None
    released_status: Optional[SubtripStatus] = None
    generated_event: SubtripEventType
    deleted_event: SubtripEventType

    # Hooks

    def counterparty_id(self, payload) -> int:
        raise NotImplementedError

    def eligibility_filters(self, counterparty) -> List[Any]:
        """Extra filter clauses on Subtrip/Vehicle for this document type."""
        return []

    def build_snapshot(self, db: Session, subtrip: Subtrip, counterparty):
        raise NotImplementedError

    def format_number(self, seq: int, counterparty) -> str:
        raise NotImplementedError

    def build_document(self, db: Session, tenant_id: int, number: str, payload,
                       context: SettlementContext, subtrips: List[Subtrip], snapshots: list):
        raise NotImplementedError

    def after_persist(self, db: Session, tenant_id: int, document, payload,
                      context: SettlementContext, user: Optional[CurrentUser]) -> None:
        """Side effects that need the document id (e.g. loan repayments)."""

    def event_details(self, document) -> Dict[str, Any]:
        raise NotImplementedError

    # Protocol

    @property
    def claim_column(self):
        return getattr(Subtrip, self.claim_field)

    def get_document(self, db: Session, tenant_id: int, document_id: int, for_update: bool = False):
        """Fetch a document of the tenant or raise NotFoundError."""
        model = self.document_model
        query = db.query(model).filter(model.id == document_id, model.tenant_id == tenant_id)
        if for_update:
            query = query.with_for_update()
        document = query.first()
        if not document:
            raise NotFoundError(f"{self.label} not found", {"id": document_id})
        return document

    def prepare(self, db: Session, tenant_id: int, payload) -> SettlementContext:
        """Resolve counterparty and tenant state; no locks are taken."""
        model = self.counterparty_model
        counterparty_id = self.counterparty_id(payload)
        counterparty = db.query(model).filter(
            model.id == counterparty_id,
            model.tenant_id == tenant_id,
        ).first()
        if not counterparty:
            raise NotFoundError(
                f"{model.__name__} not found",
                {f"{model.__tablename__[:-1]}_id": counterparty_id},
            )

        tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
        if not tenant:
            raise NotFoundError("Tenant not found", {"tenant_id": tenant_id})

        return SettlementContext(counterparty=counterparty, own_state=tenant.state)

    def fetch_eligible(self, db: Session, tenant_id: int, subtrip_ids: List[int], counterparty) -> List[Subtrip]:
        """
        Lock and return the requested subtrips, all or nothing.

        Raises PartialEligibilityError naming every id that is missing,
        already claimed, in the wrong state or of the wrong vehicle kind.
        """
        found = db.query(Subtrip).join(Vehicle, Subtrip.vehicle_id == Vehicle.id).filter(
            Subtrip.id.in_(subtrip_ids),
            Subtrip.tenant_id == tenant_id,
            self.claim_column.is_(None),
            Subtrip.subtrip_status.in_(self.eligible_statuses),
            *self.eligibility_filters(counterparty),
        ).with_for_update().all()

        by_id = {subtrip.id: subtrip for subtrip in found}
        failed = [subtrip_id for subtrip_id in subtrip_ids if subtrip_id not in by_id]
        if failed:
            logger.warning(f"{self.label} rejected, ineligible subtrips: {failed}")
            raise PartialEligibilityError(
                f"Some subtrips are not eligible for {self.label.lower()}: "
                f"missing, in the wrong state or already settled",
                failed,
            )
        return [by_id[subtrip_id] for subtrip_id in subtrip_ids]

    def claim(self, db: Session, tenant_id: int, document, subtrips: List[Subtrip]) -> None:
        """Set the claim field (and status) on every subtrip, or fail the unit."""
        ids = [subtrip.id for subtrip in subtrips]
        values = {self.claim_column: document.id}
        if self.claimed_status is not None:
            values[Subtrip.subtrip_status] = self.claimed_status

        db.flush()
        updated = db.query(Subtrip).filter(
            Subtrip.id.in_(ids),
            Subtrip.tenant_id == tenant_id,
            self.claim_column.is_(None),
            Subtrip.subtrip_status.in_(self.eligible_statuses),
        ).update(values, synchronize_session=False)

        if updated != len(ids):
            # Rows that lost the race; ours are the ones now pointing at this document
            lost = [
                subtrip_id for (subtrip_id,) in db.query(Subtrip.id).filter(
                    Subtrip.id.in_(ids),
                    self.claim_column.isnot(None),
                    self.claim_column != document.id,
                ).all()
            ]
            raise ConflictError(
                f"Subtrips were settled concurrently into another {self.label.lower()}",
                {"subtrip_ids": sorted(lost) or ids},
            )
        for subtrip in subtrips:
            db.expire(subtrip)

    def release(self, db: Session, tenant_id: int, document, user: Optional[CurrentUser],
                event_type: Optional[SubtripEventType] = None) -> None:
        """Clear the claim field on every associated subtrip and audit the reversal."""
        ids = list(document.associated_subtrips)
        values = {self.claim_column: None}
        if self.released_status is not None:
            values[Subtrip.subtrip_status] = self.released_status

        db.flush()
        db.query(Subtrip).filter(
            Subtrip.id.in_(ids),
            Subtrip.tenant_id == tenant_id,
            self.claim_column == document.id,
        ).update(values, synchronize_session=False)

        for obj in list(db.identity_map.values()):
            if isinstance(obj, Subtrip) and obj.id in ids:
                db.expire(obj)

        details = self.event_details(document)
        for subtrip_id in ids:
            record_subtrip_event(db, subtrip_id, event_type or self.deleted_event, details, user, tenant_id)

    def _create(self, db: Session, tenant_id: int, payload, context: SettlementContext,
                user: Optional[CurrentUser]):
        subtrip_ids = list(dict.fromkeys(payload.subtrip_ids))
        if not subtrip_ids:
            raise ValidationError(f"No subtrips provided for {self.label.lower()}")

        subtrips = self.fetch_eligible(db, tenant_id, subtrip_ids, context.counterparty)
        snapshots = [self.build_snapshot(db, subtrip, context.counterparty) for subtrip in subtrips]

        seq = next_sequence(db, tenant_id, self.counter_model)
        number = self.format_number(seq, context.counterparty)

        document = self.build_document(db, tenant_id, number, payload, context, subtrips, snapshots)
        db.add(document)
        db.flush()

        self.claim(db, tenant_id, document, subtrips)
        self.after_persist(db, tenant_id, document, payload, context, user)

        details = self.event_details(document)
        for subtrip_id in subtrip_ids:
            record_subtrip_event(db, subtrip_id, self.generated_event, details, user, tenant_id)

        return document

    def create(self, db: Session, tenant_id: int, payload, user: Optional[CurrentUser] = None):
        """Create one document claiming the payload's subtrips, all or nothing."""
        context = self.prepare(db, tenant_id, payload)
        with atomic(db):
            document = self._create(db, tenant_id, payload, context, user)

        db.refresh(document)
        logger.info(
            f"Created {self.label.lower()} {self.document_number(document)} "
            f"for {len(document.associated_subtrips)} subtrips"
        )
        return document

    def create_bulk(self, db: Session, tenant_id: int, payloads: Sequence[Any],
                    user: Optional[CurrentUser] = None) -> list:
        """
        Create many documents in one transaction.

        The first failing payload aborts the whole batch; the error names
        its index and carries the underlying reason.
        """
        if not payloads:
            raise ValidationError("No payloads provided")

        contexts = []
        for index, payload in enumerate(payloads):
            try:
                contexts.append(self.prepare(db, tenant_id, payload))
            except FleetLedgerError as error:
                raise BatchItemError(index, error) from error

        documents = []
        with atomic(db):
            for index, (payload, context) in enumerate(zip(payloads, contexts)):
                try:
                    documents.append(self._create(db, tenant_id, payload, context, user))
                except FleetLedgerError as error:
                    logger.warning(f"Bulk {self.label.lower()} aborted at payload #{index + 1}: {error.message}")
                    raise BatchItemError(index, error) from error

        for document in documents:
            db.refresh(document)
        logger.info(f"Created {len(documents)} {self.label.lower()} documents in bulk")
        return documents

    def document_number(self, document) -> str:
        return document.payment_id
