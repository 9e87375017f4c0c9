from typing import Dict, List, Optional
from fastapi import HTTPException
from sqlalchemy.orm import Session
from orderflow.domain.models import Commission, Order, User
from orderflow.domain.commissions import (
    VENDOR, PARTNER, commission_amount, can_mark_paid, can_delete, plan_deduction,
)
from orderflow.domain.money import ZERO, to_decimal
from orderflow.domain.states import COMMISSION
from orderflow.core.logging_config import get_logger
from .schemas import BulkResult, BulkItemResult, DeductionResult, CommissionRead
from .common import SessionUser, get_or_404, utcnow
from .audit import AuditService
from .user_service import UserService

logger = get_logger(__name__)

class CommissionService:
    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)

    # --- accrual & lifecycle hooks (called from order flows, no commit) ---

    def _rate_for(self, user: User):
        if user.commission_rate is not None:
            return to_decimal(user.commission_rate)
        return UserService(self.db).default_rate(user.role)

    def accrue_for_order(self, order: Order) -> List[Commission]:
        """Create the pending vendor (and partner) commissions of a new order.

        The payee's rate is captured now; later rate changes do not touch it.
        """
        created = []
        payees = [(VENDOR, order.vendor_id)]
        if order.partner_id is not None:
            payees.append((PARTNER, order.partner_id))
        for kind, payee_id in payees:
            payee = self.db.get(User, payee_id)
            if payee is None:
                continue
            percentage = self._rate_for(payee)
            commission = Commission(
                order_id=order.id,
                vendor_id=payee_id if kind == VENDOR else None,
                partner_id=payee_id if kind == PARTNER else None,
                type=kind,
                percentage=percentage,
                order_value=order.total_value,
                order_number=order.order_number,
                amount=commission_amount(order.total_value, percentage),
                status="pending",
            )
            self.db.add(commission)
            created.append(commission)
        logger.info(f"Accrued {len(created)} commission(s) for order {order.order_number}")
        return created

    def confirm_for_order(self, order_id: int, kind: str) -> int:
        pending = self.db.query(Commission).filter(
            Commission.order_id == order_id,
            Commission.type == kind,
            Commission.status == "pending",
        ).all()
        for commission in pending:
            commission.status = COMMISSION.assert_transition(commission.status, "confirmed")
        return len(pending)

    def cancel_for_order(self, order_id: int) -> int:
        open_commissions = self.db.query(Commission).filter(
            Commission.order_id == order_id,
            Commission.status.in_(("pending", "confirmed")),
        ).all()
        for commission in open_commissions:
            commission.status = COMMISSION.assert_transition(commission.status, "cancelled")
        return len(open_commissions)

    # --- queries ---

    def list(self, actor: SessionUser, status: Optional[str] = None, vendor_id: Optional[int] = None,
             partner_id: Optional[int] = None, kind: Optional[str] = None):
        query = self.db.query(Commission)
        if actor.role == "vendor":
            vendor_id = actor.id
        elif actor.role == "partner":
            partner_id = actor.id
        if status:
            query = query.filter(Commission.status == status)
        if vendor_id is not None:
            query = query.filter(Commission.vendor_id == vendor_id)
        if partner_id is not None:
            query = query.filter(Commission.partner_id == partner_id)
        if kind:
            query = query.filter(Commission.type == kind)
        return query.order_by(Commission.created_at.desc(), Commission.id.desc()).all()

    # --- single-item actions ---

    def change_status(self, commission_id: int, target: str, actor: SessionUser) -> Commission:
        commission = get_or_404(self.db, Commission, commission_id, "Commission")
        self._apply_status(commission, target)
        self.audit.record(actor, "UPDATE", "commission", commission.id,
                          f"Commission {commission.id} moved to {target}")
        self.db.commit()
        self.db.refresh(commission)
        return commission

    def _apply_status(self, commission: Commission, target: str) -> None:
        commission.status = COMMISSION.assert_transition(commission.status, target)
        if target == "paid":
            commission.paid_at = utcnow()
        elif target == "deducted":
            commission.deducted_at = utcnow()

    def delete(self, commission_id: int, actor: SessionUser) -> None:
        commission = get_or_404(self.db, Commission, commission_id, "Commission")
        if not can_delete(commission):
            raise HTTPException(status_code=403, detail="Cannot delete a commission that has been paid")
        self.audit.record(actor, "DELETE", "commission", commission.id,
                          f"Commission {commission.id} of order {commission.order_number} deleted", "warning")
        self.db.delete(commission)
        self.db.commit()

    # --- bulk actions ---

    def _load_many(self, ids: List[int]) -> Dict[int, Commission]:
        rows = self.db.query(Commission).filter(Commission.id.in_(ids)).all()
        return {c.id: c for c in rows}

    def _summarise(self, verb: str, results: List[BulkItemResult]) -> BulkResult:
        done = sum(1 for r in results if r.result not in ("ineligible", "not_found"))
        ineligible = sum(1 for r in results if r.result == "ineligible")
        not_found = sum(1 for r in results if r.result == "not_found")
        message = f"{done} {verb}, {ineligible} ineligible"
        if not_found:
            message += f", {not_found} not found"
        return BulkResult(succeeded=done, ineligible=ineligible, not_found=not_found, message=message, results=results)

    def bulk_mark_paid(self, ids: List[int], actor: SessionUser) -> BulkResult:
        """Mark every confirmed commission among `ids` as paid in one transaction.

        Ineligible and unknown ids are reported per item and never block the
        eligible ones.
        """
        found = self._load_many(ids)
        results = []
        for commission_id in dict.fromkeys(ids):
            commission = found.get(commission_id)
            if commission is None:
                results.append(BulkItemResult(id=commission_id, result="not_found"))
            elif not can_mark_paid(commission):
                results.append(BulkItemResult(id=commission_id, result="ineligible", status=commission.status))
            else:
                self._apply_status(commission, "paid")
                results.append(BulkItemResult(id=commission_id, result="marked", status=commission.status))
        summary = self._summarise("marked", results)
        self.audit.record(actor, "BULK_PAY", "commission", None, f"Bulk mark paid: {summary.message}", "success")
        self.db.commit()
        return summary

    def bulk_delete(self, ids: List[int], actor: SessionUser) -> BulkResult:
        found = self._load_many(ids)
        results = []
        for commission_id in dict.fromkeys(ids):
            commission = found.get(commission_id)
            if commission is None:
                results.append(BulkItemResult(id=commission_id, result="not_found"))
            elif not can_delete(commission):
                results.append(BulkItemResult(id=commission_id, result="ineligible", status=commission.status))
            else:
                self.db.delete(commission)
                results.append(BulkItemResult(id=commission_id, result="deleted"))
        summary = self._summarise("deleted", results)
        self.audit.record(actor, "BULK_DELETE", "commission", None, f"Bulk delete: {summary.message}", "warning")
        self.db.commit()
        return summary

    # --- partner deduction ---

    def deduct(self, partner_id: int, amount: float, actor: SessionUser) -> DeductionResult:
        """Deduct `amount` from the partner's pending commissions, oldest first."""
        UserService(self.db).require(partner_id, "partner")
        pending = self.db.query(Commission).filter(
            Commission.partner_id == partner_id,
            Commission.status == "pending",
        ).order_by(Commission.created_at, Commission.id).with_for_update().all()

        steps, remainder = plan_deduction(pending, amount)
        affected = []
        for commission, new_amount in steps:
            if new_amount == ZERO:
                self._apply_status(commission, "deducted")
            else:
                commission.amount = new_amount
            affected.append(commission)

        requested = to_decimal(amount)
        deducted = requested - remainder
        self.audit.record(actor, "DEDUCT", "commission", None,
                          f"Deducted {deducted} from partner {partner_id} commissions (remainder {remainder})")
        self.db.commit()
        return DeductionResult(
            partner_id=partner_id,
            requested=float(requested),
            deducted=float(deducted),
            remainder=float(remainder),
            affected=[CommissionRead.model_validate(c) for c in affected],
        )
