from typing import List, Optional
from fastapi import HTTPException
from sqlalchemy.orm import Session, selectinload
from orderflow.domain.models import Budget, BudgetItem, Order, OrderItem
from orderflow.domain.money import to_decimal
from orderflow.domain.states import BUDGET, BUDGET_CONVERTIBLE
from orderflow.domain.totals import Discount, compute_totals, effective_shipping, line_total
from orderflow.core.logging_config import get_logger
from .schemas import BudgetCreate, BudgetUpdate, BudgetItemCreate, BudgetConvert
from .common import SessionUser, as_naive_utc, next_number, utcnow, with_number_retry
from .audit import AuditService
from .user_service import UserService
from .commission_service import CommissionService

logger = get_logger(__name__)

# Fields copied verbatim from the request onto the budget row
_PLAIN_FIELDS = ("title", "description", "delivery_type", "has_discount", "discount_type")
_MONEY_FIELDS = ("discount_percentage", "discount_value", "customization_value", "shipping_cost")
_DATE_FIELDS = ("valid_until", "delivery_deadline")

class BudgetService:
    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)
        self.users = UserService(db)

    def list(self, actor: SessionUser, status: Optional[str] = None, vendor_id: Optional[int] = None):
        query = self.db.query(Budget).options(selectinload(Budget.items))
        if actor.role == "vendor":
            query = query.filter(Budget.vendor_id == actor.id)
        elif actor.role == "client":
            query = query.filter(Budget.client_id == actor.id)
        elif actor.role == "partner":
            query = query.filter(Budget.partner_id == actor.id)
        elif actor.role == "producer":
            query = query.filter(Budget.items.any(BudgetItem.producer_id == actor.id))
        if status:
            query = query.filter(Budget.status == status)
        if vendor_id is not None:
            query = query.filter(Budget.vendor_id == vendor_id)
        return query.order_by(Budget.created_at.desc(), Budget.id.desc()).all()

    def get(self, budget_id: int, actor: Optional[SessionUser] = None) -> Budget:
        budget = self.db.query(Budget).options(selectinload(Budget.items)).filter(Budget.id == budget_id).first()
        if not budget:
            raise HTTPException(status_code=404, detail="Budget not found")
        if actor is not None:
            self._check_visible(budget, actor)
        return budget

    def _check_visible(self, budget: Budget, actor: SessionUser) -> None:
        owner = {
            "vendor": budget.vendor_id,
            "client": budget.client_id,
            "partner": budget.partner_id,
        }
        if actor.role in owner and owner[actor.role] != actor.id:
            raise HTTPException(status_code=403, detail="Budget belongs to another account")
        if actor.role == "producer" and all(item.producer_id != actor.id for item in budget.items):
            raise HTTPException(status_code=403, detail="Budget has no items for this producer")

    def _build_items(self, items: List[BudgetItemCreate], customization_value) -> List[BudgetItem]:
        rows = []
        for item in items:
            if not item.is_internal:
                self.users.require(item.producer_id, "producer")
            rows.append(BudgetItem(
                product_id=item.product_id,
                product_name=item.product_name,
                producer_id=item.producer_id,
                is_internal=item.is_internal,
                quantity=to_decimal(item.quantity),
                unit_price=to_decimal(item.unit_price),
                has_item_customization=item.has_item_customization,
                item_customization_value=to_decimal(item.item_customization_value),
                item_customization_description=item.item_customization_description,
                total_price=line_total(item, customization_value),
            ))
        return rows

    def _recalculate(self, budget: Budget) -> None:
        for item in budget.items:
            item.total_price = line_total(item, budget.customization_value)
        totals = compute_totals(
            budget.items,
            discount=Discount(
                has_discount=budget.has_discount,
                discount_type=budget.discount_type,
                percentage=budget.discount_percentage,
                value=budget.discount_value,
            ),
            shipping_cost=budget.shipping_cost,
            delivery_type=budget.delivery_type,
            customization_value=budget.customization_value,
        )
        budget.subtotal = totals.subtotal
        budget.discount_amount = totals.discount_amount
        budget.total_value = totals.total

    def _apply_fields(self, budget: Budget, values: dict) -> None:
        for field in _PLAIN_FIELDS:
            if field in values:
                setattr(budget, field, values[field])
        for field in _MONEY_FIELDS:
            if field in values:
                setattr(budget, field, to_decimal(values[field]))
        for field in _DATE_FIELDS:
            if field in values:
                setattr(budget, field, as_naive_utc(values[field]))

    def _check_dates(self, values: dict) -> None:
        now = utcnow()
        for field in _DATE_FIELDS:
            value = as_naive_utc(values.get(field))
            if value is not None and value < now:
                raise HTTPException(status_code=422, detail=f"{field} cannot be in the past")

    def create(self, data: BudgetCreate, actor: SessionUser) -> Budget:
        self._check_dates(data.model_dump())
        vendor_id = actor.id if actor.role == "vendor" else data.vendor_id
        if vendor_id is None:
            raise HTTPException(status_code=422, detail="vendor_id is required")
        self.users.require(vendor_id, "vendor")
        self.users.require(data.client_id, "client")
        self.users.require(data.partner_id, "partner")
        return with_number_retry(self.db, lambda: self._insert(data, vendor_id, actor), "budget")

    def _insert(self, data: BudgetCreate, vendor_id: int, actor: SessionUser) -> Budget:
        budget = Budget(
            budget_number=next_number(self.db, Budget.budget_number, "ORC"),
            vendor_id=vendor_id,
            client_id=data.client_id,
            partner_id=data.partner_id,
            status=BUDGET.initial,
        )
        self._apply_fields(budget, data.model_dump(exclude={"items", "vendor_id", "client_id", "partner_id"}))
        budget.items = self._build_items(data.items, budget.customization_value)
        self._recalculate(budget)
        self.db.add(budget)
        self.db.flush()
        self.audit.record(actor, "CREATE", "budget", budget.id,
                          f"Budget {budget.budget_number} created, total {budget.total_value}", "success")
        self.db.commit()
        return self.get(budget.id)

    def update(self, budget_id: int, data: BudgetUpdate, actor: SessionUser) -> Budget:
        budget = self.get(budget_id, actor)
        if BUDGET.is_terminal(budget.status):
            raise HTTPException(status_code=409, detail=f"Budget in status '{budget.status}' cannot be edited")
        values = data.model_dump(exclude_unset=True)
        self._check_dates(values)
        if "client_id" in values:
            self.users.require(values["client_id"], "client")
            budget.client_id = values["client_id"]
        if "partner_id" in values:
            self.users.require(values["partner_id"], "partner")
            budget.partner_id = values["partner_id"]
        self._apply_fields(budget, values)
        if data.items is not None:
            budget.items = self._build_items(data.items, budget.customization_value)
        self._recalculate(budget)
        self.audit.record(actor, "UPDATE", "budget", budget.id,
                          f"Budget {budget.budget_number} updated, total {budget.total_value}")
        self.db.commit()
        return self.get(budget.id)

    def change_status(self, budget_id: int, target: str, actor: SessionUser) -> Budget:
        if target == "converted":
            raise HTTPException(status_code=422, detail="Use the convert endpoint to convert a budget")
        budget = self.get(budget_id, actor)
        previous = budget.status
        budget.status = BUDGET.assert_transition(budget.status, target)
        self.audit.record(actor, "STATUS", "budget", budget.id,
                          f"Budget {budget.budget_number} moved from {previous} to {target}")
        self.db.commit()
        return self.get(budget.id)

    def convert(self, budget_id: int, data: BudgetConvert, actor: SessionUser) -> Order:
        """Turn an accepted budget into a confirmed order.

        Items keep their producer; external items without one are assigned the
        producer given in the request. The budget's totals are copied, not
        recomputed, and vendor/partner commissions accrue on the order total.
        """
        return with_number_retry(self.db, lambda: self._convert(budget_id, data, actor), "order")

    def _convert(self, budget_id: int, data: BudgetConvert, actor: SessionUser) -> Order:
        budget = self.get(budget_id, actor)
        if budget.status not in BUDGET_CONVERTIBLE:
            raise HTTPException(status_code=409, detail=f"Budget in status '{budget.status}' cannot be converted")
        if budget.client_id is None:
            raise HTTPException(status_code=422, detail="Budget has no client")
        default_producer = self.users.require(data.producer_id, "producer")

        order = Order(
            order_number=next_number(self.db, Order.order_number, "PED"),
            budget_id=budget.id,
            client_id=budget.client_id,
            vendor_id=budget.vendor_id,
            partner_id=budget.partner_id,
            producer_id=default_producer.id if default_producer else None,
            title=budget.title,
            status="confirmed",
            delivery_type=budget.delivery_type,
            subtotal=budget.subtotal,
            discount_amount=budget.discount_amount,
            shipping_cost=effective_shipping(budget.shipping_cost, budget.delivery_type),
            total_value=budget.total_value,
            paid_value=to_decimal(0),
            deadline=budget.delivery_deadline,
        )
        for item in budget.items:
            producer_id = item.producer_id
            if producer_id is None and not item.is_internal and default_producer:
                producer_id = default_producer.id
            order.items.append(OrderItem(
                product_id=item.product_id,
                product_name=item.product_name,
                producer_id=producer_id,
                is_internal=item.is_internal,
                quantity=item.quantity,
                unit_price=item.unit_price,
                has_item_customization=item.has_item_customization,
                item_customization_value=item.item_customization_value,
                item_customization_description=item.item_customization_description,
                total_price=item.total_price,
            ))
        self.db.add(order)
        budget.status = BUDGET.assert_transition(budget.status, "converted")
        self.db.flush()

        CommissionService(self.db).accrue_for_order(order)
        self.audit.record(actor, "CONVERT", "budget", budget.id,
                          f"Budget {budget.budget_number} converted to order {order.order_number}", "success")
        self.db.commit()
        logger.info(f"Budget {budget.budget_number} converted to order {order.order_number}")
        return order
