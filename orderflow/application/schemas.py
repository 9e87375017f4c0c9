from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Literal, Optional

Role = Literal["admin", "vendor", "client", "producer", "partner", "logistics", "finance"]

class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

# --- users / auth ---

class TokenRequest(BaseModel):
    username: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
    user_id: int

class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    name: str
    role: Role
    email: Optional[str] = None
    commission_rate: Optional[float] = Field(default=None, ge=0, le=100)

class CommissionRateUpdate(BaseModel):
    commission_rate: float = Field(ge=0, le=100)

class UserRead(ORMModel):
    id: int
    username: str
    name: str
    role: str
    email: Optional[str] = None
    commission_rate: Optional[float] = None
    is_active: bool

# --- budgets ---

class BudgetItemCreate(BaseModel):
    product_name: str
    product_id: Optional[int] = None
    producer_id: Optional[int] = None
    is_internal: bool = False
    quantity: float = Field(gt=0)
    unit_price: float = Field(ge=0)
    has_item_customization: bool = False
    item_customization_value: float = Field(default=0, ge=0)
    item_customization_description: Optional[str] = None

class BudgetCreate(BaseModel):
    title: str
    description: Optional[str] = None
    client_id: Optional[int] = None
    vendor_id: Optional[int] = None
    partner_id: Optional[int] = None
    delivery_type: Literal["delivery", "pickup"] = "delivery"
    has_discount: bool = False
    discount_type: Literal["percentage", "value"] = "percentage"
    discount_percentage: float = Field(default=0, ge=0, le=100)
    discount_value: float = Field(default=0, ge=0)
    customization_value: float = Field(default=0, ge=0)
    shipping_cost: float = Field(default=0, ge=0)
    valid_until: Optional[datetime] = None
    delivery_deadline: Optional[datetime] = None
    items: list[BudgetItemCreate] = Field(min_length=1)

class BudgetUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    client_id: Optional[int] = None
    partner_id: Optional[int] = None
    delivery_type: Optional[Literal["delivery", "pickup"]] = None
    has_discount: Optional[bool] = None
    discount_type: Optional[Literal["percentage", "value"]] = None
    discount_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    discount_value: Optional[float] = Field(default=None, ge=0)
    customization_value: Optional[float] = Field(default=None, ge=0)
    shipping_cost: Optional[float] = Field(default=None, ge=0)
    valid_until: Optional[datetime] = None
    delivery_deadline: Optional[datetime] = None
    items: Optional[list[BudgetItemCreate]] = None

    @field_validator("items")
    @classmethod
    def items_not_empty(cls, v):
        if v is not None and len(v) == 0:
            raise ValueError("a budget needs at least one item")
        return v

class StatusChange(BaseModel):
    status: str

class BudgetConvert(BaseModel):
    producer_id: Optional[int] = None

class BudgetItemRead(ORMModel):
    id: int
    product_name: str
    product_id: Optional[int] = None
    producer_id: Optional[int] = None
    is_internal: bool
    quantity: float
    unit_price: float
    has_item_customization: bool
    item_customization_value: float
    item_customization_description: Optional[str] = None
    total_price: float

class BudgetRead(ORMModel):
    id: int
    budget_number: str
    title: str
    description: Optional[str] = None
    client_id: Optional[int] = None
    vendor_id: int
    partner_id: Optional[int] = None
    status: str
    delivery_type: str
    has_discount: bool
    discount_type: str
    discount_percentage: float
    discount_value: float
    customization_value: float
    shipping_cost: float
    subtotal: float
    discount_amount: float
    total_value: float
    valid_until: Optional[datetime] = None
    delivery_deadline: Optional[datetime] = None
    created_at: datetime
    items: list[BudgetItemRead]

# --- orders ---

class OrderItemRead(ORMModel):
    id: int
    product_name: str
    product_id: Optional[int] = None
    producer_id: Optional[int] = None
    is_internal: bool
    quantity: float
    unit_price: float
    has_item_customization: bool
    item_customization_value: float
    total_price: float
    purchase_status: str
    production_order_id: Optional[int] = None

class PurchaseStatusUpdate(BaseModel):
    purchase_status: Literal["to_buy", "purchased", "in_store"]

class PaymentCreate(BaseModel):
    amount: float = Field(gt=0)
    method: Literal["pix", "credit_card", "bank_transfer", "boleto"]
    status: Literal["pending", "confirmed", "failed"] = "confirmed"
    transaction_id: Optional[str] = None

class PaymentRead(ORMModel):
    id: int
    order_id: int
    amount: float
    method: str
    status: str
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime

class ProductionOrderRead(ORMModel):
    id: int
    order_id: int
    producer_id: int
    status: str
    deadline: Optional[datetime] = None
    tracking_code: Optional[str] = None
    notes: Optional[str] = None
    has_unread_notes: bool
    last_note_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    items: list[OrderItemRead] = []
    # Computed at read time, never stored
    priority: Optional[str] = None

class OrderRead(ORMModel):
    id: int
    order_number: str
    budget_id: Optional[int] = None
    client_id: Optional[int] = None
    vendor_id: int
    partner_id: Optional[int] = None
    producer_id: Optional[int] = None
    title: str
    status: str
    delivery_type: str
    subtotal: float
    discount_amount: float
    shipping_cost: float
    total_value: float
    paid_value: float
    deadline: Optional[datetime] = None
    created_at: datetime
    items: list[OrderItemRead]
    production_orders: list[ProductionOrderRead] = []
    # Computed at read time, never stored
    display_status: Optional[str] = None
    payment_status: Optional[str] = None
    remaining_value: Optional[float] = None
    priority: Optional[str] = None

class SendToProduction(BaseModel):
    producer_id: Optional[int] = None
    deadline: Optional[datetime] = None

class ProducerDispatchResult(BaseModel):
    producer_id: int
    production_order_id: int
    result: Literal["created", "existing"]
    item_ids: list[int]

class SendToProductionResult(BaseModel):
    order_id: int
    order_status: str
    results: list[ProducerDispatchResult]

class ConfirmDelivery(BaseModel):
    production_order_id: Optional[int] = None

# --- production orders ---

class ProductionStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = None
    deadline: Optional[datetime] = None
    tracking_code: Optional[str] = None

class ProductionNotesUpdate(BaseModel):
    notes: str

# --- logistics ---

class PendingShipmentRow(BaseModel):
    order_id: int
    order_number: str
    order_status: str
    producer_id: int
    items: list[OrderItemRead]
    item_count: int
    group_value: float
    deadline: Optional[datetime] = None
    priority: Optional[str] = None

class LogisticsDashboard(BaseModel):
    by_status: dict[str, int]
    overdue: int
    awaiting_dispatch: int

# --- commissions ---

class CommissionRead(ORMModel):
    id: int
    order_id: int
    vendor_id: Optional[int] = None
    partner_id: Optional[int] = None
    type: str
    percentage: float
    order_value: float
    order_number: Optional[str] = None
    amount: float
    status: str
    paid_at: Optional[datetime] = None
    deducted_at: Optional[datetime] = None
    created_at: datetime

class BulkIds(BaseModel):
    ids: list[int] = Field(min_length=1)

class BulkItemResult(BaseModel):
    id: int
    result: Literal["marked", "deleted", "ineligible", "not_found"]
    status: Optional[str] = None

class BulkResult(BaseModel):
    succeeded: int
    ineligible: int
    not_found: int
    message: str
    results: list[BulkItemResult]

class DeductionRequest(BaseModel):
    amount: float = Field(gt=0)

class DeductionResult(BaseModel):
    partner_id: int
    requested: float
    deducted: float
    remainder: float
    affected: list[CommissionRead]

# --- producer payables ---

class ProducerPaymentCreate(BaseModel):
    production_order_id: int
    amount: float = Field(gt=0)
    notes: Optional[str] = None

class ProducerPaymentStatusUpdate(BaseModel):
    status: Literal["approved", "paid", "rejected"]
    payment_method: Optional[Literal["pix", "credit_card", "bank_transfer", "boleto"]] = None
    notes: Optional[str] = None

class ProducerPaymentRead(ORMModel):
    id: int
    production_order_id: int
    producer_id: int
    order_id: int
    amount: float
    status: str
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    paid_by: Optional[int] = None
    paid_at: Optional[datetime] = None
    created_at: datetime

class ProducerPaymentSummary(BaseModel):
    producer_id: Optional[int] = None
    outstanding: float
    paid: float
    counts: dict[str, int]

# --- audit ---

class AuditLogRead(ORMModel):
    id: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    role: Optional[str] = None
    action: str
    entity: str
    entity_id: Optional[int] = None
    description: str
    level: str
    created_at: datetime
