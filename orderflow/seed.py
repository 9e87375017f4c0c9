"""Demo data: `python -m orderflow.seed`. Safe to run more than once."""

from datetime import datetime, timedelta
from orderflow.infrastructure.db import SessionLocal, init_models
from orderflow.domain.models import User
from orderflow.application.common import SessionUser
from orderflow.application.schemas import BudgetCreate, BudgetItemCreate
from orderflow.application.budget_service import BudgetService
from orderflow.application.user_service import UserService
from orderflow.core.logging_config import setup_logging, get_logger

USERS = [
    # username, name, role
    ("admin", "Administrator", "admin"),
    ("vendor", "Demo Vendor", "vendor"),
    ("partner", "Demo Partner", "partner"),
    ("producer-a", "Producer A", "producer"),
    ("producer-b", "Producer B", "producer"),
    ("client", "Demo Client", "client"),
    ("logistics", "Logistics Desk", "logistics"),
    ("finance", "Finance Desk", "finance"),
]

logger = get_logger(__name__)

def seed_users(db) -> dict[str, User]:
    users = UserService(db)
    created = {}
    for username, name, role in USERS:
        user = users.get_by_username(username)
        if user is None:
            user = User(username=username, name=name, role=role, commission_rate=users.default_rate(role))
            db.add(user)
            logger.info(f"Created user {username} ({role})")
        created[username] = user
    db.commit()
    return created

def seed_budget(db, users: dict[str, User]) -> None:
    service = BudgetService(db)
    vendor = users["vendor"]
    actor = SessionUser(id=vendor.id, username=vendor.username, role=vendor.role)
    if service.list(actor):
        logger.info("Demo budget already present, skipping")
        return
    budget = service.create(BudgetCreate(
        title="Branded mugs and tote bags",
        client_id=users["client"].id,
        partner_id=users["partner"].id,
        shipping_cost=8,
        delivery_deadline=datetime.now() + timedelta(days=14),
        items=[
            BudgetItemCreate(product_name="Ceramic mug", quantity=50, unit_price=12.5,
                             producer_id=users["producer-a"].id),
            BudgetItemCreate(product_name="Tote bag", quantity=30, unit_price=9.9,
                             producer_id=users["producer-b"].id),
            BudgetItemCreate(product_name="Gift wrapping", quantity=1, unit_price=20, is_internal=True),
        ],
    ), actor)
    logger.info(f"Created demo budget {budget.budget_number}")

def main():
    setup_logging(service_name="orderflow-seed")
    init_models()
    db = SessionLocal()
    try:
        users = seed_users(db)
        seed_budget(db, users)
    finally:
        db.close()

if __name__ == "__main__":
    main()
