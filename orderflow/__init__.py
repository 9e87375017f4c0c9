"""Order fulfillment service: budgets, orders, production, logistics and commissions."""

__version__ = "1.0.0"
