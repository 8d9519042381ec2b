from .budget_service import BudgetService, compute_budget_status
from .category_service import CategoryService, DEFAULT_CATEGORIES
from .finance_state import FinanceState, FinanceStateLoader
from .goal_service import GoalService
from .maintenance_service import reset_owner_data
from .month_service import MonthService
from .projection_engine import PredictionKey, generate_predictions
from .reconciliation_service import ReconciliationService
from .recurring_service import RecurringRuleService
from .repository import OwnedRepository, Repositories
from .transaction_service import TransactionService

__all__ = [
    "BudgetService",
    "CategoryService",
    "DEFAULT_CATEGORIES",
    "FinanceState",
    "FinanceStateLoader",
    "GoalService",
    "MonthService",
    "OwnedRepository",
    "PredictionKey",
    "ReconciliationService",
    "RecurringRuleService",
    "Repositories",
    "TransactionService",
    "compute_budget_status",
    "generate_predictions",
    "reset_owner_data",
]
