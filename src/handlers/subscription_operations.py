"""
Subscription Operations Handler.

This module provides API endpoints for CSV analysis, analysis history,
change trails, snapshot comparison, category distribution and budget
alerts.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Any

from models.analysis_history import AnalysisHistory
from services.budget_service import BudgetService
from services.category_analyzer import CategoryAnalyzer
from services.subscription_manager import InputQualityError, SubscriptionManager
from utils.db.base import NotFound
from utils.lambda_utils import (
    mandatory_path_parameter,
    mandatory_query_parameter,
    mandatory_body_parameter,
    optional_body_parameter,
    optional_int_query_parameter,
)
from utils.handler_decorators import (
    api_handler,
    standard_error_handling,
    require_authenticated_user,
)
from utils.transaction_parser import parse_csv_transactions

logger = logging.getLogger(__name__)

subscription_manager = SubscriptionManager()
category_analyzer = CategoryAnalyzer()
budget_service = BudgetService()


def _history_summary(history: AnalysisHistory) -> Dict[str, Any]:
    return history.model_dump(by_alias=True, mode="json", exclude={'subscriptions'})


# ============================================================================
# Handler Functions
# ============================================================================

@api_handler()
def analyze_handler(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    Analyze an uploaded CSV export and save the snapshot.

    POST /subscriptions/analyze

    Request body:
    {
        "fileName": "card-2024-05.csv",
        "content": "date,merchant,amount\\n2024-05-01,NETFLIX,17000\\n...",
        "hasHeader": true
    }
    """
    file_name = mandatory_body_parameter(event, "fileName")
    content = mandatory_body_parameter(event, "content")
    has_header = optional_body_parameter(event, "hasHeader")
    has_header = True if has_header is None else bool(has_header)

    transactions = parse_csv_transactions(content, has_header=has_header)
    if not transactions:
        raise InputQualityError(f"No transactions could be parsed from {file_name}")

    history = subscription_manager.analyze_and_persist(user_id, transactions, file_name)
    return {
        "message": "Analysis saved",
        "history": history.model_dump(by_alias=True, mode="json"),
    }


@api_handler()
def list_history_handler(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    GET /subscriptions/history?limit=10
    """
    limit = optional_int_query_parameter(event, "limit", 10)
    histories = subscription_manager.get_recent_history(user_id, limit)
    return {
        "histories": [_history_summary(history) for history in histories],
        "metadata": {"totalHistories": len(histories), "limit": limit},
    }


@api_handler()
def get_history_handler(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    GET /subscriptions/history/{id}

    Returns the snapshot with its subscriptions and derived summary.
    """
    history_id = mandatory_path_parameter(event, "id")
    history = subscription_manager.get_history(user_id, history_id)
    summary = subscription_manager.get_summary(user_id, history_id)
    return {
        "history": history.model_dump(by_alias=True, mode="json"),
        "summary": summary.model_dump(
            by_alias=True, mode="json", include={'active_subscriptions', 'cancellation_candidates', 'upcoming_payments'}
        ),
    }


@api_handler()
def delete_history_handler(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    DELETE /subscriptions/history/{id}
    """
    history_id = mandatory_path_parameter(event, "id")
    subscription_manager.delete_history(user_id, history_id)
    return {"message": "Analysis history deleted", "historyId": history_id}


@api_handler()
def compare_history_handler(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    GET /subscriptions/history/compare?olderId=...&newerId=...
    """
    older_id = mandatory_query_parameter(event, "olderId")
    newer_id = mandatory_query_parameter(event, "newerId")
    result = subscription_manager.compare_history(user_id, older_id, newer_id)
    if result is None:
        raise NotFound("Analysis history not found")
    return {"comparison": result.model_dump(by_alias=True, mode="json")}


@api_handler()
def list_changes_handler(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    GET /subscriptions/changes?limit=20
    """
    limit = optional_int_query_parameter(event, "limit", 20)
    changes = subscription_manager.get_recent_changes(user_id, limit)
    return {
        "changes": [change.model_dump(by_alias=True, mode="json") for change in changes],
        "metadata": {"totalChanges": len(changes), "limit": limit},
    }


@api_handler()
def service_changes_handler(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    GET /subscriptions/services/{serviceName}/changes
    """
    service_name = mandatory_path_parameter(event, "serviceName")
    changes = subscription_manager.get_subscription_changes(user_id, service_name)
    return {"changes": [change.model_dump(by_alias=True, mode="json") for change in changes]}


@api_handler()
def service_history_handler(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    GET /subscriptions/services/{serviceName}/history
    """
    service_name = mandatory_path_parameter(event, "serviceName")
    subscriptions = subscription_manager.get_subscription_history(user_id, service_name)
    return {"subscriptions": [sub.model_dump(by_alias=True, mode="json") for sub in subscriptions]}


@api_handler()
def categories_handler(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    GET /subscriptions/history/{id}/categories
    """
    history = subscription_manager.get_history(user_id, mandatory_path_parameter(event, "id"))
    stats = category_analyzer.analyze_category_distribution(history.subscriptions)
    top = category_analyzer.get_top_spending_category(stats)
    return {
        "categories": [stat.model_dump(by_alias=True, mode="json") for stat in stats.values()],
        "topCategory": top.category.value if top else None,
    }


@api_handler()
def budget_handler(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    POST /subscriptions/history/{id}/budget

    Request body:
    {
        "monthlyBudget": "50000"
    }
    """
    history_id = mandatory_path_parameter(event, "id")
    try:
        monthly_budget = Decimal(str(mandatory_body_parameter(event, "monthlyBudget")))
    except InvalidOperation:
        raise ValueError("monthlyBudget must be a number")

    summary = subscription_manager.get_summary(user_id, history_id)
    alert = budget_service.create_budget_alert(monthly_budget, summary.subscriptions)
    prediction = budget_service.predict_budget_status(alert, summary.upcoming_payments)
    recommendation = budget_service.generate_recommendation(alert, summary.subscriptions)
    return {
        "alert": alert.model_dump(by_alias=True, mode="json"),
        "prediction": prediction.model_dump(by_alias=True, mode="json"),
        "recommendation": recommendation.model_dump(by_alias=True, mode="json"),
    }


# ============================================================================
# Main Handler
# ============================================================================

ROUTE_MAP = {
    "POST /subscriptions/analyze": analyze_handler,
    "GET /subscriptions/history": list_history_handler,
    "GET /subscriptions/history/compare": compare_history_handler,
    "GET /subscriptions/history/{id}": get_history_handler,
    "DELETE /subscriptions/history/{id}": delete_history_handler,
    "GET /subscriptions/history/{id}/categories": categories_handler,
    "POST /subscriptions/history/{id}/budget": budget_handler,
    "GET /subscriptions/changes": list_changes_handler,
    "GET /subscriptions/services/{serviceName}/changes": service_changes_handler,
    "GET /subscriptions/services/{serviceName}/history": service_history_handler,
}


@require_authenticated_user
@standard_error_handling
def handler(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    Main handler for subscription operations.

    Routes requests to appropriate handler functions based on route.
    """
    route = event.get("routeKey")
    if not route:
        raise ValueError("Route not specified")

    handler_func = ROUTE_MAP.get(route)
    if not handler_func:
        raise ValueError(f"Unsupported route: {route}")

    return handler_func(event, user_id)
