"""
Unit tests for subscription operations handler.
"""

import json
from decimal import Decimal
from unittest.mock import patch

import pytest

from handlers import subscription_operations as ops
from models.analysis_history import SubscriptionSummary
from models.subscription import subscription_key
from models.subscription_change import ChangeType, SubscriptionChange
from services.subscriptions import HistoryComparator
from utils.db.base import ConflictError, NotFound, NotAuthorized
from tests.fixtures.subscription_fixtures import (
    create_history,
    create_subscription,
    REFERENCE_DATE,
    TEST_USER_ID,
)


def _auth_headers(user_id=TEST_USER_ID):
    """Helper to create authentication headers"""
    return {
        "headers": {"Authorization": "Bearer test"},
        "requestContext": {
            "requestId": "req-1",
            "http": {"method": "GET"},
            "authorizer": {
                "jwt": {
                    "claims": {
                        "sub": user_id,
                        "email": "test@example.com",
                        "auth_time": "2024-01-01T00:00:00Z",
                    }
                }
            },
        },
    }


def _event(route, **extra):
    return {**_auth_headers(), "routeKey": route, **extra}


def _subscriptions():
    return [
        create_subscription("NETFLIXCOM", "17000"),
        create_subscription("SPOTIFY", "10900"),
    ]


@pytest.fixture
def mock_manager():
    with patch("handlers.subscription_operations.subscription_manager") as manager:
        yield manager


# ==============================================================================
# Routing and authentication
# ==============================================================================


def test_unauthenticated_request_rejected(mock_manager):
    event = {"routeKey": "GET /subscriptions/history", "requestContext": {}}

    resp = ops.handler(event, None)

    assert resp["statusCode"] == 401
    mock_manager.get_recent_history.assert_not_called()


def test_unsupported_route(mock_manager):
    resp = ops.handler(_event("GET /subscriptions/unknown"), None)
    assert resp["statusCode"] == 400
    assert "Unsupported route" in json.loads(resp["body"])["message"]


def test_missing_route(mock_manager):
    resp = ops.handler(_auth_headers(), None)
    assert resp["statusCode"] == 400


# ==============================================================================
# Analyze
# ==============================================================================


def test_analyze_success(mock_manager):
    history = create_history(_subscriptions(), history_id="hist-1")
    mock_manager.analyze_and_persist.return_value = history
    content = "date,merchant,amount\n2024-05-01,넷플릭스,17000\n2024-06-01,넷플릭스,17000\n"
    event = _event(
        "POST /subscriptions/analyze",
        body=json.dumps({"fileName": "card.csv", "content": content}),
    )

    resp = ops.handler(event, None)

    assert resp["statusCode"] == 200
    body = json.loads(resp["body"])
    assert body["message"] == "Analysis saved"
    assert body["history"]["historyId"] == "hist-1"
    assert body["history"]["monthlyTotal"] == "27900"
    assert len(body["history"]["subscriptions"]) == 2

    user_id, transactions, file_name = mock_manager.analyze_and_persist.call_args.args
    assert user_id == TEST_USER_ID
    assert file_name == "card.csv"
    assert len(transactions) == 2


def test_analyze_empty_content(mock_manager):
    event = _event(
        "POST /subscriptions/analyze",
        body=json.dumps({"fileName": "card.csv", "content": "date,merchant,amount\n"}),
    )

    resp = ops.handler(event, None)

    assert resp["statusCode"] == 400
    mock_manager.analyze_and_persist.assert_not_called()


def test_analyze_missing_file_name(mock_manager):
    event = _event("POST /subscriptions/analyze", body=json.dumps({"content": "x"}))
    resp = ops.handler(event, None)
    assert resp["statusCode"] == 400


def test_analyze_conflict(mock_manager):
    mock_manager.analyze_and_persist.side_effect = ConflictError("Concurrent analysis for user")
    content = "2024-05-01,NETFLIX,17000\n"
    event = _event(
        "POST /subscriptions/analyze",
        body=json.dumps({"fileName": "card.csv", "content": content, "hasHeader": False}),
    )

    resp = ops.handler(event, None)

    assert resp["statusCode"] == 409


# ==============================================================================
# History
# ==============================================================================


def test_list_history(mock_manager):
    mock_manager.get_recent_history.return_value = [create_history(_subscriptions(), history_id="hist-1")]

    resp = ops.handler(_event("GET /subscriptions/history"), None)

    assert resp["statusCode"] == 200
    body = json.loads(resp["body"])
    assert body["metadata"] == {"totalHistories": 1, "limit": 10}
    assert "subscriptions" not in body["histories"][0]
    assert body["histories"][0]["subscriptionCount"] == 2
    mock_manager.get_recent_history.assert_called_once_with(TEST_USER_ID, 10)


@pytest.mark.parametrize("limit", ["0", "101", "ten"])
def test_list_history_bad_limit(mock_manager, limit):
    mock_manager.get_recent_history.side_effect = ValueError("Invalid value for parameter 'limit'")

    resp = ops.handler(
        _event("GET /subscriptions/history", queryStringParameters={"limit": limit}), None
    )

    assert resp["statusCode"] == 400


def test_get_history_with_summary(mock_manager):
    subscriptions = _subscriptions()
    mock_manager.get_history.return_value = create_history(subscriptions, history_id="hist-1")
    mock_manager.get_summary.return_value = SubscriptionSummary.from_subscriptions(
        subscriptions, today=REFERENCE_DATE
    )

    resp = ops.handler(
        _event("GET /subscriptions/history/{id}", pathParameters={"id": "hist-1"}), None
    )

    assert resp["statusCode"] == 200
    body = json.loads(resp["body"])
    assert body["history"]["historyId"] == "hist-1"
    assert body["summary"]["activeSubscriptions"] == 2
    assert set(body["summary"]) == {"activeSubscriptions", "cancellationCandidates", "upcomingPayments"}
    mock_manager.get_history.assert_called_once_with(TEST_USER_ID, "hist-1")


def test_get_history_not_found(mock_manager):
    mock_manager.get_history.side_effect = NotFound("Analysis history not found")

    resp = ops.handler(
        _event("GET /subscriptions/history/{id}", pathParameters={"id": "missing"}), None
    )

    assert resp["statusCode"] == 404


def test_get_history_of_other_user(mock_manager):
    mock_manager.get_history.side_effect = NotAuthorized("Not authorized to access this analysis history")

    resp = ops.handler(
        _event("GET /subscriptions/history/{id}", pathParameters={"id": "hist-1"}), None
    )

    assert resp["statusCode"] == 403


def test_delete_history(mock_manager):
    mock_manager.delete_history.return_value = True

    resp = ops.handler(
        _event("DELETE /subscriptions/history/{id}", pathParameters={"id": "hist-1"}), None
    )

    assert resp["statusCode"] == 200
    assert json.loads(resp["body"]) == {"message": "Analysis history deleted", "historyId": "hist-1"}
    mock_manager.delete_history.assert_called_once_with(TEST_USER_ID, "hist-1")


def test_compare_history(mock_manager):
    older = create_history([create_subscription("NETFLIX", "10000")], analysis_date=1000, history_id="older")
    newer = create_history([create_subscription("NETFLIX", "12000")], analysis_date=2000, history_id="newer")
    mock_manager.compare_history.return_value = HistoryComparator().compare(older, newer)

    resp = ops.handler(
        _event(
            "GET /subscriptions/history/compare",
            queryStringParameters={"olderId": "older", "newerId": "newer"},
        ),
        None,
    )

    assert resp["statusCode"] == 200
    comparison = json.loads(resp["body"])["comparison"]
    assert comparison["monthlyTotalDiff"] == "2000"
    assert comparison["changedSubscriptions"][0]["serviceName"] == "NETFLIX"
    mock_manager.compare_history.assert_called_once_with(TEST_USER_ID, "older", "newer")


def test_compare_history_missing_snapshot(mock_manager):
    mock_manager.compare_history.return_value = None

    resp = ops.handler(
        _event(
            "GET /subscriptions/history/compare",
            queryStringParameters={"olderId": "older", "newerId": "missing"},
        ),
        None,
    )

    assert resp["statusCode"] == 404


def test_compare_history_requires_both_ids(mock_manager):
    resp = ops.handler(
        _event("GET /subscriptions/history/compare", queryStringParameters={"olderId": "older"}),
        None,
    )

    assert resp["statusCode"] == 400
    mock_manager.compare_history.assert_not_called()


# ==============================================================================
# Changes
# ==============================================================================


def _change(service_name="NETFLIX"):
    return SubscriptionChange(
        subscriptionId=subscription_key(service_name),
        serviceName=service_name,
        changeType=ChangeType.AMOUNT_CHANGED,
        oldValue="₩10,000",
        newValue="₩12,000",
    ).bind(TEST_USER_ID, "hist-1")


def test_list_changes(mock_manager):
    mock_manager.get_recent_changes.return_value = [_change()]

    resp = ops.handler(
        _event("GET /subscriptions/changes", queryStringParameters={"limit": "5"}), None
    )

    assert resp["statusCode"] == 200
    body = json.loads(resp["body"])
    assert body["metadata"] == {"totalChanges": 1, "limit": 5}
    assert body["changes"][0]["newValue"] == "₩12,000"
    mock_manager.get_recent_changes.assert_called_once_with(TEST_USER_ID, 5)


def test_service_changes(mock_manager):
    mock_manager.get_subscription_changes.return_value = [_change("넷플릭스")]

    resp = ops.handler(
        _event(
            "GET /subscriptions/services/{serviceName}/changes",
            pathParameters={"serviceName": "넷플릭스"},
        ),
        None,
    )

    assert resp["statusCode"] == 200
    assert json.loads(resp["body"])["changes"][0]["serviceName"] == "넷플릭스"
    mock_manager.get_subscription_changes.assert_called_once_with(TEST_USER_ID, "넷플릭스")


def test_service_history(mock_manager):
    mock_manager.get_subscription_history.return_value = [create_subscription("NETFLIX", "17000")]

    resp = ops.handler(
        _event(
            "GET /subscriptions/services/{serviceName}/history",
            pathParameters={"serviceName": "NETFLIX"},
        ),
        None,
    )

    assert resp["statusCode"] == 200
    subscriptions = json.loads(resp["body"])["subscriptions"]
    assert subscriptions[0]["monthlyAmount"] == "17000"


# ==============================================================================
# Categories and budget
# ==============================================================================


def test_categories(mock_manager):
    mock_manager.get_history.return_value = create_history(_subscriptions())

    resp = ops.handler(
        _event("GET /subscriptions/history/{id}/categories", pathParameters={"id": "hist-1"}), None
    )

    assert resp["statusCode"] == 200
    body = json.loads(resp["body"])
    assert len(body["categories"]) == 2
    assert body["topCategory"] == "entertainment"


def test_categories_of_empty_snapshot(mock_manager):
    mock_manager.get_history.return_value = create_history([])

    resp = ops.handler(
        _event("GET /subscriptions/history/{id}/categories", pathParameters={"id": "hist-1"}), None
    )

    assert json.loads(resp["body"]) == {"categories": [], "topCategory": None}


def test_budget(mock_manager):
    mock_manager.get_summary.return_value = SubscriptionSummary.from_subscriptions(
        _subscriptions(), today=REFERENCE_DATE
    )

    resp = ops.handler(
        _event(
            "POST /subscriptions/history/{id}/budget",
            pathParameters={"id": "hist-1"},
            body=json.dumps({"monthlyBudget": "50000"}),
        ),
        None,
    )

    assert resp["statusCode"] == 200
    body = json.loads(resp["body"])
    assert body["alert"]["alertType"] == "safe"
    assert body["alert"]["currentSpending"] == "27900"
    assert body["recommendation"]["recommendationType"] == "maintain"
    assert set(body["prediction"]) >= {"projectedSpending", "willExceedBudget"}


def test_budget_invalid_amount(mock_manager):
    resp = ops.handler(
        _event(
            "POST /subscriptions/history/{id}/budget",
            pathParameters={"id": "hist-1"},
            body=json.dumps({"monthlyBudget": "lots"}),
        ),
        None,
    )

    assert resp["statusCode"] == 400
    mock_manager.get_summary.assert_not_called()
