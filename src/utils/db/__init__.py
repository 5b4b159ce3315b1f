"""
Database utilities for DynamoDB operations.

This module provides a clean interface for all database operations.
Imports are organized by resource type for easy navigation.
"""

# ============================================================================
# Core Infrastructure
# ============================================================================

from .base import (
    # Table management
    tables,
    DynamoDBTables,

    # Exceptions
    NotAuthorized,
    NotFound,
    ConflictError,

    # Decorators
    dynamodb_operation,
    retry_on_throttle,
    monitor_performance,
    validate_params,

    # Validators
    is_valid_limit,
    is_non_empty_string,
    MAX_PAGE_LIMIT,

    # Helper functions
    check_user_owns_resource,
    checked_mandatory_resource,
    checked_optional_resource,
)

from .helpers import (
    paginated_query,
    serialize_item,
    serialize_values,
    current_timestamp,
    datetime_from_timestamp,
)

# ============================================================================
# Head / Transaction Operations
# ============================================================================

from .heads import (
    AnalysisHead,
    get_analysis_head,
    head_update_action,
    execute_transaction,
    MAX_TRANSACTION_ACTIONS,
)

# ============================================================================
# Analysis History Operations
# ============================================================================

from .analysis_history import (
    save_analysis_history,
    get_analysis_history,
    checked_mandatory_history,
    list_recent_histories,
    list_subscription_history,
    delete_analysis_history,
)

# ============================================================================
# Subscription Change Operations
# ============================================================================

from .subscription_changes import (
    save_subscription_change,
    list_changes_by_service,
    list_recent_changes,
)

from .unit_of_work import AnalysisUnitOfWork

__all__ = [
    'tables',
    'DynamoDBTables',
    'NotAuthorized',
    'NotFound',
    'ConflictError',
    'dynamodb_operation',
    'retry_on_throttle',
    'monitor_performance',
    'validate_params',
    'is_valid_limit',
    'is_non_empty_string',
    'MAX_PAGE_LIMIT',
    'check_user_owns_resource',
    'checked_mandatory_resource',
    'checked_optional_resource',
    'paginated_query',
    'serialize_item',
    'serialize_values',
    'current_timestamp',
    'datetime_from_timestamp',
    'AnalysisHead',
    'get_analysis_head',
    'head_update_action',
    'execute_transaction',
    'MAX_TRANSACTION_ACTIONS',
    'save_analysis_history',
    'get_analysis_history',
    'checked_mandatory_history',
    'list_recent_histories',
    'list_subscription_history',
    'delete_analysis_history',
    'save_subscription_change',
    'list_changes_by_service',
    'list_recent_changes',
    'AnalysisUnitOfWork',
]
