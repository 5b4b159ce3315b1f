"""
Core database infrastructure for the analysis store.

Holds the lazily created DynamoDB handles, the store exceptions, the
decorators shared by every db function, the parameter validators and the
ownership checks applied to user-scoped items.
"""

import os
import logging
import time
import inspect
from typing import Dict, Any, Optional, Tuple, Callable, TypeVar, Protocol
from functools import wraps

import boto3
from botocore.exceptions import ClientError
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class HasUserId(Protocol):
    user_id: str


T = TypeVar('T')
TOwned = TypeVar('TOwned', bound=HasUserId)


# ============================================================================
# Exceptions
# ============================================================================

class NotAuthorized(Exception):
    """The item exists but belongs to another user."""
    pass


class NotFound(Exception):
    """No item with the requested ID."""
    pass


class ConflictError(Exception):
    """A transaction lost the race on the user's head version."""
    pass


_PASS_THROUGH_ERRORS = (NotFound, NotAuthorized, ConflictError, ValueError)

THROTTLING_ERROR_CODES = frozenset({
    'ProvisionedThroughputExceededException',
    'ThrottlingException',
    'RequestLimitExceeded',
})


def client_error_details(error: ClientError) -> Tuple[str, str]:
    """Return (code, message) from a botocore ClientError."""
    details = error.response.get('Error', {})
    return details.get('Code', 'Unknown'), details.get('Message', str(error))


# ============================================================================
# Decorators
# ============================================================================

def dynamodb_operation(operation_name: Optional[str] = None):
    """
    Wrap a db function with uniform logging and error translation.

    boto errors are logged and re-raised unchanged. A pydantic
    ValidationError raised while building a model from an item becomes a
    ValueError. Store exceptions pass through without extra logging.

    Usage:
        @dynamodb_operation("get_analysis_history")
        def get_analysis_history(history_id: str, user_id: str) -> Optional[AnalysisHistory]:
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = operation_name or func.__name__

        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            logger.debug(f"DB: {name} started")
            try:
                result = func(*args, **kwargs)
            except ClientError as e:
                code, message = client_error_details(e)
                logger.error(
                    f"DB: {name} failed with {code}: {message}",
                    exc_info=True,
                    extra={'operation': name, 'error_code': code}
                )
                raise
            except ValidationError as e:
                logger.error(f"DB: {name} read an invalid item: {e}", extra={'operation': name})
                raise ValueError(f"Invalid data in {name}: {e}")
            except _PASS_THROUGH_ERRORS:
                raise
            except Exception as e:
                logger.error(f"DB: unexpected error in {name}: {e}", exc_info=True, extra={'operation': name})
                raise
            logger.info(f"DB: {name} completed")
            return result
        return wrapper
    return decorator


def retry_on_throttle(max_attempts: int = 3, base_delay: float = 0.1, max_delay: float = 5.0):
    """
    Retry a read when DynamoDB throttles it, doubling the delay each time
    (0.1s, 0.2s, 0.4s ... capped at max_delay).

    Only for idempotent reads; transactional writes must not use it.

    Usage:
        @retry_on_throttle(max_attempts=3)
        @dynamodb_operation("list_recent_histories")
        def list_recent_histories(...):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            attempt = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except ClientError as e:
                    code, _ = client_error_details(e)
                    if code not in THROTTLING_ERROR_CODES or attempt >= max_attempts:
                        raise
                    delay = min(base_delay * 2 ** (attempt - 1), max_delay)
                    logger.warning(
                        f"DB: {func.__name__} throttled ({code}), attempt {attempt}/{max_attempts}; "
                        f"retrying in {delay:.2f}s"
                    )
                    time.sleep(delay)
                    attempt += 1
        return wrapper
    return decorator


def monitor_performance(
    operation_type: str = "db_operation",
    warn_threshold_ms: float = 1000,
    error_threshold_ms: float = 5000
):
    """
    Log how long the wrapped call took: DEBUG normally, WARNING above
    warn_threshold_ms, ERROR above error_threshold_ms.
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            started = time.time()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed_ms = (time.time() - started) * 1000
                context = {
                    'operation': func.__name__,
                    'operation_type': operation_type,
                    'elapsed_ms': elapsed_ms
                }
                if elapsed_ms > error_threshold_ms:
                    logger.error(f"Very slow operation: {func.__name__} took {elapsed_ms:.2f}ms", extra=context)
                elif elapsed_ms > warn_threshold_ms:
                    logger.warning(f"Slow operation: {func.__name__} took {elapsed_ms:.2f}ms", extra=context)
                else:
                    logger.debug(f"{func.__name__} took {elapsed_ms:.2f}ms", extra=context)
        return wrapper
    return decorator


def validate_params(**validators: Callable[[Any], bool]):
    """
    Check named arguments before the call; a failing validator raises
    ValueError. Defaults are validated too.

    Usage:
        @validate_params(limit=is_valid_limit)
        def list_recent_histories(user_id: str, limit: int = 10) -> List[AnalysisHistory]:
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        signature = inspect.signature(func)

        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            arguments = signature.bind(*args, **kwargs)
            arguments.apply_defaults()
            for name, is_valid in validators.items():
                if name in arguments.arguments and not is_valid(arguments.arguments[name]):
                    raise ValueError(f"Invalid value for parameter '{name}': {arguments.arguments[name]}")
            return func(*args, **kwargs)
        return wrapper
    return decorator


# ============================================================================
# Validators
# ============================================================================

MAX_PAGE_LIMIT = 100


def is_valid_limit(value: Any) -> bool:
    """A "most recent N" limit: an int in 1..100."""
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= MAX_PAGE_LIMIT


def is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


# ============================================================================
# Table Management
# ============================================================================

class DynamoDBTables:
    """
    Lazily created boto3 handles for the analysis store.

    Table names come from environment variables; a table whose variable
    is unset resolves to None so callers can report it.

    Usage:
        tables.analysis_history.get_item(...)
        tables.client.transact_write_items(...)
    """

    TABLE_ENV_VARS = {
        'analysis_history': 'ANALYSIS_HISTORY_TABLE',
        'subscription_changes': 'SUBSCRIPTION_CHANGES_TABLE',
        'analysis_heads': 'ANALYSIS_HEADS_TABLE',
    }

    def __init__(self):
        self._resource = None
        self._client = None
        self._tables: Dict[str, Any] = {}

    @property
    def resource(self) -> Any:
        if self._resource is None:
            self._resource = boto3.resource('dynamodb')
        return self._resource

    @property
    def client(self) -> Any:
        """Low-level client; TransactWriteItems is only available here."""
        if self._client is None:
            self._client = boto3.client('dynamodb')
        return self._client

    def table_name(self, table_key: str) -> Optional[str]:
        env_var = self.TABLE_ENV_VARS.get(table_key)
        if env_var is None:
            raise KeyError(f"Unknown table key: {table_key}")
        return os.environ.get(env_var)

    def table(self, table_key: str) -> Optional[Any]:
        if table_key not in self._tables:
            name = self.table_name(table_key)
            if not name:
                logger.warning(f"{self.TABLE_ENV_VARS[table_key]} is not set; table '{table_key}' unavailable")
                return None
            self._tables[table_key] = self.resource.Table(name)
            logger.info(f"Initialized table {table_key} ({name})")
        return self._tables[table_key]

    @property
    def analysis_history(self) -> Any:
        return self.table('analysis_history')

    @property
    def subscription_changes(self) -> Any:
        return self.table('subscription_changes')

    @property
    def analysis_heads(self) -> Any:
        return self.table('analysis_heads')

    def reset(self) -> None:
        """Drop cached handles, e.g. after the environment changed."""
        self._resource = None
        self._client = None
        self._tables.clear()


tables = DynamoDBTables()


# ============================================================================
# Ownership checks
# ============================================================================

def check_user_owns_resource(resource_user_id: str, requesting_user_id: str) -> None:
    if resource_user_id != requesting_user_id:
        raise NotAuthorized("Not authorized to access this resource")


def checked_mandatory_resource(
    resource_id: Optional[str],
    user_id: str,
    getter_func: Callable[[str], Optional[TOwned]],
    resource_name: str
) -> TOwned:
    """
    Load an item by ID and verify the requesting user owns it.

    Raises:
        NotFound: If resource_id is empty or no item exists
        NotAuthorized: If the item belongs to another user
    """
    if not resource_id:
        raise NotFound(f"{resource_name} ID is required")
    resource = getter_func(resource_id)
    if resource is None:
        raise NotFound(f"{resource_name} not found")
    check_user_owns_resource(resource.user_id, user_id)
    return resource


def checked_optional_resource(
    resource_id: Optional[str],
    user_id: str,
    getter_func: Callable[[str], Optional[TOwned]],
    resource_name: str
) -> Optional[TOwned]:
    """Like checked_mandatory_resource but returns None for a missing item."""
    try:
        return checked_mandatory_resource(resource_id, user_id, getter_func, resource_name)
    except NotFound:
        return None
