"""
API Gateway request and response helpers.
"""
from typing import Dict, Any, Optional
import json
import uuid
from datetime import date
from decimal import Decimal

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,DELETE,OPTIONS",
}


class DecimalEncoder(json.JSONEncoder):
    """Encodes amounts as strings so no precision is lost on the way out."""

    def default(self, obj):
        if isinstance(obj, (Decimal, uuid.UUID)):
            return str(obj)
        if isinstance(obj, date):
            return obj.isoformat()
        return super().default(obj)


def create_response(status_code: int, body: Any) -> Dict[str, Any]:
    # ensure_ascii=False keeps Korean service names readable
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json", **CORS_HEADERS},
        "body": json.dumps(body, cls=DecimalEncoder, ensure_ascii=False),
    }


def handle_error(status_code: int, message: str) -> Dict[str, Any]:
    return create_response(status_code, {"message": message})


def _event_parameter(event: Dict[str, Any], section: str, parameter_name: str) -> Optional[str]:
    return (event.get(section) or {}).get(parameter_name)


def _required(value: Optional[str], kind: str, parameter_name: str) -> str:
    if not parameter_name:
        raise KeyError("Parameter name is required")
    if not value:
        raise ValueError(f"{kind} parameter {parameter_name} not found")
    return value


def optional_path_parameter(event: Dict[str, Any], parameter_name: str) -> Optional[str]:
    return _event_parameter(event, 'pathParameters', parameter_name)


def mandatory_path_parameter(event: Dict[str, Any], parameter_name: str) -> str:
    """Raises ValueError when the path parameter is missing or empty."""
    return _required(optional_path_parameter(event, parameter_name), "Path", parameter_name)


def optional_query_parameter(event: Dict[str, Any], parameter_name: str) -> Optional[str]:
    return _event_parameter(event, 'queryStringParameters', parameter_name)


def mandatory_query_parameter(event: Dict[str, Any], parameter_name: str) -> str:
    """Raises ValueError when the query parameter is missing or empty."""
    return _required(optional_query_parameter(event, parameter_name), "Query", parameter_name)


def optional_int_query_parameter(event: Dict[str, Any], parameter_name: str, default: int) -> int:
    """Integer query parameter; absent or empty gives default, non-numeric raises ValueError."""
    raw = optional_query_parameter(event, parameter_name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Query parameter {parameter_name} must be an integer")


def parse_json_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """Decode the JSON request body; an absent body is an empty object."""
    try:
        parsed = json.loads(event.get('body') or '{}')
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON body: {e.msg}")
    if not isinstance(parsed, dict):
        raise ValueError("Request body must be a JSON object")
    return parsed


def optional_body_parameter(event: Dict[str, Any], parameter_name: str) -> Any:
    return parse_json_body(event).get(parameter_name)


def mandatory_body_parameter(event: Dict[str, Any], parameter_name: str) -> Any:
    """Raises KeyError when the body field is missing or an empty string."""
    value = optional_body_parameter(event, parameter_name)
    if value is None or value == "":
        raise KeyError(f"Body parameter {parameter_name} is required")
    return value
