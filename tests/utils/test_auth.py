"""
Unit tests for authentication utilities and handler decorators.
"""
import json
import unittest

from pydantic import BaseModel

from utils.auth import get_user_from_event
from utils.db.base import NotFound, NotAuthorized, ConflictError
from utils.handler_decorators import (
    api_handler,
    standard_error_handling,
    require_authenticated_user,
)


def _event(claims=None, route="GET /subscriptions/history"):
    event = {"routeKey": route, "requestContext": {"requestId": "req-1", "http": {"method": "GET"}}}
    if claims is not None:
        event["requestContext"]["authorizer"] = {"jwt": {"claims": claims}}
    return event


class _Strict(BaseModel):
    value: int


class TestGetUserFromEvent(unittest.TestCase):
    def test_user_from_claims(self):
        user = get_user_from_event(_event({"sub": "user-1", "email": "a@example.com", "auth_time": "1"}))
        self.assertEqual(user, {"id": "user-1", "email": "a@example.com", "auth_time": "1"})

    def test_missing_sub(self):
        self.assertIsNone(get_user_from_event(_event({"email": "a@example.com"})))
        self.assertIsNone(get_user_from_event(_event()))
        self.assertIsNone(get_user_from_event({}))


class TestStandardErrorHandling(unittest.TestCase):
    def _status_for(self, error):
        @standard_error_handling
        def failing_handler(event, user_id):
            raise error

        return failing_handler({}, "user-1")["statusCode"]

    def test_error_mapping(self):
        self.assertEqual(self._status_for(ValueError("bad")), 400)
        self.assertEqual(self._status_for(KeyError("missing")), 400)
        self.assertEqual(self._status_for(NotFound("gone")), 404)
        self.assertEqual(self._status_for(NotAuthorized("nope")), 403)
        self.assertEqual(self._status_for(ConflictError("race")), 409)
        self.assertEqual(self._status_for(RuntimeError("boom")), 500)

    def test_pydantic_validation_error_is_bad_request(self):
        @standard_error_handling
        def validating_handler(event, user_id):
            return _Strict(value="x")

        self.assertEqual(validating_handler({}, "user-1")["statusCode"], 400)

    def test_raw_result_wrapped(self):
        @standard_error_handling
        def ok_handler(event, user_id):
            return {"message": "ok"}

        response = ok_handler({}, "user-1")
        self.assertEqual(response["statusCode"], 200)
        self.assertEqual(json.loads(response["body"]), {"message": "ok"})

    def test_response_passed_through(self):
        @standard_error_handling
        def created_handler(event, user_id):
            return {"statusCode": 201, "body": "{}"}

        self.assertEqual(created_handler({}, "user-1")["statusCode"], 201)

    def test_internal_error_message_hides_details(self):
        @standard_error_handling
        def list_history_handler(event, user_id):
            raise RuntimeError("secret")

        body = json.loads(list_history_handler({}, "user-1")["body"])
        self.assertEqual(body["message"], "Error in list_history")


class TestRequireAuthenticatedUser(unittest.TestCase):
    def test_user_id_passed_to_handler(self):
        @require_authenticated_user
        def handler(event, user_id):
            return user_id

        self.assertEqual(handler(_event({"sub": "user-1"}), None), "user-1")

    def test_unauthenticated_request(self):
        @require_authenticated_user
        def handler(event, user_id):
            raise AssertionError("should not be called")

        self.assertEqual(handler(_event(), None)["statusCode"], 401)


class TestApiHandler(unittest.TestCase):
    def test_wraps_and_logs(self):
        @api_handler()
        def route(event, user_id):
            return {"userId": user_id}

        with self.assertLogs('utils.handler_decorators', level='INFO') as logs:
            response = route(_event(), "user-1")

        self.assertEqual(response["statusCode"], 200)
        self.assertEqual(json.loads(response["body"]), {"userId": "user-1"})
        self.assertTrue(any("Response 200" in line for line in logs.output))

    def test_without_error_handling(self):
        @api_handler(log_requests=False, handle_errors=False)
        def route(event, user_id):
            raise ValueError("bad")

        with self.assertRaises(ValueError):
            route(_event(), "user-1")


if __name__ == '__main__':
    unittest.main()
