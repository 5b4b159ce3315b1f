"""
Unit tests for lambda utilities.
"""
import unittest
import json
import uuid
from datetime import date
from decimal import Decimal
from utils.lambda_utils import (
    DecimalEncoder,
    create_response,
    handle_error,
    optional_path_parameter,
    mandatory_path_parameter,
    optional_query_parameter,
    mandatory_query_parameter,
    optional_int_query_parameter,
    parse_json_body,
    optional_body_parameter,
    mandatory_body_parameter
)


class TestLambdaUtils(unittest.TestCase):
    def setUp(self):
        """Set up test fixtures."""
        self.sample_event = {
            'pathParameters': {
                'id': '123',
                'empty': ''
            },
            'queryStringParameters': {
                'limit': '20',
                'bad': 'ten',
                'empty': ''
            },
            'body': json.dumps({
                'fileName': 'card.csv',
                'hasHeader': False,
                'empty': ''
            })
        }

    def test_decimal_encoder(self):
        """Decimals, UUIDs and dates are encoded as strings."""
        payload = {
            'amount': Decimal('17000.00'),
            'id': uuid.UUID('12345678-1234-5678-1234-567812345678'),
            'date': date(2024, 6, 1),
        }
        encoded = json.loads(json.dumps(payload, cls=DecimalEncoder))
        self.assertEqual(encoded['amount'], '17000.00')
        self.assertEqual(encoded['id'], '12345678-1234-5678-1234-567812345678')
        self.assertEqual(encoded['date'], '2024-06-01')

        with self.assertRaises(TypeError):
            json.dumps({'value': object()}, cls=DecimalEncoder)

    def test_create_response(self):
        response = create_response(200, {'serviceName': '넷플릭스', 'amount': Decimal('1.50')})

        self.assertEqual(response['statusCode'], 200)
        self.assertEqual(response['headers']['Content-Type'], 'application/json')
        self.assertIn('DELETE', response['headers']['Access-Control-Allow-Methods'])
        # Korean text is not escaped
        self.assertIn('넷플릭스', response['body'])
        self.assertEqual(json.loads(response['body'])['amount'], '1.50')

    def test_handle_error(self):
        response = handle_error(404, 'Not found')
        self.assertEqual(response['statusCode'], 404)
        self.assertEqual(json.loads(response['body']), {'message': 'Not found'})

    def test_path_parameters(self):
        self.assertEqual(optional_path_parameter(self.sample_event, 'id'), '123')
        self.assertIsNone(optional_path_parameter(self.sample_event, 'missing'))
        self.assertIsNone(optional_path_parameter({'pathParameters': None}, 'id'))
        self.assertEqual(mandatory_path_parameter(self.sample_event, 'id'), '123')
        with self.assertRaises(ValueError):
            mandatory_path_parameter(self.sample_event, 'empty')
        with self.assertRaises(KeyError):
            mandatory_path_parameter(self.sample_event, '')

    def test_query_parameters(self):
        self.assertEqual(optional_query_parameter(self.sample_event, 'limit'), '20')
        self.assertIsNone(optional_query_parameter({}, 'limit'))
        with self.assertRaises(ValueError):
            mandatory_query_parameter(self.sample_event, 'missing')

    def test_int_query_parameter(self):
        self.assertEqual(optional_int_query_parameter(self.sample_event, 'limit', 10), 20)
        self.assertEqual(optional_int_query_parameter(self.sample_event, 'missing', 10), 10)
        self.assertEqual(optional_int_query_parameter(self.sample_event, 'empty', 10), 10)
        with self.assertRaises(ValueError):
            optional_int_query_parameter(self.sample_event, 'bad', 10)

    def test_body_parameters(self):
        self.assertEqual(optional_body_parameter(self.sample_event, 'fileName'), 'card.csv')
        self.assertFalse(optional_body_parameter(self.sample_event, 'hasHeader'))
        self.assertIsNone(optional_body_parameter({}, 'fileName'))
        self.assertEqual(mandatory_body_parameter(self.sample_event, 'fileName'), 'card.csv')
        with self.assertRaises(KeyError):
            mandatory_body_parameter(self.sample_event, 'empty')
        with self.assertRaises(KeyError):
            mandatory_body_parameter(self.sample_event, 'missing')

    def test_parse_json_body(self):
        self.assertEqual(parse_json_body({}), {})
        with self.assertRaises(ValueError):
            parse_json_body({'body': '{not json'})
        with self.assertRaises(ValueError):
            parse_json_body({'body': '[1, 2]'})


if __name__ == '__main__':
    unittest.main()
