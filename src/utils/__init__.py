"""
Utils package.

Conventions:
- Persisted models are Pydantic models exposing `to_dynamodb_item()` and
  `from_dynamodb_item(data)` for the DynamoDB resource format.
- Snapshot and change timestamps are epoch milliseconds; calendar dates
  (transaction and charge dates) are ISO strings.
- Identifiers are UUID strings.
"""
