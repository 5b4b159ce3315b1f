import sys
import os
from pathlib import Path

# Add the src directory to Python path for imports
backend_dir = Path(__file__).parent
src_dir = backend_dir / "src"
sys.path.insert(0, str(src_dir))
sys.path.insert(0, str(backend_dir))

# Table names and region so boto3 objects can be built without real AWS config
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("ANALYSIS_HISTORY_TABLE", "test-analysis-history")
os.environ.setdefault("SUBSCRIPTION_CHANGES_TABLE", "test-subscription-changes")
os.environ.setdefault("ANALYSIS_HEADS_TABLE", "test-analysis-heads")


def pytest_configure(config):
    """
    Validate Python version and configure pytest
    """
    if sys.version_info[0] < 3:
        raise SystemError("Python 3 is required to run these tests")

    # Add markers
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
