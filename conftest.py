import logging
import os

# Test configuration - allow override via environment variables
TEST_LOG_LEVEL = os.environ.get("PREPMOCK_TEST_LOG_LEVEL", "DEBUG")


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: exercises several prepmock components together"
    )
    config.addinivalue_line("markers", "property: hypothesis property-based tests")
    logging.getLogger("prepmock").setLevel(TEST_LOG_LEVEL)
