import logging

from lineagearchitect.logger import lineage_logger


def pytest_configure(config):
    """Set up test environment before tests run."""
    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Enable the lineage trace logger so its table output is exercised
    lineage_logger.disabled = False


def pytest_sessionfinish(session, exitstatus):
    """Drop the accumulated HTML trace."""
    lineage_logger.clear()
