"""
Behave environment configuration for DDNS Panel integration tests.
"""

import asyncio
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def before_all(context):
    """Set up test environment before all tests."""
    context.test_config = {
        "api": {"backend": "mock", "base_url": "http://ddns.test/api"},
        "retry": {"max_attempts": 3, "delay_seconds": 0},
        "monitor": {"poll_interval_seconds": 60, "settle_delay_seconds": 0},
        "logging": {"level": "DEBUG", "file": "test_ddns_panel.log"},
    }

    logger.info("Test environment setup complete")


def before_scenario(context, scenario):
    """Give each scenario its own event loop and a clean panel slot."""
    context.loop = asyncio.new_event_loop()
    context.run = context.loop.run_until_complete
    context.panel = None
    context.result = None
    context.transitions = []

    logger.info(f"Starting scenario: {scenario.name}")


def after_scenario(context, scenario):
    """Shut the panel down and close the scenario's event loop."""
    try:
        if context.panel is not None:
            context.run(context.panel.stop())
    finally:
        context.loop.close()

    logger.info(f"Completed scenario: {scenario.name}")
