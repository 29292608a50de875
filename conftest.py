"""Pytest configuration for the entire test suite."""

import logging


def pytest_configure(config):
    """Suppress noisy pysaml2 debug logging."""
    logging.getLogger("saml2").setLevel(logging.WARNING)
