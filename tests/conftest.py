"""Shared fixtures for pg_transfer tests."""

import logging

import pytest

from mocks import COMPOSITE_FK_CATALOG, MIXED_CATALOG, USERS_CATALOG, MockCatalogExecutor

from pg_transfer.logging_setup import ROOT_LOGGER


@pytest.fixture
def users_executor():
    return MockCatalogExecutor(USERS_CATALOG)


@pytest.fixture
def composite_executor():
    return MockCatalogExecutor(COMPOSITE_FK_CATALOG)


@pytest.fixture
def mixed_executor():
    return MockCatalogExecutor(MIXED_CATALOG)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """setup_logging() stops propagation; restore it so caplog keeps working."""
    logger = logging.getLogger(ROOT_LOGGER)
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
