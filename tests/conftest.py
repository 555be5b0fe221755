import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Overlay from src/sales/domain.toml to run the suite against",
    )


def pytest_sessionstart(session):
    """Initialise the sales domain once and leave its context pushed.

    Everything under test can then reach it as ``current_domain``.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from sales.domain import sales

    sales.init()
    sales.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Mark each test after the layer directory it lives in."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Start every test with empty stores and the default email channel."""
    yield

    from protean import current_domain
    from sales.notification import reset_email_channel

    for _, provider in current_domain.providers.items():
        provider._data_reset()
    current_domain.event_store.store._data_reset()

    reset_email_channel()
