import pytest

pytest_plugins = ["delta_vault.testing.sandbox"]


def pytest_configure(config):
    config.addinivalue_line("markers", "scenario: mark test as an end-to-end vault scenario")


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "/tests/" in item.nodeid:
            item.add_marker(pytest.mark.scenario)
