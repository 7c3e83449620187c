from __future__ import annotations

import typing

import pytest

from hostlookup import config as config_module
from hostlookup import order
from hostlookup.util import nss


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests only",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    integration_mode = bool(config.getoption("--integration"))
    skip_integration = pytest.mark.skip(
        reason="skipping, need --integration option to run"
    )
    skip_normal = pytest.mark.skip(
        reason="skipping non integration tests in --integration mode"
    )
    for item in items:
        if "integration" in item.keywords and not integration_mode:
            item.add_marker(skip_integration)
        elif integration_mode and "integration" not in item.keywords:
            item.add_marker(skip_normal)


@pytest.fixture(autouse=True)
def system_nss(
    monkeypatch: pytest.MonkeyPatch,
) -> typing.Generator[nss.NSSConfigCache, None, None]:
    """A fresh process-wide NSS cache per test, so no test sees the real file."""
    cache = nss.NSSConfigCache()
    cache.set(nss.NSSConfig(err=FileNotFoundError()), offset=3600)
    monkeypatch.setattr(nss, "_system_nss", cache)
    yield cache


@pytest.fixture(autouse=True)
def fresh_system_config() -> typing.Generator[None, None, None]:
    config_module.reset_system_config()
    yield
    config_module.reset_system_config()


@pytest.fixture
def machine_hostname(monkeypatch: pytest.MonkeyPatch) -> typing.Callable[[str], None]:
    """Pretend the machine is called whatever the test says."""

    def set_hostname(hostname: str) -> None:
        monkeypatch.setattr(order.socket, "gethostname", lambda: hostname)

    set_hostname("myhostname")
    return set_hostname
