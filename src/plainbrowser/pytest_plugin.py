"""pytest binding: fixtures that drive PlainBrowser's runner hooks.

Registered through the ``pytest11`` entry point. Configuration precedence:
``--plainbrowser-url`` > ``plainbrowser_config`` ini file > ``PLAINBROWSER_*``
environment variables.

Example::

    def test_home(plain_browser):
        plain_browser.am_on_page("/")
        plain_browser.see("Welcome")
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from plainbrowser.browser import PlainBrowser
from plainbrowser.config import BrowserConfig, get_settings, load_config_file
from plainbrowser.logging import bound_to_test, configure_logging


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("plainbrowser")
    group.addoption(
        "--plainbrowser-url",
        dest="plainbrowser_url",
        default=None,
        help="Base URL of the application under test (overrides config file and env).",
    )
    parser.addini(
        "plainbrowser_config",
        "YAML file with PlainBrowser configuration, relative to the rootdir.",
        default="",
    )


def resolve_browser_config(pytestconfig: pytest.Config) -> BrowserConfig:
    """Build the browser configuration for this pytest run.

    Raises:
        ConfigurationError: If no URL can be found or options are invalid.
    """
    url = pytestconfig.getoption("plainbrowser_url")
    config_file = pytestconfig.getini("plainbrowser_config")

    if config_file:
        path = Path(config_file)
        if not path.is_absolute():
            path = pytestconfig.rootpath / path
        browser_config = load_config_file(path)
        return browser_config.reconfigured(url=url) if url else browser_config

    settings = get_settings()
    if url:
        return settings.browser_config(url=url)
    return settings.browser_config()


@pytest.hookimpl(wrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo[None]) -> pytest.TestReport:
    report = yield
    # plain_browser reads rep_call during teardown to detect failures
    setattr(item, f"rep_{report.when}", report)
    return report


@pytest.fixture(scope="session")
def plain_browser_module(pytestconfig: pytest.Config) -> PlainBrowser:
    """One initialized PlainBrowser shared by the whole run."""
    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.log_json)
    browser = PlainBrowser(resolve_browser_config(pytestconfig))
    browser.initialize()
    return browser


@pytest.fixture
def plain_browser(
    plain_browser_module: PlainBrowser,
    request: pytest.FixtureRequest,
) -> Iterator[PlainBrowser]:
    """PlainBrowser with a fresh session for the current test.

    Saves the last shown page to the configured output directory when the
    test fails. Browser log events emitted meanwhile carry the test's node id.
    """
    with bound_to_test(request.node.nodeid):
        plain_browser_module.before_test()
        yield plain_browser_module
        report = getattr(request.node, "rep_call", None)
        if report is not None and report.failed:
            plain_browser_module.on_failure(request.node.name, get_settings().output_dir)
        plain_browser_module.after_test()
