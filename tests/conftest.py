import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--thorough",
        action="store_true",
        default=False,
        help="run the sampled soundness checks of the dual-space bounds",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--thorough"):
        return
    skip_thorough = pytest.mark.skip(reason="needs --thorough")
    for item in items:
        if "thorough" in item.keywords:
            item.add_marker(skip_thorough)
