"""Basic project scaffolding tests."""

import importlib


def test_package_importable() -> None:
    """Verify the top-level package is importable."""
    import gridbattle  # noqa: F401  (import used to ensure availability)

    assert gridbattle.__version__


def test_submodules_exist() -> None:
    """All primary submodules should be importable."""
    modules = [
        "gridbattle.engine",
        "gridbattle.engine.game",
        "gridbattle.ai",
        "gridbattle.telemetry",
        "gridbattle.config",
        "gridbattle.cli",
    ]

    for module in modules:
        assert importlib.import_module(module) is not None
