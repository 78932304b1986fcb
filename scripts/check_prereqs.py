#!/usr/bin/env python3
"""
Prerequisite checker for gridbattle.

Run from repo root (after activating your venv):

    python3 scripts/check_prereqs.py
"""

import sys
import traceback
from pathlib import Path


def add_src_to_syspath() -> None:
    """Ensure `src/` is on sys.path so `import gridbattle` works."""
    repo_root = Path(__file__).resolve().parents[1]
    src = repo_root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


def header(title: str) -> None:
    print("\n" + "=" * 72)
    print(title)
    print("=" * 72)


def check_python_version() -> bool:
    header("1) Python version")
    v = sys.version_info
    print(f"Detected Python: {v.major}.{v.minor}.{v.micro}")
    ok = (v.major == 3 and v.minor >= 10) or (v.major > 3)
    if ok:
        print("OK: Python 3.10 or newer is available.")
    else:
        print("FAIL: Python 3.10+ required for this project.")
    return ok


def check_core_imports() -> bool:
    header("2) Core library imports (pydantic, opentelemetry)")
    libs = [
        "pydantic",
        "opentelemetry.sdk.trace",
        "opentelemetry.exporter.otlp.proto.grpc.trace_exporter",
        "opentelemetry.instrumentation.logging",
    ]
    all_ok = True
    for name in libs:
        try:
            __import__(name)
            print(f"OK: imported {name}")
        except Exception as exc:  # noqa: BLE001
            all_ok = False
            print(f"FAIL: could not import {name}: {exc}")
            traceback.print_exc(limit=1)
    return all_ok


def check_gridbattle_imports() -> bool:
    header("3) Engine / targeting imports")
    add_src_to_syspath()
    ok = True
    try:
        from gridbattle.ai.targeting import TargetingEngine  # noqa: F401
        from gridbattle.config import MatchConfig  # noqa: F401
        from gridbattle.engine.game import Match  # noqa: F401

        print("OK: imported Match, TargetingEngine, MatchConfig")
    except Exception as exc:  # noqa: BLE001
        ok = False
        print(f"FAIL: could not import gridbattle modules: {exc}")
        traceback.print_exc(limit=1)
    return ok


def check_match_smoke_test() -> bool:
    header("4) Match smoke test (auto-place, first computer attack)")
    add_src_to_syspath()
    try:
        from gridbattle.config import MatchConfig
        from gridbattle.engine.events import Side
        from gridbattle.engine.game import Match, MatchPhase

        match = Match(MatchConfig(difficulty="hard", rng_seed=0))
        match.auto_place_fleet()
        match.confirm_placement()
        print("OK: placement confirmed.")
        match.run_computer_turn()
        if match.phase is not MatchPhase.AWAITING_HUMAN_TURN_START:
            print(f"FAIL: unexpected phase after the first attack: {match.phase.value}")
            return False
        print(f"    Computer attacks so far: {match.turn_counts()[Side.COMPUTER]}.")
        return True
    except Exception as exc:  # noqa: BLE001
        print(f"FAIL: match smoke test failed: {exc}")
        traceback.print_exc(limit=1)
        return False


def main() -> None:
    checks = [
        ("Python version", check_python_version),
        ("Core imports", check_core_imports),
        ("Gridbattle imports", check_gridbattle_imports),
        ("Match smoke test", check_match_smoke_test),
    ]

    overall_ok = True
    results: list[tuple[str, bool]] = []

    for name, fn in checks:
        ok = fn()
        results.append((name, ok))
        overall_ok = overall_ok and ok

    header("Summary")
    for name, ok in results:
        status = "OK  " if ok else "FAIL"
        print(f"{status} - {name}")

    print("\n" + "=" * 72)
    if overall_ok:
        print("ALL CHECKS PASSED: you are ready to play.")
        print("Next step example:")
        print("    PYTHONPATH=src python3 -m gridbattle.cli --difficulty hard")
    else:
        print("Some checks FAILED. Review the messages above and fix them before playing.")
    print("=" * 72)


if __name__ == "__main__":
    main()
