"""Nox sessions orchestrating the gcl-sink unit suites."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import nox


PYTHON_VERSIONS = ["3.11"]
PROJECT_ROOT = Path(__file__).parent

nox.options.sessions = [
    "tests(unit_gcl_sink)",
]


def _install_test_requirements(session: nox.Session) -> None:
    """Install the package and the testing toolchain inside the session environment."""

    session.install("-e", ".[test]")


def _normalize_pythonpath(existing: str | None) -> str:
    parts = [str(PROJECT_ROOT)]
    if existing:
        parts.append(existing)
    return ":".join(part for part in parts if part)


def _build_env(session: nox.Session) -> dict[str, str]:
    env = dict(session.env)
    env["PYTHONPATH"] = _normalize_pythonpath(env.get("PYTHONPATH"))
    return env


def _run_suite(session: nox.Session, suite: str, targets: Iterable[str]) -> None:
    _install_test_requirements(session)

    env = _build_env(session)
    data_file = f".coverage.{suite}"

    session.log("Running %s suite against %s", suite, " ".join(targets))
    session.run(
        "coverage",
        "run",
        f"--data-file={data_file}",
        "--source=gcl_sink",
        "-m",
        "pytest",
        *targets,
        *session.posargs,
        env=env,
    )
    session.run("coverage", "report", f"--data-file={data_file}", "-m", env=env)


@nox.session(python=PYTHON_VERSIONS, reuse_venv=True, name="tests(unit_gcl_sink)")
def tests_unit_gcl_sink(session: nox.Session) -> None:
    """Execute the sink, formatter and batcher unit suites with coverage."""

    targets = ["tests/unit/gcl_sink"]
    _run_suite(session, "gcl_sink", targets)
