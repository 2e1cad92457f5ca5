"""Shared test fixtures for Crosslint tests."""

import json
import os
import shutil
import subprocess

import pytest


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory, monkeypatch):
    """Keep user and project config files and CROSSLINT_* variables out of tests."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    for name in list(os.environ):
        if name.startswith("CROSSLINT_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_findings(tmp_path):
    """Write a findings export and return its path."""

    def _write(payload, name="findings.json"):
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def layered_project(tmp_path):
    """Small TypeScript project with one presentation -> data edge and one cycle."""
    root = tmp_path / "project"
    files = {
        "src/index.ts": "import { View } from './presentation/view';\n",
        "src/presentation/view.ts": (
            "import { load } from '../data/repo';\n"
            "import React from 'react';\n"
            "export function View() {\n"
            "  if (load()) {\n"
            "    return 1;\n"
            "  }\n"
            "  return 0;\n"
            "}\n"
        ),
        "src/data/repo.ts": "export function load() {\n  return true;\n}\n",
        "src/cycle/a.ts": "import { b } from './b';\nexport const a = 1;\n",
        "src/cycle/b.ts": "import { a } from './a';\nexport const b = 2;\n",
    }
    for rel, text in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return root


def _git(repo, *args, env=None):
    subprocess.run(
        ["git", "-C", str(repo), *args],
        check=True,
        capture_output=True,
        env=env,
    )


@pytest.fixture
def git_repo(tmp_path):
    """Repository with three dated commits touching src/app.ts. Skipped without git."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = tmp_path / "repo"
    (repo / "src").mkdir(parents=True)
    _git(repo, "init", "-q")
    _git(repo, "config", "user.name", "Alice")
    _git(repo, "config", "user.email", "alice@example.com")
    _git(repo, "config", "commit.gpgsign", "false")

    steps = [
        ("2024-01-01T10:00:00+00:00", "add app", "export function run() {\n  return 1;\n}\n"),
        (
            "2024-01-05T10:00:00+00:00",
            "extend app | with pipes",
            "export function run() {\n  if (x) {\n    return 1;\n  }\n  return 2;\n}\n",
        ),
        (
            "2024-01-09T10:00:00+00:00",
            "fix crash in run",
            "export function run() {\n  return 3;\n}\n",
        ),
    ]
    for when, message, text in steps:
        (repo / "src" / "app.ts").write_text(text, encoding="utf-8")
        _git(repo, "add", "-A")
        env = dict(os.environ, GIT_AUTHOR_DATE=when, GIT_COMMITTER_DATE=when)
        _git(repo, "commit", "-q", "-m", message, env=env)
    return repo
