"""Read commit history from git via subprocess.

All git invocations on one repository go through a single lock so
parallel batches (complexity sampling) never contend for git's index.
"""

from __future__ import annotations

import re
import subprocess
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from ..exceptions import AnalysisTimeoutError, GitHistoryError
from ..logging_config import get_logger
from ..models import parse_timestamp
from .models import Commit, FileChange

logger = get_logger(__name__)


class GitHistoryReader(Protocol):
    """Source of commits for temporal analysis."""

    def is_available(self) -> bool: ...

    def get_commits(
        self, since: Optional[datetime] = None, until: Optional[datetime] = None
    ) -> list[Commit]: ...

    def read_file_at(self, commit_hash: str, path: str) -> Optional[str]: ...


class GitCliReader:
    """Parse ``git log --numstat`` into Commit records, oldest first.

    Paths are relative to ``repo_path`` (``--relative``), so a project root
    below the repository top level still yields canonical paths.
    """

    # Maximum git log output size (50MB) to prevent OOM on huge repos
    _MAX_OUTPUT_BYTES = 50 * 1024 * 1024

    # Matches: 40-char hex hash | author | email | strict ISO date | subject
    # Subject can contain | characters, so we use maxsplit=4 during parsing
    _HEADER_RE = re.compile(r"^[0-9a-f]{40}\|[^|]*\|[^|]*\|\d{4}-\d{2}-\d{2}T[^|]+\|.*$")

    def __init__(
        self,
        repo_path: str,
        max_commits: int = 0,
        version_timeout: float = 10.0,
        timeout: float = 300.0,
    ):
        self.repo_path = str(Path(repo_path).resolve())
        self.max_commits = max_commits
        self.version_timeout = version_timeout
        self.timeout = timeout
        self._lock = threading.Lock()
        self._available: Optional[bool] = None

    def is_available(self) -> bool:
        """True when the git binary runs and the root is inside a work tree."""
        if self._available is None:
            self._available = self.git_runs() and self.is_git_repo()
        return self._available

    def git_runs(self) -> bool:
        try:
            result = subprocess.run(
                ["git", "--version"],
                capture_output=True,
                text=True,
                timeout=self.version_timeout,
            )
            return result.returncode == 0
        except FileNotFoundError:
            logger.info("git executable not found; skipping temporal analysis")
            return False
        except subprocess.TimeoutExpired:
            raise AnalysisTimeoutError("git --version", self.version_timeout)

    def is_git_repo(self) -> bool:
        try:
            result = subprocess.run(
                ["git", "-C", self.repo_path, "rev-parse", "--git-dir"],
                capture_output=True,
                text=True,
                timeout=self.version_timeout,
            )
        except subprocess.TimeoutExpired:
            raise AnalysisTimeoutError("git rev-parse", self.version_timeout)
        if result.returncode != 0:
            logger.info(f"Not a git repository: {self.repo_path}; skipping temporal analysis")
            return False
        return True

    def get_commits(
        self, since: Optional[datetime] = None, until: Optional[datetime] = None
    ) -> list[Commit]:
        """Commits in ``[since, until]`` sorted by date ascending.

        Returns [] when git is unavailable.

        Raises:
            AnalysisTimeoutError: git log exceeded the analysis timeout
            GitHistoryError: git log exited with an error
        """
        if not self.is_available():
            return []

        cmd = [
            "git",
            "-C",
            self.repo_path,
            "log",
            "--format=%H|%an|%ae|%aI|%s",
            "--numstat",
            "--no-renames",
            "--relative",
        ]
        if self.max_commits:
            cmd.append(f"-n{self.max_commits}")
        if since is not None:
            cmd.append(f"--since={since.isoformat()}")
        if until is not None:
            cmd.append(f"--until={until.isoformat()}")

        with self._lock:
            raw = self._run(cmd)

        commits = [
            c
            for c in self.parse_log(raw)
            if (since is None or c.date >= since) and (until is None or c.date <= until)
        ]
        commits.sort(key=lambda c: (c.date, c.hash))
        logger.info(f"Read {len(commits)} commits from {self.repo_path}")
        return commits

    def read_file_at(self, commit_hash: str, path: str) -> Optional[str]:
        """File contents at a commit, or None when the file did not exist there."""
        if not self.is_available():
            return None
        with self._lock:
            try:
                result = subprocess.run(
                    ["git", "-C", self.repo_path, "show", f"{commit_hash}:{path}"],
                    capture_output=True,
                    timeout=self.timeout,
                )
            except subprocess.TimeoutExpired:
                raise AnalysisTimeoutError(f"git show {commit_hash[:8]}:{path}", self.timeout)
        if result.returncode != 0:
            return None
        return result.stdout.decode("utf-8", errors="replace")

    def _run(self, cmd: list[str]) -> str:
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
        # communicate() drains stderr alongside stdout and enforces the
        # deadline while git is still writing
        try:
            stdout, stderr = proc.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.communicate()
            raise AnalysisTimeoutError("git log", self.timeout)

        if proc.returncode != 0:
            raise GitHistoryError(self.repo_path, stderr.strip() or f"exit {proc.returncode}")
        if len(stdout) > self._MAX_OUTPUT_BYTES:
            logger.warning(
                f"git log output exceeded {self._MAX_OUTPUT_BYTES // (1024 * 1024)}MB "
                "limit, truncating"
            )
            stdout = stdout[: self._MAX_OUTPUT_BYTES]
        return stdout

    @classmethod
    def parse_log(cls, raw: str) -> list[Commit]:
        """Parse ``--format=%H|%an|%ae|%aI|%s --numstat`` output.

        Header lines are detected by regex rather than blank-line
        separation, so merge commits without numstat lines and a truncated
        final block are both handled.
        """
        commits: list[Commit] = []
        header: Optional[list[str]] = None
        files: list[FileChange] = []

        def flush() -> None:
            if header is None:
                return
            date = parse_timestamp(header[3])
            if date is None:
                logger.debug(f"Skipping commit {header[0][:8]} with unparseable date")
                return
            commits.append(
                Commit(
                    hash=header[0],
                    author=header[1],
                    email=header[2],
                    date=date,
                    message=header[4] if len(header) > 4 else "",
                    files=tuple(files),
                )
            )

        for line in raw.split("\n"):
            line = line.rstrip("\r")
            if not line.strip():
                continue

            if cls._HEADER_RE.match(line):
                flush()
                header = line.split("|", 4)
                files = []
            elif header is not None:
                parts = line.split("\t", 2)
                if len(parts) != 3:
                    continue
                added, deleted, path = parts
                files.append(
                    FileChange(
                        path=path.strip(),
                        lines_added=int(added) if added.isdigit() else 0,
                        lines_deleted=int(deleted) if deleted.isdigit() else 0,
                    )
                )

        flush()
        return commits


class StaticHistoryReader:
    """In-memory commit source, for tests and pre-exported histories."""

    def __init__(self, commits: list[Commit], files: Optional[dict[tuple[str, str], str]] = None):
        self.commits = sorted(commits, key=lambda c: (c.date, c.hash))
        self.files = files or {}

    def is_available(self) -> bool:
        return True

    def get_commits(
        self, since: Optional[datetime] = None, until: Optional[datetime] = None
    ) -> list[Commit]:
        return [
            c
            for c in self.commits
            if (since is None or c.date >= since) and (until is None or c.date <= until)
        ]

    def read_file_at(self, commit_hash: str, path: str) -> Optional[str]:
        return self.files.get((commit_hash, path))
