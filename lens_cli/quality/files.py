"""Source file discovery and language detection."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Language(Enum):
    """Languages the quality gate recognizes."""

    TYPESCRIPT = "typescript"
    JAVA = "java"
    CSHARP = "csharp"
    PYTHON = "python"
    GO = "go"
    RUST = "rust"
    PHP = "php"
    RUBY = "ruby"


# Qodana linter image per language; TypeScript goes through ESLint instead
QODANA_LINTERS: dict[Language, str] = {
    Language.JAVA: "qodana-jvm-community",
    Language.CSHARP: "qodana-dotnet",
    Language.PYTHON: "qodana-python-community",
    Language.GO: "qodana-go",
    Language.RUST: "qodana-rust",
    Language.PHP: "qodana-php",
    Language.RUBY: "qodana-ruby",
}

SOURCE_EXTENSIONS: dict[Language, list[str]] = {
    Language.TYPESCRIPT: [".ts", ".tsx", ".js", ".jsx"],
    Language.JAVA: [".java"],
    Language.CSHARP: [".cs"],
    Language.PYTHON: [".py"],
    Language.GO: [".go"],
    Language.RUST: [".rs"],
    Language.PHP: [".php"],
    Language.RUBY: [".rb"],
}

SKIP_DIRS = {
    "node_modules",
    "dist",
    "build",
    "target",
    "bin",
    "obj",
    "__pycache__",
    "vendor",
    "scripts",
    "mcp-servers",
}

TEST_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\.test\.\w+$"),
    re.compile(r"\.spec\.\w+$"),
    re.compile(r"_test\.\w+$"),
    re.compile(r"Test\.java$"),
    re.compile(r"Tests?\.cs$"),
    re.compile(r"test_.*\.py$"),
    re.compile(r"_test\.go$"),
    re.compile(r"_test\.rs$"),
]


@dataclass
class Violation:
    """A single finding from a custom or proxy check.

    Attributes:
        file: Path relative to the scanned project
        line: 1-based line number, 0 when the finding is not line specific
        check: Kebab-case check identifier
        message: What was found and what to do instead
    """

    file: str
    line: int
    check: str
    message: str

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line}" if self.line > 0 else self.file


def collect_files(directory: Path, extensions: list[str]) -> list[Path]:
    """Recursively collect files ending in one of the extensions.

    Hidden entries and SKIP_DIRS are pruned. Unreadable directories are
    treated as empty.
    """
    results: list[Path] = []
    try:
        entries = sorted(os.scandir(directory), key=lambda e: e.name)
    except OSError:
        return results

    for entry in entries:
        if entry.name.startswith(".") or entry.name in SKIP_DIRS:
            continue
        full = Path(entry.path)
        if entry.is_dir(follow_symlinks=False):
            results.extend(collect_files(full, extensions))
        elif any(entry.name.endswith(ext) for ext in extensions):
            results.append(full)
    return results


def is_test_file(file_path: Path | str) -> bool:
    """Whether the file name looks like a test in any supported language."""
    name = Path(file_path).name
    return any(p.search(name) for p in TEST_PATTERNS)


def collect_source_files(directory: Path, extensions: list[str]) -> list[Path]:
    """Collect files, excluding tests."""
    return [f for f in collect_files(directory, extensions) if not is_test_file(f)]


def detect_languages(project_dir: Path) -> list[Language]:
    """Every language with at least one file under the project, in enum order."""
    return [
        lang for lang, exts in SOURCE_EXTENSIONS.items() if collect_files(project_dir, exts)
    ]


def relative_to(base: Path, file_path: Path) -> str:
    """Forward-slash path of file_path relative to base."""
    return Path(os.path.relpath(file_path, base)).as_posix()


def read_lines(file_path: Path) -> list[str]:
    """File content split on newlines, undecodable bytes replaced."""
    return read_text(file_path).split("\n")


def read_text(file_path: Path) -> str:
    return file_path.read_text(encoding="utf-8", errors="replace")


def line_of(content: str, index: int) -> int:
    """1-based line number of a character offset."""
    return content.count("\n", 0, index) + 1
