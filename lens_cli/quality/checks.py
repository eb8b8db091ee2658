"""Custom line-oriented checks.

Universal checks run over every detected language; the rest target
TypeScript/JavaScript sources. Each check takes the files to scan and the
project root (for relative paths in findings) and returns Violations.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterator

from lens_cli.quality.files import Violation, read_lines, read_text, relative_to

SECRET_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(r"""['"](?:sk|pk|api|token|key|secret|password|passwd|pwd)[-_]?[a-zA-Z0-9]{20,}['"]"""),
        "API key/token",
    ),
    (
        re.compile(r"""(?:password|passwd|pwd|secret|token)\s*[:=]\s*['"][^'"]{8,}['"]"""),
        "hardcoded credential",
    ),
    (re.compile(r"-----BEGIN (?:RSA |EC )?PRIVATE KEY-----"), "private key"),
    (re.compile(r"ghp_[a-zA-Z0-9]{36}"), "GitHub PAT"),
    (re.compile(r"xox[bprs]-[a-zA-Z0-9-]+"), "Slack token"),
]

SHELL_INJECTION_RE = re.compile(r"\b(exec|execSync)\s*\(\s*`")
PATH_JOIN_RE = re.compile(
    r"path\.(join|resolve)\s*\([^)]*\b(req\.|params\.|query\.|input\.|userInput|fileName|filePath)\b"
)
TRAVERSAL_GUARDS = ["includes('..')", "traversal", "sanitize", "normalize"]
RELATIVE_IMPORT_RE = re.compile(r"""(?:import|from)\s+['"](\.[^'"]+)['"]""")
RAW_ERROR_RE = re.compile(r"console\.error\(\s*(err|error)\s*\)")

EXISTS_RE = re.compile(r"\b(?:existsSync|accessSync)\s*\(\s*([^)]+)\)")
READ_RE = re.compile(r"\b(?:readFileSync|readFile|createReadStream)\b")
WRITE_RE = re.compile(r"\bwriteFileSync\s*\(\s*([^,]+)")
READ_SYNC_RE = re.compile(r"\breadFileSync\b")

DANGEROUS_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\beval\s*\("), "eval()"),
    (re.compile(r"\.innerHTML\s*="), "innerHTML assignment"),
    (re.compile(r"\bdocument\.write\s*\("), "document.write()"),
]

OPTIONAL_NUMBER_RES = [
    re.compile(r"(\w+)\s*\?:\s*number"),
    re.compile(r"(\w+)\s*:\s*number\s*\|\s*undefined"),
]

FUNCTION_DECL_RE = re.compile(r"(?:export\s+)?(?:async\s+)?function\s+(\w+)")


def _is_comment(line: str, prefixes: tuple[str, ...] = ("//", "*")) -> bool:
    return line.lstrip().startswith(prefixes)


def split_camel(name: str, sep: str = " ") -> str:
    return re.sub(r"([a-z])([A-Z])", rf"\1{sep}\2", name)


# ─── Universal ──────────────────────────────────────────────────────────────


def check_hardcoded_secrets(files: list[Path], base: Path) -> list[Violation]:
    """Flag API keys, credentials, private keys and tokens in source."""
    violations: list[Violation] = []
    for file in files:
        for i, line in enumerate(read_lines(file)):
            if _is_comment(line, ("//", "*", "#")):
                continue
            for pattern, name in SECRET_PATTERNS:
                if pattern.search(line):
                    violations.append(
                        Violation(
                            file=relative_to(base, file),
                            line=i + 1,
                            check="hardcoded-secret",
                            message=f"Possible {name} - use environment variables",
                        )
                    )
    return violations


# ─── JS/TS ──────────────────────────────────────────────────────────────────


def check_shell_injection(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        for i, line in enumerate(read_lines(file)):
            if SHELL_INJECTION_RE.search(line):
                violations.append(
                    Violation(
                        file=relative_to(base, file),
                        line=i + 1,
                        check="shell-injection",
                        message="exec()/execSync() called with template literal - "
                        "use spawn() with argument array",
                    )
                )
    return violations


def check_path_traversal(files: list[Path], base: Path) -> list[Violation]:
    """Flag user-controlled input reaching path.join/resolve without a guard.

    A guard is any traversal-related mention in the five preceding lines.
    """
    violations: list[Violation] = []
    for file in files:
        lines = read_lines(file)
        for i, line in enumerate(lines):
            if not PATH_JOIN_RE.search(line):
                continue
            context = "\n".join(lines[max(0, i - 5) : i])
            if any(guard in context for guard in TRAVERSAL_GUARDS):
                continue
            violations.append(
                Violation(
                    file=relative_to(base, file),
                    line=i + 1,
                    check="path-traversal",
                    message="User-controlled input in path.join/resolve without traversal validation",
                )
            )
    return violations


def resolve_import(from_file: Path, import_path: str) -> Path | None:
    """Resolve a relative import to an existing .ts file, or None."""
    directory = from_file.parent
    candidates = [
        directory / import_path,
        directory / f"{import_path}.ts",
        directory / re.sub(r"\.js$", ".ts", import_path),
        directory / import_path / "index.ts",
    ]
    for candidate in candidates:
        if candidate.is_file():
            return candidate.resolve()
    return None


def check_circular_imports(files: list[Path], base: Path) -> list[Violation]:
    """Depth-first cycle detection over the relative import graph."""
    base = base.resolve()
    graph: dict[Path, list[Path]] = {}
    for file in files:
        content = read_text(file)
        deps = []
        for match in RELATIVE_IMPORT_RE.finditer(content):
            resolved = resolve_import(file, match.group(1))
            if resolved is not None:
                deps.append(resolved)
        graph[file.resolve()] = deps

    violations: list[Violation] = []
    visited: set[Path] = set()
    in_stack: set[Path] = set()
    stack: list[Path] = []
    pending: list[Iterator[Path]] = []

    def enter(node: Path) -> None:
        visited.add(node)
        in_stack.add(node)
        stack.append(node)
        pending.append(iter(graph.get(node, [])))

    # Explicit stack: import chains can be deeper than the recursion limit
    for root in graph:
        if root in visited:
            continue
        enter(root)
        while pending:
            dep = next(pending[-1], None)
            if dep is None:
                pending.pop()
                in_stack.discard(stack.pop())
            elif dep in in_stack:
                cycle = [relative_to(base, f) for f in stack[stack.index(dep) :]]
                violations.append(
                    Violation(
                        file=relative_to(base, dep),
                        line=0,
                        check="circular-import",
                        message=f"Circular: {' → '.join(cycle)} → {relative_to(base, dep)}",
                    )
                )
            elif dep not in visited:
                enter(dep)
    return violations


def check_raw_error_output(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        for i, line in enumerate(read_lines(file)):
            if RAW_ERROR_RE.search(line):
                violations.append(
                    Violation(
                        file=relative_to(base, file),
                        line=i + 1,
                        check="raw-error-output",
                        message="Raw error object passed to console.error - use error.message instead",
                    )
                )
    return violations


# ─── Lesson-learned checks ──────────────────────────────────────────────────


def check_toctou(files: list[Path], base: Path) -> list[Violation]:
    """existsSync()/accessSync() followed within 5 lines by a read of the same path."""
    violations: list[Violation] = []
    for file in files:
        lines = read_lines(file)
        for i, line in enumerate(lines):
            match = EXISTS_RE.search(line)
            if not match:
                continue
            path_arg = match.group(1).strip()
            for j in range(i + 1, min(i + 6, len(lines))):
                if READ_RE.search(lines[j]) and path_arg in lines[j]:
                    violations.append(
                        Violation(
                            file=relative_to(base, file),
                            line=i + 1,
                            check="toctou",
                            message=f"existsSync() then read on line {j + 1} - "
                            "use try/catch around the read instead",
                        )
                    )
                    break
    return violations


def check_verification_reads(files: list[Path], base: Path) -> list[Violation]:
    """readFileSync() of a path within 3 lines of writing it."""
    violations: list[Violation] = []
    for file in files:
        lines = read_lines(file)
        for i, line in enumerate(lines):
            match = WRITE_RE.search(line)
            if not match:
                continue
            path_arg = match.group(1).strip()
            for j in range(i + 1, min(i + 4, len(lines))):
                if READ_SYNC_RE.search(lines[j]) and path_arg in lines[j]:
                    violations.append(
                        Violation(
                            file=relative_to(base, file),
                            line=j + 1,
                            check="verification-read",
                            message="readFileSync() right after writeFileSync() on same path - "
                            "write succeeded if no throw",
                        )
                    )
                    break
    return violations


def check_dangerous_eval(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        for i, line in enumerate(read_lines(file)):
            if _is_comment(line):
                continue
            for pattern, name in DANGEROUS_PATTERNS:
                if pattern.search(line):
                    violations.append(
                        Violation(
                            file=relative_to(base, file),
                            line=i + 1,
                            check="dangerous-eval",
                            message=f"{name} - use safe alternatives",
                        )
                    )
    return violations


def check_falsy_numeric_guard(files: list[Path], base: Path) -> list[Violation]:
    """Truthiness checks on optional numbers, where 0 is falsy."""
    violations: list[Violation] = []
    for file in files:
        lines = read_lines(file)
        num_vars: list[str] = []
        for line in lines:
            for pattern in OPTIONAL_NUMBER_RES:
                match = pattern.search(line)
                if match and match.group(1) not in num_vars:
                    num_vars.append(match.group(1))
        if not num_vars:
            continue
        guards = {v: re.compile(rf"\bif\s*\(\s*{re.escape(v)}\s*\)") for v in num_vars}
        for i, line in enumerate(lines):
            for var, guard in guards.items():
                if guard.search(line):
                    violations.append(
                        Violation(
                            file=relative_to(base, file),
                            line=i + 1,
                            check="falsy-numeric-guard",
                            message=f"Truthy check on optional number '{var}' - "
                            "0 is falsy, use '!== undefined'",
                        )
                    )
    return violations


def check_comment_spam(files: list[Path], base: Path) -> list[Violation]:
    """Short JSDoc blocks that only restate the function name."""
    violations: list[Violation] = []
    for file in files:
        lines = read_lines(file)
        for i, line in enumerate(lines):
            if not re.match(r"^\s*/\*\*", line):
                continue
            doc = ""
            j = i
            doc_lines = 0
            while j < len(lines):
                text = re.sub(r"^\s*/?\*+\s*", "", lines[j])
                doc += " " + re.sub(r"\*/\s*$", "", text)
                doc_lines += 1
                if "*/" in lines[j]:
                    j += 1
                    break
                j += 1
            if doc_lines > 3 or j >= len(lines):
                continue
            fn_match = FUNCTION_DECL_RE.search(lines[j])
            if not fn_match:
                continue
            fn_name = fn_match.group(1)
            name_words = [w for w in split_camel(fn_name).lower().split() if len(w) > 2]
            if len(name_words) < 2:
                continue
            clean_doc = re.sub(r"@\w+", "", doc.lower())
            clean_doc = re.sub(r"[^a-z\s]", "", clean_doc).strip()
            if len(clean_doc) > 80:
                continue
            doc_words = {w for w in clean_doc.split() if len(w) > 2}
            overlap = [w for w in name_words if w in doc_words]
            if len(overlap) >= len(name_words) - 1:
                violations.append(
                    Violation(
                        file=relative_to(base, file),
                        line=i + 1,
                        check="comment-spam",
                        message=f"JSDoc restates function name '{fn_name}' - "
                        "remove or add non-obvious info",
                    )
                )
    return violations


def run_js_checks(files: list[Path], base: Path) -> list[Violation]:
    """Security-oriented checks run on every TypeScript/JavaScript project."""
    return [
        *check_shell_injection(files, base),
        *check_path_traversal(files, base),
        *check_circular_imports(files, base),
        *check_raw_error_output(files, base),
    ]


def run_lesson_checks(files: list[Path], base: Path) -> list[Violation]:
    """Checks distilled from earlier review-loop findings."""
    return [
        *check_toctou(files, base),
        *check_verification_reads(files, base),
        *check_dangerous_eval(files, base),
        *check_falsy_numeric_guard(files, base),
        *check_comment_spam(files, base),
    ]
