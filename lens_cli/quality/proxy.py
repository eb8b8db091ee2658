"""Structural proxy checks for TypeScript projects.

These are cheap stand-ins for design review: naming, size, coupling and
test hygiene limits measured with regexes and brace counting rather than a
parser.
"""

from __future__ import annotations

import re
from pathlib import Path

from lens_cli.quality.checks import split_camel, run_lesson_checks
from lens_cli.quality.files import (
    SOURCE_EXTENSIONS,
    Language,
    Violation,
    collect_files,
    collect_source_files,
    line_of,
    read_lines,
    read_text,
    relative_to,
)

BANNED_PARAM_NAMES = {"data", "info", "result", "item", "obj", "val", "tmp", "temp", "ret", "res"}
ALLOWED_SINGLE_LETTER = {"_", "i", "j", "k", "e"}
BANNED_FILE_NAMES = {"utils.ts", "helpers.ts", "misc.ts", "common.ts", "shared.ts"}
BANNED_ABBREVIATIONS = ["mgr", "impl", "proc", "svc", "repo"]

MAX_EXPORTS = 10
MAX_PARAMS = 4
MAX_PROJECT_IMPORTS = 8
MAX_FILE_LINES = 300
MAX_FUNCTION_LINES = 30
MAX_CLASS_METHODS = 10
MAX_INHERITANCE_DEPTH = 2
MIN_FUNCTION_NAME = 4
ALLOWED_NUMBERS = {"-1", "0", "1", "2"}

EXPORTED_PARAMS_RE = re.compile(r"export\s+(?:async\s+)?function\s+\w+\s*\(([^)]*)\)")
ANY_PARAMS_RE = re.compile(r"(?:export\s+)?(?:async\s+)?function\s+\w+\s*\(([^)]*)\)")
EXPORTED_FN_RE = re.compile(r"export\s+(?:async\s+)?function\s+(\w+)")
EXPORTED_NAME_RE = re.compile(r"export\s+(?:const|function|class|type|interface)\s+(\w+)")
NAMED_PARAMS_RE = re.compile(r"(?:export\s+)?(?:async\s+)?function\s+(\w+)\s*\(([^)]*)\)")
TOP_EXPORT_RE = re.compile(r"^export\s", re.MULTILINE)
PROJECT_IMPORT_RE = re.compile(r"""^import\s.*from\s+['"]\.{1,2}/""", re.MULTILINE)

FN_DECL_RE = re.compile(r"(?:export\s+)?(?:async\s+)?function\s+(\w+)")
ARROW_RE = re.compile(r"(?:export\s+)?const\s+(\w+)\s*=\s*(?:async\s+)?\(.*\).*=>\s*\{")
METHOD_RE = re.compile(
    r"^\s+(?:(?:public|private|protected|static|override|get|set)\s+)*(?:async\s+)?(\w+)\s*\("
)
CONTROL_KEYWORDS = {
    "if", "for", "while", "switch", "catch", "return", "throw", "new", "do", "try",
    "typeof", "delete", "void", "super", "yield", "await", "case", "else", "with",
}

TEST_CASE_RE = re.compile(r"""\b(?:it|test)\s*\(\s*['"`]([^'"`]*)""")
TEST_IMPORT_RE = re.compile(r"""from\s+['"]([^'"]*\.test)['"]""")
CLASS_RE = re.compile(r"class\s+(\w+)")
CLASS_METHOD_RE = re.compile(
    r"^\s+(?:async\s+)?(?:public\s+|private\s+|protected\s+)?(?:static\s+)?(?:get\s+|set\s+)?\w+\s*\("
)
EXTENDS_RE = re.compile(r"class\s+(\w+)\s+extends\s+(\w+)")
FIRST_FN_RE = re.compile(r"^(?:export\s+)?(?:async\s+)?function\s")
FIRST_TYPE_RE = re.compile(r"^(?:export\s+)?(?:type|interface)\s")
MAGIC_SKIP_RE = re.compile(r"^\s*(const|import|//|\*|export\s+const)")
NUMBER_RE = re.compile(r"(?<![a-zA-Z_$.])\b(\d+(?:\.\d+)?)\b")
MAGIC_STRING_RE = re.compile(r"""(?:===|!==|==|!=)\s*['"]([^'"]+)['"]""")


def _param_name(param: str) -> str:
    head = re.split(r"[\s:?=]", param.strip())[0]
    return re.sub(r"[{}\[\]]", "", head)


def _count_params(params: str) -> int:
    count = 1
    depth = 0
    for ch in params:
        if ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
        elif ch == "," and depth == 0:
            count += 1
    return count


def _brace_delta(line: str) -> int:
    return line.count("{") - line.count("}")


# ─── Naming ─────────────────────────────────────────────────────────────────


def check_banned_param_names(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        content = read_text(file)
        for match in EXPORTED_PARAMS_RE.finditer(content):
            line = line_of(content, match.start())
            for param in match.group(1).split(","):
                name = _param_name(param)
                if name in BANNED_PARAM_NAMES:
                    violations.append(
                        Violation(
                            relative_to(base, file),
                            line,
                            "banned-param-name",
                            f"Exported function parameter named '{name}'",
                        )
                    )
    return violations


def check_single_letter_params(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        content = read_text(file)
        for match in ANY_PARAMS_RE.finditer(content):
            line = line_of(content, match.start())
            for param in match.group(1).split(","):
                name = _param_name(param)
                if len(name) == 1 and name not in ALLOWED_SINGLE_LETTER:
                    violations.append(
                        Violation(
                            relative_to(base, file),
                            line,
                            "single-letter-param",
                            f"Single-letter parameter '{name}'",
                        )
                    )
    return violations


def check_short_function_names(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        content = read_text(file)
        for match in EXPORTED_FN_RE.finditer(content):
            name = match.group(1)
            if len(name) < MIN_FUNCTION_NAME:
                violations.append(
                    Violation(
                        relative_to(base, file),
                        line_of(content, match.start()),
                        "short-function-name",
                        f"Exported function '{name}' under {MIN_FUNCTION_NAME} chars",
                    )
                )
    return violations


def check_banned_file_names(files: list[Path], base: Path) -> list[Violation]:
    return [
        Violation(
            relative_to(base, f),
            1,
            "banned-file-name",
            f"File named '{f.name}' - use a descriptive name",
        )
        for f in files
        if f.name in BANNED_FILE_NAMES
    ]


def check_abbreviated_names(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        content = read_text(file)
        for match in EXPORTED_NAME_RE.finditer(content):
            name = match.group(1)
            words = re.split(r"[_\d]+", split_camel(name, "_").lower())
            for abbr in BANNED_ABBREVIATIONS:
                if abbr in words:
                    violations.append(
                        Violation(
                            relative_to(base, file),
                            line_of(content, match.start()),
                            "abbreviated-name",
                            f"Export '{name}' contains abbreviation '{abbr}'",
                        )
                    )
    return violations


# ─── Size and coupling ──────────────────────────────────────────────────────


def check_export_count(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        if file.name == "index.ts":
            continue
        count = len(TOP_EXPORT_RE.findall(read_text(file)))
        if count > MAX_EXPORTS:
            violations.append(
                Violation(
                    relative_to(base, file),
                    1,
                    "export-count",
                    f"{count} exports (max {MAX_EXPORTS})",
                )
            )
    return violations


def check_parameter_count(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        content = read_text(file)
        for match in NAMED_PARAMS_RE.finditer(content):
            params = match.group(2).strip()
            if not params:
                continue
            count = _count_params(params)
            if count > MAX_PARAMS:
                violations.append(
                    Violation(
                        relative_to(base, file),
                        line_of(content, match.start()),
                        "parameter-count",
                        f"Function '{match.group(1)}' has {count} params (max {MAX_PARAMS})",
                    )
                )
    return violations


def check_import_fan_in(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        count = len(PROJECT_IMPORT_RE.findall(read_text(file)))
        if count > MAX_PROJECT_IMPORTS:
            violations.append(
                Violation(
                    relative_to(base, file),
                    1,
                    "import-fan-in",
                    f"{count} project imports (max {MAX_PROJECT_IMPORTS})",
                )
            )
    return violations


def check_file_length(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        line_count = len(read_lines(file))
        if line_count > MAX_FILE_LINES:
            violations.append(
                Violation(
                    relative_to(base, file),
                    1,
                    "file-length",
                    f"{line_count} lines (max {MAX_FILE_LINES})",
                )
            )
    return violations


def _function_name(line: str) -> str | None:
    if match := FN_DECL_RE.search(line):
        return match.group(1)
    if match := ARROW_RE.search(line):
        return match.group(1)
    match = METHOD_RE.search(line)
    if match and "{" in line and match.group(1) not in CONTROL_KEYWORDS:
        return match.group(1)
    return None


def check_function_length(files: list[Path], base: Path) -> list[Violation]:
    """Count non-blank, non-comment lines inside each function body."""
    violations: list[Violation] = []
    for file in files:
        fn_start = -1
        fn_name = ""
        start_depth = 0
        brace_depth = 0
        significant = 0
        for i, line in enumerate(read_lines(file)):
            if fn_start == -1:
                name = _function_name(line)
                if name:
                    fn_start, fn_name, start_depth, significant = i, name, brace_depth, 0
            brace_depth += _brace_delta(line)
            if fn_start >= 0 and brace_depth > start_depth:
                trimmed = line.strip()
                if trimmed and not trimmed.startswith(("//", "*")):
                    significant += 1
            if fn_start >= 0 and brace_depth == start_depth and i > fn_start:
                if significant > MAX_FUNCTION_LINES:
                    violations.append(
                        Violation(
                            relative_to(base, file),
                            fn_start + 1,
                            "function-length",
                            f"Function '{fn_name}' is {significant} significant lines "
                            f"(max {MAX_FUNCTION_LINES})",
                        )
                    )
                fn_start = -1
    return violations


# ─── Tests ──────────────────────────────────────────────────────────────────


def check_test_coverage(project_dir: Path, source_files: list[Path], base: Path) -> list[Violation]:
    """Every .ts module needs a sibling .test.ts or one under test/."""
    violations: list[Violation] = []
    for file in source_files:
        if file.name in ("index.ts", "types.ts", "types.d.ts") or file.suffix != ".ts":
            continue
        sibling = file.with_name(file.name[: -len(".ts")] + ".test.ts")
        rel = relative_to(project_dir, file)
        mirrored = project_dir / "test" / (rel[: -len(".ts")] + ".test.ts")
        if not sibling.exists() and not mirrored.exists():
            violations.append(
                Violation(
                    relative_to(base, file),
                    1,
                    "missing-test",
                    f"No test file for {relative_to(base, file)}",
                )
            )
    return violations


def _block_body(text: str) -> str | None:
    """Text from the first `{` to its matching `}`, or None if unbalanced."""
    open_idx = text.find("{")
    if open_idx == -1:
        return None
    depth = 0
    for idx in range(open_idx, len(text)):
        if text[idx] == "{":
            depth += 1
        elif text[idx] == "}":
            depth -= 1
        if depth == 0:
            return text[open_idx : idx + 1]
    return None


def check_empty_tests(project_dir: Path, base: Path) -> list[Violation]:
    """Test cases whose body never calls expect()."""
    violations: list[Violation] = []
    for file in collect_files(project_dir, [".test.ts", ".spec.ts"]):
        content = read_text(file)
        for match in TEST_CASE_RE.finditer(content):
            body = _block_body(content[match.end() :])
            if body is None or "expect" in body:
                continue
            violations.append(
                Violation(
                    relative_to(base, file),
                    line_of(content, match.start()),
                    "empty-test",
                    f"Test '{match.group(1)}' has no expect()",
                )
            )
    return violations


def check_test_importing_test(project_dir: Path, base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in collect_files(project_dir, [".test.ts", ".spec.ts"]):
        for match in TEST_IMPORT_RE.finditer(read_text(file)):
            violations.append(
                Violation(
                    relative_to(base, file),
                    1,
                    "test-imports-test",
                    f"Test file imports another test: {match.group(0)}",
                )
            )
    return violations


# ─── Classes and layout ─────────────────────────────────────────────────────


def check_class_method_count(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        content = read_text(file)
        for match in CLASS_RE.finditer(content):
            depth = 0
            started = False
            methods = 0
            for line in content[match.start() :].split("\n"):
                if started and depth == 1 and CLASS_METHOD_RE.search(line):
                    methods += 1
                for ch in line:
                    if ch == "{":
                        depth += 1
                        started = True
                    elif ch == "}":
                        depth -= 1
                if started and depth == 0:
                    break
            if methods > MAX_CLASS_METHODS:
                violations.append(
                    Violation(
                        relative_to(base, file),
                        line_of(content, match.start()),
                        "class-method-count",
                        f"Class '{match.group(1)}' has {methods} methods (max {MAX_CLASS_METHODS})",
                    )
                )
    return violations


def check_inheritance_depth(files: list[Path], base: Path) -> list[Violation]:
    """Depth of `extends` chains across the whole project."""
    parents: dict[str, str] = {}
    for file in files:
        for match in EXTENDS_RE.finditer(read_text(file)):
            parents[match.group(1)] = match.group(2)

    violations: list[Violation] = []
    for cls in parents:
        depth = 0
        current: str | None = cls
        seen: set[str] = set()
        while current is not None and current in parents:
            if current in seen:
                break
            seen.add(current)
            current = parents.get(current)
            depth += 1
        if depth > MAX_INHERITANCE_DEPTH:
            violations.append(
                Violation(
                    "project",
                    1,
                    "inheritance-depth",
                    f"Class '{cls}' has inheritance depth {depth} (max {MAX_INHERITANCE_DEPTH})",
                )
            )
    return violations


def check_types_before_functions(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        first_fn = first_type = -1
        for i, line in enumerate(read_lines(file)):
            if first_fn == -1 and FIRST_FN_RE.search(line):
                first_fn = i
            if first_type == -1 and FIRST_TYPE_RE.search(line):
                first_type = i
        if first_fn >= 0 and first_type >= 0 and first_fn < first_type:
            violations.append(
                Violation(
                    relative_to(base, file),
                    first_fn + 1,
                    "types-before-functions",
                    "First function appears before first type declaration",
                )
            )
    return violations


def check_magic_numbers(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        for i, line in enumerate(read_lines(file)):
            if MAGIC_SKIP_RE.search(line):
                continue
            for num in NUMBER_RE.findall(line):
                if num not in ALLOWED_NUMBERS:
                    violations.append(
                        Violation(relative_to(base, file), i + 1, "magic-number", f"Magic number {num}")
                    )
    return violations


def check_magic_strings(files: list[Path], base: Path) -> list[Violation]:
    violations: list[Violation] = []
    for file in files:
        for i, line in enumerate(read_lines(file)):
            match = MAGIC_STRING_RE.search(line)
            if match:
                violations.append(
                    Violation(
                        relative_to(base, file),
                        i + 1,
                        "magic-string",
                        f'Magic string "{match.group(1)}" in conditional',
                    )
                )
    return violations


def run_proxy_checks(project_dir: Path) -> list[Violation]:
    """All structural proxy checks plus the lesson-learned checks."""
    ts_files = collect_source_files(project_dir, SOURCE_EXTENSIONS[Language.TYPESCRIPT])
    return [
        *check_banned_param_names(ts_files, project_dir),
        *check_single_letter_params(ts_files, project_dir),
        *check_short_function_names(ts_files, project_dir),
        *check_banned_file_names(ts_files, project_dir),
        *check_abbreviated_names(ts_files, project_dir),
        *check_export_count(ts_files, project_dir),
        *check_parameter_count(ts_files, project_dir),
        *check_import_fan_in(ts_files, project_dir),
        *check_file_length(ts_files, project_dir),
        *check_function_length(ts_files, project_dir),
        *check_test_coverage(project_dir, ts_files, project_dir),
        *check_empty_tests(project_dir, project_dir),
        *check_test_importing_test(project_dir, project_dir),
        *check_class_method_count(ts_files, project_dir),
        *check_inheritance_depth(ts_files, project_dir),
        *check_types_before_functions(ts_files, project_dir),
        *check_magic_numbers(ts_files, project_dir),
        *check_magic_strings(ts_files, project_dir),
        *run_lesson_checks(ts_files, project_dir),
    ]
