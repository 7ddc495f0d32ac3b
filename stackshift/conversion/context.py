"""
Conversion context and project structure analysis.

The ConversionContext holds the working state of one orchestrator run: the
immutable source tree, the import graph, shared summaries handed to the
provider, converted files and the conversion history.
"""

import json
import posixpath
import re
import tomllib
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Optional

from stackshift.logging import get_logger
from stackshift.models.conversion import (
    ConversionHistoryEntry,
    ConversionPlan,
    FileChange,
    FileTree,
    TechStack,
)

logger = get_logger(__name__)

ENTRY_POINT_NAMES = {
    "index.js",
    "index.ts",
    "main.js",
    "main.ts",
    "app.js",
    "app.ts",
    "main.py",
    "app.py",
    "__main__.py",
}

CONFIG_FILE_NAMES = {
    "package.json",
    "tsconfig.json",
    "webpack.config.js",
    ".babelrc",
    "pyproject.toml",
    "setup.cfg",
    "requirements.txt",
}

CRITICAL_FILE_NAMES = ("package.json", "tsconfig.json", "webpack.config.js", "pyproject.toml")

FRAMEWORK_MARKERS = (
    "react",
    "vue",
    "angular",
    "express",
    "fastify",
    "next",
    "django",
    "flask",
    "fastapi",
)

_JS_IMPORT = re.compile(r"""import\s+(?:[\w*{}\s,]+\s+from\s+)?['"]([^'"]+)['"]""")
_JS_REQUIRE = re.compile(r"""require\s*\(\s*['"]([^'"]+)['"]\s*\)""")
_PY_IMPORT = re.compile(r"^\s*(?:from\s+([.\w]+)\s+import|import\s+([\w.]+))", re.MULTILINE)
_JS_EXPORT = re.compile(r"export\s+(?:default\s+)?")


@dataclass
class ConversionContext:
    """Working state of one conversion run."""

    project_id: str
    source_tree: FileTree
    source_stack: TechStack
    target_stack: TechStack
    plan: Optional[ConversionPlan] = None
    import_graph: dict[str, list[str]] = field(default_factory=dict)
    shared: dict[str, Any] = field(default_factory=dict)
    converted_files: dict[str, FileChange] = field(default_factory=dict)
    history: list[ConversionHistoryEntry] = field(default_factory=list)
    previous_errors: dict[str, list[str]] = field(default_factory=dict)

    def record_error(self, file_path: str, message: str) -> None:
        self.previous_errors.setdefault(file_path, []).append(message)

    def errors_for(self, file_path: Optional[str]) -> list[str]:
        if file_path is None:
            return []
        return list(self.previous_errors.get(file_path, []))

    def original_content(self, path: str) -> str:
        node = self.source_tree.find(path)
        if node is None:
            return ""
        return node.content or ""


def iter_tree(tree: FileTree):
    """Yield every node of the tree, directories included, in pre-order."""
    stack = [tree]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def find_by_name(tree: FileTree, name: str) -> Optional[FileTree]:
    """Return the shallowest file whose base name is `name`."""
    matches = [n for n in tree.iter_files() if posixpath.basename(n.path) == name]
    if not matches:
        return None
    return min(matches, key=lambda n: (n.path.count("/"), n.path))


def analyze_project_structure(tree: FileTree) -> dict[str, Any]:
    """Summarize directories, file types, entry points and config files."""
    directories: list[str] = []
    file_types: Counter = Counter()
    entry_points: list[str] = []
    config_files: list[str] = []

    for node in iter_tree(tree):
        if node.type == "directory":
            directories.append(node.path)
            continue
        name = posixpath.basename(node.path)
        _, ext = posixpath.splitext(name)
        file_types[ext.lstrip(".") or name] += 1
        if name in ENTRY_POINT_NAMES:
            entry_points.append(node.path)
        if name in CONFIG_FILE_NAMES:
            config_files.append(node.path)

    return {
        "directories": directories,
        "file_types": dict(file_types),
        "entry_points": entry_points,
        "config_files": config_files,
    }


def _module_references(path: str, content: str) -> list[str]:
    if path.endswith(".py"):
        return [a or b for a, b in _PY_IMPORT.findall(content)]
    return _JS_IMPORT.findall(content) + _JS_REQUIRE.findall(content)


def resolve_relative_path(from_path: str, relative: str) -> str:
    """Resolve a relative module reference against the importing file."""
    base = posixpath.dirname(from_path)
    return posixpath.normpath(posixpath.join(base, relative))


def build_import_graph(tree: FileTree) -> dict[str, list[str]]:
    """Map each file to the project-relative modules it imports."""
    graph: dict[str, list[str]] = {}
    for node in tree.iter_files():
        if not node.content:
            continue
        deps = [
            resolve_relative_path(node.path, ref)
            for ref in _module_references(node.path, node.content)
            if ref.startswith("./") or ref.startswith("../")
        ]
        graph[node.path] = deps
    return graph


def identify_common_patterns(tree: FileTree) -> dict[str, Any]:
    """Count imported modules and exports; collect frameworks and libraries."""
    imports: Counter = Counter()
    exports: Counter = Counter()
    frameworks: set[str] = set()
    libraries: set[str] = set()

    for node in tree.iter_files():
        if not node.content:
            continue
        for module in _module_references(node.path, node.content):
            imports[module] += 1
            if module.startswith("."):
                continue
            libraries.add(module)
            root = re.split(r"[./]", module.lstrip("@"), maxsplit=1)[0]
            if any(marker == root or marker in module for marker in FRAMEWORK_MARKERS):
                frameworks.add(module)
        for match in _JS_EXPORT.findall(node.content):
            exports[match.strip()] += 1

    return {
        "imports": dict(imports),
        "exports": dict(exports),
        "frameworks": sorted(frameworks),
        "libraries": sorted(libraries),
    }


def extract_global_dependencies(tree: FileTree) -> dict[str, Any]:
    """Parse package.json and pyproject.toml dependency data when present."""
    dependencies: dict[str, Any] = {}

    package_json = find_by_name(tree, "package.json")
    if package_json is not None and package_json.content:
        try:
            dependencies["package.json"] = json.loads(package_json.content)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse {package_json.path}: {e}")

    pyproject = find_by_name(tree, "pyproject.toml")
    if pyproject is not None and pyproject.content:
        try:
            data = tomllib.loads(pyproject.content)
            project = data.get("project", {})
            dependencies["pyproject.toml"] = {
                "name": project.get("name"),
                "dependencies": project.get("dependencies", []),
                "optional-dependencies": project.get("optional-dependencies", {}),
            }
        except tomllib.TOMLDecodeError as e:
            logger.warning(f"Failed to parse {pyproject.path}: {e}")

    return dependencies


def collect_critical_files(tree: FileTree) -> dict[str, str]:
    """Original text of critical config files, keyed `original_<name>`."""
    originals: dict[str, str] = {}
    for name in CRITICAL_FILE_NAMES:
        node = find_by_name(tree, name)
        if node is not None and node.content:
            originals[f"original_{name}"] = node.content
    return originals


def prepare_context(
    plan: ConversionPlan,
    source_tree: FileTree,
    source_stack: TechStack,
    target_stack: TechStack,
) -> ConversionContext:
    """Build the context for a run, with the shared project summaries."""
    context = ConversionContext(
        project_id=plan.project_id,
        source_tree=source_tree,
        source_stack=source_stack,
        target_stack=target_stack,
        plan=plan,
        import_graph=build_import_graph(source_tree),
    )
    context.shared.update(
        {
            "project_structure": analyze_project_structure(source_tree),
            "common_patterns": identify_common_patterns(source_tree),
            "global_dependencies": extract_global_dependencies(source_tree),
            "task_results": {},
        }
    )
    context.shared.update(collect_critical_files(source_tree))
    return context
