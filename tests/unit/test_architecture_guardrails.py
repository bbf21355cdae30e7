from __future__ import annotations

import ast
import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

ROOT = Path(__file__).resolve().parents[2]
PACKAGE_ROOT = ROOT / "src" / "swade"
LAYERS = ("domain", "application", "infrastructure", "presentation")

# Each layer may only import the layers listed for it (besides itself).
ALLOWED = {
    "domain": set(),
    "application": {"domain"},
    "infrastructure": {"domain"},
    "presentation": {"domain", "application"},
}


def _module_name(path: Path) -> str:
    parts = list(path.relative_to(ROOT / "src").with_suffix("").parts)
    if parts[-1] == "__init__":
        parts.pop()
    return ".".join(parts)


def _layer(module: str) -> str | None:
    parts = module.split(".")
    if len(parts) > 1 and parts[0] == "swade" and parts[1] in LAYERS:
        return parts[1]
    return None


def _imports(module: str, tree: ast.AST) -> set[str]:
    found = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            found.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom):
            if node.level:
                base = module.split(".")[: -node.level]
                found.add(".".join(base + ([node.module] if node.module else [])))
            elif node.module:
                found.add(node.module)
    return {name for name in found if name.startswith("swade")}


def _import_graph() -> dict[str, set[str]]:
    modules = {
        _module_name(path): ast.parse(path.read_text(encoding="utf-8"))
        for path in PACKAGE_ROOT.rglob("*.py")
    }
    graph = {}
    for module, tree in modules.items():
        targets = set()
        for target in _imports(module, tree):
            while target not in modules and "." in target:
                target = target.rsplit(".", 1)[0]
            if target in modules and target != module:
                targets.add(target)
        graph[module] = targets
    return graph


def _top_level_imports(path: Path) -> set[str]:
    tree = ast.parse(path.read_text(encoding="utf-8"))
    header = ast.Module(
        body=[node for node in tree.body if isinstance(node, (ast.Import, ast.ImportFrom))],
        type_ignores=[],
    )
    return _imports(_module_name(path), header)


class ArchitectureGuardrailTests(unittest.TestCase):
    def test_layers_only_import_downstream(self) -> None:
        violations = []
        for source, targets in _import_graph().items():
            source_layer = _layer(source)
            if source_layer is None:
                continue
            for target in targets:
                target_layer = _layer(target)
                if target_layer is None or target_layer == source_layer:
                    continue
                if target_layer not in ALLOWED[source_layer]:
                    violations.append(f"{source} -> {target}")

        self.assertEqual([], sorted(violations))

    def test_module_level_import_graph_has_no_cycles(self) -> None:
        graph = {}
        for path in PACKAGE_ROOT.rglob("*.py"):
            module = _module_name(path)
            graph[module] = set()
            for target in _top_level_imports(path):
                graph[module].add(target)
        known = set(graph)
        for module, targets in graph.items():
            resolved = set()
            for target in targets:
                while target not in known and "." in target:
                    target = target.rsplit(".", 1)[0]
                if target in known and target != module:
                    resolved.add(target)
            graph[module] = resolved

        visiting, done = set(), set()

        def visit(node: str, trail: list[str]) -> list[str]:
            visiting.add(node)
            for nxt in sorted(graph[node]):
                if nxt in visiting:
                    return trail + [node, nxt]
                if nxt not in done:
                    cycle = visit(nxt, trail + [node])
                    if cycle:
                        return cycle
            visiting.discard(node)
            done.add(node)
            return []

        for module in sorted(graph):
            if module not in done:
                self.assertEqual([], visit(module, []), "Import cycle detected")


if __name__ == "__main__":
    unittest.main()
