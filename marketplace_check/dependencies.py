"""Dependency graph checks for marketplace plugins."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from marketplace_check.report import Report


def dependency_target(raw: str) -> str:
    """Return the plugin name a ``[namespace:]plugin-name`` reference points to.

    The namespace is informational only and is not matched against anything.
    """
    namespace, sep, name = raw.partition(":")
    return name if sep else namespace


def dependency_edges(plugins: list[dict[str, Any]]) -> list[tuple[str, str, str]]:
    """Collect ``(from, to, raw)`` edges in registry order.

    Entries without a string name, non-list ``dependencies`` and non-string
    items are skipped; the schema validator reports those.
    """
    edges: list[tuple[str, str, str]] = []
    for entry in plugins:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        deps = entry.get("dependencies")
        if not isinstance(name, str) or not isinstance(deps, list):
            continue
        for raw in deps:
            if isinstance(raw, str):
                edges.append((name, dependency_target(raw), raw))
    return edges


def _canonical(cycle: list[str]) -> tuple[str, ...]:
    # a -> b -> a and b -> a -> b are the same cycle
    nodes = cycle[:-1]
    start = nodes.index(min(nodes))
    return tuple(nodes[start:] + nodes[:start])


def find_cycles(graph: dict[str, list[str]]) -> list[list[str]]:
    """Find dependency cycles with an iterative depth-first walk.

    A fresh walk starts at every node with outgoing edges, in insertion
    order. Each returned cycle is rotated to start at its smallest name and
    ends with that name again, e.g. ``[a, b, a]``; rotations of an already
    reported cycle are dropped.
    """
    cycles: list[list[str]] = []
    seen: set[tuple[str, ...]] = set()

    for start, targets in graph.items():
        if not targets:
            continue

        path: list[str] = [start]
        on_path: set[str] = {start}
        finished: set[str] = set()
        stack: list[Iterator[str]] = [iter(graph.get(start, []))]

        while stack:
            node = next(stack[-1], None)
            if node is None:
                stack.pop()
                done = path.pop()
                on_path.discard(done)
                finished.add(done)
                continue

            if node in on_path:
                cycle = path[path.index(node) :] + [node]
                key = _canonical(cycle)
                if key not in seen:
                    seen.add(key)
                    cycles.append([*key, key[0]])
                continue

            if node in finished or node not in graph:
                continue

            path.append(node)
            on_path.add(node)
            stack.append(iter(graph[node]))

    return cycles


def resolve_dependencies(plugins: list[dict[str, Any]]) -> Report:
    """Check that every dependency exists and that no dependency cycle exists.

    Args:
        plugins: ``plugins`` array from marketplace.json

    Returns:
        Report with one error per unresolved reference and per cycle
    """
    report = Report()
    nodes = {
        entry["name"]
        for entry in plugins
        if isinstance(entry, dict) and isinstance(entry.get("name"), str)
    }

    graph: dict[str, list[str]] = {name: [] for name in nodes}
    for source, target, raw in dependency_edges(plugins):
        if target not in nodes:
            report.error(f"Plugin '{source}' depends on '{raw}' which is not in marketplace")
            continue
        graph[source].append(target)

    # Registry order for deterministic walks
    ordered = {
        entry["name"]: graph[entry["name"]]
        for entry in plugins
        if isinstance(entry, dict) and isinstance(entry.get("name"), str)
    }
    for cycle in find_cycles(ordered):
        report.error(f"Dependency cycle detected: {' -> '.join(cycle)}")

    return report
