"""Conversions between tree representations.

A tree (or forest) is given as ``parents``: a mapping of node -> parent, with
None for roots. From it we can derive the other layouts a comment thread can
be stored in:

- closure pairs: every (ancestor, descendant), including (n, n)
- path enumeration: "1/4/6/" strings from the root
- nested sets: (lft, rgt) bounds, a subtree is a range containment

Siblings are always visited in ascending node order so results are
deterministic.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Hashable, Iterable, Mapping, TypeVar

from bugshelf.errors import DomainError

N = TypeVar("N", bound=Hashable)

PATH_SEP = "/"


def _children(parents: Mapping[N, N | None]) -> dict[N | None, list[N]]:
    children: dict[N | None, list[N]] = defaultdict(list)
    for node, parent in parents.items():
        if parent is not None and parent not in parents:
            raise DomainError(f"parent {parent!r} of {node!r} is not a node")
        children[parent].append(node)
    for kids in children.values():
        kids.sort()
    return children


def ancestry(parents: Mapping[N, N | None], node: N) -> list[N]:
    """Path from the root down to ``node`` (inclusive)."""
    path = [node]
    seen = {node}
    parent = parents[node]
    while parent is not None:
        if parent not in parents:
            raise DomainError(f"parent {parent!r} of {path[-1]!r} is not a node")
        if parent in seen:
            raise DomainError(f"cycle detected at {parent!r}")
        seen.add(parent)
        path.append(parent)
        parent = parents[parent]
    path.reverse()
    return path


def closure_from_parents(parents: Mapping[N, N | None]) -> set[tuple[N, N]]:
    """Every (ancestor, descendant) pair, reflexive pairs included."""
    pairs: set[tuple[N, N]] = set()
    for node in parents:
        for anc in ancestry(parents, node):
            pairs.add((anc, node))
    return pairs


def parents_from_closure(pairs: Iterable[tuple[N, N]]) -> dict[N, N | None]:
    """Recover the immediate parents from a complete closure.

    The immediate parent of n is its proper ancestor with the most
    ancestors of its own.
    """
    ancestors: dict[N, set[N]] = defaultdict(set)
    nodes: set[N] = set()
    for anc, desc in pairs:
        nodes.update((anc, desc))
        if anc != desc:
            ancestors[desc].add(anc)

    parents: dict[N, N | None] = {}
    for node in nodes:
        proper = ancestors.get(node, set())
        if not proper:
            parents[node] = None
            continue
        parents[node] = max(proper, key=lambda a: len(ancestors.get(a, ())))
    return parents


def path_enumeration(parents: Mapping[N, N | None]) -> dict[N, str]:
    """Materialized path for each node, e.g. ``"1/4/6/"``."""
    return {
        node: "".join(f"{n}{PATH_SEP}" for n in ancestry(parents, node))
        for node in parents
    }


def parents_from_paths(paths: Mapping[int, str]) -> dict[int, int | None]:
    """Inverse of path_enumeration for integer node ids."""
    parents: dict[int, int | None] = {}
    for node, path in paths.items():
        parts = [int(p) for p in path.split(PATH_SEP) if p]
        if not parts or parts[-1] != node:
            raise DomainError(f"path {path!r} does not end at {node}")
        parents[node] = parts[-2] if len(parts) > 1 else None
    return parents


def nested_sets(parents: Mapping[N, N | None]) -> dict[N, tuple[int, int]]:
    """Left/right bounds from a depth-first walk of the forest."""
    children = _children(parents)
    bounds: dict[N, tuple[int, int]] = {}
    counter = 0

    # iterative DFS, each node pushed once to open and once to close
    stack: list[tuple[N, bool]] = [(root, False) for root in reversed(children[None])]
    while stack:
        node, closing = stack.pop()
        counter += 1
        if closing:
            bounds[node] = (bounds[node][0], counter)
            continue
        if node in bounds:
            raise DomainError(f"cycle detected at {node!r}")
        bounds[node] = (counter, 0)
        stack.append((node, True))
        for child in reversed(children.get(node, [])):
            stack.append((child, False))

    if len(bounds) != len(parents):
        unreachable = sorted(set(parents) - set(bounds))
        raise DomainError(f"cycle detected among {unreachable!r}")
    return bounds


def parents_from_nested_sets(bounds: Mapping[N, tuple[int, int]]) -> dict[N, N | None]:
    """The parent of n is the tightest interval strictly containing n's."""
    parents: dict[N, N | None] = {}
    for node, (lft, rgt) in bounds.items():
        best: N | None = None
        best_lft = None
        for other, (olft, orgt) in bounds.items():
            if olft < lft and rgt < orgt and (best_lft is None or olft > best_lft):
                best, best_lft = other, olft
        parents[node] = best
    return parents


def closure_violations(pairs: Iterable[tuple[N, N]], nodes: Iterable[N]) -> list[str]:
    """Describe everything that keeps ``pairs`` from being a valid tree closure.

    Checks reflexivity, transitivity, and that every node has at most one
    immediate parent (the proper ancestors of a node form a chain).
    """
    pair_set = set(pairs)
    node_list = sorted(set(nodes))
    problems: list[str] = []

    for n in node_list:
        if (n, n) not in pair_set:
            problems.append(f"missing reflexive pair ({n}, {n})")

    ancestors: dict[N, set[N]] = defaultdict(set)
    for anc, desc in pair_set:
        if anc != desc:
            ancestors[desc].add(anc)

    for anc, mid in sorted(pair_set):
        if anc == mid:
            continue
        for desc in node_list:
            if (mid, desc) in pair_set and (anc, desc) not in pair_set:
                problems.append(f"missing transitive pair ({anc}, {desc}) via {mid}")

    for n in node_list:
        chain = ancestors.get(n, set())
        for a in chain:
            for b in chain:
                if a < b and (a, b) not in pair_set and (b, a) not in pair_set:
                    problems.append(f"{n} has unrelated ancestors {a} and {b}")
    return problems
