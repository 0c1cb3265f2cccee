"""Road graph stored as adjacency lists, with the locations of available drivers."""

from __future__ import annotations

import argparse
import os
from collections.abc import Iterator

__all__ = ["AdjacencyList", "parse_data", "read_data", "main"]


class AdjacencyList:
    """Directed graph over vertices ``0..vertex_count-1`` plus a bounded set of uber locations."""

    def __init__(self, vertex_count: int, edge_count: int = 0, uber_count: int = 0) -> None:
        if vertex_count < 0 or edge_count < 0 or uber_count < 0:
            raise ValueError("counts must not be negative")
        self.vertex_count = vertex_count
        self.edge_count = edge_count
        self.uber_count = uber_count
        self._adjacency: list[list[int]] = [[] for _ in range(vertex_count)]
        self._ubers: list[int] = []

    def _check_vertex(self, vertex: int) -> None:
        if not 0 <= vertex < self.vertex_count:
            raise IndexError(f"vertex {vertex} out of range")

    def add_edge(self, origin: int, destination: int) -> None:
        """Add a connection from ``origin`` to ``destination``."""
        self._check_vertex(origin)
        self._adjacency[origin].append(destination)

    def add_uber(self, location: int) -> None:
        """Record where one more uber is; fails once ``uber_count`` are recorded."""
        if len(self._ubers) >= self.uber_count:
            raise ValueError("the maximum number of ubers has already been added")
        self._ubers.append(location)

    def neighbours(self, vertex: int) -> tuple[int, ...]:
        """Return the destinations reachable from ``vertex`` in insertion order."""
        self._check_vertex(vertex)
        return tuple(self._adjacency[vertex])

    def uber_locations(self) -> tuple[int, ...]:
        """Return the recorded uber locations in insertion order."""
        return tuple(self._ubers)


def _ints(line: str, count: int, what: str) -> list[int]:
    fields = line.split()
    if len(fields) < count:
        raise ValueError(f"expected {count} integers in {what} line: {line!r}")
    try:
        return [int(field) for field in fields[:count]]
    except ValueError as exc:
        raise ValueError(f"non-integer value in {what} line: {line!r}") from exc


def parse_data(text: str) -> AdjacencyList:
    """Build a graph from 'nodes edges ubers', one 'origin destination' line per edge, then uber locations."""
    lines: Iterator[str] = iter(text.splitlines())
    vertex_count, edge_count, uber_count = _ints(next(lines, ""), 3, "header")
    graph = AdjacencyList(vertex_count, edge_count, uber_count)
    for _ in range(edge_count):
        origin, destination = _ints(next(lines, ""), 2, "edge")
        graph.add_edge(origin, destination)
    if uber_count:
        for location in _ints(next(lines, ""), uber_count, "uber locations"):
            graph.add_uber(location)
    return graph


def read_data(path: str | os.PathLike) -> AdjacencyList:
    """Read and parse a graph description file."""
    with open(path, encoding="utf-8") as handle:
        return parse_data(handle.read())


def main(argv: list[str] | None = None) -> int:
    """Print uber locations and every vertex's neighbours."""
    parser = argparse.ArgumentParser(prog="tareas-rides", description="Show a road graph.")
    parser.add_argument("data", nargs="?", default="data1.txt")
    args = parser.parse_args(argv)
    graph = read_data(args.data)
    for location in graph.uber_locations():
        print(location)
    for vertex in range(graph.vertex_count):
        for destination in graph.neighbours(vertex):
            print(f"Vecino del nodo {vertex}:{destination}")
    return 0