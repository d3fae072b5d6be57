"""
Exhaustive k-nearest-neighbor search and neighbor-graph connectivity repair.

A neighbor table is a list (one entry per item) of ``Pair`` lists sorted by
distance. ``KNNSearch`` produces exactly k entries per item;
``MeshConnectivityRepair`` appends mutual edges until every item is reachable
from item 0.
"""

from __future__ import annotations

import heapq
import time
from bisect import bisect_right
from collections import deque
from dataclasses import dataclass
from typing import List, Set

from ..exceptions import InvalidParameterError
from ..utils.logging_config import get_logger
from .distance import DistanceMatrix

logger = get_logger(__name__)


@dataclass(frozen=True)
class Pair:
    """Neighbor candidate: item index and its distance."""

    index: int
    distance: float

    def __lt__(self, other: "Pair") -> bool:
        return self.distance < other.distance


NeighborTable = List[List[Pair]]


def neighbor_indices(table: NeighborTable) -> List[List[int]]:
    """Strip distances, keeping only the neighbor indices per item."""
    return [[p.index for p in row] for row in table]


def reachable_from(table: NeighborTable, start: int = 0) -> Set[int]:
    """Items reachable from *start* following neighbor entries (BFS)."""
    if not table:
        return set()
    seen = {start}
    queue = deque([start])
    while queue:
        node = queue.popleft()
        for p in table[node]:
            if p.index not in seen:
                seen.add(p.index)
                queue.append(p.index)
    return seen


class KNNSearch:
    """
    Brute-force k nearest neighbors over a distance matrix.

    Each item keeps a fixed-size buffer sorted by distance; a closer
    candidate is inserted at its position and the farthest entry drops out.
    Equal distances keep the earlier (lower) index first.
    """

    def __init__(self, k: int):
        if k < 1:
            raise InvalidParameterError(f"Number of neighbors must be >= 1, got {k}")
        self.k = k

    def execute(self, matrix: DistanceMatrix) -> NeighborTable:
        n = matrix.element_count()
        if self.k > n - 1:
            raise InvalidParameterError(
                f"Number of neighbors ({self.k}) bigger than the number of items minus one ({n - 1})"
            )

        start = time.perf_counter()
        D = matrix.as_array()
        table: NeighborTable = []
        for i in range(n):
            idxs = [-1] * self.k
            dists = [float("inf")] * self.k
            for j in range(n):
                if i == j:
                    continue
                dist = float(D[i, j])
                if dist < dists[-1]:
                    pos = bisect_right(dists, dist)
                    dists.insert(pos, dist)
                    idxs.insert(pos, j)
                    dists.pop()
                    idxs.pop()
            table.append([Pair(j, d) for j, d in zip(idxs, dists)])

        logger.info("KNN (k=%d, n=%d) time: %.3fs", self.k, n, time.perf_counter() - start)
        return table


class MeshConnectivityRepair:
    """
    Make the neighbor graph connected from item 0.

    Items are visited through a frontier (lowest index first). When the
    frontier runs dry while items remain unvisited, the lowest unvisited item
    is linked to its nearest visited item by a mutual edge and the traversal
    resumes from it. A direction that already exists is not added twice.
    """

    def execute(self, table: NeighborTable, matrix: DistanceMatrix) -> NeighborTable:
        mesh: NeighborTable = [list(row) for row in table]
        n = len(mesh)
        if n == 0:
            return mesh
        if n != matrix.element_count():
            raise InvalidParameterError(
                f"Neighbor table has {n} rows but the matrix has {matrix.element_count()} items"
            )

        D = matrix.as_array()
        visited: Set[int] = set()
        unvisited: Set[int] = set(range(1, n))
        frontier = [0]
        queued = {0}
        repairs = 0

        while unvisited:
            if frontier:
                node = heapq.heappop(frontier)
                queued.discard(node)
                visited.add(node)
                unvisited.discard(node)
                for p in mesh[node]:
                    if p.index not in visited and p.index not in queued:
                        heapq.heappush(frontier, p.index)
                        queued.add(p.index)
            else:
                node = min(unvisited)
                closest = -1
                best = float("inf")
                for other in sorted(visited):
                    if D[other, node] < best:
                        best = float(D[other, node])
                        closest = other
                if all(p.index != closest for p in mesh[node]):
                    mesh[node].append(Pair(closest, best))
                if all(p.index != node for p in mesh[closest]):
                    mesh[closest].append(Pair(node, best))
                heapq.heappush(frontier, node)
                queued.add(node)
                repairs += 1

        if repairs:
            logger.debug("Mesh repair added %d mutual edge(s) over %d items", repairs, n)
        return mesh
