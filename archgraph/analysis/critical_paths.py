"""
Graph-wide detection of high-risk dependency chains.

Paths are simple (no entity repeats) and walked depth-first from every
source card, i.e. cards nothing points into. Cards that sit only inside a
source-less cycle are used as extra starting points so cycles are not
invisible to the scan.

The walk is a branch-and-bound search. Every prefix of at least
`min_path_length` cards is a candidate, and a branch is only entered when
the best score any path through it could reach still beats the current
top-`limit` list (or the significance threshold while that list is short).
"""

from __future__ import annotations

import bisect
import hashlib
import logging
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from ..config.models import CriticalPathSettings
from ..errors import InvalidArgumentError
from ..graph.deadline import Deadline
from ..graph.index import GraphIndex
from ..graph.schema import RelationshipType
from .impact_analyzer import ImpactAnalyzer
from .models import CriticalPath

logger = logging.getLogger(__name__)

DEFAULT_CRITICAL_PATH_SETTINGS = CriticalPathSettings(
    max_paths=10,
    min_path_length=2,
    max_path_length=6,
    significance_threshold=20.0,
    max_expansions=20000,
)

RankKey = Tuple[float, int, Tuple[str, ...]]


def path_id(cards: List[str]) -> str:
    digest = hashlib.sha1("|".join(cards).encode("utf-8")).hexdigest()
    return f"path-{digest[:12]}"


class CriticalPathDetector:
    """
    Ranks simple paths by risk.

    riskScore = mean(criticality of the path's cards) * weakest link strength,
    where the link strength between two consecutive cards is the strongest
    edge joining them. A chain of critical cards held together by strong
    edges therefore scores highest.

    A path is reported even when it continues past its last card, unless
    some continuation of it scores at least as high; one weak tail edge
    never hides the strong chain in front of it.

    `max_expansions` caps the number of branches entered. Hitting it ends
    the scan early with the best paths found so far (`exhausted` is set and
    a warning is logged); only the request deadline raises a timeout.
    """

    def __init__(
        self,
        index: GraphIndex,
        settings: Optional[CriticalPathSettings] = None,
        *,
        impact: Optional[ImpactAnalyzer] = None,
        types: Optional[FrozenSet[RelationshipType]] = None,
        deadline: Optional[Deadline] = None,
    ):
        self.index = index
        self.settings = settings or DEFAULT_CRITICAL_PATH_SETTINGS
        self.types = types
        self.deadline = deadline or Deadline.unbounded("critical path scan")
        self.impact = impact or ImpactAnalyzer(index, types=types, deadline=self.deadline)
        self.expansions = 0
        self.exhausted = False
        self._limit = self.settings.max_paths
        self._ranked: List[Tuple[RankKey, float, float]] = []
        self._criticality: Dict[str, float] = {}
        self._hops: Dict[str, List[Tuple[str, float]]] = {}
        self._best_tail: List[Dict[str, float]] = []

    def detect(self, limit: Optional[int] = None) -> List[CriticalPath]:
        limit = self.settings.max_paths if limit is None else int(limit)
        if limit <= 0:
            raise InvalidArgumentError(f"limit must be positive, got {limit}")
        if limit > self.settings.max_paths:
            raise InvalidArgumentError(
                f"limit must be at most {self.settings.max_paths}, got {limit}"
            )

        self._limit = limit
        self._ranked = []
        self.expansions = 0
        self.exhausted = False
        self._prepare()

        entity_ids = sorted(self._hops)
        sources = [entity_id for entity_id in entity_ids if not self.index.incoming(entity_id, self.types)]
        source_set = set(sources)
        starts = sources + [entity_id for entity_id in entity_ids if entity_id not in source_set]
        covered: Set[str] = set()
        for start in starts:
            if self.exhausted:
                break
            if start in covered:
                continue
            self._cover(start, covered)
            self._extend([start], self._criticality[start], None, {start})

        paths = [self._to_path(list(key[2]), total, weakest) for key, total, weakest in self._ranked]
        logger.info(
            "[CRITICAL PATHS] %s branch(es) explored over %s card(s), returning %s path(s)%s",
            self.expansions,
            len(entity_ids),
            len(paths),
            " (expansion cap reached)" if self.exhausted else "",
        )
        return paths

    def _prepare(self) -> None:
        """Cache criticality, collapsed successor lists and best suffix sums."""
        self._criticality = {
            entity_id: self.impact.criticality(entity_id) for entity_id in self.index.entity_ids()
        }

        self._hops = {}
        for entity_id in self._criticality:
            strongest: Dict[str, float] = {}
            for rel in self.index.outgoing(entity_id, self.types):
                if rel.target_id == entity_id:
                    continue
                strongest[rel.target_id] = max(strongest.get(rel.target_id, 0.0), rel.strength)
            self._hops[entity_id] = sorted(strongest.items())

        # _best_tail[k][v]: largest criticality sum of k more cards after v.
        # Walks may revisit cards here, so this only ever overestimates.
        self._best_tail = [{entity_id: 0.0 for entity_id in self._hops}]
        for _ in range(1, self.settings.max_path_length):
            previous = self._best_tail[-1]
            layer: Dict[str, float] = {}
            for entity_id, hops in self._hops.items():
                sums = [
                    self._criticality[target] + previous[target]
                    for target, _ in hops
                    if target in previous
                ]
                if sums:
                    layer[entity_id] = max(sums)
            self._best_tail.append(layer)

    def _cover(self, start: str, covered: Set[str]) -> None:
        """Mark every card a walk from `start` could visit, pruned or not."""
        seen = {start}
        frontier = [start]
        for _ in range(self.settings.max_path_length - 1):
            reached = []
            for entity_id in frontier:
                for target, _ in self._hops[entity_id]:
                    if target not in seen:
                        seen.add(target)
                        reached.append(target)
            if not reached:
                break
            frontier = reached
        covered.update(seen)

    def _extend(
        self,
        path: List[str],
        total: float,
        weakest: Optional[float],
        on_path: Set[str],
    ) -> Optional[float]:
        """Walk below `path`; return the best score seen at or below it."""
        self.deadline.check()
        current = path[-1]

        best_below: Optional[float] = None
        if len(path) < self.settings.max_path_length:
            branches = []
            for target, strength in self._hops[current]:
                if target in on_path:
                    continue
                link = strength if weakest is None else min(weakest, strength)
                target_total = total + self._criticality[target]
                bound = self._upper_bound(len(path) + 1, target_total, link, target)
                if bound is not None:
                    branches.append((-bound, target, target_total, link))
            branches.sort()

            for negative_bound, target, target_total, link in branches:
                if round(-negative_bound, 2) < self._floor():
                    break
                self.expansions += 1
                if self.expansions > self.settings.max_expansions:
                    if not self.exhausted:
                        logger.warning(
                            "[CRITICAL PATHS] Stopped after %s expansions; returning best paths so far",
                            self.settings.max_expansions,
                        )
                    self.exhausted = True
                    break
                path.append(target)
                on_path.add(target)
                try:
                    below = self._extend(path, target_total, link, on_path)
                finally:
                    on_path.discard(target)
                    path.pop()
                if below is not None and (best_below is None or below > best_below):
                    best_below = below
                if self.exhausted:
                    break

        if weakest is None or len(path) < self.settings.min_path_length:
            return best_below
        score = round(total / len(path) * weakest, 2)
        if best_below is None or best_below < score:
            self._offer(path, score, total, weakest)
            return score
        return best_below

    def _upper_bound(self, length: int, total: float, weakest: float, last: str) -> Optional[float]:
        best_mean: Optional[float] = None
        for extra in range(self.settings.max_path_length - length + 1):
            if length + extra < self.settings.min_path_length:
                continue
            tail = self._best_tail[extra].get(last)
            if tail is None:
                continue
            mean = (total + tail) / (length + extra)
            if best_mean is None or mean > best_mean:
                best_mean = mean
        return None if best_mean is None else best_mean * weakest

    def _floor(self) -> float:
        if len(self._ranked) >= self._limit:
            return -self._ranked[-1][0][0]
        return self.settings.significance_threshold

    def _offer(self, path: List[str], score: float, total: float, weakest: float) -> None:
        if score < self.settings.significance_threshold:
            return
        key: RankKey = (-score, -len(path), tuple(path))
        if len(self._ranked) >= self._limit and key > self._ranked[-1][0]:
            return
        bisect.insort(self._ranked, (key, total, weakest))
        del self._ranked[self._limit:]

    def _to_path(self, cards: List[str], total: float, weakest: float) -> CriticalPath:
        mean_criticality = total / len(cards)
        return CriticalPath(
            path_id=path_id(cards),
            cards=cards,
            risk_score=round(mean_criticality * weakest, 2),
            mean_criticality=round(mean_criticality, 2),
            min_strength=round(weakest, 4),
        )


__all__ = ["CriticalPathDetector", "DEFAULT_CRITICAL_PATH_SETTINGS", "path_id"]
