#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: meek.py
@time: 3/11/2025
@desc: complete a pattern (colliders oriented, everything else undirected) into a CPDAG by the Meek rules:
         R1: a --> b --- c, a and c not adjacent                                  => b --> c
         R2: a --> b --> c, a --- c                                               => a --> c
         R3: a --- b, a --- c --> b, a --- d --> b, c and d not adjacent          => a --> b
         R4: a --- d, a --- b --> c --> d, a adjacent to c, b and d not adjacent  => a --> d
       only undirected edges are ever oriented, so whatever is already directed (colliders, knowledge) stays.
"""

import logging
from itertools import combinations

from .graph import TAIL, ARROW
from .knowledge import Knowledge
from .utils import resolve_bound, is_interrupted, progress_level

logger = logging.getLogger(__name__)


def orient_required(graph, knowledge, verbose=False):
    '''
    put the knowledge on the graph before any rule runs:
    required x --> y is oriented unconditionally; a forbidden x --> y on an undirected edge becomes y --> x.
    :return: number of edges oriented
    '''
    oriented = 0
    for x, y in knowledge.required_edges():
        if not graph.contains_node(x) or not graph.contains_node(y): continue
        if not graph.is_adjacent(x, y):
            logger.warning(f"[MEEK] {x} --> {y} is required but {x} and {y} are not adjacent in the skeleton.")
            continue
        if not graph.is_directed_from_to(x, y):
            graph.set_marks(x, y, TAIL, ARROW)
            oriented += 1
            logger.log(progress_level(verbose), f"[MEEK] oriented {x} --> {y} (required)")

    for edge in graph.edges:
        if not edge.is_undirected(): continue
        x, y = edge.node1, edge.node2
        for a, b in ((x, y), (y, x)):
            if knowledge.is_forbidden(a.name, b.name) and not knowledge.is_forbidden(b.name, a.name):
                graph.set_marks(b, a, TAIL, ARROW)
                oriented += 1
                logger.log(progress_level(verbose), f"[MEEK] oriented {b.name} --> {a.name} ({a.name} --> {b.name} is forbidden)")
                break
    return oriented


class _MeekRules:
    '''one graph, one configuration; `run` applies R1-R4 to a fixpoint.'''

    def __init__(self, graph, knowledge, prevent_cycles, max_passes, interrupt, verbose):
        self.graph = graph
        self.knowledge = knowledge if knowledge is not None else Knowledge()
        self.prevent_cycles = prevent_cycles
        self.max_passes = resolve_bound(max_passes, 'max_passes')
        self.interrupt = interrupt
        self.verbose = verbose

    def _orient(self, a, b, reason):
        '''a --- b  =>  a --> b, unless the edge is no longer undirected, knowledge says otherwise, or a cycle would close.'''
        graph = self.graph
        if not graph.is_undirected(a, b): return False
        if self.knowledge.is_forbidden(a.name, b.name) or self.knowledge.is_required(b.name, a.name):
            logger.debug(f"[MEEK] {reason}: {a.name} --> {b.name} skipped, knowledge forbids it")
            return False
        if self.prevent_cycles and graph.exists_directed_path(b, a):
            logger.debug(f"[MEEK] {reason}: {a.name} --> {b.name} skipped, it would close a directed cycle")
            return False
        graph.set_marks(a, b, TAIL, ARROW)
        logger.log(progress_level(self.verbose), f"[MEEK] {reason}: oriented {a.name} --> {b.name}")
        return True

    def _undirected_neighbors(self, a):
        return [n for n in self.graph.get_adjacent_nodes(a) if self.graph.is_undirected(a, n)]

    def _R1(self):
        graph = self.graph
        changed_something = False
        for b in graph.nodes:
            for a in graph.get_parents(b):
                for c in self._undirected_neighbors(b):
                    if c is a or graph.is_adjacent(a, c): continue
                    if graph.is_ambiguous_triple(a, b, c): continue
                    changed_something |= self._orient(b, c, 'R1')
        return changed_something

    def _R2(self):
        graph = self.graph
        changed_something = False
        for a in graph.nodes:
            for c in self._undirected_neighbors(a):
                if any(graph.is_directed_from_to(b, c) for b in graph.get_children(a)):
                    changed_something |= self._orient(a, c, 'R2')
        return changed_something

    def _R3(self):
        graph = self.graph
        changed_something = False
        for b in graph.nodes:
            for a in self._undirected_neighbors(b):
                into_b = [c for c in self._undirected_neighbors(a) if graph.is_directed_from_to(c, b)]
                for c, d in combinations(into_b, 2):
                    if graph.is_adjacent(c, d): continue
                    changed_something |= self._orient(a, b, 'R3')
                    break
        return changed_something

    def _R4(self):
        graph = self.graph
        changed_something = False
        for a in graph.nodes:
            for d in self._undirected_neighbors(a):
                for c in graph.get_parents(d):
                    if c is a or not graph.is_adjacent(a, c): continue
                    if any(b is not d and not graph.is_adjacent(b, d) and graph.is_undirected(a, b)
                           for b in graph.get_parents(c)):
                        changed_something |= self._orient(a, d, 'R4')
                        break
        return changed_something

    def run(self):
        passes = 0
        while True:
            if is_interrupted(self.interrupt): return False
            if passes >= self.max_passes:
                logger.warning(f"[MEEK] stopped after {passes} passes without reaching a fixpoint.")
                break
            passes += 1
            changed_something = False
            for rule in (self._R1, self._R2, self._R3, self._R4):
                changed_something |= rule()
                if is_interrupted(self.interrupt): return False
            if not changed_something:
                break
        logger.log(progress_level(self.verbose), f"[MEEK] fixpoint after {passes} passes")
        return True


def orient_implied(graph, knowledge=None, prevent_cycles=False, max_passes=-1, interrupt=None, verbose=False):
    '''
    apply Meek R1-R4 to `graph` in place until no rule fires.
    :param prevent_cycles: if True, an orientation that would close a directed cycle is skipped
    :param max_passes: at most this many full passes over the rules; -1 for "until fixpoint"
    :return: completed, False iff interrupted
    '''
    return _MeekRules(graph, knowledge, prevent_cycles, max_passes, interrupt, verbose).run()
