#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: fas.py
@time: 3/11/2025
@desc: adjacency search. starting from a complete graph, remove x -- y as soon as some subset of the adjacents
       of x or of y separates them, trying subsets of size 0, 1, 2, ... in turn.
"""

import logging
from collections import deque
from itertools import combinations

from .graph import ARROW, CIRCLE
from .knowledge import Knowledge
from .utils import resolve_bound, is_interrupted, progress_level

logger = logging.getLogger(__name__)


def _dependency_key(x, y, cond):
    a, b = sorted([x.name, y.name])
    return a, b, frozenset(n.name for n in cond)


def _sure_adjacency_names(sure_adjacencies):
    return {frozenset(getattr(n, 'name', n) for n in e) for e in sure_adjacencies or ()}


def remove_forbidden_edges(graph, knowledge, verbose=False):
    '''drop every adjacency the knowledge forbids outright; no test is spent on them.'''
    removed = []
    for x, y in knowledge.forbidden_pairs_among(graph.node_names):
        if graph.remove_edge(x, y):
            removed.append((x, y))
            logger.log(progress_level(verbose), f"[FAS] removed {x} -- {y}: forbidden by knowledge")
    return removed


def search_skeleton(
    graph,
    oracle,
    sepsets,
    knowledge=None,
    depth=-1,
    stable=False,
    sure_adjacencies=None,
    sure_dependencies=None,
    interrupt=None,
    verbose=False,
):
    '''
    thin the given graph (normally complete, all edges undirected) down to the skeleton, in place.
    :param graph: Graph; mutated
    :param oracle: IndependenceOracle over (at least) the graph's nodes
    :param sepsets: SepsetMap; the separating set of every removed edge is put here
    :param knowledge: Knowledge or None; forbidden adjacencies are removed up front, required ones never tested
    :param depth: max size of conditioning sets; -1 for no bound
    :param stable: if True, the adjacents used in round d are those at the start of round d, so
                   the result does not depend on the order the edges are visited in
    :param sure_adjacencies: iterable of node (or name) pairs known to be adjacent; never tested
    :param sure_dependencies: iterable of (x, y, S) name triples known to be dependent; never tested
    :param interrupt: None or threading.Event; checked before every test
    :return: (dependencies, completed)
        dependencies: set of (x, y, frozenset(S)) name triples found dependent, x < y
        completed: False iff the search was interrupted; the graph then holds what was found so far
    '''
    max_depth = resolve_bound(depth, 'depth')
    knowledge = knowledge if knowledge is not None else Knowledge()
    sure_adjacencies = _sure_adjacency_names(sure_adjacencies)
    dependencies = {(min(x, y), max(x, y), frozenset(S)) for x, y, S in sure_dependencies or ()}

    remove_forbidden_edges(graph, knowledge, verbose)

    d = -1
    while True:
        d += 1
        if d > max_depth: break
        adjacency = {n.name: graph.get_adjacent_nodes(n) for n in graph.nodes} if stable else None
        found_something = False
        for edge in graph.edges:
            x, y = edge.node1, edge.node2
            if is_interrupted(interrupt): return dependencies, False
            if not graph.is_adjacent(x, y): continue    # removed earlier in this round
            if frozenset((x.name, y.name)) in sure_adjacencies: continue
            if knowledge.is_adjacency_required(x.name, y.name): continue
            adj_x = [n for n in (adjacency[x.name] if stable else graph.get_adjacent_nodes(x)) if n.name != y.name]
            adj_y = [n for n in (adjacency[y.name] if stable else graph.get_adjacent_nodes(y)) if n.name != x.name]
            if len(adj_x) < d and len(adj_y) < d: continue
            found_something = True
            tested = set()
            removed = False
            for candidates in (adj_x, adj_y):
                if removed: break
                for cond in combinations(candidates, d):
                    if is_interrupted(interrupt): return dependencies, False
                    key = _dependency_key(x, y, cond)
                    if key in tested: continue
                    tested.add(key)
                    if key in dependencies: continue
                    result = oracle.check_independence(x, y, cond)
                    if result.is_independent:
                        graph.remove_edge(x, y)
                        sepsets.put(x, y, cond, result.statistic)
                        logger.log(progress_level(verbose),
                                   f"[FAS] removed {x.name} -- {y.name} | {[n.name for n in cond]} (statistic={result.statistic:.4g}, depth={d})")
                        removed = True
                        break
                    dependencies.add(key)
        if not found_something: break
    logger.log(progress_level(verbose), f"[FAS] done at depth {d}: {graph.num_edges} edges, {len(sepsets)} sepsets")
    return dependencies, True


def possible_dsep_sets(graph, sepsets, max_path_length=-1):
    '''
    Possible-D-Sep(x) for every x (Causation, Prediction, and Search, pp. 144-145): y is in it iff some path
    x, w_2, ..., y exists where every interior w_k is a collider on the path or has its two path neighbours adjacent.
    colliders are the provisional ones implied by the sepsets.
    :param max_path_length: only paths of at most this many nodes are extended; -1 for no bound
    :return: {name: set of names}
    '''
    max_len = resolve_bound(max_path_length, 'max_path_length')
    pag = graph.copy()
    pag.reorient_all_with(CIRCLE)
    for y in pag.nodes:
        for x, z in combinations(pag.get_adjacent_nodes(y), 2):
            if pag.is_adjacent(x, z): continue
            if sepsets.is_in_sepset(y, x, z) is False:
                pag.set_endpoint(x, y, ARROW)
                pag.set_endpoint(z, y, ARROW)

    adjacents = {n.name: {a.name for a in pag.get_adjacent_nodes(n)} for n in pag.nodes}
    possible_dsep = {n: set(adj) for n, adj in adjacents.items()}
    for x in pag.node_names:
        # only paths every interior node of which qualifies are kept in the queue
        queue = deque([(n, [x, n]) for n in sorted(adjacents[x])])
        while queue:
            current, path = queue.popleft()
            for neighbor in sorted(adjacents[current] - set(path)):
                new_path = path + [neighbor]
                a, b, c = new_path[-3:]
                if (pag.get_endpoint(a, b) == ARROW and pag.get_endpoint(c, b) == ARROW) or c in adjacents[a]:
                    possible_dsep[x].add(neighbor)
                    possible_dsep[neighbor].add(x)
                    if len(new_path) <= max_len:
                        queue.append((neighbor, new_path))
    return possible_dsep


def refine_possible_dsep(
    graph,
    oracle,
    sepsets,
    dependencies=None,
    knowledge=None,
    depth=-1,
    max_path_length=-1,
    sure_adjacencies=None,
    interrupt=None,
    verbose=False,
):
    '''
    FCI's second adjacency pass: some non-adjacencies have no separating set among the adjacents alone
    (when there are latents), so re-test the remaining edges against subsets of Possible-D-Sep.
    :return: completed, False iff interrupted
    '''
    max_depth = resolve_bound(depth, 'depth')
    knowledge = knowledge if knowledge is not None else Knowledge()
    sure_adjacencies = _sure_adjacency_names(sure_adjacencies)
    dependencies = dependencies if dependencies is not None else set()
    possible_dsep = possible_dsep_sets(graph, sepsets, max_path_length)

    for edge in graph.edges:
        x, y = edge.node1, edge.node2
        if frozenset((x.name, y.name)) in sure_adjacencies: continue
        if knowledge.is_adjacency_required(x.name, y.name): continue
        pd_x = [graph.get_node(n) for n in graph.node_names if n in possible_dsep[x.name] - {y.name}]
        pd_y = [graph.get_node(n) for n in graph.node_names if n in possible_dsep[y.name] - {x.name}]
        upper_size = min(max_depth, max(len(pd_x), len(pd_y)))
        removed = False
        for r in range(1, upper_size + 1):
            if removed: break
            tested = set()
            for candidates in (pd_x, pd_y):
                if removed: break
                for cond in combinations(candidates, r):
                    if is_interrupted(interrupt): return False
                    key = _dependency_key(x, y, cond)
                    if key in tested or key in dependencies: continue
                    tested.add(key)
                    result = oracle.check_independence(x, y, cond)
                    if result.is_independent:
                        graph.remove_edge(x, y)
                        sepsets.put(x, y, cond, result.statistic)
                        logger.log(progress_level(verbose),
                                   f"[FAS] possible-dsep removed {x.name} -- {y.name} | {[n.name for n in cond]}")
                        removed = True
                        break
                    dependencies.add(key)
    return True
