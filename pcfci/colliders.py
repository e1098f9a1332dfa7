#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: colliders.py
@time: 3/11/2025
@desc: classify every unshielded triple x *-* y *-* z as collider, noncollider or ambiguous, and orient the colliders.
       three interchangeable ways to decide:
         SEPSETS      -- y not in the sepset FAS recorded for (x, z)                  (PC)
         CONSERVATIVE -- look at every separating subset of adj(x) or adj(z)          (CPC)
         MAX_P        -- trust the separating subset with the largest statistic       (PC-Max)
"""

import logging
from collections import deque
from itertools import combinations

from .conflicts import apply_orientation, PRIORITIZE_EXISTING
from .graph import Triple, TAIL, ARROW
from .sepsets import AllSepsetsMap
from .utils import resolve_bound, is_interrupted, progress_level

logger = logging.getLogger(__name__)

SEPSETS, CONSERVATIVE, MAX_P = 'SEPSETS', 'CONSERVATIVE', 'MAX_P'
COLLIDER_DISCOVERY = (SEPSETS, CONSERVATIVE, MAX_P)


class TripleClassification:
    '''the three disjoint sets of triples one classification pass produces.'''

    def __init__(self):
        self.colliders = set()
        self.noncolliders = set()
        self.ambiguous = set()
        self.completed = True

    def log(self, verbose=False):
        for title, triples in (('Collider', self.colliders), ('Noncollider', self.noncolliders), ('Ambiguous', self.ambiguous)):
            for triple in sorted(triples, key=Triple.names):
                logger.log(progress_level(verbose), f"[COLLIDER] {title}: {triple}")


def unshielded_triples(graph, interrupt=None):
    '''
    yield (x, y, z) for every unshielded triple, middle nodes in graph order, ends in adjacency order.
    stops early (silently) if interrupted; callers check the flag afterwards.
    '''
    for y in graph.nodes:
        for x, z in combinations(graph.get_adjacent_nodes(y), 2):
            if is_interrupted(interrupt): return
            if graph.is_adjacent(x, z): continue
            yield x, y, z


def collider_allowed(x, y, z, knowledge):
    '''False iff knowledge requires y --> x or y --> z, or forbids x --> y or z --> y.'''
    if knowledge is None: return True
    return not knowledge.is_required(y.name, x.name) and not knowledge.is_forbidden(x.name, y.name) and \
           not knowledge.is_required(y.name, z.name) and not knowledge.is_forbidden(z.name, y.name)


def orient_collider(graph, x, y, z, conflict_rule=PRIORITIZE_EXISTING, pag=False):
    '''
    orient x *-> y <-* z. in a CPDAG the far ends become tails (x --> y <-- z);
    in a PAG they are left as they are (x o-> y <-o z).
    '''
    proposed = (None if pag else TAIL, ARROW)
    changed = apply_orientation(graph, x, y, proposed, conflict_rule, reason='COLLIDER')
    changed |= apply_orientation(graph, z, y, proposed, conflict_rule, reason='COLLIDER')
    return changed


def _record_collider(graph, result, x, y, z, knowledge, conflict_rule, pag, verbose, why=''):
    result.colliders.add(Triple(x, y, z))
    if collider_allowed(x, y, z, knowledge):
        orient_collider(graph, x, y, z, conflict_rule, pag)
        logger.log(progress_level(verbose), f"[COLLIDER] oriented <{x.name}, {y.name}, {z.name}> {why}")
    else:
        logger.warning(f"[COLLIDER] <{x.name}, {y.name}, {z.name}> is a collider but knowledge forbids orienting it; left as is.")


def _record_ambiguous(graph, result, x, y, z):
    result.ambiguous.add(Triple(x, y, z))
    graph.add_ambiguous_triple(x, y, z)


def orient_colliders_sepsets(graph, sepsets, knowledge=None, conflict_rule=PRIORITIZE_EXISTING, pag=False,
                             interrupt=None, verbose=False):
    '''
    collider iff y is not in the sepset recorded for (x, z). no oracle calls.
    a pair with no recorded sepset (removed by knowledge, not by a test) gives an ambiguous triple.
    '''
    result = TripleClassification()
    for x, y, z in unshielded_triples(graph, interrupt):
        in_sepset = sepsets.is_in_sepset(y, x, z)
        if in_sepset is None:
            _record_ambiguous(graph, result, x, y, z)
        elif in_sepset:
            result.noncolliders.add(Triple(x, y, z))
        else:
            _record_collider(graph, result, x, y, z, knowledge, conflict_rule, pag, verbose,
                             why=f"sepset = {sorted(n.name for n in sepsets.get(x, z))}")
    result.completed = not is_interrupted(interrupt)
    return result


def find_sepsets(graph, oracle, x, z, depth=-1, first_only=False, interrupt=None):
    '''
    every subset of adj(x)\\{z} or of adj(z)\\{x}, of size up to depth, that separates x and z, found by fresh tests.
    :return: (AllSepsetsMap holding them in the order they were found, completed)
    '''
    max_depth = resolve_bound(depth, 'depth')
    adj_x = [n for n in graph.get_adjacent_nodes(x) if n.name != z.name]
    adj_z = [n for n in graph.get_adjacent_nodes(z) if n.name != x.name]
    found = AllSepsetsMap()
    tested = set()
    for d in range(0, min(max_depth, max(len(adj_x), len(adj_z))) + 1):
        for candidates in (adj_x, adj_z):
            if d > len(candidates): continue
            for cond in combinations(candidates, d):
                if is_interrupted(interrupt): return found, False
                key = frozenset(n.name for n in cond)
                if key in tested: continue
                tested.add(key)
                res = oracle.check_independence(x, z, cond)
                if res.is_independent:
                    found.add(x, z, cond, res.statistic)
                    if first_only: return found, True
    return found, True


def orient_colliders_conservative(graph, oracle, knowledge=None, conflict_rule=PRIORITIZE_EXISTING, depth=-1, pag=False,
                                  interrupt=None, verbose=False):
    '''
    collider iff y is in none of the separating sets found, noncollider iff it is in all of them,
    ambiguous otherwise (including when nothing separates x and z any more).
    '''
    result = TripleClassification()
    for x, y, z in unshielded_triples(graph, interrupt):
        found, completed = find_sepsets(graph, oracle, x, z, depth, interrupt=interrupt)
        if not completed: break
        sets = found.get(x, z)
        if sets and all(y.name not in s for s in sets):
            _record_collider(graph, result, x, y, z, knowledge, conflict_rule, pag, verbose, why=f"({len(sets)} sepsets)")
        elif sets and all(y.name in s for s in sets):
            result.noncolliders.add(Triple(x, y, z))
        else:
            _record_ambiguous(graph, result, x, y, z)
    result.completed = not is_interrupted(interrupt)
    return result


def exists_short_path(graph, x, z, avoid, bound):
    '''True iff x and z are joined by a path of at most `bound` edges that does not pass through `avoid`.'''
    seen = {x.name, avoid.name}
    queue = deque([(x, 0)])
    while queue:
        node, dist = queue.popleft()
        if dist >= bound: continue
        for nb in graph.get_adjacent_nodes(node):
            if nb.name == z.name and dist + 1 >= 2: return True
            if nb.name in seen: continue
            seen.add(nb.name)
            queue.append((nb, dist + 1))
    return False


def orient_colliders_max_p(graph, oracle, knowledge=None, conflict_rule=PRIORITIZE_EXISTING, depth=-1,
                           max_path_length=3, use_heuristic=False, pag=False, interrupt=None, verbose=False):
    '''
    decide each triple by the single separating set with the largest statistic (ties: the one found first,
    i.e., the smaller set). colliders are oriented afterwards, most confident first.
    :param use_heuristic: if True, the exhaustive search is only run when x and z are also joined by a path
                          of at most max_path_length edges avoiding y; otherwise the first separating set is used
    '''
    bound = resolve_bound(max_path_length, 'max_path_length')
    result = TripleClassification()
    candidates = []
    for x, y, z in unshielded_triples(graph, interrupt):
        first_only = use_heuristic and not exists_short_path(graph, x, z, y, bound)
        found, completed = find_sepsets(graph, oracle, x, z, depth, first_only=first_only, interrupt=interrupt)
        if not completed: break
        best, best_statistic = None, None
        for cond, statistic in found.scored(x, z):
            if best is None or statistic > best_statistic:
                best, best_statistic = cond, statistic
        if best is None:
            _record_ambiguous(graph, result, x, y, z)
        elif y.name in {n.name for n in best}:
            result.noncolliders.add(Triple(x, y, z))
        else:
            candidates.append((best_statistic, len(candidates), x, y, z, best))

    for statistic, _, x, y, z, best in sorted(candidates, key=lambda c: (-c[0], c[1])):
        _record_collider(graph, result, x, y, z, knowledge, conflict_rule, pag, verbose,
                         why=f"max-p sepset = {[n.name for n in best]} (statistic={statistic:.4g})")
    result.completed = not is_interrupted(interrupt)
    return result
