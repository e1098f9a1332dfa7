#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: fci_orient.py
@time: 3/11/2025
@desc: orientation rules for partial ancestral graphs (Zhang, 2008, "On the completeness of orientation rules
       for causal discovery in the presence of latent confounders and selection bias").
       the graph starts with every mark a circle and colliders already put on it; a rule only ever turns a circle
       into an arrow or a tail, so marks once decided are never taken back.
"""

import logging
from itertools import combinations

import networkx as nx

from .graph import TAIL, ARROW, CIRCLE
from .knowledge import Knowledge
from .utils import resolve_bound, is_interrupted, progress_level

logger = logging.getLogger(__name__)


def orient_pag_by_knowledge(graph, knowledge, verbose=False):
    '''
    required x --> y is put on the PAG as is; forbidden x --> y (with y --> x allowed) puts an arrowhead at x.
    :return: number of edges changed
    '''
    changed = 0
    for x, y in knowledge.required_edges():
        if not graph.contains_node(x) or not graph.contains_node(y): continue
        if not graph.is_adjacent(x, y):
            logger.warning(f"[FCI] {x} --> {y} is required but {x} and {y} are not adjacent in the skeleton.")
            continue
        graph.set_marks(x, y, TAIL, ARROW)
        changed += 1
        logger.log(progress_level(verbose), f"[FCI] oriented {x} --> {y} (required)")

    for edge in graph.edges:
        x, y = edge.node1, edge.node2
        for a, b in ((x, y), (y, x)):
            if not knowledge.is_forbidden(a.name, b.name) or knowledge.is_forbidden(b.name, a.name): continue
            if graph.get_endpoint(b, a) == CIRCLE:
                graph.set_endpoint(b, a, ARROW)
                changed += 1
                logger.log(progress_level(verbose), f"[FCI] arrowhead at {a.name} on {graph.get_edge(a, b)} ({a.name} --> {b.name} is forbidden)")
    return changed


class _FCIRules:
    '''
    R1-R4 always, R5-R10 when the complete rule set is asked for, and optionally the two finalizing rules
    for when latents (no <->) or selection variables (no ---) are ruled out.
    '''

    def __init__(self, graph, sepsets, knowledge, complete_rule_set, max_path_length,
                 sure_no_latents, sure_no_selections, max_passes, interrupt, verbose):
        self.graph = graph
        self.sepsets = sepsets
        self.knowledge = knowledge if knowledge is not None else Knowledge()
        self.complete_rule_set = complete_rule_set
        self.max_path_length = resolve_bound(max_path_length, 'max_path_length')
        self.sure_no_latents = sure_no_latents
        self.sure_no_selections = sure_no_selections
        self.max_passes = resolve_bound(max_passes, 'max_passes')
        self.interrupt = interrupt
        self.verbose = verbose

    # ============================= marks ======================================
    def _mark(self, a, b):
        '''the mark at b on a *-* b; None if not adjacent.'''
        return self.graph.get_endpoint(a, b)

    def _is_directed(self, a, b):
        return self._mark(b, a) == TAIL and self._mark(a, b) == ARROW

    def _update_edge(self, a, b, mark_a, mark_b, reason=None):
        '''
        propose marks (at a, at b) for a *-* b; None means leave that side alone.
        only circles are replaced. a different non-circle mark already there is a conflict and stays.
        '''
        current_a, current_b = self._mark(b, a), self._mark(a, b)
        new_a = self._decide(current_a, mark_a, current_b, a, b, reason)
        new_b = self._decide(current_b, mark_b, new_a, a, b, reason)
        if (new_a, new_b) == (current_a, current_b): return False
        for (u, v), (mark_u, mark_v) in (((a, b), (new_a, new_b)), ((b, a), (new_b, new_a))):
            if mark_u == TAIL and mark_v == ARROW and \
                    (self.knowledge.is_forbidden(u.name, v.name) or self.knowledge.is_required(v.name, u.name)):
                logger.warning(f"[FCI] [{reason}] {u.name} --> {v.name} skipped, knowledge forbids it.")
                return False
        self.graph.set_marks(a, b, new_a, new_b)
        logger.log(progress_level(self.verbose), f"[FCI] [{reason}] oriented {self.graph.get_edge(a, b)}")
        return True

    def _decide(self, current, proposed, other, a, b, reason):
        '''the mark one side of a *-* b ends up with, given the mark `other` on the opposite side.'''
        if proposed is None or proposed == current: return current
        if current != CIRCLE:
            # in real data, test errors can make the CI results inconsistent with each other and with the graph
            logger.warning(f"[FCI] [{reason}] Conflict detected: Attempt to change '{current}' to '{proposed}' "
                           f"on {self.graph.get_edge(a, b)} was not successful.")
            return current
        if self.sure_no_latents and other == ARROW and proposed == ARROW:
            logger.warning(f"[FCI] [{reason}] Conflict with sure_no_latents: Attempt to orient {self.graph.get_edge(a, b)} as <-> was not successful.")
            return current
        if self.sure_no_selections and other == TAIL and proposed == TAIL:
            logger.warning(f"[FCI] [{reason}] Conflict with sure_no_selections: Attempt to orient {self.graph.get_edge(a, b)} as --- was not successful.")
            return current
        return proposed

    # ============================= paths ======================================
    def _is_uncovered(self, path):
        return all(not self.graph.is_adjacent(path[i - 1], path[i + 1]) for i in range(1, len(path) - 1))

    def _potentially_directed_digraph(self, exclude=()):
        '''DiGraph over names with u -> v whenever u *-* v could be read u --> v (no arrowhead at u, no tail at v).'''
        exclude = {n.name for n in exclude}
        dg = nx.DiGraph()
        dg.add_nodes_from(n for n in self.graph.node_names if n not in exclude)
        for edge in self.graph.edges:
            u, v = edge.node1.name, edge.node2.name
            if u in exclude or v in exclude: continue
            if edge.endpoint1 != ARROW and edge.endpoint2 != TAIL: dg.add_edge(u, v)
            if edge.endpoint2 != ARROW and edge.endpoint1 != TAIL: dg.add_edge(v, u)
        return dg

    def _paths(self, g, source, target):
        for path in nx.all_simple_paths(g, source.name, target.name, cutoff=self.max_path_length):
            yield [self.graph.get_node(n) for n in path]

    # ============================= rules ======================================
    def _R1(self):
        # If α *-> β o-* γ, and α and γ are not adjacent, then orient the triple as α *-> β --> γ
        graph = self.graph
        changed_something = False
        for beta in graph.nodes:
            for alpha in [a for a in graph.get_adjacent_nodes(beta) if self._mark(a, beta) == ARROW]:
                for gamma in [g for g in graph.get_adjacent_nodes(beta) if g is not alpha and self._mark(g, beta) == CIRCLE]:
                    if graph.is_adjacent(alpha, gamma) or graph.is_ambiguous_triple(alpha, beta, gamma): continue
                    changed_something |= self._update_edge(beta, gamma, TAIL, ARROW, reason='R1')
        return changed_something

    def _R2(self):
        # If α --> β *-> γ or α *-> β --> γ, and α *-o γ, then orient α *-o γ as α *-> γ
        graph = self.graph
        changed_something = False
        for alpha in graph.nodes:
            for gamma in [g for g in graph.get_adjacent_nodes(alpha) if self._mark(alpha, g) == CIRCLE]:
                for beta in graph.get_adjacent_nodes(alpha):
                    if beta is gamma or not graph.is_adjacent(beta, gamma): continue
                    if self._mark(alpha, beta) != ARROW or self._mark(beta, gamma) != ARROW: continue
                    if self._mark(beta, alpha) == TAIL or self._mark(gamma, beta) == TAIL:
                        changed_something |= self._update_edge(alpha, gamma, None, ARROW, reason='R2')
                        break
        return changed_something

    def _R3(self):
        # If α *-> β <-* γ, α *-o θ o-* γ, α and γ are not adjacent, and θ *-o β, then orient θ *-o β as θ *-> β
        graph = self.graph
        changed_something = False
        for beta in graph.nodes:
            into_beta = [a for a in graph.get_adjacent_nodes(beta) if self._mark(a, beta) == ARROW]
            for alpha, gamma in combinations(into_beta, 2):
                if graph.is_adjacent(alpha, gamma): continue
                for theta in graph.get_adjacent_nodes(beta):
                    if theta is alpha or theta is gamma or self._mark(theta, beta) != CIRCLE: continue
                    if self._mark(alpha, theta) == CIRCLE and self._mark(gamma, theta) == CIRCLE:
                        changed_something |= self._update_edge(theta, beta, None, ARROW, reason='R3')
        return changed_something

    def _R4(self):
        # If u = <θ, ..., α, β, γ> is a discriminating path between θ and γ for β, and β o-* γ;
        # then if β ∈ Sepset(θ, γ), orient β o-* γ as β --> γ; otherwise orient the triple <α, β, γ> as α <-> β <-> γ.
        graph = self.graph
        changed_something = False
        for gamma in graph.nodes:
            gamma_parents = [p for p in graph.get_adjacent_nodes(gamma) if self._is_directed(p, gamma)]
            if not gamma_parents: continue
            for beta in [b for b in graph.get_adjacent_nodes(gamma) if self._mark(gamma, b) == CIRCLE]:
                for theta in graph.nodes:
                    if theta is gamma or theta is beta or graph.is_adjacent(theta, gamma): continue
                    in_sepset = self.sepsets.is_in_sepset(beta, theta, gamma)
                    if in_sepset is None: continue
                    # only paths through parents of γ qualify; searching the subgraph keeps this tractable
                    allowed = {p.name for p in gamma_parents if p is not beta and p is not theta} | {theta.name, beta.name}
                    subgraph = graph.to_undirected_nx().subgraph(allowed)
                    for path in self._paths(subgraph, theta, beta):
                        if len(path) < 3: continue
                        path = path + [gamma]
                        if all(self._mark(path[i - 1], path[i]) == ARROW and self._mark(path[i + 1], path[i]) == ARROW
                               for i in range(1, len(path) - 2)):
                            if in_sepset:
                                changed_something |= self._update_edge(beta, gamma, TAIL, ARROW, reason='R4')
                            else:
                                changed_something |= self._update_edge(path[-3], beta, ARROW, ARROW, reason='R4')
                                changed_something |= self._update_edge(beta, gamma, ARROW, ARROW, reason='R4')
                            break
        return changed_something

    def _R5(self):
        # For every remaining α o-o β, if there is an uncovered circle path p = <α, γ, ..., θ, β> between α and β s.t.
        # α, θ are not adjacent and β, γ are not adjacent, then orient α o-o β and every edge on p as undirected (---)
        graph = self.graph
        changed_something = False
        for edge in graph.edges:
            if not edge.is_nondirected(): continue
            alpha, beta = edge.node1, edge.node2
            circle_graph = nx.Graph()
            circle_graph.add_nodes_from(graph.node_names)
            circle_graph.add_edges_from((e.node1.name, e.node2.name) for e in graph.edges if e.is_nondirected() and e is not edge)
            for path in self._paths(circle_graph, alpha, beta):
                if len(path) < 4: continue
                if graph.is_adjacent(alpha, path[-2]) or graph.is_adjacent(beta, path[1]): continue
                if not self._is_uncovered(path): continue
                changed_something |= self._update_edge(alpha, beta, TAIL, TAIL, reason='R5')
                for u, v in zip(path[:-1], path[1:]):
                    changed_something |= self._update_edge(u, v, TAIL, TAIL, reason='R5')
                break
        return changed_something

    def _R6(self):
        # If α --- β o-* γ (α and γ may or may not be adjacent), then orient β o-* γ as β --* γ
        graph = self.graph
        changed_something = False
        for beta in graph.nodes:
            if not any(graph.get_edge(alpha, beta).is_undirected() for alpha in graph.get_adjacent_nodes(beta)): continue
            for gamma in [g for g in graph.get_adjacent_nodes(beta) if self._mark(g, beta) == CIRCLE]:
                changed_something |= self._update_edge(beta, gamma, TAIL, None, reason='R6')
        return changed_something

    def _R7(self):
        # If α --o β o-* γ, and α, γ are not adjacent, then orient β o-* γ as β --* γ
        graph = self.graph
        changed_something = False
        for beta in graph.nodes:
            for alpha in [a for a in graph.get_adjacent_nodes(beta) if self._mark(beta, a) == TAIL and self._mark(a, beta) == CIRCLE]:
                for gamma in [g for g in graph.get_adjacent_nodes(beta) if g is not alpha and self._mark(g, beta) == CIRCLE]:
                    if graph.is_adjacent(alpha, gamma): continue
                    changed_something |= self._update_edge(beta, gamma, TAIL, None, reason='R7')
        return changed_something

    def _R8(self):
        # If α --> β --> γ or α --o β --> γ, and α o-> γ, orient α o-> γ as α --> γ
        graph = self.graph
        changed_something = False
        for alpha in graph.nodes:
            for gamma in [g for g in graph.get_adjacent_nodes(alpha) if self._mark(g, alpha) == CIRCLE and self._mark(alpha, g) == ARROW]:
                for beta in graph.get_adjacent_nodes(alpha):
                    if beta is gamma or not self._is_directed(beta, gamma): continue
                    if self._mark(beta, alpha) == TAIL and self._mark(alpha, beta) in (ARROW, CIRCLE):
                        changed_something |= self._update_edge(alpha, gamma, TAIL, None, reason='R8')
                        break
        return changed_something

    def _R9(self):
        # If α o-> γ, and p = <α, β, θ, ..., γ> is an uncovered p.d. path from α to γ such that γ and β are not adjacent,
        # then orient α o-> γ as α --> γ
        graph = self.graph
        changed_something = False
        for edge in graph.edges:
            if not edge.is_partially_oriented(): continue
            alpha, gamma = (edge.node1, edge.node2) if edge.endpoint1 == CIRCLE else (edge.node2, edge.node1)
            pd_graph = self._potentially_directed_digraph()
            pd_graph.remove_edges_from([(alpha.name, gamma.name), (gamma.name, alpha.name)])
            for path in self._paths(pd_graph, alpha, gamma):
                if len(path) < 4 or graph.is_adjacent(path[1], gamma): continue
                if self._is_uncovered(path):
                    changed_something |= self._update_edge(alpha, gamma, TAIL, None, reason='R9')
                    break
        return changed_something

    def _R10(self):
        # Suppose α o-> γ, β --> γ <-- θ, p1 is an uncovered p.d. path from α to β, and p2 is an uncovered p.d. path from α
        # to θ. Let μ be the vertex adjacent to α on p1 (μ could be β), and ω be the vertex adjacent to α on p2 (ω could be θ).
        # If μ and ω are distinct, and are not adjacent, then orient α o-> γ as α --> γ.
        graph = self.graph
        changed_something = False
        for edge in graph.edges:
            if not edge.is_partially_oriented(): continue
            alpha, gamma = (edge.node1, edge.node2) if edge.endpoint1 == CIRCLE else (edge.node2, edge.node1)
            gamma_parents = [p for p in graph.get_adjacent_nodes(gamma) if p is not alpha and self._is_directed(p, gamma)]
            if len(gamma_parents) < 2: continue
            pd_graph = self._potentially_directed_digraph(exclude=[gamma])
            firsts = {}
            for parent in gamma_parents:
                firsts[parent.name] = {path[1].name for path in self._paths(pd_graph, alpha, parent) if self._is_uncovered(path)}
            done = False
            for beta, theta in combinations(gamma_parents, 2):
                for mu in sorted(firsts[beta.name]):
                    for omega in sorted(firsts[theta.name]):
                        if mu != omega and not graph.is_adjacent(mu, omega):
                            changed_something |= self._update_edge(alpha, gamma, TAIL, None, reason='R10')
                            done = True
                            break
                    if done: break
                if done: break
        return changed_something

    def _R_no_latents(self):
        # when we are sure that there are no latents, we confirm all o-> as -->
        changed_something = False
        for edge in self.graph.edges:
            if edge.is_partially_oriented():
                alpha, gamma = (edge.node1, edge.node2) if edge.endpoint1 == CIRCLE else (edge.node2, edge.node1)
                changed_something |= self._update_edge(alpha, gamma, TAIL, ARROW, reason='no_latents')
        return changed_something

    def _R_no_selections(self):
        # when we are sure that there are no selection variables, we confirm all o-- as <--
        changed_something = False
        for edge in self.graph.edges:
            if {edge.endpoint1, edge.endpoint2} == {CIRCLE, TAIL}:
                alpha, gamma = (edge.node1, edge.node2) if edge.endpoint1 == CIRCLE else (edge.node2, edge.node1)
                changed_something |= self._update_edge(alpha, gamma, ARROW, TAIL, reason='no_selections')
        return changed_something

    def run(self):
        RULES = [self._R1, self._R2, self._R3, self._R4]
        if self.complete_rule_set: RULES += [self._R5, self._R6, self._R7, self._R8, self._R9, self._R10]
        if self.sure_no_latents: RULES.append(self._R_no_latents)
        if self.sure_no_selections: RULES.append(self._R_no_selections)
        passes = 0
        while True:
            if is_interrupted(self.interrupt): return False
            if passes >= self.max_passes:
                logger.warning(f"[FCI] stopped after {passes} passes without reaching a fixpoint.")
                break
            passes += 1
            changed_something = False
            for rule in RULES:
                changed_something |= rule()
                if is_interrupted(self.interrupt): return False
            if not changed_something:
                break
        logger.log(progress_level(self.verbose), f"[FCI] fixpoint after {passes} passes")
        return True


def apply_fci_rules(
    graph,
    sepsets,
    knowledge=None,
    complete_rule_set=True,
    max_path_length=-1,
    sure_no_latents=False,
    sure_no_selections=False,
    max_passes=-1,
    interrupt=None,
    verbose=False,
):
    '''
    orient the PAG in place until no rule fires.
    :param graph: Graph whose undecided marks are CIRCLE, colliders already oriented
    :param sepsets: SepsetMap, read by the discriminating path rule
    :param complete_rule_set: if True, R5-R10 (selection bias and tail rules) run as well
    :param max_path_length: bound on discriminating / circle / p.d. path lengths; -1 for no bound
    :param sure_no_latents: boolean; if True, <-> edges are never created and every o-> ends up as -->
    :param sure_no_selections: boolean; if True, --- edges are never created and every o-- ends up as <--
    :return: completed, False iff interrupted
    '''
    return _FCIRules(graph, sepsets, knowledge, complete_rule_set, max_path_length,
                     sure_no_latents, sure_no_selections, max_passes, interrupt, verbose).run()
