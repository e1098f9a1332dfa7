#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: search.py
@time: 3/11/2025
@desc: main entrance: sequences adjacency search, collider classification and rule propagation into one run.
"""

import logging
import time

from .colliders import (
    COLLIDER_DISCOVERY, SEPSETS, CONSERVATIVE, MAX_P,
    orient_colliders_sepsets, orient_colliders_conservative, orient_colliders_max_p)
from .config_loader import load_search_options
from .conflicts import CONFLICT_RULES, PRIORITIZE_EXISTING
from .errors import ConfigurationError, StructuralContradictionError
from .fas import search_skeleton, refine_possible_dsep
from .fci_orient import orient_pag_by_knowledge, apply_fci_rules
from .graph import complete_graph, CIRCLE, BY_NAME, BY_IDENTITY
from .knowledge import Knowledge
from .meek import orient_required, orient_implied
from .oracle import DSeparationOracle, CITestOracle
from .sepsets import SepsetMap
from .utils import resolve_bound, progress_level

logger = logging.getLogger(__name__)

EDGE_KINDS = ('-->', '<->', '---', 'o->', 'o-o', 'o--')

ALGORITHMS = {
    'pc': {'collider_discovery': SEPSETS},
    'cpc': {'collider_discovery': CONSERVATIVE},
    'pcmax': {'collider_discovery': MAX_P},
    'fci': {'collider_discovery': SEPSETS, 'pag': True, 'possible_dsep': True},
}

OPTION_NAMES = (
    'knowledge', 'depth', 'stable', 'collider_discovery', 'conflict_rule', 'meek_prevent_cycles',
    'max_path_length', 'max_passes', 'max_p_heuristic', 'pag', 'possible_dsep', 'complete_rule_set',
    'sure_no_latents', 'sure_no_selections', 'equality', 'verbose',
)


class SearchResult:
    '''
    what a search hands back: the graph it owned, the sepsets, and the three disjoint sets of triples.
    :ivar complete: False iff the search was interrupted; the graph is then the best found so far
    :ivar elapsed_time: seconds
    :ivar num_tests: oracle calls made by this search
    '''

    def __init__(self, graph, sepsets, collider_triples, noncollider_triples, ambiguous_triples,
                 complete=True, elapsed_time=0.0, num_tests=0):
        self.graph = graph
        self.sepsets = sepsets
        self.collider_triples = collider_triples
        self.noncollider_triples = noncollider_triples
        self.ambiguous_triples = ambiguous_triples
        self.complete = complete
        self.elapsed_time = elapsed_time
        self.num_tests = num_tests

    def to_edge_dict(self):
        '''
        :return: a dictionary like {'-->': {('A', 'B')}, '<->': set(), '---': set(), 'o->': set(), 'o-o': set(), 'o--': set()}
                 directed and partially oriented pairs read left to right; symmetric kinds are listed once.
        '''
        out = {kind: set() for kind in EDGE_KINDS}
        for edge in self.graph.edges:
            out[edge.kind()].add(edge.name_pair())
        return out

    def edge_signature(self):
        return self.graph.edge_signature()

    def __repr__(self):
        return (f"SearchResult(edges={self.graph.num_edges}, colliders={len(self.collider_triples)}, "
                f"noncolliders={len(self.noncollider_triples)}, ambiguous={len(self.ambiguous_triples)}, "
                f"complete={self.complete}, num_tests={self.num_tests}, elapsed_time={self.elapsed_time:.3f}s)")


class ConstraintSearch:
    '''
    one configured search over one oracle. the configuration is validated here, before anything runs;
    each call to `search` builds and owns a fresh graph and sepset map.
    '''

    def __init__(
        self,
        oracle,
        knowledge=None,
        depth=-1,
        stable=True,
        collider_discovery=SEPSETS,
        conflict_rule=PRIORITIZE_EXISTING,
        meek_prevent_cycles=False,
        max_path_length=-1,
        max_passes=-1,
        max_p_heuristic=False,
        pag=False,
        possible_dsep=False,
        complete_rule_set=True,
        sure_no_latents=False,
        sure_no_selections=False,
        equality=BY_NAME,
        verbose=False,
    ):
        '''
        :param oracle: IndependenceOracle
        :param knowledge: Knowledge, a dict Knowledge.from_dict accepts, or None
        :param depth: int, max size of conditioning sets; -1 for no bound.
            for the purpose of speedup in real data and when the graph is dense, you may want to set it to a small number like 3.
        :param stable: bool, snapshot the adjacents at the start of every depth (order-independent skeleton)
        :param collider_discovery: SEPSETS (PC), CONSERVATIVE (CPC) or MAX_P (PC-Max)
        :param conflict_rule: PRIORITIZE_EXISTING, ORIENT_BIDIRECTED or OVERWRITE_EXISTING
        :param meek_prevent_cycles: bool, skip any rule orientation that would close a directed cycle
        :param max_path_length: int, bound on discriminating / possible-d-sep paths and on the max-p heuristic; -1 for no bound
        :param max_passes: int, bound on full passes of the orientation rules; -1 for "until fixpoint"
        :param max_p_heuristic: bool, see colliders.orient_colliders_max_p
        :param pag: bool, output a PAG (circle marks, FCI rules) instead of a CPDAG
        :param possible_dsep: bool, run the Possible-D-Sep skeleton refinement (only with pag=True)
            note: this refinement is needed for correctness with latents, but is very time consuming.
        :param complete_rule_set: bool, FCI rules R5-R10 on top of R1-R4 (only with pag=True)
        :param sure_no_latents, sure_no_selections: bool, see fci_orient.apply_fci_rules
        :param equality: BY_NAME or BY_IDENTITY, how the graph tells nodes apart
        :param verbose: bool, log progress at INFO instead of DEBUG
        '''
        if knowledge is None:
            knowledge = Knowledge()
        elif isinstance(knowledge, dict):
            knowledge = Knowledge.from_dict(knowledge)
        elif not isinstance(knowledge, Knowledge):
            raise ConfigurationError(f"knowledge must be a Knowledge, a dict or None, got {type(knowledge).__name__}")
        if collider_discovery not in COLLIDER_DISCOVERY:
            raise ConfigurationError(f"unknown collider discovery {collider_discovery!r}; expected one of {COLLIDER_DISCOVERY}")
        if conflict_rule not in CONFLICT_RULES:
            raise ConfigurationError(f"unknown conflict rule {conflict_rule!r}; expected one of {CONFLICT_RULES}")
        if equality not in (BY_NAME, BY_IDENTITY):
            raise ConfigurationError(f"unknown equality mode {equality!r}; expected {BY_NAME} or {BY_IDENTITY}")
        resolve_bound(depth, 'depth')
        resolve_bound(max_path_length, 'max_path_length')
        resolve_bound(max_passes, 'max_passes')
        if possible_dsep and not pag:
            raise ConfigurationError("possible_dsep refinement only applies to PAG searches (pag=True)")
        if (sure_no_latents or sure_no_selections) and not pag:
            raise ConfigurationError("sure_no_latents / sure_no_selections only apply to PAG searches (pag=True)")

        self.oracle = oracle
        self.knowledge = knowledge
        self.depth = depth
        self.stable = stable
        self.collider_discovery = collider_discovery
        self.conflict_rule = conflict_rule
        self.meek_prevent_cycles = meek_prevent_cycles
        self.max_path_length = max_path_length
        self.max_passes = max_passes
        self.max_p_heuristic = max_p_heuristic
        self.pag = pag
        self.possible_dsep = possible_dsep
        self.complete_rule_set = complete_rule_set
        self.sure_no_latents = sure_no_latents
        self.sure_no_selections = sure_no_selections
        self.equality = equality
        self.verbose = verbose

    @classmethod
    def from_algorithm(cls, oracle, algorithm='pc', **options):
        '''
        :param algorithm: one of 'pc', 'cpc', 'pcmax', 'fci'; explicit options override the preset
        '''
        if algorithm not in ALGORITHMS:
            raise ConfigurationError(f"unknown algorithm {algorithm!r}; expected one of {sorted(ALGORITHMS)}")
        unknown = set(options) - set(OPTION_NAMES)
        if unknown:
            raise ConfigurationError(f"unknown search options: {sorted(unknown)}")
        return cls(oracle, **{**ALGORITHMS[algorithm], **options})

    @classmethod
    def from_config(cls, oracle, path):
        '''build a search from a YAML file with `search:` and `knowledge:` sections (see config_loader).'''
        algorithm, options, knowledge = load_search_options(path)
        return cls.from_algorithm(oracle, algorithm, knowledge=knowledge, **options)

    def _resolve_nodes(self, nodes):
        if nodes is None: return self.oracle.variables
        out = []
        for node in nodes:
            name = getattr(node, 'name', node)
            if self.oracle.get_variable(name) is None:
                raise ConfigurationError(f"variable {name!r} is outside the oracle's domain {self.oracle.variable_names}")
            out.append(node if not isinstance(node, str) else self.oracle.get_variable(name))
        return out

    def _check_acyclic(self, graph, when):
        if graph.exists_directed_cycle():
            raise StructuralContradictionError(
                f"the graph has a directed cycle {when}; the oracle and the knowledge are inconsistent:\n{graph}")

    def _classify(self, graph, sepsets, interrupt):
        common = dict(knowledge=self.knowledge, conflict_rule=self.conflict_rule, pag=self.pag,
                      interrupt=interrupt, verbose=self.verbose)
        if self.collider_discovery == SEPSETS:
            return orient_colliders_sepsets(graph, sepsets, **common)
        elif self.collider_discovery == CONSERVATIVE:
            return orient_colliders_conservative(graph, self.oracle, depth=self.depth, **common)
        return orient_colliders_max_p(graph, self.oracle, depth=self.depth, max_path_length=self.max_path_length,
                                      use_heuristic=self.max_p_heuristic, **common)

    def search(self, nodes=None, interrupt=None):
        '''
        :param nodes: the variables to search over (nodes or names); default all of the oracle's
        :param interrupt: None or threading.Event; when set, the search stops at the next check and
                          returns what it has, marked incomplete
        :return: SearchResult
        '''
        start_time = time.time()
        tests_before = self.oracle.num_tests
        nodes = self._resolve_nodes(nodes)
        self.knowledge.check_variables([getattr(n, 'name', n) for n in nodes])

        # step 1. adjacencies
        graph = complete_graph(nodes, equality=self.equality)
        sepsets = SepsetMap()
        dependencies, completed = search_skeleton(
            graph, self.oracle, sepsets, knowledge=self.knowledge, depth=self.depth, stable=self.stable,
            interrupt=interrupt, verbose=self.verbose)
        if completed and self.possible_dsep:
            completed = refine_possible_dsep(
                graph, self.oracle, sepsets, dependencies=dependencies, knowledge=self.knowledge, depth=self.depth,
                max_path_length=self.max_path_length, interrupt=interrupt, verbose=self.verbose)
        sepsets.freeze()
        self._check_acyclic(graph, 'after the adjacency search')

        colliders, noncolliders, ambiguous = set(), set(), set()
        if completed:
            # step 2. background knowledge, then colliders
            if self.pag:
                graph.reorient_all_with(CIRCLE)
                orient_pag_by_knowledge(graph, self.knowledge, self.verbose)
            else:
                orient_required(graph, self.knowledge, self.verbose)
            self._check_acyclic(graph, 'once the required edges are oriented')
            classification = self._classify(graph, sepsets, interrupt)
            colliders, noncolliders, ambiguous = classification.colliders, classification.noncolliders, classification.ambiguous
            completed = classification.completed

            # step 3. propagate to a fixpoint
            if completed:
                if self.pag:
                    completed = apply_fci_rules(
                        graph, sepsets, knowledge=self.knowledge, complete_rule_set=self.complete_rule_set,
                        max_path_length=self.max_path_length, sure_no_latents=self.sure_no_latents,
                        sure_no_selections=self.sure_no_selections, max_passes=self.max_passes,
                        interrupt=interrupt, verbose=self.verbose)
                else:
                    completed = orient_implied(
                        graph, knowledge=self.knowledge, prevent_cycles=self.meek_prevent_cycles,
                        max_passes=self.max_passes, interrupt=interrupt, verbose=self.verbose)
            classification.log(self.verbose)

        if not completed:
            logger.warning("search interrupted; returning the partial result.")
        result = SearchResult(
            graph, sepsets, colliders, noncolliders, ambiguous, complete=completed,
            elapsed_time=time.time() - start_time, num_tests=self.oracle.num_tests - tests_before)
        logger.log(progress_level(self.verbose), f"{result}\n{graph}")
        return result


def search_from_oracle_graph(dag, latents=(), selection=(), algorithm='pc', **options):
    '''
    this is to get the oracle results from a known DAG, by d-separation.
    :param dag: networkx.DiGraph, or a list of (i, j) tuples for directed edges
    :param latents: nodes of the DAG that are not observed
    :param selection: nodes of the DAG that are always conditioned on
    :param algorithm: 'pc', 'cpc', 'pcmax' or 'fci'
    :return: SearchResult
    '''
    oracle = DSeparationOracle(dag, latents=latents, selection=selection)
    return ConstraintSearch.from_algorithm(oracle, algorithm, **options).search()


def search_from_data(data, citest_method='fisherz', citest_alpha=0.05, names=None, algorithm='pc', **options):
    '''
    :param data: np.ndarray of shape (n_samples, n_vars)
    :param citest_method:
        str, the method to use in conditional independence test.
        default: 'fisherz'
        options: e.g., 'fisherz', 'kci'. for more, check causallearn.utils.cit.py
    :param citest_alpha: float, the significance level for conditional independence test.
    :param names: variable names, defaults to X0, X1, ...
    :return: SearchResult
    '''
    oracle = CITestOracle(data, method=citest_method, alpha=citest_alpha, names=names)
    return ConstraintSearch.from_algorithm(oracle, algorithm, **options).search()
