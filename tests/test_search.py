#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: test_search.py
@time: 3/11/2025
@desc: end to end: oracle -> adjacencies -> colliders -> rules.
"""

import threading

import numpy as np
import pytest

from pcfci import (
    ConstraintSearch, FunctionOracle, Knowledge, Triple,
    search_from_oracle_graph, search_from_data,
    ConfigurationError, KnowledgeError, OracleError, StructuralContradictionError,
    SEPSETS, CONSERVATIVE, MAX_P, BY_IDENTITY)


def triples(result, *names):
    g = result.graph
    return {Triple(*(g.get_node(n) for n in triple)) for triple in names}


def skeleton(graph):
    return {frozenset((e.node1.name, e.node2.name)) for e in graph.edges}


@pytest.mark.parametrize('algorithm', ['pc', 'cpc', 'pcmax'])
def test_collider_graph(collider_oracle, algorithm):
    result = ConstraintSearch.from_algorithm(collider_oracle, algorithm).search()
    assert result.complete
    assert result.num_tests > 0
    assert skeleton(result.graph) == {frozenset('AB'), frozenset('CB'), frozenset('BD')}
    assert result.collider_triples == triples(result, 'ABC')
    assert result.noncollider_triples == triples(result, 'ABD', 'CBD')
    assert result.ambiguous_triples == set()
    edges = result.to_edge_dict()
    assert edges['-->'] == {('A', 'B'), ('C', 'B'), ('B', 'D')}
    assert all(not pairs for kind, pairs in edges.items() if kind != '-->')
    assert result.sepsets.as_name_dict() == {('A', 'C'): [], ('A', 'D'): ['B'], ('C', 'D'): ['B']}


def test_collider_graph_as_a_pag(collider_dag):
    result = search_from_oracle_graph(collider_dag, algorithm='fci')
    edges = result.to_edge_dict()
    assert edges['o->'] == {('A', 'B'), ('C', 'B')}
    assert edges['-->'] == {('B', 'D')}
    assert sum(len(pairs) for pairs in edges.values()) == 3


def test_latent_confounder():
    '''W -> X <- L -> Y, X -> Z <- Y with L latent'''
    dag = [('W', 'X'), ('L', 'X'), ('L', 'Y'), ('X', 'Z'), ('Y', 'Z')]
    result = search_from_oracle_graph(dag, latents=['L'], algorithm='fci')
    assert result.graph.node_names == ['W', 'X', 'Y', 'Z']
    edges = result.to_edge_dict()
    assert edges['o->'] == {('W', 'X'), ('Y', 'X')}
    # Y --> Z comes from the discriminating path <W, X, Y, Z>
    assert edges['-->'] == {('X', 'Z'), ('Y', 'Z')}
    assert result.sepsets.get('W', 'Z') == {result.graph.get_node('X'), result.graph.get_node('Y')}


def test_diamond_cpdag(diamond_oracle):
    edges = ConstraintSearch(diamond_oracle).search().to_edge_dict()
    assert edges['---'] == {('X1', 'X2'), ('X1', 'X3')}
    assert edges['-->'] == {('X2', 'X4'), ('X3', 'X4'), ('X4', 'X5')}


@pytest.mark.parametrize('collider_discovery', [SEPSETS, CONSERVATIVE, MAX_P])
def test_d_separation_recovers_the_pattern(random_oracle, collider_discovery):
    search = ConstraintSearch(random_oracle, collider_discovery=collider_discovery, meek_prevent_cycles=True)
    result = search.search()
    dag = random_oracle.dag
    assert skeleton(result.graph) == {frozenset(e) for e in dag.edges}
    assert not result.graph.exists_directed_cycle()
    assert result.ambiguous_triples == set()
    for x, y in result.to_edge_dict()['-->']:
        assert dag.has_edge(x, y)


def test_repeated_searches_agree(random_oracle):
    search = ConstraintSearch.from_algorithm(random_oracle, 'cpc')
    first, second = search.search(), search.search()
    assert first.edge_signature() == second.edge_signature()
    assert first.graph is not second.graph
    assert first.num_tests == second.num_tests


def test_conservative_search_keeps_ambiguity(ambiguous_oracle):
    result = ConstraintSearch.from_algorithm(ambiguous_oracle, 'cpc').search()
    assert result.ambiguous_triples == triples(result, 'XYZ')
    assert result.to_edge_dict()['---'] == {('X', 'Y'), ('Y', 'Z')}


def test_forbidden_adjacency(collider_oracle):
    knowledge = Knowledge(forbidden=[('B', 'D'), ('D', 'B')])
    result = ConstraintSearch(collider_oracle, knowledge=knowledge).search()
    assert not result.graph.is_adjacent('B', 'D')
    assert result.to_edge_dict()['-->'] == {('A', 'B'), ('C', 'B')}


def test_required_edge_is_kept(collider_oracle):
    result = ConstraintSearch(collider_oracle, knowledge={'required': [('D', 'B')]}).search()
    assert result.graph.is_directed_from_to('D', 'B')
    assert result.graph.is_directed_from_to('A', 'B')
    assert result.graph.is_directed_from_to('C', 'B')


def test_required_edge_vetoes_a_collider(collider_oracle):
    result = ConstraintSearch(collider_oracle, knowledge=Knowledge(required=[('B', 'A')])).search()
    assert result.collider_triples == triples(result, 'ABC')
    assert result.graph.is_directed_from_to('B', 'A')
    assert result.graph.is_undirected('C', 'B')


def test_required_cycle_is_a_contradiction(collider_oracle):
    knowledge = Knowledge(required=[('A', 'B'), ('B', 'D'), ('D', 'A')])
    with pytest.raises(StructuralContradictionError):
        ConstraintSearch(collider_oracle, knowledge=knowledge).search()


def test_interrupted_search(collider_oracle):
    interrupt = threading.Event()
    interrupt.set()
    result = ConstraintSearch(collider_oracle).search(interrupt=interrupt)
    assert not result.complete
    assert result.graph.num_edges == 6
    assert result.num_tests == 0


def test_interrupt_from_inside_the_oracle():
    interrupt = threading.Event()

    def verdict(x, y, cond):
        interrupt.set()
        return False
    result = ConstraintSearch(FunctionOracle(['A', 'B', 'C'], verdict)).search(interrupt=interrupt)
    assert not result.complete
    assert result.num_tests == 1


@pytest.mark.parametrize('options', [
    dict(depth=-2),
    dict(max_path_length=1.5),
    dict(collider_discovery='GREEDY'),
    dict(conflict_rule='FIRST_WINS'),
    dict(equality='BY_HASH'),
    dict(possible_dsep=True),
    dict(sure_no_latents=True),
    dict(knowledge=[('A', 'B')]),
])
def test_bad_configuration(collider_oracle, options):
    with pytest.raises(ConfigurationError):
        ConstraintSearch(collider_oracle, **options)
    assert collider_oracle.num_tests == 0


def test_bad_algorithm_or_option(collider_oracle):
    with pytest.raises(ConfigurationError):
        ConstraintSearch.from_algorithm(collider_oracle, 'ges')
    with pytest.raises(ConfigurationError):
        ConstraintSearch.from_algorithm(collider_oracle, 'pc', alpha=0.01)


def test_variables_outside_the_domain(collider_oracle):
    with pytest.raises(ConfigurationError):
        ConstraintSearch(collider_oracle).search(nodes=['A', 'Q'])
    with pytest.raises(KnowledgeError):
        ConstraintSearch(collider_oracle, knowledge={'required': [('A', 'Q')]}).search()
    assert collider_oracle.num_tests == 0


def test_oracle_failure_aborts_the_search():
    def verdict(x, y, cond):
        raise ZeroDivisionError('singular correlation matrix')
    with pytest.raises(OracleError):
        ConstraintSearch(FunctionOracle(['A', 'B', 'C'], verdict)).search()

    with pytest.raises(OracleError):
        ConstraintSearch(FunctionOracle(['A', 'B'], lambda x, y, cond: (True, float('nan')))).search()


def test_search_over_a_subset(collider_oracle):
    result = ConstraintSearch(collider_oracle).search(nodes=['A', 'B', 'C'])
    assert result.graph.node_names == ['A', 'B', 'C']
    assert result.to_edge_dict()['-->'] == {('A', 'B'), ('C', 'B')}


def test_identity_equality_gives_the_same_graph(collider_oracle):
    by_name = ConstraintSearch(collider_oracle).search()
    by_identity = ConstraintSearch(collider_oracle, equality=BY_IDENTITY).search()
    assert by_identity.graph.equality == BY_IDENTITY
    assert by_identity.edge_signature() == by_name.edge_signature()


def test_result_repr(collider_oracle):
    result = ConstraintSearch(collider_oracle).search()
    assert 'colliders=1' in repr(result)
    assert 'complete=True' in repr(result)


def test_search_from_data():
    rng = np.random.default_rng(0)
    spsz = 3000
    A = rng.uniform(-1, 1, (spsz,))
    C = rng.uniform(-1, 1, (spsz,))
    B = A + C + rng.uniform(-1, 1, (spsz,))
    D = 2 * B + rng.uniform(-1, 1, (spsz,))
    data = np.vstack([A, B, C, D]).T
    result = search_from_data(data, citest_method='fisherz', citest_alpha=0.01, names=['A', 'B', 'C', 'D'])
    assert result.complete
    assert result.to_edge_dict()['-->'] == {('A', 'B'), ('C', 'B'), ('B', 'D')}
