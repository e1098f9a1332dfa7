#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: conftest.py
@time: 3/11/2025
@desc: shared fixtures: small DAGs and their d-separation oracles.
"""

import networkx as nx
import numpy as np
import pytest

from pcfci import DSeparationOracle, FunctionOracle


@pytest.fixture
def collider_dag():
    '''A -> B <- C, B -> D'''
    return nx.DiGraph([('A', 'B'), ('C', 'B'), ('B', 'D')])


@pytest.fixture
def collider_oracle(collider_dag):
    return DSeparationOracle(collider_dag)


@pytest.fixture
def diamond_oracle():
    '''X1 -> X2 -> X4 <- X3 <- X1, X4 -> X5; CPDAG: X1 --- X2, X1 --- X3, X2 --> X4 <-- X3, X4 --> X5'''
    return DSeparationOracle(nx.DiGraph([('X1', 'X2'), ('X1', 'X3'), ('X2', 'X4'), ('X3', 'X4'), ('X4', 'X5')]))


def random_dag(seed, num_nodes=6, edge_prob=0.35):
    rng = np.random.default_rng(seed)
    dag = nx.DiGraph()
    dag.add_nodes_from(f'V{i}' for i in range(num_nodes))
    for i in range(num_nodes):
        for j in range(i + 1, num_nodes):
            if rng.random() < edge_prob:
                dag.add_edge(f'V{i}', f'V{j}')
    return dag


@pytest.fixture(params=[0, 1, 2, 3, 4])
def random_oracle(request):
    return DSeparationOracle(random_dag(request.param))


@pytest.fixture
def ambiguous_oracle():
    '''
    X _||_ Z given {} and given {Y}; everything else dependent. the statistic of the {Y} verdict is larger.
    '''
    def verdict(x, y, cond):
        if {x, y} == {'X', 'Z'} and set(cond) in ({'Y'}, set()):
            return True, 0.9 if cond else 0.3
        return False, 0.0
    return FunctionOracle(['X', 'Y', 'Z'], verdict)


def two_collider_oracle(stat_wy, stat_xz):
    '''
    skeleton W --- X --- Y --- Z, with W _||_ Y and X _||_ Z (and W _||_ Z) marginally:
    the colliders <W, X, Y> and <X, Y, Z> disagree about X --- Y.
    '''
    independent = {frozenset('WY'): stat_wy, frozenset('XZ'): stat_xz, frozenset('WZ'): 0.5}
    def verdict(x, y, cond):
        stat = independent.get(frozenset((x, y)))
        if stat is not None and not cond:
            return True, stat
        return False, 0.0
    return FunctionOracle(['W', 'X', 'Y', 'Z'], verdict)


@pytest.fixture
def make_two_collider_oracle():
    return two_collider_oracle


@pytest.fixture
def make_random_dag():
    return random_dag
