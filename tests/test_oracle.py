#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: test_oracle.py
@time: 3/11/2025
@desc:
"""

import networkx as nx
import numpy as np
import pytest

from pcfci.errors import ConfigurationError, OracleError
from pcfci.oracle import DSeparationOracle, CITestOracle, FunctionOracle, IndependenceResult
from pcfci.search import ConstraintSearch


def test_d_separation_on_the_collider_graph(collider_oracle):
    assert collider_oracle.variable_names == ['A', 'B', 'C', 'D']
    assert collider_oracle.check_independence('A', 'C') == IndependenceResult(True, 1.0)
    assert collider_oracle.check_independence('A', 'C', ['B']) == IndependenceResult(False, 0.0)
    assert collider_oracle.check_independence('A', 'D', ['B']).is_independent
    assert not collider_oracle.check_independence('A', 'C', ['D']).is_independent
    assert collider_oracle.num_tests == 4


def test_d_separation_accepts_edge_lists_and_hides_latents():
    oracle = DSeparationOracle([(0, 1), ('L', 1), ('L', 2)], latents=['L'])
    assert oracle.variable_names == ['0', '1', '2']
    assert not oracle.check_independence('1', '2').is_independent
    assert oracle.check_independence('0', '2').is_independent


def test_selection_variables_are_always_conditioned_on():
    oracle = DSeparationOracle(nx.DiGraph([('X', 'S'), ('Y', 'S')]), selection=['S'])
    assert oracle.variable_names == ['X', 'Y']
    assert not oracle.check_independence('X', 'Y').is_independent


def test_bad_oracle_graphs_are_configuration_errors():
    with pytest.raises(ConfigurationError):
        DSeparationOracle([('A', 'B'), ('B', 'A')])
    with pytest.raises(ConfigurationError):
        DSeparationOracle([('A', 'B')], latents=['Q'])


def test_queries_outside_the_domain_fail_fast(collider_oracle):
    with pytest.raises(ConfigurationError):
        collider_oracle.check_independence('A', 'Q')
    with pytest.raises(ConfigurationError):
        collider_oracle.check_independence('A', 'C', ['Q'])
    assert collider_oracle.num_tests == 0


def test_function_oracle_verdicts():
    oracle = FunctionOracle(['X', 'Y'], lambda x, y, cond: True)
    assert oracle.check_independence('X', 'Y') == IndependenceResult(True, 1.0)
    oracle = FunctionOracle(['X', 'Y'], lambda x, y, cond: (False, 0.01))
    assert oracle.check_independence('X', 'Y') == IndependenceResult(False, 0.01)
    with pytest.raises(ConfigurationError):
        FunctionOracle(['X', 'X'], lambda x, y, cond: True)


def test_failures_of_the_test_become_oracle_errors():
    def broken(x, y, cond):
        raise RuntimeError('singular matrix')
    with pytest.raises(OracleError) as info:
        FunctionOracle(['X', 'Y'], broken).check_independence('X', 'Y')
    assert isinstance(info.value.__cause__, RuntimeError)

    with pytest.raises(OracleError):
        FunctionOracle(['X', 'Y'], lambda x, y, cond: (True, float('nan'))).check_independence('X', 'Y')
    with pytest.raises(OracleError):
        FunctionOracle(['X', 'Y'], lambda x, y, cond: (True, 0.5, 'extra')).check_independence('X', 'Y')


@pytest.mark.parametrize('statistic', [None, 'high', [0.5]])
def test_non_numeric_statistics_become_oracle_errors(statistic):
    oracle = FunctionOracle(['X', 'Y'], lambda x, y, cond: (True, statistic))
    with pytest.raises(OracleError) as info:
        oracle.check_independence('X', 'Y')
    assert isinstance(info.value.__cause__, (TypeError, ValueError))
    with pytest.raises(OracleError):
        ConstraintSearch(oracle).search()


def test_fisherz_oracle_on_data():
    rng = np.random.default_rng(0)
    x = rng.normal(size=2000)
    y = x + 0.1 * rng.normal(size=2000)
    z = y + 0.1 * rng.normal(size=2000)
    oracle = CITestOracle(np.vstack([x, y, z]).T, method='fisherz', alpha=0.05, names=['X', 'Y', 'Z'])
    result = oracle.check_independence('X', 'Z')
    assert not result.is_independent
    assert 0.0 <= result.statistic < 0.05
    assert oracle.variable_names == ['X', 'Y', 'Z']


def test_ci_test_oracle_validates_its_input():
    with pytest.raises(ConfigurationError):
        CITestOracle(np.zeros(10))
    with pytest.raises(ConfigurationError):
        CITestOracle(np.zeros((10, 2)), alpha=1.5)
    with pytest.raises(ConfigurationError):
        CITestOracle(np.zeros((10, 2)), names=['A'])
