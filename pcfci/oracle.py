#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: oracle.py
@time: 3/11/2025
@desc: the independence oracle the search consumes, and thin adapters around the usual sources of verdicts:
       d-separation on a known DAG, a causal-learn CI test on data, or any boolean callable.
       no statistics are computed here.
"""

import math
from collections import namedtuple

import networkx as nx
import numpy as np
import causallearn.utils.cit as cit

from .errors import ConfigurationError, OracleError
from .graph import Node, MEASURED


IndependenceResult = namedtuple('IndependenceResult', ['is_independent', 'statistic'])


class IndependenceOracle:
    '''
    answers "is x independent of y given S?" over a fixed list of variables.
    subclasses implement `_test(x_name, y_name, cond_names) -> (bool, float)`;
    `check_independence` validates the query and the answer around it.
    '''

    def __init__(self, variables):
        variables = [v if isinstance(v, Node) else Node(v, MEASURED) for v in variables]
        names = [v.name for v in variables]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"duplicate variable names in the oracle: {names}")
        self._variables = variables
        self._by_name = {v.name: v for v in variables}
        self.num_tests = 0

    @property
    def variables(self):
        return list(self._variables)

    @property
    def variable_names(self):
        return [v.name for v in self._variables]

    def get_variable(self, name):
        return self._by_name.get(name)

    def check_independence(self, x, y, conditioning_set=()):
        '''
        :param x, y: nodes (or names) in the oracle's domain
        :param conditioning_set: iterable of nodes (or names)
        :return: IndependenceResult(is_independent, statistic)
        :raise ConfigurationError: if any variable is outside the domain
        :raise OracleError: if the underlying test raised, or gave a non-numeric or NaN statistic
        '''
        x_name, y_name = getattr(x, 'name', x), getattr(y, 'name', y)
        cond = [getattr(z, 'name', z) for z in conditioning_set]
        for v in [x_name, y_name] + cond:
            if v not in self._by_name:
                raise ConfigurationError(f"variable {v!r} is outside the oracle's domain {self.variable_names}")
        self.num_tests += 1
        try:
            is_independent, statistic = self._test(x_name, y_name, cond)
            is_independent, statistic = bool(is_independent), float(statistic)
        except OracleError:
            raise
        except Exception as e:
            raise OracleError(f"independence test {x_name} _||_ {y_name} | {cond} failed: {e}") from e
        if math.isnan(statistic):
            raise OracleError(f"independence test {x_name} _||_ {y_name} | {cond} returned a NaN statistic")
        return IndependenceResult(is_independent, statistic)

    def _test(self, x, y, cond):
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}({self.variable_names})"


class DSeparationOracle(IndependenceOracle):
    '''
    d-separation on a known DAG.
    :param dag: networkx.DiGraph, or a list of (i, j) directed edges
    :param latents: nodes of the DAG that are not searched over
    :param selection: nodes that are always conditioned on (selection bias); not searched over either
    '''

    def __init__(self, dag, latents=(), selection=()):
        if not isinstance(dag, nx.DiGraph):
            dag = nx.DiGraph(list(dag))
        if not nx.is_directed_acyclic_graph(dag):
            raise ConfigurationError("the oracle graph must be acyclic")
        self._dag = nx.relabel_nodes(dag, {n: str(n) for n in dag.nodes})
        self._selection = {str(s) for s in selection}
        hidden = {str(l) for l in latents} | self._selection
        unknown = hidden - set(self._dag.nodes)
        if unknown:
            raise ConfigurationError(f"latent/selection variables not in the graph: {sorted(unknown)}")
        super().__init__([str(n) for n in dag.nodes if str(n) not in hidden])

    @property
    def dag(self):
        return self._dag

    def _test(self, x, y, cond):
        indep = nx.is_d_separator(self._dag, {x}, {y}, set(cond) | self._selection)
        return indep, 1.0 if indep else 0.0


class CITestOracle(IndependenceOracle):
    '''
    a causal-learn conditional independence test on a data matrix; independent iff p-value > alpha.
    :param data: np.ndarray of shape (n_samples, n_vars)
    :param method: any method name causal-learn's CIT accepts, e.g. 'fisherz', 'kci', 'gsq', 'chisq'
    :param alpha: float, significance level
    :param names: variable names, defaults to X0, X1, ...
    '''

    def __init__(self, data, method='fisherz', alpha=0.05, names=None, **cit_kwargs):
        data = np.asarray(data)
        if data.ndim != 2:
            raise ConfigurationError(f"data must be 2D (n_samples, n_vars), got shape {data.shape}")
        if not 0 < alpha < 1:
            raise ConfigurationError(f"alpha must be in (0, 1): {alpha}")
        names = list(names) if names is not None else [f"X{i}" for i in range(data.shape[1])]
        if len(names) != data.shape[1]:
            raise ConfigurationError(f"{len(names)} names given for {data.shape[1]} columns")
        super().__init__(names)
        self.alpha = alpha
        self.method = method
        self._column = {n: i for i, n in enumerate(names)}
        self._pval_tester = cit.CIT(data, method=method, **cit_kwargs)

    def _test(self, x, y, cond):
        pval = self._pval_tester(self._column[x], self._column[y], [self._column[z] for z in cond])
        return pval > self.alpha, pval


class FunctionOracle(IndependenceOracle):
    '''
    :param names: the variable names
    :param func: callable (x_name, y_name, cond_names) -> bool, or -> (bool, statistic)
    '''

    def __init__(self, names, func):
        super().__init__(names)
        self._func = func

    def _test(self, x, y, cond):
        out = self._func(x, y, list(cond))
        if isinstance(out, tuple):
            if len(out) != 2:
                raise OracleError(f"the test function must return a bool or a (bool, statistic) pair, got {out!r}")
            return out
        return bool(out), 1.0 if out else 0.0
