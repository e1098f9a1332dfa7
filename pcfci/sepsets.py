#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: sepsets.py
@time: 3/11/2025
@desc: separating sets found for removed adjacencies. keyed by the unordered pair of variable names.
"""


def _pair(x, y):
    return frozenset((getattr(x, 'name', x), getattr(y, 'name', y)))


class SepsetMap:
    '''
    one separating set per non-adjacent pair. written once per pair during the adjacency search,
    then frozen and only read by the orientation phases.
    '''

    def __init__(self):
        self._sepsets = {}
        self._statistics = {}
        self._frozen = False

    def put(self, x, y, sepset, statistic=None):
        '''
        :param sepset: iterable of nodes that made x and y independent
        :param statistic: the oracle's statistic for that verdict (e.g., a p-value)
        '''
        if self._frozen:
            raise RuntimeError("the sepset map is read-only once the adjacency search is over")
        pair = _pair(x, y)
        if len(pair) != 2:
            raise ValueError(f"a sepset needs two distinct variables, got {x!r}, {y!r}")
        if pair in self._sepsets:
            raise ValueError(f"a sepset for {x!r}, {y!r} is already recorded: {self._sepsets[pair]}")
        self._sepsets[pair] = tuple(sepset)
        self._statistics[pair] = statistic

    def get(self, x, y):
        '''the recorded set of nodes, or None if the pair was never separated.'''
        sepset = self._sepsets.get(_pair(x, y))
        return None if sepset is None else set(sepset)

    def statistic(self, x, y):
        return self._statistics.get(_pair(x, y))

    def is_in_sepset(self, node, x, y):
        '''None if there is no sepset for (x, y); otherwise whether `node` is in it.'''
        sepset = self._sepsets.get(_pair(x, y))
        if sepset is None: return None
        return getattr(node, 'name', node) in {n.name for n in sepset}

    def freeze(self):
        self._frozen = True

    @property
    def frozen(self):
        return self._frozen

    def pairs(self):
        return sorted(tuple(sorted(p)) for p in self._sepsets)

    def as_name_dict(self):
        '''{(x, y): [names]} with x < y, e.g. for reports.'''
        return {tuple(sorted(p)): sorted(n.name for n in s) for p, s in self._sepsets.items()}

    def __contains__(self, pair):
        x, y = pair
        return _pair(x, y) in self._sepsets

    def __len__(self):
        return len(self._sepsets)

    def __repr__(self):
        return f"SepsetMap({self.as_name_dict()})"


class AllSepsetsMap:
    '''every separating set found for a pair, for the strategies that reason over all of them.'''

    def __init__(self):
        self._sepsets = {}

    def add(self, x, y, sepset, statistic=None):
        self._sepsets.setdefault(_pair(x, y), {})[frozenset(n.name for n in sepset)] = (tuple(sepset), statistic)

    def get(self, x, y):
        '''set of frozensets of names; empty if nothing separates x and y.'''
        return set(self._sepsets.get(_pair(x, y), {}))

    def scored(self, x, y):
        '''[(nodes, statistic)] in the order the sets were found.'''
        return list(self._sepsets.get(_pair(x, y), {}).values())

    def __contains__(self, pair):
        x, y = pair
        return _pair(x, y) in self._sepsets

    def __len__(self):
        return len(self._sepsets)
