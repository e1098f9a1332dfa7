#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: knowledge.py
@time: 3/11/2025
@desc: background knowledge: forbidden and required directed edges, plus an optional tier ordering.
       everything is keyed by variable names and frozen at construction.
"""

from itertools import combinations

from .errors import KnowledgeError


def _name(node):
    return getattr(node, 'name', node)


def _pairs(edges, what):
    out = set()
    for edge in edges or ():
        if len(edge) != 2:
            raise KnowledgeError(f"each {what} edge must be a (from, to) pair, got {edge!r}")
        x, y = _name(edge[0]), _name(edge[1])
        if x == y:
            raise KnowledgeError(f"{what} edge {x} -> {y} is a self loop")
        out.add((x, y))
    return frozenset(out)


class Knowledge:
    '''
    :param forbidden: iterable of (x, y) name pairs; x --> y may not appear in the output.
                      forbidding both (x, y) and (y, x) forbids the adjacency itself.
    :param required: iterable of (x, y) name pairs; x --> y must appear in the output.
    :param tiers: None, or an ordered list of name groups; an edge from a later tier into an earlier one is forbidden.
    :param forbidden_within_tiers: iterable of tier indices inside which no edge is allowed.
    '''

    def __init__(self, forbidden=None, required=None, tiers=None, forbidden_within_tiers=None):
        self._forbidden = _pairs(forbidden, 'forbidden')
        self._required = _pairs(required, 'required')
        self._tier_of = {}
        self._tiers = []
        for t, group in enumerate(tiers or []):
            group = [_name(v) for v in group]
            for v in group:
                if v in self._tier_of:
                    raise KnowledgeError(f"variable {v} is in both tier {self._tier_of[v]} and tier {t}")
                self._tier_of[v] = t
            self._tiers.append(tuple(group))
        self._tiers = tuple(self._tiers)
        self._forbidden_within = frozenset(forbidden_within_tiers or ())
        for t in self._forbidden_within:
            if not isinstance(t, int) or not 0 <= t < len(self._tiers):
                raise KnowledgeError(f"forbidden_within_tiers names tier {t!r}, but there are {len(self._tiers)} tiers")
        self._check_consistency()

    @classmethod
    def from_dict(cls, entries):
        '''
        :param entries: dict with optional keys 'forbidden', 'required', 'tiers', 'forbidden_within_tiers'
        '''
        entries = dict(entries or {})
        unknown = set(entries) - {'forbidden', 'required', 'tiers', 'forbidden_within_tiers'}
        if unknown:
            raise KnowledgeError(f"unknown knowledge keys: {sorted(unknown)}")
        return cls(**entries)

    def _check_consistency(self):
        for x, y in sorted(self._required):
            if (y, x) in self._required:
                raise KnowledgeError(f"edge {x} -- {y} is required in both directions")
            if self.is_forbidden(x, y):
                raise KnowledgeError(f"edge {x} --> {y} is both required and forbidden")

    # ============================= queries ====================================
    def is_forbidden(self, x, y):
        '''True iff x --> y is forbidden, explicitly or by the tier ordering.'''
        x, y = _name(x), _name(y)
        if (x, y) in self._forbidden: return True
        tx, ty = self._tier_of.get(x), self._tier_of.get(y)
        if tx is None or ty is None: return False
        if tx > ty: return True
        return tx == ty and tx in self._forbidden_within

    def is_required(self, x, y):
        return (_name(x), _name(y)) in self._required

    def no_edge_required(self, x, y):
        return not self.is_required(x, y) and not self.is_required(y, x)

    def is_edge_forbidden(self, x, y):
        '''True iff x and y may not be adjacent at all.'''
        return self.is_forbidden(x, y) and self.is_forbidden(y, x) and self.no_edge_required(x, y)

    def is_adjacency_required(self, x, y):
        return not self.no_edge_required(x, y)

    def required_edges(self):
        return sorted(self._required)

    def forbidden_edges(self):
        '''explicitly forbidden pairs only; tier-implied ones are answered by `is_forbidden`.'''
        return sorted(self._forbidden)

    @property
    def tiers(self):
        return [list(t) for t in self._tiers]

    def tier(self, x):
        return self._tier_of.get(_name(x))

    def is_empty(self):
        return not self._forbidden and not self._required and not self._tiers

    def variables(self):
        out = set(self._tier_of)
        for x, y in self._forbidden | self._required:
            out |= {x, y}
        return out

    def check_variables(self, names):
        '''
        :param names: the variable names of the search
        :raise KnowledgeError: if the knowledge mentions a variable that is not searched over
        '''
        unknown = self.variables() - set(names)
        if unknown:
            raise KnowledgeError(f"knowledge mentions variables outside the search: {sorted(unknown)}")

    def forbidden_pairs_among(self, names):
        '''all unordered pairs of the given names whose adjacency is forbidden, in the given order.'''
        return [(x, y) for x, y in combinations(names, 2) if self.is_edge_forbidden(x, y)]

    def __repr__(self):
        return (f"Knowledge(forbidden={self.forbidden_edges()}, required={self.required_edges()}, "
                f"tiers={self.tiers}, forbidden_within_tiers={sorted(self._forbidden_within)})")
