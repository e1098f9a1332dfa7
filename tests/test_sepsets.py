#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: test_sepsets.py
@time: 3/11/2025
@desc:
"""

import pytest

from pcfci.graph import Node
from pcfci.sepsets import SepsetMap, AllSepsetsMap


@pytest.fixture
def nodes():
    return {name: Node(name) for name in 'ABCD'}


def test_put_get_is_symmetric(nodes):
    sepsets = SepsetMap()
    sepsets.put(nodes['A'], nodes['D'], [nodes['B']], 0.42)
    assert sepsets.get(nodes['D'], nodes['A']) == {nodes['B']}
    assert sepsets.get('A', 'D') == {nodes['B']}
    assert sepsets.get('A', 'C') is None
    assert sepsets.statistic('D', 'A') == 0.42
    assert ('D', 'A') in sepsets
    assert len(sepsets) == 1
    assert sepsets.as_name_dict() == {('A', 'D'): ['B']}
    assert sepsets.pairs() == [('A', 'D')]


def test_membership_distinguishes_missing_pairs(nodes):
    sepsets = SepsetMap()
    sepsets.put(nodes['A'], nodes['C'], [])
    assert sepsets.is_in_sepset(nodes['B'], nodes['A'], nodes['C']) is False
    assert sepsets.is_in_sepset('B', 'A', 'D') is None
    sepsets.put(nodes['A'], nodes['D'], [nodes['B'], nodes['C']])
    assert sepsets.is_in_sepset('B', 'D', 'A') is True


def test_written_once_then_frozen(nodes):
    sepsets = SepsetMap()
    sepsets.put(nodes['A'], nodes['C'], [])
    with pytest.raises(ValueError):
        sepsets.put(nodes['C'], nodes['A'], [nodes['B']])
    with pytest.raises(ValueError):
        sepsets.put(nodes['A'], nodes['A'], [])
    sepsets.freeze()
    assert sepsets.frozen
    with pytest.raises(RuntimeError):
        sepsets.put(nodes['B'], nodes['D'], [])
    assert sepsets.get('A', 'C') == set()


def test_all_sepsets_keep_every_set_in_order(nodes):
    all_sepsets = AllSepsetsMap()
    assert all_sepsets.get('A', 'C') == set()
    all_sepsets.add(nodes['A'], nodes['C'], [], 0.3)
    all_sepsets.add(nodes['C'], nodes['A'], [nodes['B']], 0.9)
    all_sepsets.add(nodes['A'], nodes['C'], [nodes['B']], 0.9)
    assert all_sepsets.get('A', 'C') == {frozenset(), frozenset({'B'})}
    assert [stat for _, stat in all_sepsets.scored('C', 'A')] == [0.3, 0.9]
    assert ('A', 'C') in all_sepsets
    assert len(all_sepsets) == 1
