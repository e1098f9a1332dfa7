#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: test_config_loader.py
@time: 3/11/2025
@desc:
"""

import pytest

from pcfci import ConstraintSearch, ConfigurationError, KnowledgeError, CONSERVATIVE
from pcfci.config_loader import load_yaml, load_knowledge, load_search_options


def write(tmp_path, text):
    path = tmp_path / 'search.yaml'
    path.write_text(text)
    return path


CONFIG = '''
search:
  algorithm: cpc
  depth: 2
  conflict_rule: ORIENT_BIDIRECTED
knowledge:
  forbidden: [[B, D], [D, B]]
  tiers: [[A, C], [B], [D]]
'''


def test_load_search_options(tmp_path):
    algorithm, options, knowledge = load_search_options(write(tmp_path, CONFIG))
    assert algorithm == 'cpc'
    assert options == {'depth': 2, 'conflict_rule': 'ORIENT_BIDIRECTED'}
    assert knowledge.is_edge_forbidden('B', 'D')
    assert knowledge.tier('D') == 2


def test_search_from_config(tmp_path, collider_oracle):
    search = ConstraintSearch.from_config(collider_oracle, write(tmp_path, CONFIG))
    assert search.collider_discovery == CONSERVATIVE
    assert search.depth == 2
    result = search.search()
    assert not result.graph.is_adjacent('B', 'D')
    assert result.to_edge_dict()['-->'] == {('A', 'B'), ('C', 'B')}


def test_defaults(tmp_path):
    algorithm, options, knowledge = load_search_options(write(tmp_path, ''))
    assert (algorithm, options) == ('pc', {})
    assert knowledge.is_empty()
    assert load_knowledge({'search': {'depth': 1}}).is_empty()


@pytest.mark.parametrize('text', [
    'search: [1, 2]\n',
    '- search\n',
    'searching:\n  depth: 1\n',
    'search:\n  depth: [1\n',
])
def test_bad_files(tmp_path, text):
    with pytest.raises(ConfigurationError):
        load_yaml(write(tmp_path, text))


def test_bad_options_are_caught_when_the_search_is_built(tmp_path, collider_oracle):
    path = write(tmp_path, 'search:\n  alpha: 0.05\n')
    with pytest.raises(ConfigurationError):
        ConstraintSearch.from_config(collider_oracle, path)
    path = write(tmp_path, 'knowledge:\n  allowed: [[A, B]]\n')
    with pytest.raises(KnowledgeError):
        ConstraintSearch.from_config(collider_oracle, path)
