#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: config_loader.py
@time: 3/11/2025
@desc: read search options and background knowledge from a YAML file, e.g.

           search:
             algorithm: pc
             depth: 3
             stable: true
             collider_discovery: CONSERVATIVE
           knowledge:
             forbidden: [[D, B]]
             required: [[A, B]]
             tiers: [[A, C], [B], [D]]
"""

import yaml

from .errors import ConfigurationError
from .knowledge import Knowledge

SECTIONS = ('search', 'knowledge')


def load_yaml(path):
    '''
    :return: dict with (a subset of) the sections 'search' and 'knowledge'
    :raise ConfigurationError: if the file is not a mapping, has unknown sections, or does not parse
    '''
    try:
        with open(path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"cannot parse {path}: {e}") from e
    if config is None: return {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"{path}: the top level must be a mapping, got {type(config).__name__}")
    unknown = set(config) - set(SECTIONS)
    if unknown:
        raise ConfigurationError(f"{path}: unknown sections {sorted(unknown)}; expected {list(SECTIONS)}")
    for section in SECTIONS:
        if config.get(section) is not None and not isinstance(config[section], dict):
            raise ConfigurationError(f"{path}: section '{section}' must be a mapping")
    return config


def load_knowledge(config):
    '''
    :param config: a path, or the dict load_yaml returned
    :return: Knowledge (empty if there is no knowledge section)
    '''
    if not isinstance(config, dict): config = load_yaml(config)
    return Knowledge.from_dict(config.get('knowledge') or {})


def load_search_options(path):
    '''
    :return: (algorithm, options, knowledge); the option names are checked when the search is built
    '''
    config = load_yaml(path)
    options = dict(config.get('search') or {})
    algorithm = options.pop('algorithm', 'pc')
    return algorithm, options, load_knowledge(config)
