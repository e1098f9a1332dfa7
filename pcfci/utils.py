#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: utils.py
@time: 3/11/2025
@desc: small helpers shared by the search phases.
"""

import logging

from .errors import ConfigurationError

# what "no bound" means for depth, path length and pass count
NO_BOUND_SENTINEL = 1000


def resolve_bound(value, name='depth'):
    '''
    :param value: int; -1 for "no bound", otherwise >= 0
    :param name: str, used in the error message
    :return: the bound to actually use; -1 becomes NO_BOUND_SENTINEL
    '''
    if value is None: return NO_BOUND_SENTINEL
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if value < -1:
        raise ConfigurationError(f"{name} must be -1 (no bound) or >= 0: {value}")
    if value == -1: return NO_BOUND_SENTINEL
    return value


def is_interrupted(interrupt):
    '''
    :param interrupt: None, or anything with an `is_set()` method (e.g., threading.Event)
    '''
    return interrupt is not None and interrupt.is_set()


def progress_level(verbose):
    '''log level for progress messages: INFO when the caller asked for verbose output, DEBUG otherwise.'''
    return logging.INFO if verbose else logging.DEBUG
