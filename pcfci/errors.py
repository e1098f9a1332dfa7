#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: errors.py
@time: 3/11/2025
@desc: exceptions raised by the search. interruption is not among them: an interrupted search
       returns its partial result with `complete=False`.
"""


class SearchError(Exception):
    '''base class of everything the search raises on purpose.'''


class ConfigurationError(SearchError, ValueError):
    '''bad options, unknown strategy names, or variables outside the oracle's domain; raised before any test is run.'''


class KnowledgeError(ConfigurationError):
    '''inconsistent background knowledge, e.g., an edge that is both required and forbidden.'''


class OracleError(SearchError):
    '''the independence oracle failed (raised, or returned a NaN statistic). the search is aborted; no verdict is guessed.'''


class StructuralContradictionError(SearchError):
    '''the graph handed to the orientation phase already contains a directed cycle.'''
