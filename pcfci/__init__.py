#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: __init__.py
@time: 3/11/2025
@desc: constraint-based causal structure search (PC, CPC, PC-Max, FCI) over an independence oracle.
"""

from .colliders import SEPSETS, CONSERVATIVE, MAX_P
from .conflicts import PRIORITIZE_EXISTING, ORIENT_BIDIRECTED, OVERWRITE_EXISTING
from .errors import SearchError, ConfigurationError, KnowledgeError, OracleError, StructuralContradictionError
from .graph import (
    Node, Edge, Graph, Triple, complete_graph,
    TAIL, ARROW, CIRCLE, MEASURED, LATENT, ERROR, BY_NAME, BY_IDENTITY)
from .knowledge import Knowledge
from .oracle import IndependenceOracle, IndependenceResult, DSeparationOracle, CITestOracle, FunctionOracle
from .search import ConstraintSearch, SearchResult, ALGORITHMS, search_from_oracle_graph, search_from_data
from .sepsets import SepsetMap, AllSepsetsMap

__version__ = '0.1.0'
