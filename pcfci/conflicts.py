#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: conflicts.py
@time: 3/11/2025
@desc: what to do when an orientation disagrees with marks an earlier decision already put on the edge.
"""

import logging

from .graph import ARROW

logger = logging.getLogger(__name__)

PRIORITIZE_EXISTING, ORIENT_BIDIRECTED, OVERWRITE_EXISTING = 'PRIORITIZE_EXISTING', 'ORIENT_BIDIRECTED', 'OVERWRITE_EXISTING'
CONFLICT_RULES = (PRIORITIZE_EXISTING, ORIENT_BIDIRECTED, OVERWRITE_EXISTING)


def is_conflict(current, proposed):
    '''
    :param current: (mark at x, mark at y) now on the edge x *-* y
    :param proposed: (mark at x, mark at y); None on a side means "no opinion"
    :return: True iff the proposal would replace an arrowhead some earlier decision put there
    '''
    return any(c == ARROW and p is not None and p != ARROW for c, p in zip(current, proposed))


def resolve(conflict_rule, current, proposed):
    '''
    pure function: (current marks, proposed marks) -> marks the edge should get.
    - PRIORITIZE_EXISTING: if the proposal would remove an arrowhead, keep the edge as it is; else apply it.
    - ORIENT_BIDIRECTED: apply the proposal but keep every arrowhead already there (may give x <-> y).
    - OVERWRITE_EXISTING: apply the proposal unconditionally.
    '''
    if conflict_rule == PRIORITIZE_EXISTING:
        if is_conflict(current, proposed): return tuple(current)
        return tuple(c if p is None else p for c, p in zip(current, proposed))
    elif conflict_rule == ORIENT_BIDIRECTED:
        return tuple(ARROW if c == ARROW else (c if p is None else p) for c, p in zip(current, proposed))
    elif conflict_rule == OVERWRITE_EXISTING:
        return tuple(c if p is None else p for c, p in zip(current, proposed))
    raise ValueError(f"unknown conflict rule {conflict_rule!r}; expected one of {CONFLICT_RULES}")


def apply_orientation(graph, x, y, proposed, conflict_rule=PRIORITIZE_EXISTING, reason=None):
    '''
    put `proposed` = (mark at x, mark at y) on the existing edge x *-* y, going through the conflict rule.
    :return: True iff any mark changed
    '''
    current = (graph.get_endpoint(y, x), graph.get_endpoint(x, y))
    if current[0] is None:
        raise ValueError(f"cannot orient {x!r} *-* {y!r}: they are not adjacent")
    new = resolve(conflict_rule, current, proposed)
    if is_conflict(current, proposed):
        if new == current:
            logger.warning(f"[{reason or 'ORIENT'}] Conflict detected: keeping {graph.get_edge(x, y)} instead of marks {proposed}.")
        else:
            logger.warning(f"[{reason or 'ORIENT'}] Conflict detected: changing marks {current} on {x.name} *-* {y.name} to {new} ({conflict_rule}).")
    if new == current: return False
    graph.set_marks(x, y, *new)
    return True
