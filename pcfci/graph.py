#!/usr/bin/python3
# -*- coding: utf-8 -*-
"""
@author: Haoyue
@file: graph.py
@time: 3/11/2025
@desc: mutable graph with endpoint-labeled edges, shared by the adjacency search and all orientation phases.
"""

from itertools import combinations

import networkx as nx


MEASURED, LATENT, ERROR = 'MEASURED', 'LATENT', 'ERROR'
TAIL, ARROW, CIRCLE = 'TAIL', 'ARROW', 'CIRCLE'
ENDPOINTS = (TAIL, ARROW, CIRCLE)
NODE_TYPES = (MEASURED, LATENT, ERROR)

# how a graph decides that two Node objects are the same node
BY_NAME, BY_IDENTITY = 'BY_NAME', 'BY_IDENTITY'
_KEY_FUNCS = {
    BY_NAME: lambda node: node.name,
    BY_IDENTITY: lambda node: node,
}

_LEFT_MARK = {TAIL: '-', ARROW: '<', CIRCLE: 'o'}
_RIGHT_MARK = {TAIL: '-', ARROW: '>', CIRCLE: 'o'}


class Node:
    __slots__ = ('name', 'node_type')

    def __init__(self, name, node_type=MEASURED):
        if not isinstance(name, str) or not name:
            raise ValueError(f"node name must be a non-empty string, got {name!r}")
        if node_type not in NODE_TYPES:
            raise ValueError(f"unknown node type {node_type!r}; expected one of {NODE_TYPES}")
        self.name = name
        self.node_type = node_type

    def __repr__(self):
        return self.name


class Edge:
    '''
    an edge node1 *-* node2; endpoint1 is the mark at node1, endpoint2 the mark at node2.
    the kind of an edge (directed, bidirected, ...) is always derived from the two marks.
    '''
    __slots__ = ('node1', 'node2', 'endpoint1', 'endpoint2')

    def __init__(self, node1, node2, endpoint1=TAIL, endpoint2=TAIL):
        assert endpoint1 in ENDPOINTS and endpoint2 in ENDPOINTS
        self.node1, self.node2 = node1, node2
        self.endpoint1, self.endpoint2 = endpoint1, endpoint2

    def is_directed(self):
        return {self.endpoint1, self.endpoint2} == {TAIL, ARROW}

    def is_bidirected(self):
        return self.endpoint1 == ARROW and self.endpoint2 == ARROW

    def is_undirected(self):
        return self.endpoint1 == TAIL and self.endpoint2 == TAIL

    def is_nondirected(self):
        return self.endpoint1 == CIRCLE and self.endpoint2 == CIRCLE

    def is_partially_oriented(self):
        return {self.endpoint1, self.endpoint2} == {CIRCLE, ARROW}

    def _read_left_to_right(self):
        if (self.endpoint1, self.endpoint2) in [(ARROW, TAIL), (ARROW, CIRCLE), (TAIL, CIRCLE)]:
            return self.node2, self.node1, self.endpoint2, self.endpoint1
        return self.node1, self.node2, self.endpoint1, self.endpoint2

    def kind(self):
        '''the edge written left to right with its marks, e.g. '-->' or 'o->'; directed edges always point right.'''
        _, _, e1, e2 = self._read_left_to_right()
        return _LEFT_MARK[e1] + '-' + _RIGHT_MARK[e2]

    def name_pair(self):
        '''(left, right) names in the order `kind` reads the edge, e.g. ('A', 'B') for B <-- A.'''
        n1, n2, _, _ = self._read_left_to_right()
        return n1.name, n2.name

    def __str__(self):
        return f"{self.node1.name} {_LEFT_MARK[self.endpoint1]}-{_RIGHT_MARK[self.endpoint2]} {self.node2.name}"

    __repr__ = __str__


class Triple:
    '''
    <x, y, z> with y in the middle. <x, y, z> and <z, y, x> are the same triple.
    '''
    __slots__ = ('x', 'y', 'z')

    def __init__(self, x, y, z):
        if x is None or y is None or z is None:
            raise ValueError("a triple needs three nodes")
        self.x, self.y, self.z = x, y, z

    def names(self):
        '''(x, y, z) names with the two ends sorted, so equal triples give equal tuples.'''
        a, c = sorted([self.x.name, self.z.name])
        return a, self.y.name, c

    def __eq__(self, other):
        if not isinstance(other, Triple): return NotImplemented
        return self.names() == other.names()

    def __hash__(self):
        return hash(self.names())

    def __repr__(self):
        return f"<{self.x.name}, {self.y.name}, {self.z.name}>"


class Graph:
    '''
    nodes kept in insertion order (the stable ordering every search phase iterates in),
    edges indexed by both of their nodes for O(1) adjacency lookups.

    mutation never triggers anything: callers re-query adjacency after they change the structure.
    cycle checks are explicit (`exists_directed_cycle`, `exists_directed_path`), never implicit.
    '''

    def __init__(self, nodes=None, equality=BY_NAME):
        if equality not in _KEY_FUNCS:
            raise ValueError(f"unknown equality mode {equality!r}; expected {BY_NAME} or {BY_IDENTITY}")
        self.equality = equality
        self._key_func = _KEY_FUNCS[equality]
        self._nodes = {}        # key -> Node
        self._position = {}     # key -> index in insertion order
        self._by_name = {}      # name -> key
        self._adj = {}          # key -> {key: Edge}
        self._ambiguous_triples = set()
        for node in nodes or []:
            self.add_node(node)

    # ============================= nodes ======================================
    def add_node(self, node):
        if isinstance(node, str): node = Node(node)
        if node.name in self._by_name:
            raise ValueError(f"a node named '{node.name}' is already in the graph")
        key = self._key_func(node)
        self._nodes[key] = node
        self._position[key] = len(self._position)
        self._by_name[node.name] = key
        self._adj[key] = {}
        return node

    @property
    def nodes(self):
        return list(self._nodes.values())

    @property
    def node_names(self):
        return [n.name for n in self._nodes.values()]

    def get_node(self, name):
        key = self._by_name.get(name)
        return None if key is None else self._nodes[key]

    def contains_node(self, node):
        try:
            self._key(node)
        except KeyError:
            return False
        return True

    def _key(self, node):
        if isinstance(node, str):
            key = self._by_name.get(node)
        else:
            key = self._key_func(node)
        if key is None or key not in self._nodes:
            raise KeyError(f"node {node!r} is not in the graph")
        return key

    def _sorted(self, keys):
        return [self._nodes[k] for k in sorted(keys, key=self._position.__getitem__)]

    # ============================= edges ======================================
    def add_edge(self, node1, node2, endpoint1=TAIL, endpoint2=TAIL):
        k1, k2 = self._key(node1), self._key(node2)
        if k1 == k2:
            raise ValueError(f"self loops are not allowed: {node1!r}")
        if k2 in self._adj[k1]:
            raise ValueError(f"there is already an edge between {node1!r} and {node2!r}: {self._adj[k1][k2]}")
        edge = Edge(self._nodes[k1], self._nodes[k2], endpoint1, endpoint2)
        self._adj[k1][k2] = self._adj[k2][k1] = edge
        return edge

    def add_directed_edge(self, x, y):
        return self.add_edge(x, y, TAIL, ARROW)

    def add_undirected_edge(self, x, y):
        return self.add_edge(x, y, TAIL, TAIL)

    def remove_edge(self, x, y):
        k1, k2 = self._key(x), self._key(y)
        if k2 not in self._adj[k1]: return False
        del self._adj[k1][k2]
        del self._adj[k2][k1]
        return True

    def get_edge(self, x, y):
        return self._adj[self._key(x)].get(self._key(y))

    def get_endpoint(self, x, y):
        '''the mark at y on the edge x *-* y; None if x and y are not adjacent.'''
        k1, k2 = self._key(x), self._key(y)
        edge = self._adj[k1].get(k2)
        if edge is None: return None
        return edge.endpoint2 if self._key_func(edge.node2) == k2 else edge.endpoint1

    def set_endpoint(self, x, y, endpoint):
        '''set the mark at y on the existing edge x *-* y.'''
        assert endpoint in ENDPOINTS
        k1, k2 = self._key(x), self._key(y)
        edge = self._adj[k1].get(k2)
        if edge is None:
            raise ValueError(f"cannot set an endpoint: {x!r} and {y!r} are not adjacent")
        if self._key_func(edge.node2) == k2:
            edge.endpoint2 = endpoint
        else:
            edge.endpoint1 = endpoint

    def set_marks(self, x, y, mark_at_x, mark_at_y):
        self.set_endpoint(y, x, mark_at_x)
        self.set_endpoint(x, y, mark_at_y)

    def reorient_all_with(self, endpoint):
        for edge in self.edges:
            edge.endpoint1 = edge.endpoint2 = endpoint

    @property
    def edges(self):
        '''all edges, ordered by the positions of their nodes.'''
        out = []
        for k1 in self._nodes:
            p1 = self._position[k1]
            for k2 in sorted(self._adj[k1], key=self._position.__getitem__):
                if self._position[k2] > p1: out.append(self._adj[k1][k2])
        return out

    @property
    def num_edges(self):
        return sum(len(v) for v in self._adj.values()) // 2

    # ============================= derived views ==============================
    def is_adjacent(self, a, b):
        return self._key(b) in self._adj[self._key(a)]

    def get_adjacent_nodes(self, a):
        return self._sorted(self._adj[self._key(a)])

    def degree(self, a):
        return len(self._adj[self._key(a)])

    def is_directed_from_to(self, a, b):
        return self.get_endpoint(b, a) == TAIL and self.get_endpoint(a, b) == ARROW

    def is_undirected(self, a, b):
        return self.get_endpoint(b, a) == TAIL and self.get_endpoint(a, b) == TAIL

    def get_parents(self, x):
        return [n for n in self.get_adjacent_nodes(x) if self.is_directed_from_to(n, x)]

    def get_children(self, x):
        return [n for n in self.get_adjacent_nodes(x) if self.is_directed_from_to(x, n)]

    def to_directed_nx(self):
        '''networkx DiGraph over node names holding only the directed (-->) edges.'''
        dg = nx.DiGraph()
        dg.add_nodes_from(self.node_names)
        for edge in self.edges:
            if edge.endpoint1 == TAIL and edge.endpoint2 == ARROW:
                dg.add_edge(edge.node1.name, edge.node2.name)
            elif edge.endpoint1 == ARROW and edge.endpoint2 == TAIL:
                dg.add_edge(edge.node2.name, edge.node1.name)
        return dg

    def to_undirected_nx(self):
        ug = nx.Graph()
        ug.add_nodes_from(self.node_names)
        ug.add_edges_from((e.node1.name, e.node2.name) for e in self.edges)
        return ug

    def exists_directed_cycle(self):
        return not nx.is_directed_acyclic_graph(self.to_directed_nx())

    def exists_directed_path(self, a, b):
        '''True iff a --> ... --> b; orienting b --> a would then close a cycle.'''
        a, b = self._nodes[self._key(a)].name, self._nodes[self._key(b)].name
        return a == b or nx.has_path(self.to_directed_nx(), a, b)

    # ============================= ambiguous triples ==========================
    def add_ambiguous_triple(self, x, y, z):
        self._ambiguous_triples.add(Triple(self._nodes[self._key(x)], self._nodes[self._key(y)], self._nodes[self._key(z)]))

    def is_ambiguous_triple(self, x, y, z):
        return Triple(x, y, z) in self._ambiguous_triples

    @property
    def ambiguous_triples(self):
        return set(self._ambiguous_triples)

    # ============================= misc =======================================
    def copy(self):
        '''a new graph over the same Node objects with fresh, independently mutable edges.'''
        g = Graph(self.nodes, equality=self.equality)
        for edge in self.edges:
            g.add_edge(edge.node1, edge.node2, edge.endpoint1, edge.endpoint2)
        g._ambiguous_triples = set(self._ambiguous_triples)
        return g

    def edge_signature(self):
        '''canonical, hashable form of every endpoint assignment; equal signatures mean identical graphs.'''
        out = []
        for edge in self.edges:
            (n1, e1), (n2, e2) = sorted([(edge.node1.name, edge.endpoint1), (edge.node2.name, edge.endpoint2)])
            out.append((n1, e1, n2, e2))
        return tuple(sorted(out))

    def __str__(self):
        return '\n'.join(str(e) for e in self.edges)


def complete_graph(nodes, equality=BY_NAME, endpoint=TAIL):
    '''the fully connected graph FAS starts from.'''
    g = Graph(nodes, equality=equality)
    for x, y in combinations(g.nodes, 2):
        g.add_edge(x, y, endpoint, endpoint)
    return g
