"""Reconstruction of call trees from sampled spans."""

from __future__ import annotations

import random
from collections import defaultdict, deque
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from consistent_sampling.estimation.downsampling import (
    create_span_index,
    get_ancestor_span_id,
    get_number_dropped_ancestors,
)
from consistent_sampling.errors import ValidationError
from consistent_sampling.tracer.span_record import SpanRecord

NO_PARENT = -1

DEFAULT_INDENT = 4
DEFAULT_LINE_FEED = "\n"
UNKNOWN_ANCESTOR_LABEL = "?"


def create_balanced_tree(number_of_nodes: int, number_of_children_per_node: int) -> List[int]:
    """
    Parent list of a balanced tree filled level by level.

    Entry ``i`` is the parent of node ``i``; the root (node 0) has
    ``NO_PARENT``.
    """
    if number_of_nodes < 0:
        raise ValidationError("number of nodes must not be negative", {"nodes": number_of_nodes})
    if number_of_children_per_node <= 0:
        raise ValidationError(
            "number of children per node must be positive",
            {"children": number_of_children_per_node},
        )
    if number_of_nodes == 0:
        return []
    return [NO_PARENT] + [i // number_of_children_per_node for i in range(number_of_nodes - 1)]


def create_balanced_binary_tree(number_of_nodes: int) -> List[int]:
    return create_balanced_tree(number_of_nodes, 2)


def create_chain(number_of_nodes: int) -> List[int]:
    return create_balanced_tree(number_of_nodes, 1)


def generate_random_tree(seed: int, number_of_nodes: int) -> List[int]:
    """Random recursive tree: node ``i`` picks its parent uniformly among ``0..i-1``."""
    if number_of_nodes < 0:
        raise ValidationError("number of nodes must not be negative", {"nodes": number_of_nodes})
    if number_of_nodes == 0:
        return []
    rng = random.Random(seed)
    return [NO_PARENT] + [rng.randrange(i) for i in range(1, number_of_nodes)]


def _children_lists(parents: Sequence[int]) -> List[List[int]]:
    children: List[List[int]] = [[] for _ in parents]
    for node, parent in enumerate(parents):
        if parent != NO_PARENT:
            children[parent].append(node)
    return children


def get_level(parents: Sequence[int], node: int) -> int:
    """Number of edges between ``node`` and the root."""
    if not 0 <= node < len(parents):
        raise ValidationError("node index out of range", {"node": node, "nodes": len(parents)})
    level = 0
    while parents[node] != NO_PARENT:
        level += 1
        node = parents[node]
    return level


def iterate_depth_first_order(parents: Sequence[int]) -> Iterator[int]:
    """Pre-order traversal starting at the root, children in insertion order."""
    if not parents:
        return
    children = _children_lists(parents)
    stack = [0]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(children[node]))


def print_structure(
    parents: Sequence[int],
    label: Callable[[int], str] = str,
    indent: int = DEFAULT_INDENT,
    line_feed: str = DEFAULT_LINE_FEED,
) -> str:
    """
    Render a tree as ASCII art, one node per line.

    Every line starts with ``line_feed``. A node that is the last child of its
    parent is drawn with ``'---``, any other child with ``|---``.
    """
    if indent <= 0:
        raise ValidationError("indent must be positive", {"indent": indent})
    children = _children_lists(parents)
    is_last_child = [False] * len(parents)
    for siblings in children:
        if siblings:
            is_last_child[siblings[-1]] = True

    parts = []
    for node in iterate_depth_first_order(parents):
        parts.append(line_feed)
        # ancestors from the node upwards, excluding the root
        path = []
        n = node
        while parents[n] != NO_PARENT:
            path.append(is_last_child[n])
            n = parents[n]
        for last in reversed(path[1:]):
            parts.append(" " if last else "|")
            parts.append(" " * (indent - 1))
        if path:
            parts.append("'" if path[0] else "|")
            parts.append("-" * (indent - 1))
        parts.append(label(node))
    return "".join(parts)


class SpanTree:
    """
    Tree of sampled spans.

    Node 0 is the root. Nodes whose span is ``None`` stand for ancestors that
    were dropped by the sampler and whose identity is unknown.
    """

    def __init__(self) -> None:
        self.nodes: List[Optional[SpanRecord]] = []
        self.parents: List[int] = []
        self._children: Dict[int, List[int]] = defaultdict(list)

    def _add_node(self, parent: int, span: Optional[SpanRecord] = None) -> int:
        node = len(self.nodes)
        self.nodes.append(span)
        self.parents.append(parent)
        if parent != NO_PARENT:
            self._children[parent].append(node)
        return node

    @property
    def number_of_nodes(self) -> int:
        return len(self.nodes)

    def children(self, node: int) -> List[int]:
        return list(self._children.get(node, ()))

    def get_span(self, node: int) -> Optional[SpanRecord]:
        return self.nodes[node]

    def get_parent(self, node: int) -> int:
        return self.parents[node]

    def print_tree(
        self,
        label: Optional[Callable[[SpanRecord], str]] = None,
        indent: int = DEFAULT_INDENT,
        line_feed: str = DEFAULT_LINE_FEED,
    ) -> str:
        """Render the tree, placeholders for dropped ancestors are shown as ``?``."""
        label = label or (lambda span: span.name)

        def node_label(node: int) -> str:
            span = self.nodes[node]
            return UNKNOWN_ANCESTOR_LABEL if span is None else label(span)

        return print_structure(self.parents, node_label, indent, line_feed)

    def __repr__(self) -> str:
        return f"SpanTree(number_of_nodes={self.number_of_nodes})"


def _extract_trees_of_trace(spans: List[SpanRecord]) -> List[SpanTree]:
    index = create_span_index(spans)
    child_spans: Dict[str, List[SpanRecord]] = defaultdict(list)
    for span in spans:
        child_spans[get_ancestor_span_id(span)].append(span)

    result = []
    for root in spans:
        if get_ancestor_span_id(root) in index:
            continue
        tree = SpanTree()
        span_to_node = {root.span_id: tree._add_node(NO_PARENT, root)}
        buffer = deque(child_spans.get(root.span_id, ()))
        while buffer:
            span = buffer.popleft()
            parent = span_to_node[get_ancestor_span_id(span)]
            for _ in range(get_number_dropped_ancestors(span)):
                parent = tree._add_node(parent)
            span_to_node[span.span_id] = tree._add_node(parent, span)
            buffer.extend(child_spans.get(span.span_id, ()))
        result.append(tree)
    return result


def extract_trees(spans: Iterable[SpanRecord]) -> List[SpanTree]:
    """
    Rebuild the call trees described by a collection of sampled spans.

    Spans are grouped by trace. Every span whose ancestor is not part of the
    collection becomes the root of its own tree. Dropped ancestors between a
    span and its sampled ancestor are inserted as placeholder nodes.
    """
    traces: Dict[str, List[SpanRecord]] = defaultdict(list)
    for span in spans:
        traces[span.trace_id].append(span)
    result: List[SpanTree] = []
    for trace_spans in traces.values():
        result.extend(_extract_trees_of_trace(trace_spans))
    return result
