"""Tests for tree generation, traversal and rendering."""

import pytest

from consistent_sampling.context import (
    NUMBER_DROPPED_ANCESTORS_KEY,
    SAMPLED_ANCESTOR_SPAN_ID_KEY,
    to_trace_state,
)
from consistent_sampling.errors import ValidationError
from consistent_sampling.estimation import (
    NO_PARENT,
    create_balanced_binary_tree,
    create_balanced_tree,
    create_chain,
    extract_trees,
    generate_random_tree,
    get_level,
    iterate_depth_first_order,
    print_structure,
)
from consistent_sampling.tracer import SpanRecord

TRACE_ID = "4bf92f3577b34da6a3ce929d0e0e4736"


def children_of(parents, node):
    return [child for child, parent in enumerate(parents) if parent == node]


def test_create_balanced_binary_tree():
    parents = create_balanced_binary_tree(10)
    assert parents == [NO_PARENT, 0, 0, 1, 1, 2, 2, 3, 3, 4]
    assert children_of(parents, 0) == [1, 2]
    assert children_of(parents, 4) == [9]
    assert children_of(parents, 5) == []


def test_create_chain():
    parents = create_chain(10)
    assert parents == [NO_PARENT] + list(range(9))


def test_create_empty_tree():
    assert create_balanced_tree(0, 3) == []
    assert generate_random_tree(0, 0) == []
    assert list(iterate_depth_first_order([])) == []
    assert print_structure([]) == ""


@pytest.mark.parametrize("nodes, children", [(-1, 2), (5, 0)])
def test_invalid_tree_shape(nodes, children):
    with pytest.raises(ValidationError):
        create_balanced_tree(nodes, children)


def test_generate_random_tree():
    parents = generate_random_tree(0, 47)
    assert len(parents) == 47
    assert parents[0] == NO_PARENT
    assert all(0 <= parent < node for node, parent in enumerate(parents) if node > 0)
    assert generate_random_tree(0, 47) == parents
    assert sorted(iterate_depth_first_order(parents)) == list(range(47))


def test_get_level():
    parents = create_balanced_binary_tree(17)
    expected = [0, 1, 1, 2, 2, 2, 2, 3, 3, 3, 3, 3, 3, 3, 3, 4, 4]
    assert [get_level(parents, node) for node in range(17)] == expected
    with pytest.raises(ValidationError):
        get_level(parents, 17)


def test_depth_first_order():
    parents = create_balanced_binary_tree(7)
    assert list(iterate_depth_first_order(parents)) == [0, 1, 3, 4, 2, 5, 6]


def test_print_binary_tree():
    expected = "\n".join([
        "",
        "0",
        "|---1",
        "|   |---3",
        "|   |   |---7",
        "|   |   |   |---15",
        "|   |   |   |   |---31",
        "|   |   |   |   '---32",
        "|   |   |   '---16",
        "|   |   |       |---33",
        "|   |   |       '---34",
        "|   |   '---8",
        "|   |       |---17",
        "|   |       |   |---35",
        "|   |       |   '---36",
        "|   |       '---18",
        "|   |           |---37",
        "|   |           '---38",
        "|   '---4",
        "|       |---9",
        "|       |   |---19",
        "|       |   |   |---39",
        "|       |   |   '---40",
        "|       |   '---20",
        "|       |       |---41",
        "|       |       '---42",
        "|       '---10",
        "|           |---21",
        "|           |   |---43",
        "|           |   '---44",
        "|           '---22",
        "|               |---45",
        "|               '---46",
        "'---2",
        "    |---5",
        "    |   |---11",
        "    |   |   |---23",
        "    |   |   |   |---47",
        "    |   |   |   '---48",
        "    |   |   '---24",
        "    |   |       '---49",
        "    |   '---12",
        "    |       |---25",
        "    |       '---26",
        "    '---6",
        "        |---13",
        "        |   |---27",
        "        |   '---28",
        "        '---14",
        "            |---29",
        "            '---30",
    ])
    assert print_structure(create_balanced_binary_tree(50)) == expected


def test_print_chain():
    expected = "\n0" + "".join(
        "\n" + " " * (4 * (k - 1)) + "'---" + str(k) for k in range(1, 15)
    )
    assert print_structure(create_chain(15)) == expected


def test_print_ternary_tree():
    expected = "\n".join([
        "",
        "0",
        "|---1",
        "|   |---4",
        "|   |   |---13",
        "|   |   |---14",
        "|   |   '---15",
        "|   |---5",
        "|   |   |---16",
        "|   |   |---17",
        "|   |   '---18",
        "|   '---6",
        "|       |---19",
        "|       '---20",
        "|---2",
        "|   |---7",
        "|   |---8",
        "|   '---9",
        "'---3",
        "    |---10",
        "    |---11",
        "    '---12",
    ])
    assert print_structure(create_balanced_tree(21, 3)) == expected


def test_print_with_custom_layout():
    rendered = print_structure(create_chain(3), lambda node: f"n{node}", indent=2, line_feed="/")
    assert rendered == "/n0/'-n1/  '-n2"
    with pytest.raises(ValidationError):
        print_structure(create_chain(3), indent=0)


def test_print_span_tree_with_placeholder():
    root = SpanRecord(trace_id=TRACE_ID, span_id="000000000000000a", name="a")
    # b was dropped, c links to a across one unknown ancestor
    c = SpanRecord(
        trace_id=TRACE_ID,
        span_id="000000000000000c",
        parent_span_id="000000000000000b",
        name="c",
        parent_trace_state=to_trace_state({
            NUMBER_DROPPED_ANCESTORS_KEY: "1",
            SAMPLED_ANCESTOR_SPAN_ID_KEY: "000000000000000a",
        }),
    )
    d = SpanRecord(
        trace_id=TRACE_ID,
        span_id="000000000000000d",
        parent_span_id="000000000000000a",
        name="d",
    )

    (tree,) = extract_trees([root, c, d])
    assert tree.print_tree() == "\na\n|---?\n|   '---c\n'---d"
    assert tree.print_tree(lambda span: span.span_id[-1].upper()) == (
        "\nA\n|---?\n|   '---C\n'---D"
    )
