import logging

import pytest

from phylotree import Node, parse_newick


def pytest_configure(config):
    """Set up test environment before tests run."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("phylotree").setLevel(logging.DEBUG)


@pytest.fixture
def basic_tree() -> Node:
    # (A:1,(B:1,(C:1,D:1):0.5):0.5);
    return parse_newick("(A:1,(B:1,(C:1,D:1):0.5):0.5);")


@pytest.fixture
def named_tree() -> Node:
    #            /-A
    #         /E|
    #      /F|   \-B
    #     |  |
    # root|   \-C
    #     |
    #      \-D
    return parse_newick("(((A,B)E,C)F,D)root;", format=1)


@pytest.fixture(scope="session")
def check_consistency():
    """Return a checker asserting that parent and children links agree."""

    def _check(tree: Node) -> None:
        seen = set()
        for node in tree.traverse("preorder"):
            assert node not in seen, f"{node!r} reachable twice"
            seen.add(node)
            for child in node.children:
                assert child.parent is node, f"{child!r} does not point to {node!r}"

    return _check
