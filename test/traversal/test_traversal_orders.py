import pytest

from phylotree import TreeError, parse_newick
from phylotree.traversal import iter_prepostorder, traverse


def names(nodes):
    return [node.name for node in nodes]


def test_preorder(named_tree):
    assert names(named_tree.traverse("preorder")) == ["root", "F", "E", "A", "B", "C", "D"]


def test_postorder(named_tree):
    assert names(named_tree.traverse("postorder")) == ["A", "B", "E", "C", "F", "D", "root"]


def test_levelorder_is_default(named_tree):
    expected = ["root", "F", "D", "E", "C", "A", "B"]
    assert names(named_tree.traverse("levelorder")) == expected
    assert names(named_tree.traverse()) == expected


def test_prepostorder(named_tree):
    visits = [(is_post, node.name) for is_post, node in named_tree.iter_prepostorder()]
    assert visits == [
        (False, "root"),
        (False, "F"),
        (False, "E"),
        (False, "A"),
        (False, "B"),
        (True, "E"),
        (False, "C"),
        (True, "F"),
        (False, "D"),
        (True, "root"),
    ]


def test_single_node_traversal():
    tree = parse_newick("A;")
    for strategy in ("preorder", "postorder", "levelorder"):
        assert names(tree.traverse(strategy)) == ["A"]
    assert list(iter_prepostorder(tree)) == [(False, tree)]


def test_is_leaf_fn_collapses_subtrees(named_tree):
    def collapse_e(node):
        return node.name == "E"

    assert names(named_tree.traverse("preorder", is_leaf_fn=collapse_e)) == [
        "root", "F", "E", "C", "D",
    ]
    assert names(named_tree.traverse("postorder", is_leaf_fn=collapse_e)) == [
        "E", "C", "F", "D", "root",
    ]
    assert names(named_tree.traverse("levelorder", is_leaf_fn=collapse_e)) == [
        "root", "F", "D", "E", "C",
    ]
    assert named_tree.get_leaf_names(is_leaf_fn=collapse_e) == ["E", "C", "D"]
    visits = [
        (is_post, node.name)
        for is_post, node in named_tree.iter_prepostorder(is_leaf_fn=collapse_e)
    ]
    assert (False, "E") in visits
    assert (True, "E") not in visits


def test_traversals_are_restartable(named_tree):
    iterator = named_tree.traverse("preorder")
    next(iterator)
    # A new call starts from the beginning, independent of the first one
    assert names(named_tree.traverse("preorder")) == ["root", "F", "E", "A", "B", "C", "D"]
    assert names(iterator) == ["F", "E", "A", "B", "C", "D"]
    assert list(iterator) == []


def test_unknown_strategy(named_tree):
    with pytest.raises(TreeError, match="Unknown traversal strategy"):
        named_tree.traverse("inorder")
    with pytest.raises(TreeError):
        traverse(named_tree, "random")


def test_descendants_exclude_start(named_tree):
    assert names(named_tree.get_descendants("preorder")) == ["F", "E", "A", "B", "C", "D"]
    leaf = named_tree.get_leaves()[0]
    assert leaf.get_descendants() == []


def test_leaves_in_preorder(named_tree):
    assert named_tree.get_leaf_names() == ["A", "B", "C", "D"]
    assert [leaf.name for leaf in named_tree.iter_leaves()] == ["A", "B", "C", "D"]
    assert list(named_tree.iter_leaf_names()) == ["A", "B", "C", "D"]


def test_search_nodes():
    tree = parse_newick("((A[&&NHX:color=red],B[&&NHX:color=blue])E,A)root;", format=1)
    assert len(tree.search_nodes(name="A")) == 2
    red = tree.search_nodes(name="A", color="red")
    assert len(red) == 1
    assert red[0].parent.name == "E"
    assert tree.search_nodes(name="Z") == []
    assert names(tree.search_nodes(length=1.0)) == ["root", "E", "A", "A", "B"]
    assert names(tree.get_leaves_by_name("A")) == ["A", "A"]
    assert next(tree.iter_search_nodes(color="blue")).name == "B"


def test_traversal_visits_every_node_once(basic_tree):
    preorder = list(basic_tree.traverse("preorder"))
    postorder = list(basic_tree.traverse("postorder"))
    levelorder = list(basic_tree.traverse("levelorder"))
    assert len(preorder) == len(postorder) == len(levelorder) == 7
    assert set(preorder) == set(postorder) == set(levelorder)
