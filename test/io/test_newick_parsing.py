import pytest

from phylotree import Node, NewickError, TreeError, parse_newick
from phylotree.parser import parse_metadata, split_token


def test_basic_parse_structure():
    tree = parse_newick("(A:1,(B:1,(C:1,D:1):0.5):0.5);", format=0)

    assert tree.is_root()
    assert len(tree.children) == 2
    leaf_a, internal = tree.children
    assert leaf_a.is_leaf()
    assert leaf_a.name == "A"
    assert leaf_a.length == 1.0

    assert internal.length == 0.5
    leaf_b, inner = internal.children
    assert leaf_b.name == "B"
    assert leaf_b.length == 1.0
    assert inner.length == 0.5
    assert [leaf.name for leaf in inner.children] == ["C", "D"]
    assert all(leaf.length == 1.0 for leaf in inner.children)


def test_from_newick_classmethod():
    tree = Node.from_newick("((A,B)E,C)root;", format=1)
    assert tree.name == "root"
    assert tree.get_leaf_names() == ["A", "B", "C"]


def test_defaults_for_missing_fields():
    tree = parse_newick("(A,B);")
    for node in tree.traverse():
        assert node.length == 1.0
        assert node.support == 1.0
    assert tree.name == ""


def test_root_length_is_read():
    tree = parse_newick("(A:1,B:2):0.5;")
    assert tree.length == 0.5


# ------------------------------------------------------------------
# Format codes
# ------------------------------------------------------------------


def test_format_0_numeric_internal_label_is_support():
    tree = parse_newick("(A:0.35,(B:0.72,(D:0.6,G:0.12)1:0.64)0.9:0.56);", format=0)
    internal = tree.children[1]
    assert internal.support == 0.9
    assert internal.name == ""
    assert internal.children[1].support == 1.0


def test_format_0_text_internal_label_is_name():
    tree = parse_newick("((A,B)clade,C)root;", format=0)
    assert tree.name == "root"
    assert tree.children[0].name == "clade"
    assert tree.children[0].support == 1.0


def test_format_0_quoted_number_stays_name():
    tree = parse_newick("((A,B)'0.9',C);", format=0, quoted_names=True)
    assert tree.children[0].name == "0.9"
    assert tree.children[0].support == 1.0


def test_format_1_internal_names():
    tree = parse_newick("(A:0.35,(B:0.72,(D:0.6,G:0.12)E:0.64)C:0.56);", format=1)
    assert tree.children[1].name == "C"
    assert tree.children[1].children[1].name == "E"
    assert tree.children[1].children[1].length == 0.64


def test_format_1_numeric_name_is_kept_as_name():
    tree = parse_newick("((A,B)95,C);", format=1)
    assert tree.children[0].name == "95"
    assert tree.children[0].support == 1.0


def test_format_2_supports_and_lengths():
    tree = parse_newick("(A:0.35,(B:0.72,(D:0.6,G:0.12)1:0.64)0.9:0.56);", format=2)
    assert tree.children[1].support == 0.9
    assert tree.children[1].length == 0.56


def test_format_2_requires_support_on_internal_nodes():
    with pytest.raises(NewickError, match="Missing internal label"):
        parse_newick("(A:1,(B:1,C:1):0.5);", format=2)


def test_format_2_rejects_non_numeric_support():
    with pytest.raises(NewickError, match="support"):
        parse_newick("(A:1,(B:1,C:1)X:0.5);", format=2)


def test_format_3_requires_internal_length():
    with pytest.raises(NewickError, match="Missing internal branch length"):
        parse_newick("((A:1,B:1)X,C:1)R;", format=3)


def test_format_3_root_length_is_optional():
    tree = parse_newick("((A:1,B:1)X:1,C:1)R;", format=3)
    assert tree.name == "R"
    assert tree.children[0].name == "X"


def test_format_requires_leaf_length():
    with pytest.raises(NewickError, match="Missing leaf branch length"):
        parse_newick("(A:1,B);", format=5)


def test_format_4_rejects_internal_data():
    tree = parse_newick("(A:0.35,(B:0.72,(D:0.6,G:0.12)));", format=4)
    assert tree.get_leaf_names() == ["A", "B", "D", "G"]
    with pytest.raises(NewickError, match="Unexpected internal branch length"):
        parse_newick("(A:0.35,(B:0.72,G:0.12):0.5);", format=4)
    with pytest.raises(NewickError, match="Unexpected internal label"):
        parse_newick("(A:0.35,(B:0.72,G:0.12)X);", format=4)


def test_format_5_internal_lengths():
    tree = parse_newick("(A:0.35,(B:0.72,(D:0.6,G:0.12):0.64):0.56);", format=5)
    assert tree.children[1].children[1].length == 0.64


def test_format_6_rejects_leaf_lengths():
    tree = parse_newick("(A,(B,(D,G):0.64):0.56);", format=6)
    assert tree.children[1].length == 0.56
    with pytest.raises(NewickError, match="Unexpected leaf branch length"):
        parse_newick("(A:1,(B,G):0.5);", format=6)


def test_format_7_and_8_names():
    tree7 = parse_newick("(A:0.35,(B:0.72,(D:0.6,G:0.12)E)C);", format=7)
    assert tree7.children[1].name == "C"
    tree8 = parse_newick("(A,(B,(D,G)E)C);", format=8)
    assert tree8.children[1].children[1].name == "E"
    with pytest.raises(NewickError):
        parse_newick("(A,(B,(D,G)E:1)C);", format=8)


def test_format_9_leaf_names_only():
    tree = parse_newick("(A,(B,(D,G)));", format=9)
    assert tree.get_leaf_names() == ["A", "B", "D", "G"]
    with pytest.raises(NewickError, match="Empty leaf node found"):
        parse_newick("(A,);", format=9)


def test_format_100_topology_only():
    tree = parse_newick("(,(,(,)));", format=100)
    assert len(tree) == 4
    assert len(list(tree.traverse())) == 7
    with pytest.raises(NewickError, match="Unexpected leaf label"):
        parse_newick("(A,(,));", format=100)


@pytest.mark.parametrize(
    "code, newick",
    [
        (2, "((A:1,B:1),C:1);"),
        (3, "((A:1,B:1),C:1);"),
        (7, "((A:1,B:1),C:1);"),
        (8, "((A,B),C);"),
    ],
)
def test_unlabelled_clades_accepted_in_every_format(code, newick):
    tree = parse_newick(newick, format=code)
    assert len(tree) == 3


def test_unknown_format_code():
    with pytest.raises(NewickError, match="Unsupported newick format"):
        parse_newick("(A,B);", format=11)


# ------------------------------------------------------------------
# Malformed input
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    "newick",
    [
        "(A,B",
        "(A,B)",
        "(A,B;",
        "(A,B));",
        "((A,B);",
        "(A,B);junk",
        "A,B;",
        "(A::1,B);",
        "(A:1:2,B);",
        "(A,B)C(D);",
        "(A[x=1,B);",
        "(A,B]);",
        "(A:x,B);",
        "(A:-1,B);",
        "(A:inf,B);",
    ],
)
def test_malformed_newick_is_rejected(newick):
    with pytest.raises(NewickError):
        parse_newick(newick)


def test_empty_input_is_rejected():
    with pytest.raises(NewickError, match="Empty newick string"):
        parse_newick("")
    with pytest.raises(NewickError):
        parse_newick("   \n ")


def test_non_string_input_is_rejected():
    with pytest.raises(NewickError):
        parse_newick(42)


def test_newick_error_is_a_tree_error():
    with pytest.raises(TreeError):
        parse_newick("(A,B")


def test_error_message_points_to_flags():
    with pytest.raises(NewickError) as excinfo:
        parse_newick("(A,B)C(D);")
    assert "quoted_names" in str(excinfo.value)


# ------------------------------------------------------------------
# Whitespace, quoting, metadata
# ------------------------------------------------------------------


def test_whitespace_and_line_breaks():
    tree = parse_newick("(\n  A : 1 ,\n\tB : 2\n) ;")
    assert tree.get_leaf_names() == ["A", "B"]
    assert [leaf.length for leaf in tree.children] == [1.0, 2.0]


def test_inner_spaces_in_names_are_kept():
    tree = parse_newick("(Homo sapiens:1,Pan troglodytes:1);")
    assert tree.get_leaf_names() == ["Homo sapiens", "Pan troglodytes"]


def test_quoted_names_with_reserved_characters():
    tree = parse_newick("('A,B':1,'it''s (x)':2,C:3);", quoted_names=True)
    assert tree.get_leaf_names() == ["A,B", "it's (x)", "C"]
    assert tree.children[1].length == 2.0


def test_quoted_name_errors():
    with pytest.raises(NewickError, match="Unterminated quoted label"):
        parse_newick("('A,B);", quoted_names=True)
    with pytest.raises(NewickError, match="after quoted label"):
        parse_newick("('A'x,B);", quoted_names=True)
    with pytest.raises(NewickError, match="quote inside label"):
        parse_newick("(x'A',B);", quoted_names=True)


def test_nhx_features():
    tree = parse_newick("(A:1[&&NHX:color=red:size=3],B:2[&&NHX:flag])X;", format=1)
    leaf_a, leaf_b = tree.children
    assert leaf_a.features == {"color": "red", "size": 3}
    assert leaf_a.length == 1.0
    assert leaf_b.features == {"flag": True}
    # Features are stored in the mapping only
    assert not hasattr(leaf_a, "color")


def test_generic_comment_features():
    tree = parse_newick("(A[color=red,size=3.5],B[label='x'])[posterior=0.9];")
    assert tree.children[0].features == {"color": "red", "size": 3.5}
    assert tree.children[1].features == {"label": "x"}
    assert tree.features == {"posterior": 0.9}


def test_features_are_read_in_every_format():
    tree = parse_newick("(A[&&NHX:k=1],B);", format=9)
    assert tree.children[0].get_feature("k") == 1


def test_split_token():
    assert split_token("size=3") == ("size", 3)
    assert split_token("name='x'") == ("name", "x")
    assert split_token("color=red") == ("color", "red")
    assert split_token("flag") == ("flag", True)
    assert split_token("eq=a=b") == ("eq", "a=b")


def test_parse_metadata():
    assert parse_metadata("&&NHX:S=human:E=1.1.1.1") == {"S": "human", "E": "1.1.1.1"}
    assert parse_metadata(" a=1, b=2 ") == {"a": 1, "b": 2}
    assert parse_metadata("") == {}


def test_failed_parse_returns_nothing():
    result = None
    with pytest.raises(NewickError):
        result = parse_newick("((A,B),(C,D);")
    assert result is None
