from docweave.parser.tree import NodeKind, Tree


def test_arena_records_kinds_and_parent_indices() -> None:
    tree = Tree.from_html('<div class="a b"><p>Hi <b>there</b></p><br></div>')

    [root] = [tree[i] for i in tree.roots]
    assert root.kind is NodeKind.DIV
    assert root.parent is None
    assert root.attrs["class"] == "a b"
    assert root.has_class("b")

    paragraph, br = tree.children(root)
    assert paragraph.kind is NodeKind.P
    assert tree.parent(paragraph) is root
    assert br.kind is NodeKind.BR
    assert br.children == ()

    text, bold = tree.children(paragraph)
    assert text.is_text and text.text == "Hi "
    assert bold.kind is NodeKind.STRONG
    assert tree.text_content(root) == "Hi there"


def test_heading_levels_and_special_kinds() -> None:
    tree = Tree.from_html('<h3>x</h3><h6>y</h6><span class="underline">u</span><span>s</span><i>i</i>')
    kinds = [(tree[i].kind, tree[i].level) for i in tree.roots]
    assert kinds == [
        (NodeKind.HEADING, 3),
        (NodeKind.OTHER, 0),
        (NodeKind.UNDERLINE, 0),
        (NodeKind.SPAN, 0),
        (NodeKind.EM, 0),
    ]


def test_comments_and_doctype_are_dropped() -> None:
    tree = Tree.from_html("<!DOCTYPE html><!-- note --><p>a</p><script>var x;</script>")
    assert [tree[i].kind for i in tree.roots] == [NodeKind.P, NodeKind.OTHER]
    script = tree[tree.roots[1]]
    assert script.children == ()


def test_siblings_of_root_and_nested_nodes() -> None:
    tree = Tree.from_html("<p>a</p><ul><li>b</li><li>c</li></ul>")
    ul = tree[tree.roots[1]]
    first_item = tree.children(ul)[0]
    assert tree.siblings(tree[tree.roots[0]]) == tree.roots
    assert tree.siblings(first_item) == ul.children


def test_walk_is_document_order() -> None:
    tree = Tree.from_html("<div><p>1</p><p>2<span>3</span></p></div><p>4</p>")
    texts = [n.text for root in tree.roots for n in tree.walk(tree[root]) if n.is_text]
    assert texts == ["1", "2", "3", "4"]
