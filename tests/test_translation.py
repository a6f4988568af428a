"""Tests for translation stack reconstruction."""

import xml.etree.ElementTree as ET

import pytest

from ncbi_services.exceptions import TranslationStackCorruptedError, ValidationError
from ncbi_services.translation import (
    Operator,
    Term,
    build_ast,
    flatten,
    parse_translation_stack,
)


def T(text):
    return Term(term=text, field="All Fields", count=1, explode=True)


def Op(name, *operands):
    return Operator(operation=name, operands=tuple(operands))


A, B, C, D = T("A"), T("B"), T("C"), T("D")


def test_left_nested_or():
    """Test [A, B, OR, C, OR] folds to OR(OR(A, B), C)."""
    stack = [A, B, Op("OR"), C, Op("OR")]

    assert build_ast(stack) == Op("OR", Op("OR", A, B), C)


def test_operand_order_is_preserved():
    """Test the earlier operand stays first even for NOT."""
    assert build_ast([A, B, Op("NOT")]) == Op("NOT", A, B)


def test_unary_operators():
    """Test GROUP and RANGE take a single operand."""
    stack = [A, B, Op("OR"), Op("GROUP"), C, Op("AND")]
    assert build_ast(stack) == Op("AND", Op("GROUP", Op("OR", A, B)), C)

    assert build_ast([A, Op("RANGE")]) == Op("RANGE", A)


def test_single_term():
    """Test a lone term is its own tree."""
    assert build_ast([A]) == A


def test_empty_stack():
    """Test an empty stack has no tree."""
    assert build_ast([]) is None


def test_input_not_modified():
    """Test building leaves the caller's list untouched."""
    stack = [A, B, Op("AND")]
    build_ast(stack)
    assert stack == [A, B, Op("AND")]


@pytest.mark.parametrize(
    "stack",
    [
        [A, Op("OR")],
        [Op("AND")],
        [Op("GROUP")],
        [A, Op("OR"), Op("AND")],
        [A, B, Op("XOR")],
        [A, B, Op("AND"), Op("AND")],
        [A, Op("GROUP"), Op("OR")],
        [C, A, B, Op("OR"), Op("GROUP"), Op("NOT"), Op("AND")],
    ],
)
def test_corrupted_stack(stack):
    """Test operators without enough operands are corruption."""
    with pytest.raises(TranslationStackCorruptedError):
        build_ast(stack)


def test_deeply_nested_stack():
    """Test nesting depth is not limited by the recursion limit."""
    stack = [A] + [Op("GROUP")] * 5000 + [B, Op("AND")]

    tree = build_ast(stack)

    assert tree.operation == "AND"
    assert tree.operands[1] == B
    assert flatten(tree) == stack


def test_deeply_nested_corrupted_stack():
    """Test a long run of operators with no terms is corruption."""
    with pytest.raises(TranslationStackCorruptedError):
        build_ast([Op("GROUP")] * 5000)


def test_leftover_elements():
    """Test leftovers are ignored unless strict."""
    stack = [D, A, B, Op("AND")]

    assert build_ast(stack) == Op("AND", A, B)
    with pytest.raises(TranslationStackCorruptedError):
        build_ast(stack, strict=True)


@pytest.mark.parametrize(
    "stack",
    [
        [A],
        [A, B, Op("OR"), C, Op("OR")],
        [A, B, C, Op("AND"), Op("GROUP"), Op("OR"), D, Op("NOT")],
        [A, Op("RANGE"), B, Op("AND")],
    ],
)
def test_flatten_inverts_build(stack):
    """Test flattening a built tree gives back the original stack."""
    assert flatten(build_ast(stack)) == stack


def test_to_query():
    """Test infix rendering of a tree."""
    tree = build_ast([A, B, Op("OR"), Op("GROUP"), C, Op("AND")])
    assert tree.to_query() == "(A OR B) AND C"


STACK_XML = """<TranslationStack>
    <TermSet>
        <Term>"Science"[Journal]</Term>
        <Field>Journal</Field>
        <Count>162433</Count>
        <Explode>Y</Explode>
    </TermSet>
    <TermSet>
        <Term>"Science (80- )"[Journal]</Term>
        <Field>Journal</Field>
        <Count>10</Count>
        <Explode>N</Explode>
    </TermSet>
    <OP>OR</OP>
    <OP>GROUP</OP>
    <TermSet>
        <Term>2008[pdat]</Term>
        <Field>pdat</Field>
        <Count>828593</Count>
        <Explode>Y</Explode>
    </TermSet>
    <OP>AND</OP>
</TranslationStack>"""


def test_parse_translation_stack():
    """Test TermSet and OP elements are read in document order."""
    nodes = parse_translation_stack(ET.fromstring(STACK_XML))

    assert [type(n).__name__ for n in nodes] == [
        "Term", "Term", "Operator", "Operator", "Term", "Operator",
    ]
    assert nodes[0] == Term(term='"Science"[Journal]', field="Journal", count=162433, explode=True)
    assert nodes[1].explode is False
    assert nodes[5] == Operator(operation="AND")

    tree = build_ast(nodes)
    assert tree.operation == "AND"
    assert tree.operands[0].operation == "GROUP"
    assert tree.operands[1].term == "2008[pdat]"


def test_parse_bad_explode():
    """Test Explode values other than Y or N are rejected."""
    xml = STACK_XML.replace("<Explode>N</Explode>", "<Explode>maybe</Explode>")
    with pytest.raises(ValidationError):
        parse_translation_stack(ET.fromstring(xml))


def test_parse_bad_count():
    """Test non-numeric counts are rejected."""
    xml = STACK_XML.replace("<Count>10</Count>", "<Count>ten</Count>")
    with pytest.raises(ValidationError):
        parse_translation_stack(ET.fromstring(xml))


def test_parse_missing_stack():
    """Test an absent TranslationStack element yields no nodes."""
    assert parse_translation_stack(None) == []
