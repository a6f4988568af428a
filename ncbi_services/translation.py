"""
ESearch translation stacks and the query trees they encode.

ESearch reports how it parsed a query as a flat TranslationStack: TermSet
leaves and OP operators in postfix order, e.g.

    <TermSet>A</TermSet> <TermSet>B</TermSet> <OP>OR</OP>
    <TermSet>C</TermSet> <OP>OR</OP>

for (A OR B) OR C. build_ast() folds such a list back into a tree and
flatten() turns a tree back into the list.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict

from .exceptions import TranslationStackCorruptedError, ValidationError

logger = logging.getLogger(__name__)

# AND, OR and NOT are binary. GROUP and RANGE are unary as far as the
# responses show; the E-utilities documentation does not say.
OPERATOR_ARITY: Dict[str, int] = {
    "AND": 2,
    "OR": 2,
    "NOT": 2,
    "GROUP": 1,
    "RANGE": 1,
}


class Term(BaseModel):
    """A leaf of the translation stack."""
    model_config = ConfigDict(frozen=True)

    term: str
    field: str = ""
    count: int = 0
    explode: bool = False

    def to_query(self) -> str:
        return self.term


class Operator(BaseModel):
    """
    An operator of the translation stack.

    Operators read from the service have no operands; those produced by
    build_ast() hold them in query order.
    """
    model_config = ConfigDict(frozen=True)

    operation: str
    operands: Tuple["StackNode", ...] = ()

    def to_query(self) -> str:
        if self.operation == "GROUP" and len(self.operands) == 1:
            return f"({self.operands[0].to_query()})"
        if len(self.operands) == 1:
            return f"{self.operation} {self.operands[0].to_query()}"
        return f" {self.operation} ".join(op.to_query() for op in self.operands)


StackNode = Union[Term, Operator]
Operator.model_rebuild()


def _consume(stack: List[StackNode]) -> StackNode:
    """
    Pop the top of stack and return the complete subtree it roots.

    Open operators are kept on an explicit list rather than the call stack.
    """
    # (operation, arity, operands collected so far, last first)
    pending: List[Tuple[str, int, List[StackNode]]] = []
    while True:
        if not stack:
            raise TranslationStackCorruptedError()
        node = stack.pop()

        if isinstance(node, Operator):
            arity = OPERATOR_ARITY.get(node.operation)
            if arity is None:
                raise TranslationStackCorruptedError(
                    f"entrez: translation stack corrupted: unknown operator {node.operation!r}"
                )
            pending.append((node.operation, arity, []))
            continue

        subtree: StackNode = node
        while pending:
            operation, arity, operands = pending[-1]
            operands.append(subtree)
            if len(operands) < arity:
                break
            pending.pop()
            operands.reverse()
            subtree = Operator(operation=operation, operands=tuple(operands))
        else:
            return subtree


def build_ast(nodes: Sequence[StackNode], strict: bool = False) -> Optional[StackNode]:
    """
    Fold a translation stack into the tree rooted at its last element.

    The input is not modified.

    Args:
        nodes: Terms and operators in the order the service returned them
        strict: Also treat elements left over after the root is built as
            corruption

    Returns:
        The root node, or None for an empty stack

    Raises:
        TranslationStackCorruptedError: If an operator lacks operands or
            is unknown, or with strict=True if elements are left over
    """
    if not nodes:
        return None

    stack = list(nodes)
    root = _consume(stack)

    if stack:
        if strict:
            raise TranslationStackCorruptedError(
                f"entrez: translation stack corrupted: {len(stack)} unused elements"
            )
        logger.debug(f"Translation stack has {len(stack)} unused elements")
    return root


def flatten(node: StackNode) -> List[StackNode]:
    """Return the postfix translation stack that build_ast() folds into node."""
    nodes: List[StackNode] = []
    work: List[Tuple[StackNode, bool]] = [(node, False)]
    while work:
        current, expanded = work.pop()
        if isinstance(current, Term):
            nodes.append(current)
        elif expanded:
            nodes.append(Operator(operation=current.operation))
        else:
            work.append((current, True))
            work.extend((operand, False) for operand in reversed(current.operands))
    return nodes


def _parse_explode(text: str) -> bool:
    if text not in ("Y", "N"):
        raise ValidationError(f"entrez: bad boolean {text!r}")
    return text == "Y"


def _parse_term_set(elem: ET.Element) -> Term:
    values = {child.tag: (child.text or "") for child in elem}
    count = values.get("Count", "0").strip() or "0"
    try:
        count_value = int(count)
    except ValueError as e:
        raise ValidationError(f"entrez: bad count {count!r}") from e
    return Term(
        term=values.get("Term", ""),
        field=values.get("Field", ""),
        count=count_value,
        explode=_parse_explode(values.get("Explode", "N").strip()),
    )


def parse_translation_stack(elem: Optional[ET.Element]) -> List[StackNode]:
    """
    Read the TermSet and OP children of a TranslationStack element in
    document order.
    """
    if elem is None:
        return []
    nodes: List[StackNode] = []
    for child in elem:
        if child.tag == "TermSet":
            nodes.append(_parse_term_set(child))
        elif child.tag == "OP":
            nodes.append(Operator(operation=(child.text or "").strip()))
    return nodes
