"""
ormsql query utilities — qualified-name parsing and dependency ordering.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.fields import Field

__all__ = [
    "parse_qualified_name",
    "resolve_qualified_field",
    "sort_model_names_by_dependency_order",
]


def parse_qualified_name(name: str) -> Tuple[Optional[str], List[str]]:
    """
    Split ``"Model:field.sub"`` into ``("Model", ["field", "sub"])``.

    A bare capitalised name is a model (``"User"`` -> ``("User", [])``);
    any other bare name is a field of an unspecified model.
    """
    if ":" in name:
        model_name, _, field_part = name.partition(":")
        field_names = [part for part in field_part.split(".") if part]
        return (model_name or None), field_names

    if name[:1].isupper():
        return name, []

    return None, [part for part in name.split(".") if part]


def resolve_qualified_field(name: str) -> "Field":
    """Look up the Field named by ``"Model:field"``, raising a fault if absent."""
    from ..models.registry import ModelRegistry
    from ..faults import FieldNotFoundFault, ModelNotFoundFault

    model_name, field_names = parse_qualified_name(name)
    if not model_name or not field_names:
        raise FieldNotFoundFault(model_name or "<unknown>", name)

    Model = ModelRegistry.get(model_name)
    if Model is None:
        raise ModelNotFoundFault(model_name)

    field = Model.get_field(field_names[0])
    if field is None:
        raise FieldNotFoundFault(model_name, field_names[0])

    return field


def sort_model_names_by_dependency_order(
    model_names: Sequence[str],
    get_dependencies: Callable[[str], Sequence[str]],
) -> List[str]:
    """
    Order model names so dependencies come first.

    Names are visited alphabetically so the result does not depend on the
    input order; dependencies outside ``model_names`` are ignored.
    """
    wanted = set(model_names)
    ordered: List[str] = []
    state: Dict[str, int] = {}

    def visit(name: str) -> None:
        if state.get(name):
            # 1 = in progress (cycle), 2 = done
            return

        state[name] = 1
        for dependency in sorted(set(get_dependencies(name))):
            if dependency != name and dependency in wanted:
                visit(dependency)

        state[name] = 2
        ordered.append(name)

    for name in sorted(wanted):
        visit(name)

    return ordered
