"""
Generic type hierarchy helpers.

Used by the scanner to decide whether a model-root attribute is a typed entity
collection, and which entity type it collects:

    >>> inherits_or_implements(EntitySet[Person], EntityCollection)
    True
    >>> capability_arguments(EntitySet[Person], EntityCollection)
    (Person,)
"""

from typing import Any, Dict, Optional, Tuple, TypeVar, get_args, get_origin


def resolve_generic_definition(tp: Any) -> Any:
    """Return the generic definition of a parameterized type, or tp unchanged."""
    origin = get_origin(tp)
    return origin if origin is not None else tp


def _declared_bases(cls: type) -> Tuple[Any, ...]:
    # __orig_bases__ keeps the parameterized form; only trust the class's own copy
    return cls.__dict__.get('__orig_bases__', cls.__bases__)


def _base_type(cls: type) -> Optional[type]:
    bases = _declared_bases(cls)
    if not bases:
        return None
    return resolve_generic_definition(bases[0])


def _has_any_capability(parent: type, cls: type) -> bool:
    for base in _declared_bases(cls):
        candidate = resolve_generic_definition(base)
        if candidate is parent:
            return True
        if parent in getattr(candidate, '__mro__', ()):
            return True
    return False


def inherits_or_implements(child: Any, parent: Any) -> bool:
    """
    Check whether child derives from the generic capability parent.

    Both sides are normalized to their generic definitions, so
    ``EntitySet[Person]``, ``EntitySet`` and a subclass declared as
    ``class PersonSet(EntitySet[Person])`` all match ``EntityCollection``.
    The primary base chain is walked up to (not including) ``object``; at
    each step every declared base, and everything it derives from, is
    checked as well.

    Args:
        child: Candidate type or parameterized alias
        parent: Capability type or parameterized alias

    Returns:
        True on the first match, False once the chain is exhausted
    """
    parent = resolve_generic_definition(parent)
    current = resolve_generic_definition(child)

    while isinstance(current, type) and current is not object:
        if current is parent or _has_any_capability(parent, current):
            return True
        current = _base_type(current)

    return False


def capability_arguments(tp: Any, capability: type,
                         _bindings: Optional[Dict[TypeVar, Any]] = None) -> Optional[Tuple[Any, ...]]:
    """
    Type arguments that tp supplies to capability, following type variables
    through every level of inheritance.

    Returns:
        Tuple of arguments (possibly still TypeVars when tp is unparameterized),
        or None when tp does not derive from capability
    """
    bindings = _bindings or {}
    origin = resolve_generic_definition(tp)
    if not isinstance(origin, type):
        return None

    args = tuple(
        bindings.get(arg, arg) if isinstance(arg, TypeVar) else arg
        for arg in get_args(tp)
    )
    if origin is capability:
        return args or tuple(getattr(origin, '__parameters__', ()))

    local = dict(zip(getattr(origin, '__parameters__', ()), args))
    for base in _declared_bases(origin):
        found = capability_arguments(base, capability, local)
        if found is not None:
            return found
    return None
