"""
DB Description Updater - Model Scanner
Discovers entity types and their description metadata from a model root.

A model root is either:
- a plain class whose annotations declare entity collections
  (``persons: EntitySet[Person]``), or
- a SQLAlchemy declarative base, whose registry lists the mapped classes.
"""

import datetime
import enum
import functools
import inspect
import sys
import types
import uuid
from decimal import Decimal
from typing import Annotated, Any, ClassVar, List, Literal, Optional, Tuple, TypeVar, Union, get_args, get_origin, get_type_hints

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, Mapper, registry as sa_registry

from ..models.annotations import DbColumnMeta, get_table_meta
from ..models.entity import ColumnMeta, EntityCollection, EntityType
from ..models.reflection import capability_arguments, inherits_or_implements
from ..utils.logger import setup_logger
from .errors import ScanError

logger = setup_logger(__name__)

SCALAR_TYPES = (
    str, bytes, bool, int, float, complex, Decimal,
    datetime.date, datetime.datetime, datetime.time, datetime.timedelta,
    uuid.UUID, enum.Enum,
)

VIRTUAL_DESCRIPTORS = (property, functools.cached_property, hybrid_property)

# Framework base classes whose annotations never describe columns
SKIPPED_MODULES = ('builtins', 'typing')
SKIPPED_MODULE_PREFIXES = ('sqlalchemy.',)


class _Unresolved:
    """Annotation that could not be evaluated (typically a relationship target)."""

    def __init__(self, source: str):
        self.source = source

    def __repr__(self):
        return f"_Unresolved({self.source!r})"


def _unwrap_steps(hint: Any):
    """Yield hint and each layer under Annotated / Mapped / Optional."""
    while True:
        yield hint
        origin = get_origin(hint)
        if origin is Annotated or origin is Mapped:
            hint = get_args(hint)[0]
            continue
        if origin is Union or origin is types.UnionType:
            members = [arg for arg in get_args(hint) if arg is not type(None)]
            if len(members) == 1:
                hint = members[0]
                continue
        return


def unwrap_hint(hint: Any) -> Any:
    """Strip Annotated, Mapped and Optional wrappers."""
    for step in _unwrap_steps(hint):
        pass
    return step


def column_marker(hint: Any) -> Optional[DbColumnMeta]:
    """Find a DbColumnMeta inside any Annotated layer of hint."""
    for step in _unwrap_steps(hint):
        if get_origin(step) is Annotated:
            for extra in step.__metadata__:
                if isinstance(extra, DbColumnMeta):
                    return extra
    return None


def is_scalar_hint(hint: Any) -> bool:
    """
    Check whether a property type is stored as a plain column value.

    Text counts as scalar; every other reference type (classes, containers,
    unresolved forward references) does not.
    """
    hint = unwrap_hint(hint)
    origin = get_origin(hint)
    if origin is Literal:
        return True
    if origin is Union or origin is types.UnionType:
        return all(is_scalar_hint(arg) for arg in get_args(hint) if arg is not type(None))
    return isinstance(hint, type) and issubclass(hint, SCALAR_TYPES)


def _is_class_var(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation.startswith(('ClassVar', 'typing.ClassVar'))
    return annotation is ClassVar or get_origin(annotation) is ClassVar


def _is_framework_class(klass: type) -> bool:
    module = klass.__module__ or ''
    return klass is object or module in SKIPPED_MODULES or module.startswith(SKIPPED_MODULE_PREFIXES)


def _mapper_for(model_type: type) -> Optional[Mapper]:
    return sa_inspect(model_type, raiseerr=False)


def _descriptor_getter(descriptor: Any):
    if isinstance(descriptor, functools.cached_property):
        return descriptor.func
    return getattr(descriptor, 'fget', None)


def local_column(mapper: Mapper, key: str) -> Optional[Any]:
    """
    The column behind mapped attribute `key` that lives on the mapper's own table.

    Returns None when the attribute is not a column attribute, or when it only
    maps columns of another table (a joined-inheritance parent).
    """
    prop = mapper.column_attrs.get(key)
    if prop is None:
        return None
    for column in prop.columns:
        if getattr(column, 'table', None) is mapper.local_table:
            return column
    return None


class ModelScanner:
    """
    Discovers entity types from a model root.

    Pure introspection: nothing here touches the database.
    """

    def __init__(self, capability: type = EntityCollection):
        """
        Initialize scanner.

        Args:
            capability: Generic collection type that marks a root attribute as an entity set
        """
        self.capability = capability

    def scan(self, model_root: type) -> List[EntityType]:
        """
        Produce the ordered entity types declared by model_root.

        Raises:
            ScanError: If the model root or one of its entity types cannot be introspected
        """
        if not isinstance(model_root, type):
            raise ScanError(f"Model root must be a class, got {model_root!r}")

        if self._is_declarative_base(model_root):
            return self.scan_registry(model_root)

        entities = []
        for name, hint in self.class_annotations(model_root):
            if isinstance(hint, _Unresolved):
                continue
            hint = unwrap_hint(hint)
            if not inherits_or_implements(hint, self.capability):
                continue
            model_type = self.collected_type(model_root, name, hint)
            entities.append(self.describe(model_type))

        logger.debug("Model root scanned", extra={
            "model_root": model_root.__name__,
            "entity_count": len(entities)
        })
        return entities

    def scan_registry(self, declarative_base: type) -> List[EntityType]:
        """
        Produce entity types for every class mapped in a declarative base's registry.

        Order follows table declaration order in the base's MetaData. Subclasses
        sharing their parent's table (single-table inheritance) are skipped.
        """
        table_order = {table: position for position, table in
                       enumerate(declarative_base.metadata.tables.values())}
        mappers = [
            mapper for mapper in declarative_base.registry.mappers
            if mapper.inherits is None or mapper.local_table is not mapper.inherits.local_table
        ]
        mappers.sort(key=lambda m: (table_order.get(m.local_table, len(table_order)), m.class_.__name__))
        return [self.describe(mapper.class_) for mapper in mappers]

    def collected_type(self, model_root: type, name: str, hint: Any) -> type:
        """Entity type collected by the root attribute `name`."""
        arguments = capability_arguments(hint, self.capability)
        if not arguments or isinstance(arguments[0], TypeVar) or not isinstance(arguments[0], type):
            raise ScanError(
                f"{model_root.__name__}.{name}: cannot determine the entity type of {hint!r}"
            )
        return arguments[0]

    def describe(self, model_type: type) -> EntityType:
        """Build the EntityType record for one model type."""
        mapper = _mapper_for(model_type)
        table_meta = get_table_meta(model_type)

        table_description = table_meta.description if table_meta else None
        if table_description is None and mapper is not None:
            table_description = getattr(mapper.local_table, 'comment', None)

        return EntityType(
            model_type=model_type,
            name=model_type.__name__,
            table_description=table_description,
            table_name_override=table_meta.name if table_meta else None,
            columns=tuple(self.columns(model_type, mapper)),
        )

    def columns(self, model_type: type, mapper: Optional[Mapper] = None) -> List[ColumnMeta]:
        """Every public property of model_type, base class properties first."""
        columns = []
        seen = set()

        for name, hint in self.class_annotations(model_type):
            seen.add(name)
            descriptor = inspect.getattr_static(model_type, name, None)
            if isinstance(descriptor, VIRTUAL_DESCRIPTORS):
                columns.append(self._virtual_column(name, descriptor))
                continue
            columns.append(self._annotated_column(name, hint, mapper))

        for klass in reversed(model_type.__mro__):
            if _is_framework_class(klass):
                continue
            for name, descriptor in vars(klass).items():
                if name.startswith('_') or name in seen:
                    continue
                if isinstance(descriptor, VIRTUAL_DESCRIPTORS):
                    seen.add(name)
                    columns.append(self._virtual_column(name, inspect.getattr_static(model_type, name)))

        if mapper is not None:
            # Classically declared columns (``id = Column(Integer)``) carry no annotation
            for prop in mapper.column_attrs:
                if prop.key in seen or prop.key.startswith('_'):
                    continue
                seen.add(prop.key)
                column = local_column(mapper, prop.key)
                if column is not None:
                    columns.append(self._legacy_column(prop.key, column))

        return columns

    def class_annotations(self, cls: type) -> List[Tuple[str, Any]]:
        """
        Public, non-ClassVar annotations declared across cls's MRO, base first.

        String annotations are evaluated in their defining module; names that
        cannot be resolved are kept as _Unresolved reference types.
        """
        annotations = {}
        for klass in reversed(cls.__mro__):
            if _is_framework_class(klass):
                continue
            for name, annotation in self._own_annotations(klass).items():
                if name.startswith('_') or _is_class_var(annotation):
                    continue
                annotations[name] = annotation
        return list(annotations.items())

    def _own_annotations(self, klass: type) -> dict:
        """Annotations declared on klass itself, string annotations evaluated."""
        try:
            return inspect.get_annotations(klass, eval_str=True)
        except NameError:
            logger.debug("Evaluating annotations one by one", extra={"model_type": klass.__qualname__})
        except Exception as e:
            raise ScanError(f"Cannot read annotations of {klass.__qualname__}: {e}") from e

        module_globals = getattr(sys.modules.get(klass.__module__), '__dict__', {})
        own = {}
        for name, annotation in inspect.get_annotations(klass).items():
            if isinstance(annotation, str) and not name.startswith('_') and not _is_class_var(annotation):
                annotation = self._evaluate(klass, name, annotation, module_globals)
            own[name] = annotation
        return own

    def _evaluate(self, klass: type, name: str, source: str, module_globals: dict) -> Any:
        # A single-annotation stand-in class lets inspect evaluate just this entry
        holder = type(klass.__name__, (), {'__annotations__': {name: source}, '__module__': klass.__module__})
        try:
            return inspect.get_annotations(
                holder, globals=module_globals, locals=dict(vars(klass)), eval_str=True
            )[name]
        except NameError:
            return _Unresolved(source)
        except Exception as e:
            raise ScanError(
                f"Cannot evaluate annotation {klass.__qualname__}.{name}: {source!r}: {e}"
            ) from e

    def _annotated_column(self, name: str, hint: Any, mapper: Optional[Mapper]) -> ColumnMeta:
        marker = None if isinstance(hint, _Unresolved) else column_marker(hint)
        description = marker.description if marker else None
        persisted = not isinstance(hint, _Unresolved) and is_scalar_hint(hint)

        if mapper is not None:
            column = local_column(mapper, name)
            persisted = persisted and column is not None
            if description is None and column is not None:
                description = getattr(column, 'comment', None)

        return ColumnMeta(
            property_name=name,
            description=description,
            is_persisted=persisted,
            column_name_override=marker.name if marker else None,
        )

    def _virtual_column(self, name: str, descriptor: Any) -> ColumnMeta:
        description = None
        getter = _descriptor_getter(descriptor)
        if getter is not None:
            try:
                returns = get_type_hints(getter, include_extras=True).get('return')
            except NameError:
                returns = None
            marker = column_marker(returns) if returns is not None else None
            description = marker.description if marker else None
        return ColumnMeta(property_name=name, description=description, is_persisted=False)

    def _legacy_column(self, key: str, column: Any) -> ColumnMeta:
        try:
            persisted = is_scalar_hint(column.type.python_type)
        except NotImplementedError:
            persisted = False
        return ColumnMeta(property_name=key, description=getattr(column, 'comment', None), is_persisted=persisted)

    @staticmethod
    def _is_declarative_base(model_root: type) -> bool:
        return (
            isinstance(getattr(model_root, 'registry', None), sa_registry)
            and _mapper_for(model_root) is None
        )
