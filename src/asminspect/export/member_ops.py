from typing import ClassVar

from .models import FieldMetadata, MethodMetadata, TypeMetadata


class MemberUtils:
    """
    Static predicates deciding which metadata reaches the export, plus
    display-name normalization.
    """

    MODULE_TYPE_NAME: ClassVar[str] = "_Module_"
    GENERATED_PREFIX: ClassVar[str] = "<"
    BACKING_FIELD_MARKER: ClassVar[str] = "k__BackingField"
    SYNTHETIC_METHODS: ClassVar[frozenset[str]] = frozenset({"get_Il2CppType"})

    @staticmethod
    def is_exported_type(t: TypeMetadata, namespace: str | None = None) -> bool:
        if not t.is_public:
            return False
        if t.name == MemberUtils.MODULE_TYPE_NAME or t.is_generated:
            return False
        return not namespace or t.namespace == namespace

    @staticmethod
    def is_exported_field(f: FieldMetadata) -> bool:
        return f.is_public and not f.is_backing_field

    @staticmethod
    def is_exported_method(m: MethodMetadata) -> bool:
        return (
            m.is_public
            and m.accessor == "none"
            and not m.name.startswith(MemberUtils.GENERATED_PREFIX)
            and m.name not in MemberUtils.SYNTHETIC_METHODS
        )

    @staticmethod
    def simplify_type_name(full_name: str) -> str:
        """
        Strip the generic arity suffix and namespace qualification from a
        fully-qualified type name. For rendering only, never for lookups.
        """
        if not full_name:
            return full_name

        tick = full_name.find("`")
        if tick > 0:
            full_name = full_name[:tick]

        dot = full_name.rfind(".")
        if 0 <= dot < len(full_name) - 1:
            return full_name[dot + 1 :]

        return full_name
