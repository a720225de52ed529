"""
Decoder for ECMA-335 (Partition II, 23.2) signature blobs.

Renders types as fully-qualified names, e.g.
``System.Collections.Generic.Dictionary`2<System.String,System.Int32>``,
``System.Byte[]``, ``System.Int32&``. Generic parameters render as their
declared names when a GenericContext supplies them, otherwise as ``!0``
(type) and ``!!0`` (method).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Mapping, Protocol

from dnfile.utils import read_compressed_int


class SignatureError(ValueError):
    pass


class TypeNameResolver(Protocol):
    def type_def_name(self, index: int) -> str: ...

    def type_ref_name(self, index: int) -> str: ...

    def type_spec_blob(self, index: int) -> bytes: ...


@dataclass(frozen=True)
class GenericContext:
    """Declared generic parameter names of the enclosing type and method, by number."""

    type_params: Mapping[int, str] = field(default_factory=dict)
    method_params: Mapping[int, str] = field(default_factory=dict)


NO_CONTEXT = GenericContext()


# Element types
VOID = 0x01
PTR = 0x0F
BYREF = 0x10
VALUETYPE = 0x11
CLASS = 0x12
VAR = 0x13
ARRAY = 0x14
GENERICINST = 0x15
FNPTR = 0x1B
SZARRAY = 0x1D
MVAR = 0x1E
CMOD_REQD = 0x1F
CMOD_OPT = 0x20
SENTINEL = 0x41
PINNED = 0x45

# Calling convention bits
FIELD = 0x06
GENERIC = 0x10


class BlobReader:
    """Sequential reader over a signature blob."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    @property
    def at_end(self) -> bool:
        return self._pos >= len(self._data)

    def peek(self) -> int:
        if self.at_end:
            raise SignatureError("Unexpected end of signature blob")
        return self._data[self._pos]

    def byte(self) -> int:
        b = self.peek()
        self._pos += 1
        return b

    def compressed(self) -> int:
        """Compressed unsigned integer (II.23.2)."""
        lead = self.peek()
        try:
            decoded = read_compressed_int(self._data[self._pos : self._pos + 4])
        except IndexError:
            decoded = None
        if decoded is None or self._pos + decoded[1] > len(self._data):
            raise SignatureError(f"Invalid compressed integer at lead byte 0x{lead:02x}")
        value, length = decoded
        self._pos += length
        return value

    def compressed_signed(self) -> int:
        start = self._pos
        raw = self.compressed()
        width = self._pos - start
        value = raw >> 1
        if raw & 1:
            value -= {1: 0x40, 2: 0x2000, 4: 0x10000000}[width]
        return value


class SignatureDecoder:
    PRIMITIVES: ClassVar[dict[int, str]] = {
        0x01: "System.Void",
        0x02: "System.Boolean",
        0x03: "System.Char",
        0x04: "System.SByte",
        0x05: "System.Byte",
        0x06: "System.Int16",
        0x07: "System.UInt16",
        0x08: "System.Int32",
        0x09: "System.UInt32",
        0x0A: "System.Int64",
        0x0B: "System.UInt64",
        0x0C: "System.Single",
        0x0D: "System.Double",
        0x0E: "System.String",
        0x16: "System.TypedReference",
        0x18: "System.IntPtr",
        0x19: "System.UIntPtr",
        0x1C: "System.Object",
    }

    def __init__(self, resolver: TypeNameResolver) -> None:
        self._resolver = resolver

    def field_type(self, blob: bytes, context: GenericContext = NO_CONTEXT) -> str:
        r = BlobReader(blob)
        if r.byte() & 0x0F != FIELD:
            raise SignatureError("Not a field signature")
        return self._type(r, context)

    def method_types(
        self, blob: bytes, context: GenericContext = NO_CONTEXT
    ) -> tuple[str, list[str]]:
        """Return type and parameter types of a MethodDefSig, in order."""
        return self._method(BlobReader(blob), context)

    def type_spec(self, blob: bytes, context: GenericContext = NO_CONTEXT) -> str:
        return self._type(BlobReader(blob), context)

    # --- Private Helpers ---

    def _method(self, r: BlobReader, ctx: GenericContext) -> tuple[str, list[str]]:
        conv = r.byte()
        if conv & GENERIC:
            r.compressed()
        count = r.compressed()
        ret = self._type(r, ctx)

        params: list[str] = []
        while len(params) < count:
            if r.peek() == SENTINEL:
                r.byte()
                continue
            params.append(self._type(r, ctx))
        return ret, params

    def _type(self, r: BlobReader, ctx: GenericContext) -> str:
        while r.peek() in (CMOD_REQD, CMOD_OPT, PINNED):
            if r.byte() != PINNED:
                r.compressed()

        et = r.byte()
        if et in self.PRIMITIVES:
            return self.PRIMITIVES[et]
        if et in (CLASS, VALUETYPE):
            return self._type_def_or_ref(r.compressed(), ctx)
        if et == SZARRAY:
            return f"{self._type(r, ctx)}[]"
        if et == PTR:
            return f"{self._type(r, ctx)}*"
        if et == BYREF:
            return f"{self._type(r, ctx)}&"
        if et == VAR:
            number = r.compressed()
            return ctx.type_params.get(number, f"!{number}")
        if et == MVAR:
            number = r.compressed()
            return ctx.method_params.get(number, f"!!{number}")
        if et == ARRAY:
            return self._array(r, ctx)
        if et == GENERICINST:
            r.byte()
            base = self._type_def_or_ref(r.compressed(), ctx)
            args = [self._type(r, ctx) for _ in range(r.compressed())]
            return f"{base}<{','.join(args)}>"
        if et == FNPTR:
            ret, params = self._method(r, ctx)
            return f"method {ret} *({','.join(params)})"
        raise SignatureError(f"Unsupported element type 0x{et:02x}")

    def _array(self, r: BlobReader, ctx: GenericContext) -> str:
        element = self._type(r, ctx)
        rank = r.compressed()
        for _ in range(r.compressed()):
            r.compressed()
        for _ in range(r.compressed()):
            r.compressed_signed()
        return f"{element}[{',' * max(rank - 1, 0)}]"

    def _type_def_or_ref(self, coded: int, ctx: GenericContext) -> str:
        tag, index = coded & 0x03, coded >> 2
        if tag == 0:
            return self._resolver.type_def_name(index)
        if tag == 1:
            return self._resolver.type_ref_name(index)
        if tag == 2:
            return self.type_spec(self._resolver.type_spec_blob(index), ctx)
        raise SignatureError(f"Invalid TypeDefOrRef tag {tag}")
