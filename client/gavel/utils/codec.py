"""Schema-driven Borsh codec for program account records.

Records are declared the way pod types are: a class whose annotations name
physical field types.

    @record
    class Bid:
        key: PublicKey
        amount: U64

The decorator turns the class into a frozen dataclass and attaches a
``Schema`` built from the annotations. ``decode``, ``encode`` and ``byte_size``
are generic over that schema. Field order and byte order are part of the
program's wire contract and follow declaration order exactly.
"""
import dataclasses
import inspect
from enum import IntEnum
from hashlib import sha256
from typing import Optional as _Opt, Sequence, Tuple, Type

import borsh_construct as borsh
from construct import Bytes as _FixedBytes
from construct import ConstructError, FocusedSeq, If, Int8ul, OneOf, Rebuild, this
from solders.pubkey import Pubkey

from gavel.errors import DeserializationError, SerializationError

DISCRIMINATOR_SIZE = 8

# bool and option flags are a single byte that must be exactly 0 or 1
_FLAG = OneOf(Int8ul, [0, 1])


class FieldType:
    """A physical type: its construct layout plus conversions to Python values."""

    layout = None
    fixed_size: _Opt[int] = None

    @property
    def min_size(self) -> int:
        return self.fixed_size

    def size(self, value) -> int:
        return self.fixed_size

    def to_python(self, raw):
        return raw

    def to_wire(self, value):
        return value

    def coerce(self, value):
        return value


class _Int(FieldType):
    def __init__(self, name, layout, width):
        self.name = name
        self.layout = layout
        self.fixed_size = width
        self.max_value = (1 << (8 * width)) - 1

    def to_wire(self, value):
        if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= self.max_value:
            raise SerializationError(f"{value!r} does not fit in {self.name}")
        return value

    def __repr__(self):
        return self.name


U8 = _Int("U8", borsh.U8, 1)
U16 = _Int("U16", borsh.U16, 2)
U32 = _Int("U32", borsh.U32, 4)
U64 = _Int("U64", borsh.U64, 8)


class _Bool(FieldType):
    layout = _FLAG
    fixed_size = 1

    def to_python(self, raw):
        return bool(raw)

    def to_wire(self, value):
        if not isinstance(value, bool):
            raise SerializationError(f"expected bool, got {value!r}")
        return int(value)

    def __repr__(self):
        return "Bool"


Bool = _Bool()


class _PublicKey(FieldType):
    layout = _FixedBytes(32)
    fixed_size = 32

    def to_python(self, raw):
        return Pubkey.from_bytes(bytes(raw))

    def to_wire(self, value):
        if not isinstance(value, Pubkey):
            raise SerializationError(f"expected Pubkey, got {value!r}")
        return bytes(value)

    def __repr__(self):
        return "PublicKey"


PublicKey = _PublicKey()


class FixedBytes(FieldType):
    def __init__(self, length: int):
        self.length = length
        self.layout = _FixedBytes(length)
        self.fixed_size = length

    def to_python(self, raw):
        return bytes(raw)

    def coerce(self, value):
        return bytes(value)

    def to_wire(self, value):
        if len(value) != self.length:
            raise SerializationError(f"expected {self.length} bytes, got {len(value)}")
        return bytes(value)

    def __repr__(self):
        return f"Bytes[{self.length}]"


class Bytes:
    def __class_getitem__(cls, length: int) -> FixedBytes:
        return FixedBytes(length)


class EnumType(FieldType):
    """Single-byte tag mapped onto an ``IntEnum``."""

    layout = borsh.U8
    fixed_size = 1

    def __init__(self, enum_cls: Type[IntEnum]):
        self.enum_cls = enum_cls

    def to_python(self, raw):
        try:
            return self.enum_cls(raw)
        except ValueError as e:
            raise DeserializationError(f"unknown {self.enum_cls.__name__} tag {raw}") from e

    def coerce(self, value):
        return self.enum_cls(value)

    def to_wire(self, value):
        return int(self.enum_cls(value))

    def __repr__(self):
        return f"Enum[{self.enum_cls.__name__}]"


class Enum:
    def __class_getitem__(cls, enum_cls) -> EnumType:
        return EnumType(enum_cls)


class OptionType(FieldType):
    """One presence byte, followed by the inner value only when present."""

    def __init__(self, inner):
        self.inner = as_field_type(inner)
        self.layout = FocusedSeq(
            "value",
            "flag" / Rebuild(_FLAG, lambda ctx: 0 if ctx.value is None else 1),
            "value" / If(this.flag == 1, self.inner.layout),
        )

    @property
    def min_size(self) -> int:
        return 1

    def size(self, value) -> int:
        if value is None:
            return 1
        return 1 + self.inner.size(value)

    def to_python(self, raw):
        if raw is None:
            return None
        return self.inner.to_python(raw)

    def coerce(self, value):
        if value is None:
            return None
        return self.inner.coerce(value)

    def to_wire(self, value):
        if value is None:
            return None
        return self.inner.to_wire(value)

    def __repr__(self):
        return f"Option[{self.inner!r}]"


class Option:
    def __class_getitem__(cls, inner) -> OptionType:
        return OptionType(inner)


class VecType(FieldType):
    """u32 little-endian element count, followed by the elements."""

    def __init__(self, inner):
        self.inner = as_field_type(inner)
        self.layout = borsh.Vec(self.inner.layout)

    @property
    def min_size(self) -> int:
        return 4

    def size(self, value) -> int:
        return 4 + sum(self.inner.size(v) for v in value)

    def to_python(self, raw):
        return tuple(self.inner.to_python(v) for v in raw)

    def coerce(self, value):
        return tuple(self.inner.coerce(v) for v in value)

    def to_wire(self, value):
        return [self.inner.to_wire(v) for v in value]

    def __repr__(self):
        return f"Vec[{self.inner!r}]"


class Vec:
    def __class_getitem__(cls, inner) -> VecType:
        return VecType(inner)


class StructType(FieldType):
    """A nested record, laid out inline."""

    def __init__(self, record_cls):
        self.record_cls = record_cls

    @property
    def schema(self) -> "Schema":
        return self.record_cls.SCHEMA

    @property
    def layout(self):
        return self.schema.layout

    @property
    def fixed_size(self):
        return self.schema.fixed_size

    @property
    def min_size(self) -> int:
        return self.schema.min_size

    def size(self, value) -> int:
        return self.schema.size(value)

    def to_python(self, raw):
        return self.schema.from_container(raw)

    def to_wire(self, value):
        if not isinstance(value, self.record_cls):
            raise SerializationError(f"expected {self.record_cls.__name__}, got {value!r}")
        return self.schema.to_container(value)

    def __repr__(self):
        return self.record_cls.__name__


def as_field_type(annotation) -> FieldType:
    if isinstance(annotation, FieldType):
        return annotation
    if isinstance(annotation, type) and hasattr(annotation, "SCHEMA"):
        return StructType(annotation)
    if isinstance(annotation, type) and issubclass(annotation, IntEnum):
        return EnumType(annotation)
    raise TypeError(f"{annotation!r} is not a codec field type")


class Schema:
    """Ordered (name, physical type) pairs plus an optional discriminator."""

    def __init__(
        self,
        record_cls,
        fields: Sequence[Tuple[str, FieldType]],
        discriminator: _Opt[bytes] = None,
    ):
        self.record_cls = record_cls
        self.fields = tuple((name, as_field_type(t)) for name, t in fields)
        self.discriminator = discriminator
        self.layout = borsh.CStruct(*(name / t.layout for name, t in self.fields))

    @property
    def name(self) -> str:
        return self.record_cls.__name__

    @property
    def header_size(self) -> int:
        return len(self.discriminator) if self.discriminator else 0

    @property
    def fixed_size(self) -> _Opt[int]:
        """Size in bytes when every field is fixed-width, otherwise None."""
        total = 0
        for _, t in self.fields:
            if t.fixed_size is None:
                return None
            total += t.fixed_size
        return total

    @property
    def is_fixed(self) -> bool:
        return self.fixed_size is not None

    @property
    def min_size(self) -> int:
        return sum(t.min_size for _, t in self.fields)

    def size(self, value) -> int:
        return sum(t.size(getattr(value, name)) for name, t in self.fields)

    def from_container(self, container):
        values = {name: t.to_python(container[name]) for name, t in self.fields}
        return self.record_cls(**values)

    def to_container(self, value):
        return {name: t.to_wire(getattr(value, name)) for name, t in self.fields}

    def __repr__(self):
        fields = ", ".join(f"{name}: {t!r}" for name, t in self.fields)
        return f"Schema({self.name}; {fields})"


def decode(data: bytes, schema: Schema):
    """Decode ``data`` into a record of ``schema``. Trailing bytes are ignored."""
    data = bytes(data)
    header = schema.header_size
    if len(data) < header + schema.min_size:
        raise DeserializationError(
            f"{schema.name} needs at least {header + schema.min_size} bytes, got {len(data)}"
        )
    if header and data[:header] != schema.discriminator:
        raise DeserializationError(
            f"discriminator mismatch for {schema.name}: {data[:header].hex()} != {schema.discriminator.hex()}"
        )
    try:
        container = schema.layout.parse(data[header:])
    except ConstructError as e:
        raise DeserializationError(f"malformed {schema.name}: {e}") from e
    return schema.from_container(container)


def encode(value, schema: _Opt[Schema] = None) -> bytes:
    if schema is None:
        schema = type(value).SCHEMA
    try:
        body = schema.layout.build(schema.to_container(value))
    except ConstructError as e:
        raise SerializationError(f"cannot encode {schema.name}: {e}") from e
    return (schema.discriminator or b"") + body


def byte_size(value, schema: _Opt[Schema] = None) -> int:
    """Encoded length of ``value``, computed without encoding it."""
    if schema is None:
        schema = type(value).SCHEMA
    return schema.header_size + schema.size(value)


def account_discriminator(name: str) -> bytes:
    """Anchor-style account tag: ``sha256("account:<name>")[:8]``."""
    return sha256(f"account:{name}".encode()).digest()[:DISCRIMINATOR_SIZE]


def record(cls=None, /, *, discriminator: _Opt[bytes] = None):
    """Class decorator that makes ``cls`` a frozen, schema-backed record.

    Annotations that are codec field types (or other records) become wire
    fields, in declaration order. Any other annotation is a plain attribute
    outside the wire layout and must carry a default.
    """

    def wrap(cls):
        wire = []
        for name, annotation in inspect.get_annotations(cls).items():
            if isinstance(annotation, str):
                raise TypeError(f"{cls.__name__}.{name}: string annotations are not supported in records")
            try:
                wire.append((name, as_field_type(annotation)))
            except TypeError:
                continue

        user_post_init = cls.__dict__.get("__post_init__")

        def __post_init__(self):
            for name, t in self.SCHEMA.fields:
                object.__setattr__(self, name, t.coerce(getattr(self, name)))
            if user_post_init is not None:
                user_post_init(self)

        cls.__post_init__ = __post_init__
        cls = dataclasses.dataclass(frozen=True)(cls)
        cls.SCHEMA = Schema(cls, wire, discriminator=discriminator)

        @classmethod
        def from_bytes(kls, data: bytes):
            return decode(data, kls.SCHEMA)

        def to_bytes(self) -> bytes:
            return encode(self, self.SCHEMA)

        @classmethod
        def calc_size(kls):
            if not kls.SCHEMA.is_fixed:
                raise TypeError(f"{kls.__name__} is not fixed-size; use byte_size(value)")
            return kls.SCHEMA.header_size + kls.SCHEMA.fixed_size

        cls.from_bytes = from_bytes
        cls.to_bytes = to_bytes
        cls.calc_size = calc_size
        cls.byte_size = lambda self: byte_size(self, self.SCHEMA)
        return cls

    if cls is None:
        return wrap
    return wrap(cls)


def field_offset(schema: Schema, name: str) -> int:
    """Byte offset of ``name`` when every preceding field is fixed-width."""
    offset = schema.header_size
    for field_name, t in schema.fields:
        if field_name == name:
            return offset
        if t.fixed_size is None:
            raise TypeError(f"offset of {name} in {schema.name} depends on runtime values")
        offset += t.fixed_size
    raise KeyError(name)


__all__ = [
    "U8",
    "U16",
    "U32",
    "U64",
    "Bool",
    "PublicKey",
    "Bytes",
    "Enum",
    "Option",
    "Vec",
    "Schema",
    "record",
    "decode",
    "encode",
    "byte_size",
    "account_discriminator",
    "field_offset",
]
