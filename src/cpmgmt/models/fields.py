"""Descriptors for detail-gated, change-tracked object fields."""

from __future__ import annotations

import ipaddress
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, overload

from pydantic import IPvAnyAddress, TypeAdapter

from cpmgmt.models.enums import DetailLevel

if TYPE_CHECKING:
    from cpmgmt.models.reference import ServerStateContext

type Decoder = Callable[[object, ServerStateContext | None], object]
type Encoder = Callable[[Any], object]
type IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

_IP_ADDRESS = TypeAdapter(IPvAnyAddress)
_INT = TypeAdapter(int)
_BOOL = TypeAdapter(bool)


class TrackedField[T]:
    """A property that is gated on read and recorded as changed on write.

    Reads go through ``instance.test_detail_level(minimum)`` and return ``None``
    when the gate says the value is not available. Writes are never gated.
    ``read_only`` fields can only be populated from server data.
    ``nested`` marks values that track their own changes (see
    ``SimpleChangeTracking``); the owner treats them as child trackables.
    ``set_key`` names the value in set-* calls when it differs from the
    add-* key (``new-name``, ``new-position``).
    """

    def __init__(
        self,
        key: str,
        *,
        minimum: DetailLevel = DetailLevel.STANDARD,
        decode: Decoder | None = None,
        encode: Encoder | None = None,
        read_only: bool = False,
        nested: bool = False,
        set_key: str | None = None,
    ):
        self.key = key
        self.set_key = set_key or key
        self.minimum = minimum
        self.decode = decode
        self.encode = encode
        self.read_only = read_only
        self.nested = nested
        self.name = key
        self.attr = f"_{key}_value"

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self.attr = f"_{name}_value"

    @overload
    def __get__(self, instance: None, owner: type | None = None) -> TrackedField[T]: ...

    @overload
    def __get__(self, instance: object, owner: type | None = None) -> T | None: ...

    def __get__(self, instance: Any, owner: type | None = None) -> TrackedField[T] | T | None:
        if instance is None:
            return self
        if not instance.test_detail_level(self.minimum):
            return None
        return self.raw(instance)

    def __set__(self, instance: Any, value: T | None) -> None:
        if self.read_only and not instance.is_deserializing:
            raise AttributeError(f"'{self.name}' is read-only")
        instance.__dict__[self.attr] = value
        instance.on_property_changed(self.name)

    def raw(self, instance: Any) -> T | None:
        """Stored value, bypassing the detail-level gate."""

        return instance.__dict__.get(self.attr)

    def load(self, instance: Any, value: object, context: ServerStateContext | None) -> None:
        if value is not None and self.decode is not None:
            value = self.decode(value, context)
        self.__set__(instance, value)  # type: ignore[arg-type]

    def dump(self, instance: Any) -> object:
        value = self.raw(instance)
        if value is None:
            return None
        if self.encode is not None:
            return self.encode(value)
        return encode_value(value)


def encode_value(value: object) -> object:
    if isinstance(value, ipaddress.IPv4Address | ipaddress.IPv6Address):
        return str(value)
    to_payload = getattr(value, "to_payload", None)
    if callable(to_payload):
        return to_payload()
    membership_id = getattr(value, "membership_id", None)
    if callable(membership_id):
        return membership_id()
    return value


def decode_ip_address(value: object, context: ServerStateContext | None) -> IPAddress | None:
    del context
    text = str(value).strip()
    if not text:
        return None
    return _IP_ADDRESS.validate_python(text)


def decode_int(value: object, context: ServerStateContext | None) -> int | None:
    del context
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    return _INT.validate_python(value)


def decode_str(value: object, context: ServerStateContext | None) -> str:
    del context
    return str(value)


def decode_bool(value: object, context: ServerStateContext | None) -> bool:
    del context
    if isinstance(value, str):
        value = value.strip()
    return _BOOL.validate_python(value)


def decode_reference(value: object, context: ServerStateContext | None) -> object:
    """Nested object or bare uid, resolved through the apply context when there is one."""

    if context is None:
        return value
    return context.reference(value)


def coerce_ip_address(value: object) -> IPAddress | None:
    """Accept strings on assignment so callers can write ``host.ipv4_address = "10.0.0.1"``."""

    if value is None or isinstance(value, ipaddress.IPv4Address | ipaddress.IPv6Address):
        return value
    return _IP_ADDRESS.validate_python(str(value).strip())


class IPAddressField(TrackedField[IPAddress]):
    """IP address field that also accepts its string form on assignment."""

    def __init__(self, key: str, *, minimum: DetailLevel = DetailLevel.STANDARD):
        super().__init__(key, minimum=minimum, decode=decode_ip_address)

    def __set__(self, instance: Any, value: IPAddress | str | None) -> None:  # type: ignore[override]
        super().__set__(instance, coerce_ip_address(value))
