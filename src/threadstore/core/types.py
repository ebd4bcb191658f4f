"""
Core type definitions for threadstore.

These types describe what flows between RecordStore and a DatabaseClient:
- ThreadID, ThreadInfo: thread identity
- Record, Astronaut: collection instances
- Query, Criterion: find filters
- ActionType, ListenFilter, ListenEvent: change notifications
- KeyInfo: Hub credentials
"""

import base64
import os
from enum import Enum
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from threadstore.core.exceptions import InvalidThreadIDError


# ============================================
# Thread Identity
# ============================================

class ThreadVariant(int, Enum):
    """ThreadID variant codes."""
    RAW = 0x55
    ACCESS_CONTROLLED = 0x70


THREAD_ID_VERSION = 0x01
_MULTIBASE_BASE32 = "b"


class ThreadID:
    """
    Opaque thread identifier.

    String form is multibase base32: a leading ``b`` followed by the lowercase,
    unpadded base32 encoding of ``version | variant | random bytes``.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: bytes):
        if len(raw) < 3:
            raise InvalidThreadIDError("thread id is too short")
        if raw[0] != THREAD_ID_VERSION:
            raise InvalidThreadIDError(f"unsupported thread id version {raw[0]}")
        try:
            ThreadVariant(raw[1])
        except ValueError:
            raise InvalidThreadIDError(f"unknown thread id variant {raw[1]:#x}") from None
        self._raw = bytes(raw)

    @classmethod
    def from_string(cls, value: str) -> "ThreadID":
        """Decode the string form returned by the Hub."""
        if not value or not value.startswith(_MULTIBASE_BASE32):
            raise InvalidThreadIDError(f"not a base32 multibase thread id: {value!r}")
        body = value[1:].upper()
        body += "=" * (-len(body) % 8)
        try:
            raw = base64.b32decode(body)
        except ValueError as e:
            raise InvalidThreadIDError(f"invalid thread id encoding: {value!r}") from e
        return cls(raw)

    @classmethod
    def random(cls, variant: ThreadVariant = ThreadVariant.RAW, size: int = 32) -> "ThreadID":
        """Generate a new random ThreadID."""
        return cls(bytes([THREAD_ID_VERSION, variant.value]) + os.urandom(size))

    @property
    def variant(self) -> ThreadVariant:
        return ThreadVariant(self._raw[1])

    def to_bytes(self) -> bytes:
        return self._raw

    def __str__(self) -> str:
        encoded = base64.b32encode(self._raw).decode("ascii").rstrip("=").lower()
        return _MULTIBASE_BASE32 + encoded

    def __repr__(self) -> str:
        return f"ThreadID({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ThreadID):
            return self._raw == other._raw
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._raw)


class ThreadInfo(BaseModel):
    """
    Response of a thread lookup by name.

    ``id`` is the string form only; convert it with ``ThreadID.from_string``
    before passing it to any record call.
    """

    id: str
    name: str = ""


# ============================================
# Records
# ============================================

class Record(BaseModel):
    """A schemaless collection instance. Unknown fields are kept."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(default="", alias="_id")
    """Empty until the store assigns one on creation."""

    def to_instance(self) -> dict[str, Any]:
        """Wire form sent to the database (``_id`` key)."""
        return self.model_dump(by_alias=True)


class Astronaut(Record):
    """Example domain record."""

    name: str
    missions: int = 0


# ============================================
# Queries
# ============================================

class Operation(str, Enum):
    """Comparison operators supported in a Criterion."""
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"


class Criterion(BaseModel):
    """A single comparison against a (dotted) field path."""

    field_path: str
    operation: Operation = Operation.EQ
    value: Any = None

    def matches(self, instance: Mapping[str, Any]) -> bool:
        current: Any = instance
        for part in self.field_path.split("."):
            if not isinstance(current, Mapping) or part not in current:
                return False
            current = current[part]

        try:
            if self.operation == Operation.EQ:
                return current == self.value
            if self.operation == Operation.NE:
                return current != self.value
            if self.operation == Operation.GT:
                return current > self.value
            if self.operation == Operation.GE:
                return current >= self.value
            if self.operation == Operation.LT:
                return current < self.value
            return current <= self.value
        except TypeError:
            # Mixed types never match an ordering comparison
            return False


class Query(BaseModel):
    """
    Conjunction of criteria. An empty query matches every instance.

    Build fluently::

        where("missions").ge(3).and_("name").ne("Buzz")
    """

    ands: list[Criterion] = Field(default_factory=list)

    @classmethod
    def coerce(cls, value: "Query | Mapping[str, Any] | None") -> "Query":
        """Accept a Query, None, ``{}``, a serialized Query, or an equality mapping."""
        if value is None:
            return cls()
        if isinstance(value, Query):
            return value
        if "ands" in value:
            return cls.model_validate(value)
        return cls(ands=[Criterion(field_path=k, value=v) for k, v in value.items()])

    def matches(self, instance: Mapping[str, Any]) -> bool:
        return all(c.matches(instance) for c in self.ands)

    def and_(self, field_path: str) -> "_Where":
        return _Where(self, field_path)


class _Where:
    """Pending criterion waiting for its operator."""

    def __init__(self, query: Query, field_path: str):
        self._query = query
        self._field_path = field_path

    def _add(self, operation: Operation, value: Any) -> Query:
        criterion = Criterion(field_path=self._field_path, operation=operation, value=value)
        return Query(ands=[*self._query.ands, criterion])

    def eq(self, value: Any) -> Query:
        return self._add(Operation.EQ, value)

    def ne(self, value: Any) -> Query:
        return self._add(Operation.NE, value)

    def gt(self, value: Any) -> Query:
        return self._add(Operation.GT, value)

    def ge(self, value: Any) -> Query:
        return self._add(Operation.GE, value)

    def lt(self, value: Any) -> Query:
        return self._add(Operation.LT, value)

    def le(self, value: Any) -> Query:
        return self._add(Operation.LE, value)


def where(field_path: str) -> _Where:
    """Start a Query on ``field_path``."""
    return _Where(Query(), field_path)


# ============================================
# Change Notifications
# ============================================

class ActionType(str, Enum):
    """Kinds of change a listener can be notified about."""
    CREATE = "CREATE"
    SAVE = "SAVE"
    DELETE = "DELETE"


class ListenFilter(BaseModel):
    """
    Restricts which changes a listener receives.

    Empty fields match everything.
    """

    model_config = ConfigDict(populate_by_name=True)

    collection_name: str | None = Field(default=None, alias="collectionName")
    instance_id: str | None = Field(default=None, alias="instanceID")
    action_types: list[ActionType] = Field(default_factory=list, alias="actionTypes")

    def matches(self, event: "ListenEvent") -> bool:
        if self.collection_name and self.collection_name != event.collection_name:
            return False
        if self.instance_id and self.instance_id != event.instance_id:
            return False
        if self.action_types and event.action not in self.action_types:
            return False
        return True


class ListenEvent(BaseModel):
    """A single change observed on a thread."""

    model_config = ConfigDict(populate_by_name=True)

    collection_name: str = Field(alias="collectionName")
    instance_id: str = Field(alias="instanceID")
    action: ActionType
    instance: dict[str, Any] | None = None
    """Snapshot after the change. None for deletes."""


# ============================================
# Credentials
# ============================================

class KeyInfo(BaseModel):
    """
    Hub API credentials.

    In "dev" mode the Hub only needs the key. In "prod" mode every token
    request is signed with the secret as well.
    """

    key_id: str = Field(min_length=1)
    key_secret: SecretStr | None = None
    mode: Literal["dev", "prod"] = "dev"

    @model_validator(mode="after")
    def _secret_required_in_prod(self) -> "KeyInfo":
        if self.mode == "prod" and not (self.key_secret and self.key_secret.get_secret_value()):
            raise ValueError("key_secret is required in prod mode")
        return self
