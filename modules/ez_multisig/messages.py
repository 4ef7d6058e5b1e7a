from dataclasses import MISSING, asdict, dataclass, field, fields
from typing import Any, ClassVar, Dict, List, Optional, Union, get_args, get_origin


class MessageDecodeError(ValueError):
    pass


def _conforms(value: Any, annotation: Any) -> bool:
    """Shallow isinstance check against a field annotation (Union, Optional, List[...])."""
    if annotation is Any:
        return True
    if annotation is type(None):
        return value is None
    origin = get_origin(annotation)
    if origin is Union:
        return any(_conforms(value, arg) for arg in get_args(annotation))
    if origin is list:
        args = get_args(annotation)
        item = args[0] if args else Any
        return isinstance(value, list) and all(_conforms(v, item) for v in value)
    if annotation is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, annotation)


@dataclass
class ProtocolMessage:
    TYPE: ClassVar[str] = ""

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Any) -> "ProtocolMessage":
        if not isinstance(payload, dict):
            raise MessageDecodeError(f"payload_not_object:{cls.TYPE}")
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name in payload:
                value = payload[f.name]
                if not _conforms(value, f.type):
                    raise MessageDecodeError(f"invalid_field:{cls.TYPE}.{f.name}")
                kwargs[f.name] = value
            elif f.default is MISSING and f.default_factory is MISSING:
                raise MessageDecodeError(f"missing_field:{cls.TYPE}.{f.name}")
        return cls(**kwargs)


RequestId = Union[int, str]


@dataclass
class MultisigAnnounce(ProtocolMessage):
    TYPE: ClassVar[str] = "MultisigAnnounce"

    script: str
    name: Optional[str] = None


@dataclass
class MultisigSpend(ProtocolMessage):
    TYPE: ClassVar[str] = "MultisigSpend"

    address: str
    tx: str
    id: RequestId
    pending: List[Any] = field(default_factory=list)


@dataclass
class MultisigSign(ProtocolMessage):
    TYPE: ClassVar[str] = "MultisigSign"

    address: str
    hash: str
    id: RequestId
    signature: List[str] = field(default_factory=list)


@dataclass
class MultisigAck(ProtocolMessage):
    TYPE: ClassVar[str] = "MultisigAck"

    id: RequestId
