"""
escrow_py.runtime.context — the inbound message envelope handed to the unit.

A MessageContext carries everything one delivery needs and nothing else:
who sent it, how much native value it carries, its body cell, the transport
flags, and `now`, the timestamp of the block processing the message.

The unit never consults a wall clock; every deadline comparison uses `now`
from here. Timestamps are positive uint32 values (0 is reserved to mean
"not yet funded" in the persisted record).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..cell import Address, Cell, begin_cell
from ..codec.messages import op_body

_U32 = (1 << 32) - 1


class ContextError(ValueError):
    """Validation failure for a MessageContext."""


def _require_non_negative_int(name: str, v: Any) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise ContextError(f"{name} must be int, got {type(v).__name__}")
    if v < 0:
        raise ContextError(f"{name} must be non-negative, got {v}")
    return v


@dataclass(frozen=True)
class MessageContext:
    """
    Fields
    ------
    sender:     Address the message came from.
    value:      Native value attached (nano units).
    body:       Message body cell (may be empty).
    now:        Block timestamp, seconds.
    bounced:    The message is itself a bounce of something the unit sent.
    bounceable: On failure the transport returns `value` to `sender`.
    """

    sender: Address
    value: int
    body: Cell
    now: int
    bounced: bool = False
    bounceable: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.sender, Address):
            raise ContextError("sender must be an Address")
        if not isinstance(self.body, Cell):
            raise ContextError("body must be a Cell")
        _require_non_negative_int("value", self.value)
        now = _require_non_negative_int("now", self.now)
        if now == 0 or now > _U32:
            raise ContextError(f"now must be a positive uint32 timestamp, got {now}")

    # ---- constructors ---- #

    @classmethod
    def command(
        cls,
        sender: Address,
        op: int,
        *,
        now: int,
        value: int = 0,
        query_id: int = 0,
        bounceable: bool = True,
    ) -> "MessageContext":
        """Header-only command, as client wrappers send them."""
        return cls(
            sender=sender,
            value=value,
            body=op_body(op, query_id),
            now=now,
            bounceable=bounceable,
        )

    @classmethod
    def plain(cls, sender: Address, *, now: int, value: int = 0, body: Optional[Cell] = None) -> "MessageContext":
        return cls(sender=sender, value=value, body=body or begin_cell().end_cell(), now=now)

    # ---- views ---- #

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender.to_raw(),
            "value": self.value,
            "body": self.body.to_boc().hex(),
            "now": self.now,
            "bounced": self.bounced,
            "bounceable": self.bounceable,
        }


__all__ = ["ContextError", "MessageContext"]
