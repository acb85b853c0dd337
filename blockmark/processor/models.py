"""Outcomes of the key event state machine."""

from enum import Enum

from pydantic import BaseModel

from blockmark.blocks.models import Variant


class MachineState(Enum):
    IDLE = "idle"
    BUFFERING = "buffering_trigger"
    CONVERTING = "converting"


class ActionKind(Enum):
    NONE = "none"  # let the surface do its default thing
    CONVERT = "convert"  # focused block re-typed in place
    NEW_ITEM = "new_item"  # list grew by one item or one task block
    EXIT_LIST = "exit_list"  # list ended, a default block follows or replaces it
    SPLIT = "split"  # new default block after the focused one
    MERGE = "merge"  # focused block joined into the previous one
    REMOVE = "remove"  # focused empty block removed
    VARIANT = "variant"  # the variant consumed the key


class KeyAction(BaseModel):
    """What happened in response to one key event, and where focus goes."""

    kind: ActionKind = ActionKind.NONE
    index: int = 0  # block focused afterwards
    caret: int | None = None  # None = end of that block
    variant: Variant | None = None  # target of a conversion
    trigger: str | None = None  # text that caused it

    @property
    def handled(self) -> bool:
        return self.kind is not ActionKind.NONE

    @classmethod
    def none(cls, index: int = 0, caret: int | None = None) -> "KeyAction":
        return cls(index=index, caret=caret)
