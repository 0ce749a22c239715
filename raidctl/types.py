"""
types.py
Flags and dataclasses shared across modules: Action, OptionRule, DispatchRule,
ParseContext, Session, Config.

Rule rows are frozen; the only mutable state of one invocation lives in a
ParseContext.
"""
from __future__ import annotations
import functools, operator
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum, IntFlag, auto
from pathlib import Path
from typing import Any, Callable, List, Optional


class Action(IntFlag):
    NONE = 0
    ACTIVATE = auto()
    DEACTIVATE = auto()
    FORMAT = auto()
    NOPARTITIONS = auto()
    PARTCHAR = auto()
    SEPARATOR = auto()
    VERSION = auto()
    HELP = auto()
    IGNORELOCKING = auto()
    BLOCK_DEVICES = auto()
    COLUMN = auto()
    DEBUG = auto()
    DUMP = auto()
    ERASE = auto()
    GROUP = auto()
    LIST_FORMATS = auto()
    RAID_DEVICES = auto()
    RAID_SETS = auto()
    TEST = auto()
    VERBOSE = auto()
    ACTIVE = auto()
    INACTIVE = auto()
    CREATE = auto()
    DELETE = auto()
    REBUILD = auto()
    SPARE = auto()
    MEDIA = auto()
    RMPARTITIONS = auto()


ALL_FLAGS: Action = functools.reduce(operator.or_, Action, Action.NONE)


class ArgPolicy(Enum):
    """Whether positional arguments may accompany a flag."""
    ARGS = "args"
    NO_ARGS = "no_args"


class HasArg(Enum):
    NONE = 0
    REQUIRED = 1
    OPTIONAL = 2


class Metadata(IntFlag):
    NONE = 0
    DEVICE = auto()
    RAID = auto()
    SET = auto()


class Privilege(Enum):
    ROOT = "root"
    ANY = "any"


class Locking(Enum):
    LOCK = "lock"
    NO_LOCK = "no_lock"


class DisplayKind(Enum):
    DEVICE = "device"
    RAID = "raid"
    ACTIVE = "active"
    INACTIVE = "inactive"
    ALL = "all"


@dataclass(frozen=True)
class OptionRule:
    option: str
    long_name: Optional[str]
    action: Action
    needed: Action
    allowed: Action
    args: ArgPolicy = ArgPolicy.ARGS
    has_arg: HasArg = HasArg.NONE
    on_set: Optional[Callable[["ParseContext", "OptionRule", Optional[str]], None]] = None
    slot: Optional[str] = None
    covers: Optional[Action] = None
    accepts: Optional[Callable[[str], bool]] = None

    @property
    def scope(self) -> Action:
        """Bits whose presence makes this rule apply during validation."""
        return self.covers if self.covers is not None else self.action

    @property
    def effective_allowed(self) -> Action:
        return self.allowed | self.action | self.needed

    @property
    def label(self) -> str:
        """How the flag is named in diagnostics."""
        return f"-{self.option}" if len(self.option) == 1 else f"--{self.long_name}"


@dataclass(frozen=True)
class DispatchRule:
    trigger: Action
    metadata: Metadata
    privilege: Privilege
    locking: Locking
    pre: Optional[Callable[[Action, Optional[DisplayKind]], DisplayKind]]
    arg: Optional[DisplayKind]
    handler: Callable[["Session", Optional[DisplayKind]], bool]


@dataclass
class ParseContext:
    """Option values and accumulated ActionSet of one invocation."""
    action: Action = Action.NONE
    counts: Counter = field(default_factory=Counter)
    formats: List[str] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)
    separator: str = ","
    partchar: Optional[str] = None
    rebuild_set: Optional[str] = None
    rebuild_disk: Optional[str] = None
    spare_set: Optional[str] = None
    arguments: List[str] = field(default_factory=list)
    trailing: List[str] = field(default_factory=list)
    help_shown: bool = False
    cmd: str = "raidctl"

    def has(self, bits: Action) -> bool:
        return bool(self.action & bits)

    @property
    def test(self) -> bool:
        return self.has(Action.TEST)


@dataclass
class Config:
    # locking
    lock_path: Path = Path("/var/lock/raidctl/.lock")
    lock_blocking: bool = True
    # logging
    log_level: str = "WARNING"
    # display
    separator: str = ","
    partchar: Optional[str] = None
    # metadata
    dump_dir: Path = Path(".")


@dataclass
class Session:
    """Everything a handler may touch: parsed options, config, metadata layer."""
    ctx: ParseContext
    config: Config
    backend: Any


def without(action: Action, bits: Action) -> Action:
    """action with bits cleared."""
    return Action(int(action) & ~int(bits))


@dataclass
class BlockDevice:
    path: str
    kname: str
    size_bytes: int
    type: str
    model: Optional[str] = None
    serial: Optional[str] = None


@dataclass
class RaidDevice:
    path: str
    format: str
    size_bytes: int
    uuid: Optional[str] = None
    label: Optional[str] = None
    status: str = "ok"


@dataclass
class RaidSet:
    name: str
    format: str
    devices: List[RaidDevice] = field(default_factory=list)
    active: bool = False

    @property
    def size_bytes(self) -> int:
        return sum(d.size_bytes for d in self.devices)
