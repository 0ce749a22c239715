"""
options.py
The option registry: one OptionRule per recognised flag, plus the on_set
functions that validate option arguments and store option values.

Each rule names the action bit it sets, the bits of which at least one must
also be present ("needed"), and the bits it may coexist with ("allowed").
The table is immutable; parser.py accumulates into a ParseContext and
validator.py reads the table as declared.
"""
from __future__ import annotations
import re
from typing import Optional, Sequence, Tuple
from .errors import UsageError
from .types import ALL_FLAGS, Action as A, ArgPolicy, HasArg, OptionRule, ParseContext
from .util import collapse_delimiter, remove_white_space, split_list

SEPARATOR_KEY = "separator"  # long-only option

COLUMN_FIELDS = frozenset(
    {
        "devpath", "path", "format", "size", "sectors", "status", "type",
        "offset", "serial", "name", "level", "stride", "subsets", "devs", "spares",
    }
)


def _check_optarg(ctx: ParseContext, rule: OptionRule, value: Optional[str],
                  table: Sequence[Tuple[str, A]]) -> None:
    """Match value as a prefix of one of the keywords and set its action bit."""
    if value is None:
        return
    value = value.lower()
    if value:
        for word, bit in table:
            if word.startswith(value):
                ctx.action |= bit
                return
    raise UsageError(f"invalid option argument for {rule.label}")


def check_activate(ctx, rule, value):
    _check_optarg(ctx, rule, value, (("yes", A.ACTIVATE), ("no", A.DEACTIVATE)))


def check_active(ctx, rule, value):
    ctx.counts["sets"] += 1
    _check_optarg(ctx, rule, value, (("active", A.ACTIVE), ("inactive", A.INACTIVE)))


def check_identifiers(ctx, rule, value):
    """Normalise a delimited identifier list and append it to the rule's slot."""
    if value:
        p = collapse_delimiter(remove_white_space(value), ctx.separator)
        if rule.slot in ("formats", "columns"):
            getattr(ctx, rule.slot).extend(split_list(p, ctx.separator))
        elif p:
            old = getattr(ctx, rule.slot)
            setattr(ctx, rule.slot, f"{old}{ctx.separator}{p}" if old else p)
    ctx.counts[rule.slot] += 1


def check_separator(ctx, rule, value):
    if value is None or len(value) != 1:
        raise UsageError(f'invalid separator "{value}"')
    ctx.separator = value


def check_part_separator(ctx, rule, value):
    # More than one character is tolerated; it is only ever used as a name infix.
    ctx.partchar = value


def check_create_argument(ctx, rule, value):
    if not value:
        raise UsageError("arguments missing")
    if value.startswith("-"):
        raise UsageError("the raid set name is missing")
    ctx.counts["create"] += 1


def check_spare_argument(ctx, rule, value):
    ctx.spare_set = value or None
    ctx.counts["spare"] += 1


def count(ctx, rule, value):
    ctx.counts[rule.slot] += 1


def show_help(ctx, rule, value):
    print(usage(ctx.cmd))
    ctx.help_shown = True


def is_activity(value: str) -> bool:
    # Abbreviations only count when attached (-sa, --sets=i); a separate
    # token is a set name unless it is the full word.
    return value.lower() in ("active", "inactive")


def is_column_list(value: str) -> bool:
    fields = [f for f in re.split(r"[^\w]+", value.lower()) if f]
    return bool(fields) and all(f in COLUMN_FIELDS for f in fields)


def is_set_name(value: str) -> bool:
    return bool(value) and not value.startswith("-")


_MODIFIERS = A.DEBUG | A.HELP | A.IGNORELOCKING | A.VERBOSE

RULES: Tuple[OptionRule, ...] = (
    # [De]activate; the bit is chosen by the mandatory argument.
    OptionRule(
        "a", "activate", A.NONE, A.NONE,
        A.ACTIVATE | A.DEACTIVATE | A.FORMAT | A.NOPARTITIONS | A.PARTCHAR
        | A.SEPARATOR | A.RMPARTITIONS | A.TEST | _MODIFIERS,
        has_arg=HasArg.REQUIRED, on_set=check_activate,
        covers=A.ACTIVATE | A.DEACTIVATE,
    ),
    OptionRule(
        "f", "format", A.FORMAT,
        A.ACTIVATE | A.DEACTIVATE | A.RAID_DEVICES | A.RAID_SETS | A.DELETE
        | A.CREATE | A.SPARE,
        A.ACTIVE | A.INACTIVE | A.COLUMN | A.DUMP | A.ERASE | A.GROUP
        | A.NOPARTITIONS | A.PARTCHAR | A.SEPARATOR | A.TEST | A.RMPARTITIONS
        | A.MEDIA | _MODIFIERS,
        has_arg=HasArg.REQUIRED, on_set=check_identifiers, slot="formats",
    ),
    OptionRule(
        "P", "partchar", A.PARTCHAR, A.ACTIVATE | A.DEACTIVATE,
        A.FORMAT | A.SEPARATOR | A.RMPARTITIONS | A.TEST | _MODIFIERS,
        has_arg=HasArg.REQUIRED, on_set=check_part_separator,
    ),
    OptionRule(
        "p", "no_partitions", A.NOPARTITIONS, A.ACTIVATE | A.DEACTIVATE,
        A.FORMAT | A.SEPARATOR | A.RMPARTITIONS | A.TEST | _MODIFIERS,
    ),
    OptionRule(
        "b", "block_devices", A.BLOCK_DEVICES, A.NONE,
        A.COLUMN | A.SEPARATOR | _MODIFIERS,
        on_set=count, slot="devices",
    ),
    OptionRule(
        "c", "display_columns", A.COLUMN,
        A.BLOCK_DEVICES | A.RAID_DEVICES | A.RAID_SETS,
        A.ACTIVE | A.INACTIVE | A.DUMP | A.FORMAT | A.GROUP | A.SEPARATOR | _MODIFIERS,
        has_arg=HasArg.OPTIONAL, on_set=check_identifiers, slot="columns",
        accepts=is_column_list,
    ),
    OptionRule("d", "debug", A.DEBUG, ALL_FLAGS, ALL_FLAGS, on_set=count, slot="debug"),
    OptionRule(
        "D", "dump_metadata", A.DUMP, A.RAID_DEVICES,
        A.COLUMN | A.ERASE | A.FORMAT | A.SEPARATOR | A.TEST | _MODIFIERS,
        on_set=count, slot="dump",
    ),
    OptionRule(
        "E", "erase_metadata", A.ERASE, A.RAID_DEVICES,
        A.COLUMN | A.DUMP | A.FORMAT | A.SEPARATOR | A.TEST | _MODIFIERS,
    ),
    OptionRule(
        "g", "display_group", A.GROUP, A.RAID_SETS,
        A.ACTIVE | A.INACTIVE | A.COLUMN | A.FORMAT | A.SEPARATOR | _MODIFIERS,
        on_set=count, slot="group",
    ),
    OptionRule("h", "help", A.HELP, A.NONE, ALL_FLAGS, on_set=show_help),
    OptionRule(
        "i", "ignorelocking", A.IGNORELOCKING, A.NONE, ALL_FLAGS,
        on_set=count, slot="ignorelocking",
    ),
    OptionRule(
        "l", "list_formats", A.LIST_FORMATS, A.NONE, _MODIFIERS,
        args=ArgPolicy.NO_ARGS,
    ),
    OptionRule(
        "x", "remove", A.DELETE, A.NONE,
        A.RAID_SETS | A.INACTIVE | A.COLUMN | A.FORMAT | A.GROUP | A.SEPARATOR
        | A.TEST | _MODIFIERS,
    ),
    OptionRule(
        "r", "raid_devices", A.RAID_DEVICES, A.NONE,
        A.COLUMN | A.DUMP | A.ERASE | A.FORMAT | A.SEPARATOR | A.TEST | _MODIFIERS,
    ),
    OptionRule(
        "R", "rebuild", A.REBUILD, A.NONE,
        A.MEDIA | A.TEST | _MODIFIERS,
        has_arg=HasArg.REQUIRED, on_set=check_identifiers, slot="rebuild_set",
    ),
    OptionRule(
        "M", "media", A.MEDIA, A.REBUILD | A.SPARE,
        A.FORMAT | A.TEST | _MODIFIERS,
        has_arg=HasArg.REQUIRED, on_set=check_identifiers, slot="rebuild_disk",
    ),
    OptionRule(
        "s", "sets", A.RAID_SETS, A.NONE,
        A.ACTIVE | A.INACTIVE | A.COLUMN | A.FORMAT | A.GROUP | A.DELETE
        | A.SEPARATOR | A.TEST | _MODIFIERS,
        has_arg=HasArg.OPTIONAL, on_set=check_active, accepts=is_activity,
    ),
    OptionRule(
        SEPARATOR_KEY, "separator", A.SEPARATOR, A.COLUMN | A.FORMAT, ALL_FLAGS,
        has_arg=HasArg.REQUIRED, on_set=check_separator,
    ),
    OptionRule(
        "t", "test", A.TEST,
        A.ACTIVATE | A.DEACTIVATE | A.ERASE | A.DELETE | A.REBUILD | A.SPARE | A.CREATE,
        A.FORMAT | A.NOPARTITIONS | A.PARTCHAR | A.RMPARTITIONS | A.SEPARATOR
        | A.RAID_DEVICES | A.DUMP | A.RAID_SETS | A.ACTIVE | A.INACTIVE | A.COLUMN
        | A.GROUP | A.MEDIA | _MODIFIERS,
        on_set=count, slot="test",
    ),
    OptionRule("v", "verbose", A.VERBOSE, ALL_FLAGS, ALL_FLAGS, on_set=count, slot="verbose"),
    OptionRule(
        "V", "version", A.VERSION, A.NONE, _MODIFIERS,
        args=ArgPolicy.NO_ARGS,
    ),
    # Everything after -C belongs to the create request; see parser.py.
    OptionRule(
        "C", "create", A.CREATE, A.NONE,
        A.FORMAT | A.TEST | _MODIFIERS,
        args=ArgPolicy.NO_ARGS, has_arg=HasArg.REQUIRED,
        on_set=check_create_argument, slot="create",
    ),
    OptionRule(
        "S", "spare", A.SPARE, A.MEDIA,
        A.FORMAT | A.MEDIA | A.TEST | _MODIFIERS,
        args=ArgPolicy.NO_ARGS, has_arg=HasArg.OPTIONAL,
        on_set=check_spare_argument, slot="spare", accepts=is_set_name,
    ),
    # Removing partitions cannot be undone on deactivation.
    OptionRule(
        "Z", "rm_partitions", A.RMPARTITIONS, A.ACTIVATE,
        A.FORMAT | A.NOPARTITIONS | A.PARTCHAR | A.SEPARATOR | A.TEST | _MODIFIERS,
    ),
)

BY_SHORT = {r.option: r for r in RULES if len(r.option) == 1}
BY_LONG = {r.long_name: r for r in RULES if r.long_name}


def usage(cmd: str) -> str:
    return "\n".join(
        [
            f"{cmd}: Device-Mapper Software RAID tool",
            "* = [-d|--debug]... [-v|--verbose]... [-i|--ignorelocking]",
            f"{cmd}\t{{-a|--activate}} {{y|n|yes|no}} *",
            "\t[-f|--format FORMAT[,FORMAT...]]",
            "\t[-P|--partchar CHAR]",
            "\t[-p|--no_partitions]",
            "\t[--separator SEPARATOR]",
            "\t[-t|--test]",
            "\t[-Z|--rm_partitions] [RAID-set...]",
            f"{cmd}\t{{-b|--block_devices}} *",
            "\t[-c|--display_columns][FIELD[,FIELD...]]...",
            "\t[device-path...]",
            f"{cmd}\t{{-h|--help}}",
            f"{cmd}\t{{-l|--list_formats}} *",
            f"{cmd}\t{{-r|--raid_devices}} *",
            "\t[-c|--display_columns][FIELD[,FIELD...]]...",
            "\t[-D|--dump_metadata]",
            "\t[-f|--format FORMAT[,FORMAT...]]",
            "\t[--separator SEPARATOR]",
            "\t[device-path...]",
            f"{cmd}\t{{-r|--raid_devices}} *",
            "\t{-E|--erase_metadata}",
            "\t[-f|--format FORMAT[,FORMAT...]]",
            "\t[--separator SEPARATOR]",
            "\t[-t|--test]",
            "\t[device-path...]",
            f"{cmd}\t{{-s|--sets}}...[a|i|active|inactive] *",
            "\t(a and i only attached: -sa, -si, --sets=i)",
            "\t[-c|--display_columns][FIELD[,FIELD...]]...",
            "\t[-f|--format FORMAT[,FORMAT...]]",
            "\t[-g|--display_group]",
            "\t[--separator SEPARATOR]",
            "\t[RAID-set...]",
            f"{cmd}\t{{-f|--format FORMAT}}",
            "\t{-C|--create RAID-set}",
            "\t{--type RAID-level}",
            "\t[--size [0-9]...[kKgG][bB]]",
            "\t[--str[i[de]] [0-9]...[kK][bB]]",
            '\t{--disk[s] "device-path[, device-path...]"}',
            f"{cmd}\t{{-x|--remove}} [-t|--test] RAID-set",
            f"{cmd}\t{{-R|--rebuild}} [-t|--test] RAID-set [drive_name]",
            f"{cmd}\t[{{-f|--format FORMAT}}]",
            "\t{-S|--spare [RAID-set]}",
            '\t{-M|--media "device-path"}',
            f"{cmd}\t{{-V/--version}}",
        ]
    )
