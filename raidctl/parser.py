"""
parser.py
Walks the argument vector token by token against the option registry and
builds the ParseContext of one invocation.

Short options cluster (-dv) and take attached or separate arguments; long
options take --name=value or --name value and may be abbreviated to any
unique prefix. Non-option tokens are collected as positionals wherever they
appear; "--" ends option processing.
"""
from __future__ import annotations
from typing import List, Optional, Tuple
from .errors import UsageError
from .options import BY_LONG, BY_SHORT
from .types import Action, HasArg, OptionRule, ParseContext, without


class ArgScanner:
    def __init__(self, argv: List[str]):
        self.argv = list(argv)
        self.pos = 0
        self.cluster = ""  # unread characters of the current short-option token

    def rest(self) -> List[str]:
        return self.argv[self.pos:]

    def _take(self) -> Optional[str]:
        if self.pos < len(self.argv):
            self.pos += 1
            return self.argv[self.pos - 1]
        return None

    def _optional(self, rule: OptionRule) -> Optional[str]:
        """A separate token becomes the optional argument only if the rule accepts it."""
        if self.pos < len(self.argv) and rule.accepts:
            nxt = self.argv[self.pos]
            if not nxt.startswith("-") and rule.accepts(nxt):
                self.pos += 1
                return nxt
        return None

    def next(self) -> Tuple[Optional[OptionRule], Optional[str], bool]:
        """
        Return (rule, value, done). rule is None for a positional token,
        whose text is returned as value.
        """
        if self.cluster:
            return self._short()
        tok = self._take()
        if tok is None:
            return None, None, True
        if tok == "--":
            return None, None, True
        if tok.startswith("--"):
            return self._long(tok[2:])
        if tok.startswith("-") and tok != "-":
            self.cluster = tok[1:]
            return self._short()
        return None, tok, False

    def _short(self):
        ch, self.cluster = self.cluster[0], self.cluster[1:]
        rule = BY_SHORT.get(ch)
        if rule is None:
            raise UsageError(f"invalid option -- '{ch}' (-h for help)")
        if rule.has_arg is HasArg.NONE:
            return rule, None, False
        if self.cluster:
            value, self.cluster = self.cluster, ""
            return rule, value, False
        if rule.has_arg is HasArg.OPTIONAL:
            return rule, self._optional(rule), False
        value = self._take()
        if value is None:
            raise UsageError(f"option requires an argument -- '{ch}'")
        return rule, value, False

    def _long(self, token: str):
        name, sep, value = token.partition("=")
        rule = BY_LONG.get(name)
        if rule is None:
            matches = [r for n, r in BY_LONG.items() if n.startswith(name)]
            if not name or not matches:
                raise UsageError(f"unrecognized option '--{name}' (-h for help)")
            if len(matches) > 1:
                raise UsageError(f"option '--{name}' is ambiguous")
            rule = matches[0]
        if rule.has_arg is HasArg.NONE:
            if sep:
                raise UsageError(f"option '--{rule.long_name}' doesn't allow an argument")
            return rule, None, False
        if sep:
            return rule, value, False
        if rule.has_arg is HasArg.OPTIONAL:
            return rule, self._optional(rule), False
        value = self._take()
        if value is None:
            raise UsageError(f"option '--{rule.long_name}' requires an argument")
        return rule, value, False


def _finish(ctx: ParseContext) -> ParseContext:
    # -R SET [DRIVE]: one leftover positional names the drive to rebuild onto.
    if ctx.action & Action.REBUILD and ctx.arguments:
        if ctx.rebuild_disk is not None or len(ctx.arguments) > 1:
            raise UsageError("too many arguments with -R")
        ctx.rebuild_disk = ctx.arguments.pop()
        ctx.counts["rebuild_disk"] += 1
    # Stacked partition devices are always removed on deactivation.
    if ctx.action & Action.DEACTIVATE:
        ctx.action = without(ctx.action, Action.NOPARTITIONS)
    return ctx


def handle_args(argv: List[str], cmd: str = "raidctl", separator: str = ",",
                partchar: Optional[str] = None) -> ParseContext:
    """
    Parse argv (without the program name) into a ParseContext.
    Raises UsageError on unknown options, missing arguments or rejected
    option arguments. Help stops parsing right after the usage is printed.
    """
    if not argv:
        raise UsageError("no arguments/options given (-h for help)")

    ctx = ParseContext(cmd=cmd, separator=separator, partchar=partchar)
    scanner = ArgScanner(argv)
    while True:
        rule, value, done = scanner.next()
        if done:
            ctx.arguments.extend(scanner.rest())
            break
        if rule is None:
            ctx.arguments.append(value)
            continue

        ctx.action |= rule.action
        if rule.on_set:
            rule.on_set(ctx, rule, value)
        if ctx.help_shown:
            return ctx

        if rule.option == "C":
            # The create request is parsed later by the metadata layer.
            ctx.trailing = [value] + scanner.rest()
            return _finish(ctx)
        if rule.option == "M" and ctx.counts["spare"] and ctx.counts["rebuild_disk"]:
            ctx.trailing = scanner.rest()
            return _finish(ctx)

    return _finish(ctx)
