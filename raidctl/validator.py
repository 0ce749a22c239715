"""
validator.py
Legality checks over a parsed ParseContext.

check_actions() sweeps every option rule whose bit is present (not only the
first match), so the verdict does not depend on table order. It returns the
resolved ActionSet instead of editing the context, which keeps repeated runs
on the same input identical.
"""
from __future__ import annotations
import logging
from typing import Iterable
from .errors import UsageError
from .formats import invalid_formats
from .options import RULES
from .types import Action, ArgPolicy, OptionRule, ParseContext, without

log = logging.getLogger(__name__)

# Options that only change how an action runs.
_MODIFIERS = Action.DEBUG | Action.VERBOSE | Action.IGNORELOCKING


def check_actions(ctx: ParseContext, rules: Iterable[OptionRule] = RULES) -> Action:
    """Reject illegal option combinations; return the resolved ActionSet."""
    action = ctx.action
    for rule in rules:
        if not action & rule.scope:
            continue
        if rule.needed and not action & rule.needed:
            raise UsageError(f"option missing/invalid option combination with {rule.label}")
        if without(action, rule.effective_allowed):
            log.debug("%s conflicts with %r", rule.label, without(action, rule.effective_allowed))
            raise UsageError("invalid option combination (-h for help)")
        if rule.args is ArgPolicy.NO_ARGS and ctx.arguments:
            raise UsageError(f"no arguments allowed with {rule.label}")

    if not action:
        raise UsageError("options missing")
    if without(action, _MODIFIERS) == Action.NONE:
        raise UsageError("more options needed with -d/-v/-i")
    if action & Action.DELETE and not ctx.arguments:
        raise UsageError("the raid set name is missing with -x")

    # Erasing always dumps the metadata first.
    if action & Action.ERASE:
        action |= Action.DUMP
    return action


def check_format(ctx: ParseContext) -> None:
    bad = invalid_formats(ctx.formats)
    if bad or not ctx.formats:
        log.debug("unknown format(s): %s", ", ".join(bad))
        raise UsageError("invalid format for -f at (see -l)")


def validate(ctx: ParseContext) -> ParseContext:
    """
    Run all legality checks and store the resolved ActionSet on ctx.
    Help short-circuits: the usage has already been shown.
    """
    if ctx.help_shown:
        return ctx
    resolved = check_actions(ctx)
    if resolved & Action.DUMP and not ctx.counts["dump"]:
        ctx.counts["dump"] += 1
    ctx.action = resolved
    if ctx.counts["formats"]:
        check_format(ctx)
    return ctx
