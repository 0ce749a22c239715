#!/usr/bin/env python3
"""
cli.py
Command-line interface for raidctl.
Loads config, parses and validates the options, and dispatches the action.
"""
from __future__ import annotations
import logging, sys
from pathlib import Path
from .backend import SystemBackend
from .config import find_config, load_config
from .dispatch import perform
from .errors import RaidctlError
from .log import level_for, setup_logging
from .parser import handle_args
from .types import Config, Session
from .validator import validate

log = logging.getLogger("raidctl")


def run(argv, config: Config, backend=None, cmd: str = "raidctl") -> int:
    """Parse, validate and dispatch one invocation. Returns the exit status."""
    ctx = handle_args(argv, cmd=cmd, separator=config.separator, partchar=config.partchar)
    setup_logging(level_for(config.log_level, ctx.counts["debug"], ctx.counts["verbose"]))
    validate(ctx)
    session = Session(ctx=ctx, config=config, backend=backend or SystemBackend())
    return 0 if perform(session) else 1


def main(argv=None, backend=None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    cmd = Path(sys.argv[0]).name if sys.argv and sys.argv[0] else "raidctl"
    if cmd in ("__main__.py", "-c"):
        cmd = "raidctl"
    setup_logging(logging.WARNING)
    try:
        try:
            cfg = load_config(find_config())
        except FileNotFoundError as e:
            log.error("%s", e)
            return 1
        except (OSError, ValueError) as e:
            # tomllib.TOMLDecodeError is a ValueError
            log.error("invalid configuration file: %s", e)
            return 1
        return run(argv, cfg, backend=backend, cmd=cmd)
    except RaidctlError as e:
        log.error("%s", e)
        return 1
    except KeyboardInterrupt:
        print("\n\nInterrupted by user.", file=sys.stderr)
        return 130
    except Exception as e:
        log.error("unexpected error: %s", e)
        log.debug("traceback", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
