"""
Pytest configuration and shared fixtures.
"""
import logging
import os
import pytest
from pathlib import Path
from raidctl.backend import MetadataLayer
from raidctl.types import Config, RaidDevice, RaidSet


class FakeBackend(MetadataLayer):
    """Metadata layer that records every call instead of touching devices."""

    def __init__(self, devices=2, raid_devices=2, sets=("isw_vol0",), active=()):
        super().__init__()
        self.n_devices = devices
        self.n_raid = raid_devices
        self.set_names = list(sets)
        self.active_names = set(active)
        self.calls = []

    def discover_devices(self, paths=None):
        self.calls.append(("discover_devices", paths))
        return self.n_devices

    def discover_raid_devices(self, formats=(), paths=None):
        self.calls.append(("discover_raid_devices", list(formats), paths))
        self.raid_devices = [
            RaidDevice(path=f"/dev/sd{chr(ord('a') + i)}", format="isw", size_bytes=1024)
            for i in range(self.n_raid)
        ]
        return self.n_raid

    def group_sets(self, names=None):
        self.calls.append(("group_sets", names))
        wanted = self.set_names if not names else [n for n in self.set_names if n in names]
        self.sets = [
            RaidSet(name=n, format="isw", devices=list(self.raid_devices), active=n in self.active_names)
            for n in wanted
        ]
        return len(self.sets)

    def display_devices(self, kind, columns=(), separator=","):
        self.calls.append(("display_devices", kind, list(columns), separator))
        return True

    def display_sets(self, kind, columns=(), separator=",", group=False):
        self.calls.append(("display_sets", kind, list(columns), separator, group))
        return True

    def dump_metadata(self, dest):
        self.calls.append(("dump_metadata", dest))
        return True

    def activate_sets(self, sets, activate, partchar=None, partitions=True, rm_partitions=False):
        self.calls.append(("activate_sets", [s.name for s in sets], activate, partitions, rm_partitions))
        return True

    def erase_metadata(self, devices):
        self.calls.append(("erase_metadata", [d.path for d in devices]))
        return True

    def delete_sets(self, sets):
        self.calls.append(("delete_sets", [s.name for s in sets]))
        return True

    def create_set(self, request, formats=()):
        self.calls.append(("create_set", list(request), list(formats)))
        return True

    def hot_spare_add(self, rs, media):
        self.calls.append(("hot_spare_add", rs.name if rs else None, media))
        return True

    def rebuild_set(self, name, disk=None):
        self.calls.append(("rebuild_set", name, disk))
        return True

    def version(self):
        return {"library": "1.0.0", "date": "(2026.10.19)", "device_mapper": "4.48.0"}

    def names(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def sample_config(tmp_path):
    """Configuration with the lock file inside the test's temp dir."""
    return Config(
        lock_path=tmp_path / "lock" / ".lock",
        lock_blocking=False,
        log_level="WARNING",
        separator=",",
        partchar=None,
        dump_dir=tmp_path / "dump",
    )


@pytest.fixture
def as_root(monkeypatch):
    monkeypatch.setattr(os, "geteuid", lambda: 0)


@pytest.fixture
def as_user(monkeypatch):
    monkeypatch.setattr(os, "geteuid", lambda: 1000)


@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary configuration file for testing."""
    p = tmp_path / "raidctl.toml"
    p.write_text(
        """
[locking]
path = "/tmp/raidctl-test/.lock"
blocking = false

[logging]
level = "info"

[display]
separator = ";"
partchar = "p"

[metadata]
dump_dir = "/tmp/raidctl-dump"
"""
    )
    return Path(p)


@pytest.fixture(autouse=True)
def reset_logging():
    """cli.main() binds a handler to the captured stderr of the running test."""
    yield
    logger = logging.getLogger("raidctl")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
