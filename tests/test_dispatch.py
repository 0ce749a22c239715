"""
Tests for dispatch selection and the perform() protocol.
"""
import fcntl
import os
import pytest
from raidctl import dispatch
from raidctl.dispatch import Family, perform, select_family
from raidctl.errors import BackendError, DispatchError, LockError, MetadataError, PrivilegeError
from raidctl.parser import handle_args
from raidctl.types import Action, DisplayKind, Locking, Session
from raidctl.validator import validate
from conftest import FakeBackend


def _session(argv, backend, config):
    return Session(ctx=validate(handle_args(argv)), config=config, backend=backend)


def test_first_match_wins():
    assert select_family(Action.RAID_DEVICES | Action.ERASE | Action.DUMP) is Family.ERASE
    assert select_family(Action.RAID_SETS | Action.DELETE) is Family.DELETE
    assert select_family(Action.ACTIVATE | Action.FORMAT) is Family.ACTIVATION


def test_selection_is_stable():
    action = Action.RAID_SETS | Action.INACTIVE | Action.COLUMN
    assert {select_family(action) for _ in range(10)} == {Family.RAID_SETS}


def test_unmatched_action_set_is_internal_error():
    with pytest.raises(DispatchError):
        select_family(Action.DEBUG | Action.COLUMN)


def test_every_family_has_distinct_trigger():
    triggers = [f.value.trigger for f in Family]
    assert len(triggers) == len(set(triggers))


def test_help_bypasses_everything(fake_backend, sample_config, as_user, capsys):
    session = _session(["-h"], fake_backend, sample_config)
    assert perform(session) is True
    assert fake_backend.calls == []
    assert not sample_config.lock_path.exists()


def test_activate_scenario(fake_backend, sample_config, as_root, monkeypatch):
    held = []
    real = dispatch.advisory_lock

    def spy(path, blocking=True):
        held.append(path)
        return real(path, blocking)

    monkeypatch.setattr(dispatch, "advisory_lock", spy)
    fake_backend.set_names = ["diskset1", "other"]
    session = _session(["-a", "yes", "diskset1"], fake_backend, sample_config)

    assert perform(session) is True
    assert held == [sample_config.lock_path]
    assert fake_backend.names() == ["discover_devices", "discover_raid_devices", "group_sets", "activate_sets"]
    assert ("group_sets", ["diskset1"]) in fake_backend.calls
    assert fake_backend.calls[-1] == ("activate_sets", ["diskset1"], True, True, False)


def test_lock_released_after_handler(fake_backend, sample_config, as_root):
    perform(_session(["-s"], fake_backend, sample_config))
    fd = os.open(sample_config.lock_path, os.O_RDWR)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    finally:
        os.close(fd)


def test_lock_released_when_metadata_fails(sample_config, as_root):
    backend = FakeBackend(raid_devices=0)
    with pytest.raises(MetadataError, match="no raid disks"):
        perform(_session(["-r"], backend, sample_config))
    fd = os.open(sample_config.lock_path, os.O_RDWR)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    finally:
        os.close(fd)


def test_held_lock_fails_without_touching_metadata(fake_backend, sample_config, as_root):
    sample_config.lock_path.parent.mkdir(parents=True)
    fd = os.open(sample_config.lock_path, os.O_RDWR | os.O_CREAT)
    fcntl.flock(fd, fcntl.LOCK_EX)
    try:
        with pytest.raises(LockError):
            perform(_session(["-s"], fake_backend, sample_config))
        assert fake_backend.calls == []
    finally:
        os.close(fd)


def test_ignorelocking_skips_lock(fake_backend, sample_config, as_root):
    assert perform(_session(["-s", "-i"], fake_backend, sample_config)) is True
    assert not sample_config.lock_path.exists()


def test_root_required_before_resources(fake_backend, sample_config, as_user):
    with pytest.raises(PrivilegeError, match="must be root"):
        perform(_session(["-r"], fake_backend, sample_config))
    assert fake_backend.calls == []
    assert not sample_config.lock_path.exists()


def test_informational_actions_need_no_root(fake_backend, sample_config, as_user, capsys):
    assert perform(_session(["-l"], fake_backend, sample_config)) is True
    assert "isw" in capsys.readouterr().out
    assert perform(_session(["-V"], fake_backend, sample_config)) is True
    assert "device-mapper version:\t4.48.0" in capsys.readouterr().out
    assert fake_backend.calls == []


def test_sets_display_filter(fake_backend, sample_config, as_root):
    perform(_session(["-s", "active", "-c", "name,status"], fake_backend, sample_config))
    assert fake_backend.calls[-1] == ("display_sets", DisplayKind.ACTIVE, ["name", "status"], ",", False)


def test_sets_display_all_and_inactive(fake_backend, sample_config, as_root):
    perform(_session(["-s"], fake_backend, sample_config))
    assert fake_backend.calls[-1][1] is DisplayKind.ALL
    perform(_session(["-si", "-g"], fake_backend, sample_config))
    assert fake_backend.calls[-1][1] is DisplayKind.INACTIVE
    assert fake_backend.calls[-1][4] is True


def test_block_devices_take_no_lock(fake_backend, sample_config, as_root):
    assert Family.BLOCK_DEVICES.value.locking is Locking.NO_LOCK
    perform(_session(["-b", "/dev/sda"], fake_backend, sample_config))
    assert fake_backend.names() == ["discover_devices", "display_devices"]
    assert fake_backend.calls[0] == ("discover_devices", ["/dev/sda"])
    assert not sample_config.lock_path.exists()


def test_no_block_devices(sample_config, as_root):
    with pytest.raises(MetadataError, match="no block devices found"):
        perform(_session(["-b"], FakeBackend(devices=0), sample_config))


def test_no_raid_disks_names_format(sample_config, as_root):
    with pytest.raises(MetadataError, match='format: "isw"'):
        perform(_session(["-r", "-f", "isw"], FakeBackend(raid_devices=0), sample_config))


def test_raid_devices_dump(fake_backend, sample_config, as_root):
    perform(_session(["-r", "-D"], fake_backend, sample_config))
    assert fake_backend.names()[-2:] == ["display_devices", "dump_metadata"]


def test_erase_dumps_then_erases(fake_backend, sample_config, as_root):
    perform(_session(["-r", "-E"], fake_backend, sample_config))
    assert fake_backend.names()[-2:] == ["dump_metadata", "erase_metadata"]


@pytest.mark.parametrize(
    "argv,mutator",
    [
        (["-a", "y", "-t"], "activate_sets"),
        (["-r", "-E", "-t"], "erase_metadata"),
        (["-x", "-t", "isw_vol0"], "delete_sets"),
        (["-t", "-R", "isw_vol0"], "rebuild_set"),
        (["-t", "-S", "-M", "/dev/sdd"], "hot_spare_add"),
        (["-t", "-C", "vol1", "--type", "0"], "create_set"),
    ],
)
def test_test_mode_never_mutates(argv, mutator, fake_backend, sample_config, as_root, capsys):
    assert perform(_session(argv, fake_backend, sample_config)) is True
    assert mutator not in fake_backend.names()
    assert "[test]" in capsys.readouterr().out


def test_create_receives_request(fake_backend, sample_config, as_root):
    argv = ["-f", "isw", "-C", "myset", "--type", "raid1", "--disks", "/dev/sda,/dev/sdb"]
    perform(_session(argv, fake_backend, sample_config))
    assert fake_backend.calls[-1] == ("create_set", ["myset", "--type", "raid1", "--disks", "/dev/sda,/dev/sdb"], ["isw"])


def test_rebuild_with_drive(fake_backend, sample_config, as_root):
    fake_backend.set_names = ["isw_vol0"]
    perform(_session(["-R", "isw_vol0", "/dev/sdc"], fake_backend, sample_config))
    assert ("group_sets", ["isw_vol0"]) in fake_backend.calls
    assert fake_backend.calls[-1] == ("rebuild_set", "isw_vol0", "/dev/sdc")


def test_spare_to_named_set(fake_backend, sample_config, as_root):
    perform(_session(["-S", "isw_vol0", "-M", "/dev/sdd"], fake_backend, sample_config))
    assert fake_backend.calls[-1] == ("hot_spare_add", "isw_vol0", "/dev/sdd")


def test_unknown_set_name(fake_backend, sample_config, as_root):
    with pytest.raises(MetadataError, match="no raid sets matching: nosuch"):
        perform(_session(["-a", "y", "nosuch"], fake_backend, sample_config))


def test_handler_failure_propagates(sample_config, as_root):
    class Failing(FakeBackend):
        def delete_sets(self, sets):
            return False

    assert perform(_session(["-x", "isw_vol0"], Failing(), sample_config)) is False


def test_backend_error_propagates(sample_config, as_root):
    class Unsupported(FakeBackend):
        def rebuild_set(self, name, disk=None):
            raise BackendError("rebuild is not supported by this metadata layer")

    with pytest.raises(BackendError):
        perform(_session(["-R", "isw_vol0"], Unsupported(), sample_config))


def test_remove_only_touches_named_set(sample_config, as_root):
    backend = FakeBackend(sets=("isw_a", "isw_b", "isw_c"))
    assert perform(_session(["-x", "isw_b"], backend, sample_config)) is True
    assert backend.calls[-1] == ("delete_sets", ["isw_b"])


def test_rebuild_drive_before_modifier(fake_backend, sample_config, as_root):
    perform(_session(["-R", "isw_vol0", "/dev/sdc", "-v"], fake_backend, sample_config))
    assert fake_backend.calls[-1] == ("rebuild_set", "isw_vol0", "/dev/sdc")


def test_erase_test_mode_writes_no_dump(fake_backend, sample_config, as_root, capsys):
    assert perform(_session(["-r", "-E", "-t"], fake_backend, sample_config)) is True
    assert "dump_metadata" not in fake_backend.names()
    assert not sample_config.dump_dir.exists()
    assert f"would dump metadata to {sample_config.dump_dir}" in capsys.readouterr().out
