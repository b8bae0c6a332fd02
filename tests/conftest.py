"""
Pytest configuration and fixtures.
"""
import logging

import pytest

from netreg.config import Settings
from netreg.registry import LinkRegistry


class EventRecorder:
    """Observer collecting PropertiesChanged events"""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    def manager_events(self):
        return [e for e in self.events if e.interface.endswith('.Manager')]

    def link_events(self):
        return [e for e in self.events if e.interface.endswith('.Link')]


@pytest.fixture(autouse=True)
def reset_netreg_logger():
    """Drop handlers installed by setup_logging so they don't outlive capsys"""
    yield
    logger = logging.getLogger("netreg")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def registry(recorder):
    reg = LinkRegistry()
    reg.dispatcher.subscribe(recorder)
    return reg


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment and the real sysfs"""
    return Settings(sysfs_root=str(tmp_path / "net"), _env_file=None)


def make_sysfs_link(root, name, index, operstate="up", carrier="1", flags="0x1003"):
    """Create a fake /sys/class/net/<name> directory"""
    dev = root / name
    dev.mkdir(parents=True, exist_ok=True)
    (dev / "ifindex").write_text(f"{index}\n")
    (dev / "operstate").write_text(f"{operstate}\n")
    if carrier is not None:
        (dev / "carrier").write_text(f"{carrier}\n")
    elif (dev / "carrier").exists():
        (dev / "carrier").unlink()
    if flags is not None:
        (dev / "flags").write_text(f"{flags}\n")
    return dev


@pytest.fixture
def sysfs(tmp_path):
    root = tmp_path / "net"
    root.mkdir()
    return root
