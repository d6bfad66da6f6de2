from __future__ import annotations

import pytest

from tests.fakes import URI, FakeRunner
from vm_tools.services import DiskImageService, NetworkService, VirshClient, VMManager
from vm_tools.utils.locks import NameLocks


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def sys_net(tmp_path):
    """An empty stand-in for /sys/class/net."""
    path = tmp_path / "sys-class-net"
    path.mkdir()
    return path


@pytest.fixture
def images_dir(tmp_path):
    path = tmp_path / "images"
    path.mkdir()
    return path


@pytest.fixture
def client(runner) -> VirshClient:
    return VirshClient(runner, uri=URI, images=DiskImageService(runner))


@pytest.fixture
def network_service(runner, sys_net) -> NetworkService:
    return NetworkService(runner, sys_class_net=sys_net)


@pytest.fixture
def manager(runner, client, network_service, images_dir, tmp_path) -> VMManager:
    return VMManager(
        client=client,
        images=client.images,
        network_service=network_service,
        images_dir=images_dir,
        iso_dir=tmp_path / "iso",
        locks=NameLocks(lock_dir=tmp_path / "locks", timeout=1.0),
        poll_interval=0.01,
        poll_attempts=3,
    )
