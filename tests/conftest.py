from pathlib import Path

import pytest
from pytest import MonkeyPatch

from nixwizard.lib.disk.ids import entry_ids
from nixwizard.lib.disk.layout import Disk
from nixwizard.lib.disk.utils import find_disk, load_disks
from nixwizard.lib.output import logger

# 100 GiB with 512 byte sectors
DISK_SECTORS = 209715200


@pytest.fixture(autouse=True)
def reset_entry_ids() -> None:
	entry_ids.reset()


@pytest.fixture(autouse=True)
def log_dir(tmp_path: Path, monkeypatch: MonkeyPatch) -> Path:
	monkeypatch.setattr(logger, 'directory', tmp_path)
	monkeypatch.setattr(logger, 'verbose', False)
	return tmp_path


@pytest.fixture(scope='session')
def lsblk_fixture() -> Path:
	return Path(__file__).parent / 'data' / 'lsblk_output.json'


@pytest.fixture(scope='session')
def config_fixture() -> Path:
	return Path(__file__).parent / 'data' / 'test_config.json'


@pytest.fixture(scope='session')
def default_config_fixture() -> Path:
	return Path(__file__).parent / 'data' / 'test_config_default.json'


@pytest.fixture
def empty_disk() -> Disk:
	return Disk('vda', DISK_SECTORS, 512)


@pytest.fixture
def sda(lsblk_fixture: Path) -> Disk:
	disk = find_disk(load_disks(lsblk_fixture), 'sda')
	assert disk is not None
	return disk
