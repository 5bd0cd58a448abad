import json
from pathlib import Path

import pytest
from pytest import MonkeyPatch

from nixwizard.lib.disk import utils
from nixwizard.lib.disk.layout import Disk
from nixwizard.lib.disk.utils import (
	disk_from_lsblk,
	find_disk,
	get_all_disks,
	is_system_device,
	load_disks,
	parse_lsblk_output,
)
from nixwizard.lib.exceptions import DiskError
from nixwizard.lib.models.device import FreeSpace, LsblkInfo, Partition, PartStatus


def _device(children: list[dict]) -> str:  # type: ignore[type-arg]
	return json.dumps(
		{
			'blockdevices': [
				{
					'name': 'vdb',
					'size': 10737418240,
					'type': 'disk',
					'phy-sec': 512,
					'children': children,
				},
			],
		}
	)


def test_parse_lsblk_output(lsblk_fixture: Path) -> None:
	disks = parse_lsblk_output(lsblk_fixture.read_text())

	# loop devices are not disks and sdb hosts the installer
	assert [disk.name for disk in disks] == ['sda', 'nvme0n1']


def test_disk_from_lsblk(sda: Disk) -> None:
	assert sda.size == 209715200
	assert sda.sector_size == 512

	sda1, sda2, free = sda.layout

	assert isinstance(sda1, Partition)
	assert isinstance(sda2, Partition)
	assert isinstance(free, FreeSpace)

	assert (sda1.id, sda2.id, free.id) == (1, 2, 3)
	assert (sda1.start, sda1.size) == (2048, 1048576)
	assert (sda2.start, sda2.size) == (1050624, 104857600)
	assert (free.start, free.size) == (105908224, 103806976)

	assert sda1.status == PartStatus.Exists
	assert sda1.name == 'sda1'
	assert sda1.fs_type == 'vfat'
	assert sda1.label == 'EFI'
	assert sda1.mount_point is None
	assert sda1.disko_fs_type() == 'vfat'
	assert sda2.label == 'nixos'

	assert sda.initial_layout == [sda1, sda2]


def test_large_sectors(lsblk_fixture: Path) -> None:
	nvme = find_disk(load_disks(lsblk_fixture), '/dev/nvme0n1')
	assert nvme is not None

	assert nvme.sector_size == 4096
	assert nvme.size == 125026902

	part = nvme.partitions()[0]
	assert (part.start, part.size, part.sector_size) == (256, 262144, 4096)
	assert part.size_bytes() == 1073741824

	free = nvme.free_spaces()
	assert [(f.start, f.size) for f in free] == [(262400, 125026902 - 262400)]


def test_zero_sized_children_are_skipped() -> None:
	disks = parse_lsblk_output(
		_device(
			[
				{'name': 'vdb1', 'size': 100, 'type': 'part', 'start': 2048},
				{'name': 'vdb2', 'size': 0, 'type': 'part', 'start': 4096},
				{'name': 'vdb3', 'size': 1048576, 'type': 'part', 'start': 4096},
			]
		)
	)

	assert [p.name for p in disks[0].partitions()] == ['vdb3']


def test_missing_start_is_an_error() -> None:
	data = _device([{'name': 'vdb1', 'size': 1048576, 'type': 'part'}])
	info = LsblkInfo.model_validate(json.loads(data)['blockdevices'][0])

	with pytest.raises(DiskError, match='vdb1'):
		disk_from_lsblk(info)

	# only the broken disk is left out
	assert parse_lsblk_output(data) == []


def test_broken_disk_does_not_hide_others(lsblk_fixture: Path) -> None:
	output = json.loads(lsblk_fixture.read_text())
	output['blockdevices'] += [
		{
			'name': 'sdc',
			'size': 10737418240,
			'type': 'disk',
			'children': [{'name': 'vg-root', 'size': 10737418240, 'type': 'lvm', 'start': None}],
		},
		{
			'name': 'sdd',
			'size': 10737418240,
			'type': 'disk',
			'children': [{'name': 'sdd1', 'size': 1048576, 'type': 'part'}],
		},
		{'name': 'sde', 'type': 'disk'},
		{'size': 1024, 'type': 'rom'},
	]

	assert [disk.name for disk in parse_lsblk_output(json.dumps(output))] == ['sda', 'nvme0n1']


def test_whole_disk_in_use() -> None:
	data = _device([{'name': 'luks-root', 'size': 10736369664, 'type': 'crypt'}])
	info = LsblkInfo.model_validate(json.loads(data)['blockdevices'][0])

	with pytest.raises(DiskError, match='in use by luks-root'):
		disk_from_lsblk(info)


@pytest.mark.parametrize(
	'data',
	[
		'',
		'not json',
		'{}',
		'{"blockdevices": 5}',
		'[]',
	],
)
def test_invalid_output(data: str) -> None:
	with pytest.raises(DiskError):
		parse_lsblk_output(data)


def test_missing_sector_size_defaults() -> None:
	data = '{"blockdevices": [{"name": "vdb", "size": 1073741824, "type": "disk", "phy-sec": null}]}'
	disk = parse_lsblk_output(data)[0]

	assert disk.sector_size == 512
	assert disk.size == 2097152


def test_nested_system_mountpoint() -> None:
	info = LsblkInfo.model_validate(
		{
			'name': 'vdc',
			'size': 10737418240,
			'type': 'disk',
			'children': [
				{
					'name': 'vdc1',
					'size': 10736369664,
					'type': 'part',
					'start': 2048,
					'children': [
						{
							'name': 'cryptroot',
							'size': 10719592448,
							'type': 'crypt',
							'mountpoints': ['/', None],
						},
					],
				},
			],
		}
	)

	assert info.all_mountpoints() == {'/'}
	assert is_system_device(info)

	data = json.dumps({'blockdevices': [info.model_dump(by_alias=True)]})
	assert parse_lsblk_output(data) == []


def test_lsblk_fields() -> None:
	fields = LsblkInfo.fields()

	assert 'phy-sec' in fields
	assert 'start' in fields
	assert 'children' not in fields


def test_get_all_disks(monkeypatch: MonkeyPatch, lsblk_fixture: Path) -> None:
	monkeypatch.setattr(utils, '_fetch_lsblk_output', lambda: lsblk_fixture.read_bytes())

	assert [disk.name for disk in get_all_disks()] == ['sda', 'nvme0n1']


def test_load_disks_missing_file(tmp_path: Path) -> None:
	with pytest.raises(DiskError):
		load_disks(tmp_path / 'missing.json')


def test_find_disk(lsblk_fixture: Path) -> None:
	disks = load_disks(lsblk_fixture)

	assert find_disk(disks, 'sda') is disks[0]
	assert find_disk(disks, '/dev/sda') is disks[0]
	assert find_disk(disks, 'sdb') is None
