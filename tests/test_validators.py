import pytest

from nixwizard.lib.disk.validators import (
	fs_types,
	valid_fs_type,
	valid_size,
	validate_label,
	validate_mount_point,
)


@pytest.mark.parametrize(
	'mount_point, taken, expected',
	[
		('/', [], None),
		('/home', ['/', '/boot'], None),
		('/var/lib', [], None),
		('', [], 'Mount point cannot be empty.'),
		('home', [], "Mount point must be an absolute path starting with '/'."),
		('/home/', [], "Mount point cannot end with '/' unless it is root '/'."),
		('/boot', ['/', '/boot'], "Mount point '/boot' is already taken by another partition."),
		('/', ['/'], "Mount point '/' is already taken by another partition."),
	],
)
def test_validate_mount_point(mount_point: str, taken: list[str], expected: str | None) -> None:
	assert validate_mount_point(mount_point, taken) == expected


@pytest.mark.parametrize(
	'label, expected',
	[
		('ROOT', None),
		('nixos-root_1', None),
		('a' * 36, None),
		('', 'Label cannot be empty.'),
		('a' * 37, 'Label cannot be longer than 36 characters.'),
		('my root', 'Label cannot contain whitespace.'),
		('root\t', 'Label cannot contain whitespace.'),
	],
)
def test_validate_label(label: str, expected: str | None) -> None:
	assert validate_label(label) == expected


def test_valid_size() -> None:
	assert valid_size('512MiB', 512, 1000000)
	assert valid_size('50%', 512, 1000000)
	assert valid_size('2048', 512, 1000000)

	assert not valid_size('0', 512, 1000000)
	assert not valid_size('bogus', 512, 1000000)
	assert not valid_size('', 512, 1000000)


def test_fs_types() -> None:
	assert fs_types() == ['btrfs', 'ext2', 'ext3', 'ext4', 'fat12', 'fat16', 'fat32', 'ntfs', 'swap', 'xfs']


@pytest.mark.parametrize(
	'fs_type, expected',
	[
		('ext4', True),
		('EXT4', True),
		('swap', True),
		('fat32', True),
		('zfs', False),
		('', False),
		('linux-swap', False),
	],
)
def test_valid_fs_type(fs_type: str, expected: bool) -> None:
	assert valid_fs_type(fs_type) is expected
