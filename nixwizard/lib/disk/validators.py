from .units import parse_sectors

# GPT partition names are limited to 36 UTF-16 code units
MAX_LABEL_LENGTH = 36


def validate_mount_point(mount_point: str, taken: list[str]) -> str | None:
	"""
	Returns the reason a mount point can not be used, or None if it is fine
	"""
	if not mount_point:
		return 'Mount point cannot be empty.'

	if not mount_point.startswith('/'):
		return "Mount point must be an absolute path starting with '/'."

	if mount_point != '/' and mount_point.endswith('/'):
		return "Mount point cannot end with '/' unless it is root '/'."

	if mount_point in taken:
		return f"Mount point '{mount_point}' is already taken by another partition."

	return None


def validate_label(label: str) -> str | None:
	if not label:
		return 'Label cannot be empty.'

	if len(label) > MAX_LABEL_LENGTH:
		return f'Label cannot be longer than {MAX_LABEL_LENGTH} characters.'

	if any(c.isspace() for c in label):
		return 'Label cannot contain whitespace.'

	return None


def valid_size(value: str, sector_size: int, total_sectors: int) -> bool:
	return bool(parse_sectors(value, sector_size, total_sectors))


def fs_types() -> list[str]:
	"""
	Filesystems a new or reformatted partition can be given
	"""
	return [
		'btrfs',
		'ext2',
		'ext3',
		'ext4',
		'fat12',
		'fat16',
		'fat32',
		'ntfs',
		'swap',
		'xfs',
	]


def valid_fs_type(fs_type: str) -> bool:
	return fs_type.lower() in fs_types()
