from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import DiskError, SysCallError
from ..general import locate_binary, run
from ..models.device import DiskItem, LsblkInfo, Partition, PartStatus
from ..output import debug, info, warn
from .layout import Disk

# lsblk reports START in these units whatever the sector size is
LSBLK_START_UNIT = 512

# the installer itself runs from these
SYSTEM_MOUNTPOINTS = ['/', '/iso']


class LsblkOutput(BaseModel):
	# each device is validated on its own so one odd entry does not hide the rest
	blockdevices: list[dict[str, Any]]


def _fetch_lsblk_output() -> bytes:
	cmd = [locate_binary('lsblk'), '--json', '--bytes', '--output', ','.join(LsblkInfo.fields())]

	try:
		worker = run(cmd)
	except SysCallError as err:
		# Get the output minus the message/info from lsblk if it returns a non-zero exit code.
		if err.worker_log:
			debug(f'Error calling lsblk: {err.worker_log.decode()}')
		raise DiskError('Failed to enumerate block devices with lsblk') from err

	return worker.stdout


def is_system_device(lsblk_info: LsblkInfo) -> bool:
	return any(mountpoint in SYSTEM_MOUNTPOINTS for mountpoint in lsblk_info.all_mountpoints())


def partition_from_lsblk(lsblk_info: LsblkInfo, sector_size: int) -> Partition | None:
	"""
	Converts a child entry of a disk into an existing partition.
	Entries without any sectors (e.g. extended partition stubs) return None
	"""
	if lsblk_info.start is None:
		raise DiskError(f'Partition {lsblk_info.name} is missing its start sector')

	size = lsblk_info.size // sector_size
	if size == 0:
		debug(f'Skipping partition {lsblk_info.name} without any sectors')
		return None

	return Partition(
		start=lsblk_info.start * LSBLK_START_UNIT // sector_size,
		size=size,
		sector_size=sector_size,
		status=PartStatus.Exists,
		name=lsblk_info.name,
		fs_type=lsblk_info.fstype,
		mount_point=lsblk_info.mountpoint,
		label=lsblk_info.label,
		ro=lsblk_info.ro,
	)


def disk_from_lsblk(lsblk_info: LsblkInfo) -> Disk:
	"""
	A disk whose direct children are not all partitions, e.g. an LVM
	physical volume or a LUKS container on the whole device, is in use
	and raises DiskError
	"""
	sector_size = lsblk_info.phy_sec
	layout: list[DiskItem] = []

	for child in lsblk_info.children:
		if child.type != 'part':
			raise DiskError(f'{lsblk_info.name} is in use by {child.name} ({child.type})')

		if partition := partition_from_lsblk(child, sector_size):
			layout.append(partition)

	return Disk(
		name=lsblk_info.name,
		size=lsblk_info.size // sector_size,
		sector_size=sector_size,
		layout=layout,
	)


def parse_lsblk_output(data: str | bytes) -> list[Disk]:
	"""
	Builds the candidate disks from the JSON document printed by
	`lsblk --json --bytes`. Only whole disks are returned and a disk
	the running system is mounted from is never offered.
	"""
	try:
		output = LsblkOutput.model_validate_json(data)
	except PydanticValidationError as err:
		raise DiskError(f'Could not parse the lsblk output: {err}') from err

	disks: list[Disk] = []

	for raw in output.blockdevices:
		try:
			device = LsblkInfo.model_validate(raw)
		except PydanticValidationError as err:
			debug(f'Invalid lsblk entry {raw}: {err}')
			warn(f'Skipping block device {raw.get("name", "<unnamed>")}, lsblk reported incomplete data')
			continue

		if device.type != 'disk':
			continue

		if is_system_device(device):
			info(f'Skipping {device.name}, it hosts the running system')
			continue

		try:
			disks.append(disk_from_lsblk(device))
		except DiskError as err:
			warn(f'Skipping {device.name}: {err}')

	if not disks:
		warn('No usable disks were found')

	return disks


def get_all_disks() -> list[Disk]:
	return parse_lsblk_output(_fetch_lsblk_output())


def load_disks(path: Path) -> list[Disk]:
	"""
	Reads disks from a previously saved lsblk JSON document
	"""
	try:
		data = path.read_text()
	except OSError as err:
		raise DiskError(f'Could not read lsblk output from {path}: {err}') from err

	return parse_lsblk_output(data)


def find_disk(disks: list[Disk], name: str) -> Disk | None:
	name = name.removeprefix('/dev/')

	for disk in disks:
		if disk.name == name:
			return disk

	return None
