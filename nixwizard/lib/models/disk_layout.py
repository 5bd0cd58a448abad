from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, NotRequired, TypedDict

from ..disk.units import parse_sectors
from ..disk.validators import valid_fs_type, valid_size, validate_label, validate_mount_point
from ..exceptions import LayoutError, ValidationError
from ..output import debug
from .device import Partition, PartitionBuilder, PartStatus

if TYPE_CHECKING:
	from ..disk.layout import Disk


class DiskLayoutType(Enum):
	Default = 'default_layout'
	Manual = 'manual_partitioning'

	def display_msg(self) -> str:
		match self:
			case DiskLayoutType.Default:
				return 'Use a best-effort default partition layout'
			case DiskLayoutType.Manual:
				return 'Manual Partitioning'


class _PartitionModificationSerialization(TypedDict):
	device: str
	fs_type: str
	mount_point: NotRequired[str]
	label: NotRequired[str]
	flags: NotRequired[list[str]]


class _NewPartitionSerialization(TypedDict):
	mount_point: str
	size: NotRequired[str]
	start: NotRequired[str]
	fs_type: NotRequired[str]
	label: NotRequired[str]
	flags: NotRequired[list[str]]


class _DiskLayoutConfigurationSerialization(TypedDict):
	config_type: str
	fs_type: NotRequired[str]
	delete: NotRequired[list[str]]
	modify: NotRequired[list[_PartitionModificationSerialization]]
	partitions: NotRequired[list[_NewPartitionSerialization]]


def _check_fs_type(fs_type: str) -> str:
	if not valid_fs_type(fs_type):
		raise ValidationError(f'Unsupported filesystem type: {fs_type}')
	return fs_type.lower()


@dataclass
class PartitionModification:
	"""
	Reformats a partition that already exists on the disk
	"""

	device: str
	fs_type: str
	mount_point: str | None = None
	label: str | None = None
	flags: list[str] = field(default_factory=list)

	def json(self) -> _PartitionModificationSerialization:
		config: _PartitionModificationSerialization = {
			'device': self.device,
			'fs_type': self.fs_type,
		}

		if self.mount_point:
			config['mount_point'] = self.mount_point

		if self.label:
			config['label'] = self.label

		if self.flags:
			config['flags'] = self.flags

		return config

	@classmethod
	def parse_arg(cls, arg: _PartitionModificationSerialization) -> PartitionModification:
		if not arg.get('device'):
			raise ValidationError('A modified partition needs a device')

		if not arg.get('fs_type'):
			raise ValidationError(f'Partition {arg["device"]} is modified but has no filesystem type')

		return PartitionModification(
			device=arg['device'],
			fs_type=_check_fs_type(arg['fs_type']),
			mount_point=arg.get('mount_point'),
			label=arg.get('label'),
			flags=arg.get('flags', []),
		)


@dataclass
class NewPartition:
	"""
	A partition to create. Sizes are given the way a user would type them,
	e.g. '512MiB', '20%' or a number of sectors. A percentage is taken of
	the free region the partition ends up in. Without a start the
	partition is placed in the first free region that can hold it and
	without a size it takes up the rest of its region.
	"""

	mount_point: str
	size: str | None = None
	start: str | None = None
	fs_type: str | None = None
	label: str | None = None
	flags: list[str] = field(default_factory=list)

	def json(self) -> _NewPartitionSerialization:
		config: _NewPartitionSerialization = {'mount_point': self.mount_point}

		if self.size:
			config['size'] = self.size

		if self.start:
			config['start'] = self.start

		if self.fs_type:
			config['fs_type'] = self.fs_type

		if self.label:
			config['label'] = self.label

		if self.flags:
			config['flags'] = self.flags

		return config

	@classmethod
	def parse_arg(cls, arg: _NewPartitionSerialization) -> NewPartition:
		if not arg.get('mount_point'):
			raise ValidationError('A new partition needs a mount point')

		fs_type = arg.get('fs_type')

		return NewPartition(
			mount_point=arg['mount_point'],
			size=arg.get('size'),
			start=arg.get('start'),
			fs_type=_check_fs_type(fs_type) if fs_type else None,
			label=arg.get('label'),
			flags=arg.get('flags', []),
		)


@dataclass
class DiskLayoutConfiguration:
	config_type: DiskLayoutType
	fs_type: str = 'ext4'
	delete: list[str] = field(default_factory=list)
	modify: list[PartitionModification] = field(default_factory=list)
	partitions: list[NewPartition] = field(default_factory=list)

	def json(self) -> _DiskLayoutConfigurationSerialization:
		config: _DiskLayoutConfigurationSerialization = {
			'config_type': self.config_type.value,
			'fs_type': self.fs_type,
		}

		if self.config_type == DiskLayoutType.Manual:
			config['delete'] = self.delete
			config['modify'] = [mod.json() for mod in self.modify]
			config['partitions'] = [part.json() for part in self.partitions]

		return config

	@classmethod
	def parse_arg(cls, disk_config: _DiskLayoutConfigurationSerialization) -> DiskLayoutConfiguration:
		config_type = disk_config.get('config_type', None)

		if not config_type:
			raise ValueError('Missing disk layout configuration: config_type')

		config = DiskLayoutConfiguration(
			config_type=DiskLayoutType(config_type),
			fs_type=_check_fs_type(disk_config.get('fs_type', 'ext4')),
		)

		if config.config_type == DiskLayoutType.Manual:
			config.delete = [name.removeprefix('/dev/') for name in disk_config.get('delete', [])]
			config.modify = [PartitionModification.parse_arg(mod) for mod in disk_config.get('modify', [])]
			config.partitions = [NewPartition.parse_arg(part) for part in disk_config.get('partitions', [])]

		return config

	def apply(self, disk: Disk) -> None:
		"""
		Turns the configuration into changes on the disk's layout.
		Either every change is applied or, if one of them fails, none.
		"""
		match self.config_type:
			case DiskLayoutType.Default:
				disk.use_default_layout(self.fs_type)
			case DiskLayoutType.Manual:
				snapshot = copy.deepcopy(disk.layout)

				try:
					self._apply_manual(disk)
				except LayoutError:
					debug(f'Manual plan for {disk.device_path} failed, restoring the previous layout')
					disk.layout = snapshot
					raise

	def _apply_manual(self, disk: Disk) -> None:
		for name in self.delete:
			disk.delete_partition(self._existing_partition(disk, name).id)

		for mod in self.modify:
			self._modify_partition(disk, mod)

		for new_part in self.partitions:
			disk.new_partition(self._build_partition(disk, new_part))

	def _existing_partition(self, disk: Disk, name: str) -> Partition:
		name = name.removeprefix('/dev/')

		for part in disk.partitions():
			if part.name == name and not part.is_create():
				return part

		raise ValidationError(f'No partition named {name} on {disk.device_path}')

	def _modify_partition(self, disk: Disk, mod: PartitionModification) -> None:
		part = self._existing_partition(disk, mod.device)

		if mod.mount_point is not None:
			if err := validate_mount_point(mod.mount_point, disk.taken_mount_points(exclude_id=part.id)):
				raise ValidationError(err)

		if mod.label is not None:
			if err := validate_label(mod.label):
				raise ValidationError(err)

		if part.status != PartStatus.Modify:
			disk.set_partition_status(part.id, PartStatus.Modify)

		debug(f'Reformatting {mod.device} as {mod.fs_type}')

		part.set_fs_type(mod.fs_type)

		if mod.mount_point is not None:
			part.set_mount_point(mod.mount_point)

		if mod.label is not None:
			part.set_label(mod.label)

		part.add_flags(mod.flags)

	def _build_partition(self, disk: Disk, new_part: NewPartition) -> Partition:
		if err := validate_mount_point(new_part.mount_point, disk.taken_mount_points()):
			raise ValidationError(err)

		if new_part.label is not None:
			if err := validate_label(new_part.label):
				raise ValidationError(err)

		if new_part.size is not None and not valid_size(new_part.size, disk.sector_size, disk.size):
			raise ValidationError(f'Invalid partition size: {new_part.size}')

		if new_part.start is not None:
			start = parse_sectors(new_part.start, disk.sector_size, disk.size)
			if start is None:
				raise ValidationError(f'Invalid partition start: {new_part.start}')
			if start >= disk.size:
				raise ValidationError(f'Partition for {new_part.mount_point} starts past the end of {disk.device_path}')
			size = self._size_within(new_part, disk, self._free_from(disk, start))
		else:
			start, size = self._place(disk, new_part)

		if start + size > disk.size:
			raise ValidationError(f'Partition for {new_part.mount_point} does not fit on {disk.device_path}')

		builder = (
			PartitionBuilder()
			.start(start)
			.size(size)
			.sector_size(disk.sector_size)
			.status(PartStatus.Create)
			.fs_type(new_part.fs_type or self.fs_type)
			.mount_point(new_part.mount_point)
			.add_flags(new_part.flags)
		)

		if new_part.label:
			builder.label(new_part.label)

		return builder.build()

	def _size_within(self, new_part: NewPartition, disk: Disk, available: int) -> int:
		if new_part.size is None:
			return available

		size = parse_sectors(new_part.size, disk.sector_size, available)
		if not size:
			raise ValidationError(f'Invalid partition size: {new_part.size}')

		return size

	def _free_from(self, disk: Disk, start: int) -> int:
		"""Sectors from start to the end of the free region holding it"""
		for region in disk.free_spaces():
			if region.start <= start < region.end:
				return region.end - start

		return disk.size - start

	def _place(self, disk: Disk, new_part: NewPartition) -> tuple[int, int]:
		for region in disk.free_spaces():
			size = self._size_within(new_part, disk, region.size)
			if size <= region.size:
				return region.start, size

		raise ValidationError(f'Not enough free space on {disk.device_path}')
