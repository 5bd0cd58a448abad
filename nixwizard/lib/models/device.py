from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TypedDict

from pydantic import BaseModel, Field, field_validator

from ..disk.ids import get_entry_id
from ..disk.units import bytes_readable
from ..exceptions import ValidationError

DEFAULT_SECTOR_SIZE = 512


class PartStatus(Enum):
	Exists = 'existing'
	Modify = 'modify'
	Create = 'create'
	Delete = 'delete'
	Unknown = 'unknown'

	def can_transition_to(self, target: PartStatus) -> bool:
		"""
		Status changes a user can request for a partition. Nothing leaves
		Delete, only resetting the whole layout brings those partitions back
		"""
		match self, target:
			case PartStatus.Exists, PartStatus.Modify:
				return True
			case PartStatus.Modify, PartStatus.Exists:
				return True
			case PartStatus.Exists | PartStatus.Modify | PartStatus.Create, PartStatus.Delete:
				return True
			case _:
				return False


class FilesystemType(Enum):
	Ext2 = 'ext2'
	Ext3 = 'ext3'
	Ext4 = 'ext4'
	Btrfs = 'btrfs'
	Xfs = 'xfs'
	Fat12 = 'fat12'
	Fat16 = 'fat16'
	Fat32 = 'fat32'
	Ntfs = 'ntfs'
	Swap = 'swap'

	# how lsblk reports any FAT filesystem
	Vfat = 'vfat'

	@classmethod
	def from_string(cls, fs_type: str | None) -> FilesystemType | None:
		if fs_type is None:
			return None

		try:
			return cls(fs_type)
		except ValueError:
			return None

	def is_fat(self) -> bool:
		return self in [
			FilesystemType.Fat12,
			FilesystemType.Fat16,
			FilesystemType.Fat32,
			FilesystemType.Vfat,
		]

	@property
	def disko_format(self) -> str:
		if self.is_fat():
			return 'vfat'

		return self.value

	def gpt_code(self, is_esp: bool = False) -> str:
		match self:
			case FilesystemType.Ext2 | FilesystemType.Ext3 | FilesystemType.Ext4 | FilesystemType.Btrfs | FilesystemType.Xfs:
				return '8300'
			case FilesystemType.Fat12 | FilesystemType.Fat16 | FilesystemType.Fat32 | FilesystemType.Vfat:
				return 'EF00' if is_esp else '0700'
			case FilesystemType.Ntfs:
				return '0700'
			case FilesystemType.Swap:
				return '8200'


class _PartitionSerialization(TypedDict):
	id: int
	status: str
	start: int
	size: int
	sector_size: int
	name: str | None
	fs_type: str | None
	mount_point: str | None
	label: str | None
	ro: bool
	flags: list[str]


@dataclass
class Partition:
	start: int
	size: int
	sector_size: int = DEFAULT_SECTOR_SIZE
	status: PartStatus = PartStatus.Unknown
	name: str | None = None
	fs_type: str | None = None
	mount_point: str | None = None
	label: str | None = None
	ro: bool = False
	flags: list[str] = field(default_factory=list)
	id: int = field(default_factory=get_entry_id)

	@property
	def end(self) -> int:
		"""First sector after the partition"""
		return self.start + self.size

	def size_bytes(self, sector_size: int | None = None) -> int:
		return self.size * (sector_size or self.sector_size)

	def disko_fs_type(self) -> str | None:
		if fs_type := FilesystemType.from_string(self.fs_type):
			return fs_type.disko_format
		return None

	def fs_gpt_code(self, is_esp: bool) -> str | None:
		if fs_type := FilesystemType.from_string(self.fs_type):
			return fs_type.gpt_code(is_esp)
		return None

	def is_esp(self) -> bool:
		return 'esp' in self.flags

	def is_delete(self) -> bool:
		return self.status == PartStatus.Delete

	def is_create(self) -> bool:
		return self.status == PartStatus.Create

	def overlaps(self, start: int, end: int) -> bool:
		return start < self.end and end > self.start

	def set_name(self, name: str) -> None:
		self.name = name

	def set_status(self, status: PartStatus) -> None:
		self.status = status

	def set_fs_type(self, fs_type: str) -> None:
		self.fs_type = fs_type

	def set_mount_point(self, mount_point: str) -> None:
		self.mount_point = mount_point

	def set_label(self, label: str) -> None:
		self.label = label

	def set_ro(self, ro: bool) -> None:
		self.ro = ro

	def add_flag(self, flag: str) -> None:
		if flag not in self.flags:
			self.flags.append(flag)

	def add_flags(self, flags: list[str]) -> None:
		for flag in flags:
			self.add_flag(flag)

	def remove_flag(self, flag: str) -> None:
		self.flags = [f for f in self.flags if f != flag]

	def remove_flags(self, flags: list[str]) -> None:
		self.flags = [f for f in self.flags if f not in flags]

	def json(self) -> _PartitionSerialization:
		return {
			'id': self.id,
			'status': self.status.value,
			'start': self.start,
			'size': self.size,
			'sector_size': self.sector_size,
			'name': self.name,
			'fs_type': self.fs_type,
			'mount_point': self.mount_point,
			'label': self.label,
			'ro': self.ro,
			'flags': self.flags,
		}

	def table_data(self, sector_size: int | None = None) -> dict[str, str]:
		"""
		Called for displaying data in table format
		"""
		return {
			'Status': self.status.value,
			'Device': self.name or '',
			'Label': self.label or '',
			'Start': str(self.start),
			'End': str(self.end - 1),
			'Size': bytes_readable(self.size_bytes(sector_size)),
			'FS Type': self.fs_type or '',
			'Mount Point': self.mount_point or '',
			'Flags': ', '.join(self.flags),
		}


class PartitionBuilder:
	"""
	Collects the attributes of a new partition and validates them all at
	once in build(), so a half configured Partition is never handed out.

		boot = (
			PartitionBuilder()
			.start(2048)
			.size(1024000)
			.fs_type('fat32')
			.mount_point('/boot')
			.build()
		)
	"""

	def __init__(self) -> None:
		self._start: int | None = None
		self._size: int | None = None
		self._sector_size: int | None = None
		self._status = PartStatus.Unknown
		self._name: str | None = None
		self._fs_type: str | None = None
		self._mount_point: str | None = None
		self._label: str | None = None
		self._ro = False
		self._flags: list[str] = []

	def start(self, start: int) -> PartitionBuilder:
		self._start = start
		return self

	def size(self, size: int) -> PartitionBuilder:
		self._size = size
		return self

	def sector_size(self, sector_size: int) -> PartitionBuilder:
		self._sector_size = sector_size
		return self

	def status(self, status: PartStatus) -> PartitionBuilder:
		self._status = status
		return self

	def name(self, name: str) -> PartitionBuilder:
		self._name = name
		return self

	def fs_type(self, fs_type: str) -> PartitionBuilder:
		self._fs_type = fs_type
		return self

	def mount_point(self, mount_point: str) -> PartitionBuilder:
		self._mount_point = mount_point
		return self

	def label(self, label: str) -> PartitionBuilder:
		self._label = label
		return self

	def read_only(self, ro: bool = True) -> PartitionBuilder:
		self._ro = ro
		return self

	def add_flag(self, flag: str) -> PartitionBuilder:
		if flag not in self._flags:
			self._flags.append(flag)
		return self

	def add_flags(self, flags: list[str]) -> PartitionBuilder:
		for flag in flags:
			self.add_flag(flag)
		return self

	def build(self) -> Partition:
		if self._start is None:
			raise ValidationError('Partition start is required')

		if self._start < 0:
			raise ValidationError(f'Partition start must not be negative: {self._start}')

		if self._size is None:
			raise ValidationError('Partition size is required')

		if self._size <= 0:
			raise ValidationError('Partition size must be greater than zero')

		if not self._mount_point:
			raise ValidationError('Partition mount point is required')

		return Partition(
			start=self._start,
			size=self._size,
			sector_size=self._sector_size or DEFAULT_SECTOR_SIZE,
			status=self._status,
			name=self._name,
			fs_type=self._fs_type,
			mount_point=self._mount_point,
			label=self._label,
			ro=self._ro,
			flags=list(self._flags),
		)


class _FreeSpaceSerialization(TypedDict):
	id: int
	start: int
	size: int


@dataclass
class FreeSpace:
	start: int
	size: int
	id: int = field(default_factory=get_entry_id)

	@property
	def end(self) -> int:
		return self.start + self.size

	@property
	def mount_point(self) -> None:
		return None

	def json(self) -> _FreeSpaceSerialization:
		return {
			'id': self.id,
			'start': self.start,
			'size': self.size,
		}

	def table_data(self, sector_size: int = DEFAULT_SECTOR_SIZE) -> dict[str, str]:
		return {
			'Status': 'free',
			'Device': '',
			'Label': '',
			'Start': str(self.start),
			'End': str(self.end - 1),
			'Size': bytes_readable(self.size * sector_size),
			'FS Type': '',
			'Mount Point': '',
			'Flags': '',
		}


DiskItem = Partition | FreeSpace


class LsblkInfo(BaseModel):
	name: str
	size: int
	type: str | None = None
	phy_sec: int = Field(alias='phy-sec', default=DEFAULT_SECTOR_SIZE)
	# in 512 byte units, regardless of the device's sector size
	start: int | None = None
	mountpoint: str | None = None
	mountpoints: list[str] = Field(default_factory=list)
	fstype: str | None = None
	label: str | None = None
	ro: bool = False
	children: list[LsblkInfo] = Field(default_factory=list)

	@field_validator('phy_sec', mode='before')
	@classmethod
	def default_sector_size(cls, v: int | None) -> int:
		return v or DEFAULT_SECTOR_SIZE

	@field_validator('mountpoints', mode='before')
	@classmethod
	def remove_none(cls, v: list[str | None] | None) -> list[str]:
		return [item for item in v or [] if item is not None]

	@classmethod
	def fields(cls) -> list[str]:
		return [field.alias or name for name, field in cls.model_fields.items() if name != 'children']

	def all_mountpoints(self) -> set[str]:
		"""
		Mountpoints of the device and everything below it
		"""
		found = set(self.mountpoints)
		if self.mountpoint:
			found.add(self.mountpoint)

		for child in self.children:
			found |= child.all_mountpoints()

		return found
