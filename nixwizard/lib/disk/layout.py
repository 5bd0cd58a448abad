from __future__ import annotations

import copy
from dataclasses import replace
from typing import Any, TypedDict, assert_never

from ..exceptions import NotFoundError, OverlapError, StatusTransitionError, WrongVariantError
from ..models.device import (
	DEFAULT_SECTOR_SIZE,
	DiskItem,
	FreeSpace,
	Partition,
	PartitionBuilder,
	PartStatus,
	_FreeSpaceSerialization,
	_PartitionSerialization,
)
from ..output import FormattedOutput, debug, warn
from .units import (
	ALIGNMENT_SECTORS,
	MIN_FREE_SPACE_MB,
	bytes_disko_cfg,
	bytes_readable,
	mb_to_sectors,
)

BOOT_PARTITION_MB = 500
DEFAULT_ROOT_FS = 'ext4'


class _DiskSerialization(TypedDict):
	name: str
	size: int
	sector_size: int
	layout: list[_PartitionSerialization | _FreeSpaceSerialization]


class Disk:
	"""
	A disk and the plan for its partition table.

	Positions and sizes are sector counts. Partitions span the half open
	range [start, end), so two partitions may touch without overlapping.
	After every change the layout holds the deleted partitions first,
	followed by the remaining partitions and the free space between them
	in ascending order.
	"""

	def __init__(
		self,
		name: str,
		size: int,
		sector_size: int = DEFAULT_SECTOR_SIZE,
		layout: list[DiskItem] | None = None,
	) -> None:
		self.name = name
		self.size = size
		self.sector_size = sector_size
		self.layout: list[DiskItem] = list(layout or [])

		# what was found on the device, used to start over
		self.initial_layout: list[DiskItem] = copy.deepcopy(self.layout)

		# only used while exporting
		self.total_used_sectors = 0

		self.calculate_free_space()

	def __repr__(self) -> str:
		return f'Disk(name={self.name!r}, size={self.size}, sector_size={self.sector_size}, items={len(self.layout)})'

	@property
	def device_path(self) -> str:
		return f'/dev/{self.name}'

	def size_bytes(self) -> int:
		return self.size * self.sector_size

	def partitions(self) -> list[Partition]:
		return [item for item in self.layout if isinstance(item, Partition)]

	def active_partitions(self) -> list[Partition]:
		return [part for part in self.partitions() if not part.is_delete()]

	def free_spaces(self) -> list[FreeSpace]:
		return [item for item in self.layout if isinstance(item, FreeSpace)]

	def item_by_id(self, entry_id: int) -> DiskItem | None:
		for item in self.layout:
			if item.id == entry_id:
				return item
		return None

	def partition_by_id(self, entry_id: int) -> Partition | None:
		for part in self.partitions():
			if part.id == entry_id:
				return part
		return None

	def taken_mount_points(self, exclude_id: int | None = None) -> list[str]:
		return [
			part.mount_point
			for part in self.active_partitions()
			if part.mount_point and part.id != exclude_id
		]

	def _get_partition(self, entry_id: int) -> Partition:
		match self.item_by_id(entry_id):
			case None:
				raise NotFoundError(entry_id)
			case FreeSpace():
				raise WrongVariantError(entry_id)
			case Partition() as part:
				return part
			case item:
				assert_never(item)

	def clear_free_space(self) -> None:
		self.layout = [item for item in self.layout if not isinstance(item, FreeSpace)]
		self.normalize_layout()

	def calculate_free_space(self) -> None:
		"""
		Rebuilds the free space entries from the current partitions.

		Existing free space entries are thrown away. Gaps are searched from
		the first MiB of the disk up to its end, a gap has to be larger than
		MIN_FREE_SPACE_MB to be listed. Deleted partitions do not occupy
		any space.
		"""
		deleted: list[DiskItem] = []
		partitions: list[Partition] = []

		for item in self.layout:
			match item:
				case Partition() if item.is_delete():
					deleted.append(item)
				case Partition():
					partitions.append(item)
				case FreeSpace():
					pass
				case _:
					assert_never(item)

		partitions.sort(key=lambda p: p.start)

		min_gap = mb_to_sectors(MIN_FREE_SPACE_MB, self.sector_size)
		gaps: list[FreeSpace] = []
		cursor = ALIGNMENT_SECTORS

		for part in partitions:
			if part.start > cursor and part.start - cursor > min_gap:
				gaps.append(FreeSpace(start=cursor, size=part.start - cursor))

			cursor = part.end

		if cursor < self.size and self.size - cursor > min_gap:
			gaps.append(FreeSpace(start=cursor, size=self.size - cursor))

		items: list[DiskItem] = [*partitions, *gaps]
		items.sort(key=lambda i: i.start)

		self.layout = deleted + items
		self.normalize_layout()

	def normalize_layout(self) -> None:
		"""
		Moves deleted partitions to the front and merges consecutive free
		space entries into one, which keeps the id and start of the first.
		Calling it again on a normalized layout changes nothing.
		"""
		deleted: list[DiskItem] = []
		others: list[DiskItem] = []

		for item in self.layout:
			if isinstance(item, Partition) and item.is_delete():
				deleted.append(item)
			else:
				others.append(item)

		normalized: list[DiskItem] = []
		pending: FreeSpace | None = None

		for item in deleted + others:
			match item:
				case FreeSpace():
					if pending is None:
						pending = replace(item)
					else:
						pending.size += item.size
				case Partition():
					if pending is not None:
						normalized.append(pending)
						pending = None
					normalized.append(item)
				case _:
					assert_never(item)

		if pending is not None:
			normalized.append(pending)

		self.layout = normalized

	def new_partition(self, partition: Partition) -> None:
		"""
		Adds a partition to the layout. Touching another partition is fine,
		sharing a sector with any partition that is not marked for deletion
		raises OverlapError and leaves the layout unchanged.
		"""
		for existing in self.active_partitions():
			if existing.overlaps(partition.start, partition.end):
				raise OverlapError(
					f'New partition [{partition.start}, {partition.end}) overlaps with '
					f'partition {existing.id} [{existing.start}, {existing.end})'
				)

		debug(f'Adding new partition to {self.device_path}: {partition}')

		self.clear_free_space()
		self.layout.append(partition)
		self.calculate_free_space()

	def remove_partition(self, entry_id: int) -> None:
		partition = self._get_partition(entry_id)

		debug(f'Removing partition {entry_id} from {self.device_path}')

		self.layout = [item for item in self.layout if item is not partition]
		self.calculate_free_space()

	def set_partition_status(self, entry_id: int, status: PartStatus) -> None:
		partition = self._get_partition(entry_id)

		if not partition.status.can_transition_to(status):
			raise StatusTransitionError(
				f'Partition {entry_id} can not be changed from "{partition.status.value}" to "{status.value}"'
			)

		debug(f'Marking partition {entry_id} on {self.device_path} as {status.value}')

		partition.set_status(status)
		self.calculate_free_space()

	def delete_partition(self, entry_id: int) -> None:
		"""
		Planned partitions are dropped from the layout, partitions that are
		already on the device are only marked for deletion
		"""
		partition = self._get_partition(entry_id)

		if partition.is_create():
			self.remove_partition(entry_id)
		else:
			self.set_partition_status(entry_id, PartStatus.Delete)

	def reset_layout(self) -> None:
		debug(f'Resetting layout of {self.device_path}')

		self.layout = copy.deepcopy(self.initial_layout)
		self.calculate_free_space()

	def use_default_layout(self, fs_type: str | None = None) -> None:
		"""
		Replaces the plan with a boot partition and a root partition using
		the whole disk. Every partition found on the device is marked for
		deletion, planned ones are dropped.
		"""
		boot = (
			PartitionBuilder()
			.start(ALIGNMENT_SECTORS)
			.size(mb_to_sectors(BOOT_PARTITION_MB, self.sector_size))
			.sector_size(self.sector_size)
			.status(PartStatus.Create)
			.fs_type('fat32')
			.mount_point('/boot')
			.label('BOOT')
			.add_flags(['boot', 'esp'])
			.build()
		)

		root = (
			PartitionBuilder()
			.start(boot.end)
			.size(self.size - boot.end)
			.sector_size(self.sector_size)
			.status(PartStatus.Create)
			.fs_type(fs_type or DEFAULT_ROOT_FS)
			.mount_point('/')
			.label('ROOT')
			.build()
		)

		debug(f'Using default layout on {self.device_path} with {root.fs_type} root')

		layout: list[DiskItem] = []
		for item in self.layout:
			match item:
				case FreeSpace():
					continue
				case Partition() if item.is_create():
					continue
				case Partition():
					item.set_status(PartStatus.Delete)
					layout.append(item)
				case _:
					assert_never(item)

		self.layout = layout + [boot, root]
		self.calculate_free_space()

	def as_disko_cfg(self) -> dict[str, Any]:
		"""
		The disko description of the planned partition table. Partitions
		marked for deletion are left out. A partition reaching the end of
		the disk gets the size '100%'.
		"""
		try:
			partitions = self._disko_partitions()
		finally:
			# every export starts counting from the beginning of the disk again
			self.total_used_sectors = 0

		return {
			'device': self.device_path,
			'type': 'disk',
			'content': {
				'type': 'gpt',
				'partitions': partitions,
			},
		}

	def _disko_partitions(self) -> dict[str, dict[str, str | None]]:
		partitions: dict[str, dict[str, str | None]] = {}

		for item in self.layout:
			match item:
				case FreeSpace():
					continue
				case Partition() if item.is_delete():
					continue
				case Partition():
					name = item.label or f'part{item.id}'

					if name in partitions:
						warn(f'Duplicate partition name "{name}" on {self.device_path}, the previous entry is replaced')

					entry: dict[str, str | None] = {
						'size': bytes_disko_cfg(
							item.size_bytes(self.sector_size),
							self.total_used_sectors,
							self.sector_size,
							self.size,
						),
					}
					self.total_used_sectors += item.size

					if item.is_esp():
						entry['type'] = item.fs_gpt_code(True)

					entry['format'] = item.disko_fs_type()
					entry['mountpoint'] = item.mount_point

					partitions[name] = entry
				case _:
					assert_never(item)

		return partitions

	def table_data(self) -> dict[str, str]:
		return {
			'Device': self.device_path,
			'Size': bytes_readable(self.size_bytes()),
			'Read Only': 'no',
		}

	def partition_table(self) -> str:
		return FormattedOutput.as_table(
			self.layout,
			class_formatter=lambda item: item.table_data(self.sector_size),
		)

	def json(self) -> _DiskSerialization:
		return {
			'name': self.name,
			'size': self.size,
			'sector_size': self.sector_size,
			'layout': [item.json() for item in self.layout],
		}
