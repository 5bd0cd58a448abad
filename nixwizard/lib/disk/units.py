"""
Conversions between byte counts, sector counts and the size strings
shown to the user or handed to disko.

Sector counts are always expressed in units of the disk's sector size.
"""

import math
import re

# 1 MiB reserved at the start of every disk (and the end, when exporting)
ALIGNMENT_SECTORS = 2048

# gaps smaller than this are not offered as free space
MIN_FREE_SPACE_MB = 5

KiB = 1 << 10
MiB = 1 << 20
GiB = 1 << 30
TiB = 1 << 40

# most specific suffix first, 'b' would otherwise match the tail of 'kib'
_SIZE_SUFFIXES: list[tuple[str, int]] = [
	('tib', TiB),
	('tb', 1000**4),
	('gib', GiB),
	('gb', 1000**3),
	('mib', MiB),
	('mb', 1000**2),
	('kib', KiB),
	('kb', 1000),
	('b', 1),
	('%', 0),
]

# plain ASCII decimals: no sign, exponent, digit separators, inf or nan
_NUMBER = re.compile(r'[0-9]+(\.[0-9]*)?|\.[0-9]+')

_DISKO_UNITS: list[tuple[str, int]] = [
	('T', 1000**4),
	('G', 1000**3),
	('M', 1000**2),
	('K', 1000),
]


def _round_half_up(value: float) -> int:
	return math.floor(value + 0.5)


def bytes_readable(size_bytes: int) -> str:
	"""
	Human readable size using binary units, e.g. 1536 -> '1.50 KiB'.
	Anything below 1 KiB is returned as the plain byte count
	"""
	for unit, factor in (('TiB', TiB), ('GiB', GiB), ('MiB', MiB), ('KiB', KiB)):
		if size_bytes >= factor:
			return f'{size_bytes / factor:.2f} {unit}'

	return str(size_bytes)


def parse_sectors(value: str, sector_size: int, total_sectors: int) -> int | None:
	"""
	Parses a user supplied size into a number of sectors.

	Accepted forms are '<number><unit>' with a binary (KiB..TiB) or
	decimal (KB..TB, B) unit, '<number>%' of total_sectors, or a bare
	integer which is taken as a sector count. Matching is case-insensitive
	and surrounding whitespace is ignored.

	Returns None if the value can not be parsed.
	"""
	text = value.strip().lower()

	for suffix, multiplier in _SIZE_SUFFIXES:
		if not text.endswith(suffix):
			continue

		digits = text.removesuffix(suffix).strip()
		if not _NUMBER.fullmatch(digits):
			return None

		number = float(digits)

		if suffix == '%':
			return _round_half_up(number / 100 * total_sectors)

		return _round_half_up(number * multiplier / sector_size)

	if not text.isascii() or not text.isdigit():
		return None

	return int(text)


def mb_to_sectors(mb: int, sector_size: int) -> int:
	"""Number of sectors needed to hold the given MiB, rounded up"""
	return -(-mb * MiB // sector_size)


def bytes_disko_cfg(
	size_bytes: int,
	total_used_sectors: int,
	sector_size: int,
	total_size: int,
) -> str:
	"""
	Formats a partition size for the disko configuration.

	A partition that would reach into the last MiB of the disk, given
	the sectors already handed out to the partitions before it, is emitted
	as '100%' so disko fills the remaining space instead of failing on
	rounding or alignment. Otherwise the size is written with decimal
	units (K, M, G, T) without decimals, or as '<n>B' below 1000 bytes.
	"""
	requested_sectors = -(-size_bytes // sector_size)
	usable_end = max(total_size - ALIGNMENT_SECTORS, 0)

	if requested_sectors + total_used_sectors >= usable_end:
		return '100%'

	for suffix, factor in _DISKO_UNITS:
		if size_bytes >= factor:
			return f'{size_bytes / factor:.0f}{suffix}'

	return f'{size_bytes}B'
