import unicodedata
from functools import lru_cache


@lru_cache(maxsize=256)
def _is_wide_character(char: str) -> bool:
	return unicodedata.east_asian_width(char) in 'FW'


def display_width(string: str) -> int:
	"Number of terminal cells the string occupies, wide characters count twice"
	return len(string) + sum(_is_wide_character(c) for c in string)


def unicode_ljust(string: str, width: int, fillbyte: str = ' ') -> str:
	"""Left-justify a string for table output, accounting for wide characters.
	>>> unicode_ljust('/boot', 8, '.')
	'/boot...'
	>>> unicode_ljust('ラベル', 8, '.')
	'ラベル..'
	"""
	return string + fillbyte * max(width - display_width(string), 0)


def unicode_rjust(string: str, width: int, fillbyte: str = ' ') -> str:
	"""Right-justify a string for table output, accounting for wide characters.
	>>> unicode_rjust('2048', 8, '.')
	'....2048'
	>>> unicode_rjust('ラベル', 8, '.')
	'..ラベル'
	"""
	return fillbyte * max(width - display_width(string), 0) + string
