import logging
import sys
from collections.abc import Callable
from datetime import UTC, datetime
from functools import cache
from pathlib import Path
from typing import Any

from .utils.unicode import display_width, unicode_ljust, unicode_rjust


class FormattedOutput:
	@staticmethod
	def as_table(
		rows: list[Any],
		class_formatter: Callable[[Any], dict[str, str]] | None = None,
	) -> str:
		"""
		Renders objects as a text table, one object per line.
		The cells come from class_formatter when given, otherwise from the
		object's own table_data(). Columns appear in the order they are
		first seen, numbers are right aligned.
		"""
		records: list[dict[str, str]] = [class_formatter(row) if class_formatter else row.table_data() for row in rows]

		widths: dict[str, int] = {}
		for record in records:
			for key, value in record.items():
				widths[key] = max(widths.get(key, display_width(key)), display_width(str(value)))

		header = ' | '.join(unicode_ljust(key, width) for key, width in widths.items())
		output = header + '\n' + '-' * len(header) + '\n'

		for record in records:
			cells = []
			for key, width in widths.items():
				value = str(record.get(key, ''))

				if value.isdigit():
					cells.append(unicode_rjust(value, width))
				else:
					cells.append(unicode_ljust(value, width))

			output += ' | '.join(cells) + '\n'

		return output


@cache
def _journal() -> logging.Logger | None:
	"""
	Logger forwarding to journald, None where python-systemd is not installed
	"""
	try:
		import systemd.journal  # type: ignore[import-not-found]
	except ModuleNotFoundError:
		return None

	handler = systemd.journal.JournalHandler()
	handler.setFormatter(logging.Formatter('[%(levelname)s]: %(message)s'))

	journal = logging.getLogger('nixwizard.journal')
	journal.addHandler(handler)
	journal.setLevel(logging.DEBUG)
	journal.propagate = False

	return journal


class Logger:
	"""
	Appends every message to <directory>/install.log. verbose decides
	whether debug messages are printed as well.
	"""

	def __init__(self, path: Path = Path('/var/log/nixwizard')) -> None:
		self._path = path
		self.verbose = False

	@property
	def path(self) -> Path:
		return self._path / 'install.log'

	@property
	def directory(self) -> Path:
		return self._path

	@directory.setter
	def directory(self, path: Path) -> None:
		self._path = path

	def _ensure_writable(self) -> None:
		try:
			self._path.mkdir(exist_ok=True, parents=True)
			self.path.touch(exist_ok=True)
		except PermissionError:
			fallback = Path('./').absolute()
			warn(f'Not enough permission to place log file at {self.path}, creating it in {fallback} instead')
			self._path = fallback

	def log(self, level: int, content: str) -> None:
		self._ensure_writable()

		ts = datetime.now(tz=UTC).strftime('%Y-%m-%d %H:%M:%S')
		with self.path.open('a') as f:
			f.write(f'[{ts}] - {logging.getLevelName(level)} - {content}\n')


logger = Logger()

# mirrors every message for library users that configure stdlib logging
_std_logger = logging.getLogger('nixwizard')

_LEVEL_COLORS = {
	logging.WARNING: '33',
	logging.ERROR: '31',
}


def _colorize(text: str, level: int) -> str:
	color = _LEVEL_COLORS.get(level)

	if color is None or not sys.stdout.isatty():
		return text

	return f'\033[{color}m{text}\033[0m'


def log(*msgs: str, level: int = logging.INFO) -> None:
	text = ' '.join(str(x) for x in msgs)

	logger.log(level, text)
	_std_logger.log(level, text)

	if journal := _journal():
		journal.log(level, text)

	if level != logging.DEBUG or logger.verbose:
		print(_colorize(text, level))


def debug(*msgs: str) -> None:
	log(*msgs, level=logging.DEBUG)


def info(*msgs: str) -> None:
	log(*msgs, level=logging.INFO)


def warn(*msgs: str) -> None:
	log(*msgs, level=logging.WARNING)


def error(*msgs: str) -> None:
	log(*msgs, level=logging.ERROR)
