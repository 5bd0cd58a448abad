import logging
from pathlib import Path

from pytest import CaptureFixture, LogCaptureFixture, MonkeyPatch

from nixwizard.lib.disk.layout import Disk
from nixwizard.lib.output import FormattedOutput, debug, error, info, logger, warn


def test_as_table_uses_table_data() -> None:
	disks = [Disk('vda', 209715200, 512), Disk('sdb', 2097152, 512)]

	lines = FormattedOutput.as_table(disks).splitlines()

	assert lines == [
		'Device   | Size       | Read Only',
		'-' * 33,
		'/dev/vda | 100.00 GiB | no       ',
		'/dev/sdb | 1.00 GiB   | no       ',
	]


def test_as_table_with_formatter() -> None:
	rows = [('a', 10), ('bbb', 5)]

	table = FormattedOutput.as_table(rows, class_formatter=lambda row: {'Name': row[0], 'Size': str(row[1])})

	assert table == 'Name | Size\n-----------\na    |   10\nbbb  |    5\n'


def test_as_table_wide_characters() -> None:
	table = FormattedOutput.as_table(['ラベル', 'x'], class_formatter=lambda row: {'Label': row})

	assert table.splitlines()[2:] == ['ラベル', 'x     ']


def test_messages_are_written_to_log_file(log_dir: Path) -> None:
	info('planning', '/dev/sda')
	debug('hidden detail')

	content = (log_dir / 'install.log').read_text()
	assert ' - INFO - planning /dev/sda\n' in content
	assert ' - DEBUG - hidden detail\n' in content


def test_debug_printed_only_when_verbose(monkeypatch: MonkeyPatch, capsys: CaptureFixture[str]) -> None:
	debug('quiet')
	assert capsys.readouterr().out == ''

	monkeypatch.setattr(logger, 'verbose', True)
	debug('loud')
	assert capsys.readouterr().out == 'loud\n'


def test_no_colour_without_terminal(capsys: CaptureFixture[str]) -> None:
	warn('careful')
	error('broken')

	assert capsys.readouterr().out == 'careful\nbroken\n'


def test_stdlib_logger_receives_messages(caplog: LogCaptureFixture) -> None:
	caplog.set_level(logging.DEBUG, logger='nixwizard')

	debug('one')
	warn('two')

	assert [(r.name, r.levelno, r.getMessage()) for r in caplog.records] == [
		('nixwizard', logging.DEBUG, 'one'),
		('nixwizard', logging.WARNING, 'two'),
	]


def test_log_directory_is_created(tmp_path: Path, monkeypatch: MonkeyPatch) -> None:
	target = tmp_path / 'nested' / 'logs'
	monkeypatch.setattr(logger, 'directory', target)

	info('created')

	assert logger.path == target / 'install.log'
	assert 'created' in logger.path.read_text()
