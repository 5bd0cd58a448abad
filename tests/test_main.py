import json
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from pytest import CaptureFixture, MonkeyPatch

from nixwizard import main
from nixwizard.lib.args import wizard_config_handler
from nixwizard.lib.exceptions import DiskError


@pytest.fixture(autouse=True)
def fresh_handler(monkeypatch: MonkeyPatch) -> Iterator[None]:
	# scripts run on import, so every test has to import them again
	for name in ['nixwizard.scripts.guided', 'nixwizard.scripts.list']:
		monkeypatch.delitem(sys.modules, name, raising=False)

	wizard_config_handler.cache_clear()
	yield
	wizard_config_handler.cache_clear()


def test_dry_run(
	monkeypatch: MonkeyPatch,
	capsys: CaptureFixture[str],
	lsblk_fixture: Path,
	tmp_path: Path,
) -> None:
	monkeypatch.setattr(
		'sys.argv',
		['nixwizard', '--lsblk-json', str(lsblk_fixture), '--device', 'sda', '--dry-run', '--output', str(tmp_path)],
	)

	assert main() == 0

	out = capsys.readouterr().out
	assert '"device": "/dev/sda"' in out
	assert '"mountpoint": "/boot"' in out

	# nothing is written on a dry run
	assert not (tmp_path / 'disko_config.json').exists()


def test_guided_writes_configuration(
	monkeypatch: MonkeyPatch,
	lsblk_fixture: Path,
	default_config_fixture: Path,
	tmp_path: Path,
) -> None:
	monkeypatch.setattr(
		'sys.argv',
		[
			'nixwizard',
			'--config',
			str(default_config_fixture),
			'--lsblk-json',
			str(lsblk_fixture),
			'--output',
			str(tmp_path),
		],
	)

	assert main() == 0

	disko = json.loads((tmp_path / 'disko_config.json').read_text())
	assert disko['device'] == '/dev/sda'
	assert disko['content']['partitions']['ROOT'] == {'size': '100%', 'format': 'btrfs', 'mountpoint': '/'}

	user_config = json.loads((tmp_path / 'user_configuration.json').read_text())
	assert user_config['device'] == 'sda'


def test_several_disks_need_a_device(monkeypatch: MonkeyPatch, lsblk_fixture: Path) -> None:
	monkeypatch.setattr('sys.argv', ['nixwizard', '--lsblk-json', str(lsblk_fixture), '--dry-run'])

	with pytest.raises(DiskError, match='select one with --device'):
		main()


def test_list_scripts(monkeypatch: MonkeyPatch, capsys: CaptureFixture[str]) -> None:
	monkeypatch.setattr('sys.argv', ['nixwizard', '--script', 'list'])

	assert main() == 0

	out = capsys.readouterr().out
	assert 'guided' in out
	assert '    list' not in out


def test_help(monkeypatch: MonkeyPatch, capsys: CaptureFixture[str]) -> None:
	monkeypatch.setattr('sys.argv', ['nixwizard', '--help'])

	with pytest.raises(SystemExit):
		main()

	assert '--lsblk-json' in capsys.readouterr().out
