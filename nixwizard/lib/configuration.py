import json
import stat
from pathlib import Path

from .args import WizardConfig
from .disk.layout import Disk
from .general import JSON
from .output import debug, info, logger, warn


class ConfigurationOutput:
	def __init__(self, config: WizardConfig, disk: Disk):
		"""
		Output handler for a finished plan, prepares the disko document and
		the wizard configuration for the console and for saving to files

		:param config: Wizard configuration the plan was made with
		:type config: WizardConfig

		:param disk: Disk carrying the planned layout
		:type disk: Disk
		"""

		self._config = config
		self._disk = disk
		self._default_save_path = logger.directory
		self._disko_config_file = Path('disko_config.json')
		self._user_config_file = Path('user_configuration.json')

	@property
	def disko_configuration_file(self) -> Path:
		return self._disko_config_file

	@property
	def user_configuration_file(self) -> Path:
		return self._user_config_file

	def disko_config_to_json(self) -> str:
		return json.dumps(self._disk.as_disko_cfg(), indent=4)

	def user_config_to_json(self) -> str:
		out = self._config.safe_json()
		return json.dumps(out, indent=4, sort_keys=True, cls=JSON)

	def write_debug(self) -> None:
		debug(' -- Chosen configuration --')
		debug(self.user_config_to_json())
		debug(' -- Disko configuration --')
		debug(self.disko_config_to_json())

	def _is_valid_path(self, dest_path: Path) -> bool:
		dest_path_ok = dest_path.exists() and dest_path.is_dir()
		if not dest_path_ok:
			warn(
				f'Destination directory {dest_path.resolve()} does not exist or is not a directory\n.',
				'Configuration files can not be saved',
			)
		return dest_path_ok

	def _write(self, target: Path, content: str) -> None:
		target.write_text(content)
		target.chmod(stat.S_IRUSR | stat.S_IWUSR | stat.S_IRGRP)
		info(f'Saved {target}')

	def save(self, dest_path: Path | None = None) -> Path | None:
		"""
		Writes both files to dest_path (the log directory by default) and
		returns the path of the disko configuration
		"""
		save_path = dest_path or self._default_save_path

		if not self._is_valid_path(save_path):
			return None

		self._write(save_path / self._user_config_file, self.user_config_to_json())

		target = save_path / self._disko_config_file
		self._write(target, self.disko_config_to_json())

		return target
