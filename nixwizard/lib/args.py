import argparse
import json
from argparse import ArgumentParser
from dataclasses import dataclass
from functools import cache
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any

from pydantic.dataclasses import dataclass as p_dataclass

from .disk.validators import fs_types
from .models.disk_layout import DiskLayoutConfiguration, DiskLayoutType
from .output import error, logger, warn


@p_dataclass
class Arguments:
	config: Path | None = None
	lsblk_json: Path | None = None
	device: str | None = None
	fs_type: str | None = None
	output: Path | None = None
	script: str | None = None
	debug: bool = False
	dry_run: bool = False
	log_dir: Path | None = None


@dataclass
class WizardConfig:
	version: str | None = None
	script: str | None = None
	device: str | None = None
	disk_config: DiskLayoutConfiguration | None = None

	def safe_json(self) -> dict[str, Any]:
		config: dict[str, Any] = {
			'version': self.version,
			'script': self.script,
			'device': self.device,
		}

		if self.disk_config:
			config['disk_config'] = self.disk_config.json()

		return config

	@classmethod
	def from_config(cls, args_config: dict[str, Any], args: Arguments) -> 'WizardConfig':
		wizard_config = WizardConfig()

		if script := args_config.get('script', None):
			wizard_config.script = script

		if device := args.device or args_config.get('device', None):
			wizard_config.device = device.removeprefix('/dev/')

		if disk_config := args_config.get('disk_config', {}):
			wizard_config.disk_config = DiskLayoutConfiguration.parse_arg(disk_config)

		# the command line wins over the configuration file
		if args.fs_type:
			if wizard_config.disk_config is None:
				wizard_config.disk_config = DiskLayoutConfiguration(DiskLayoutType.Default)
			wizard_config.disk_config.fs_type = args.fs_type

		return wizard_config


class WizardConfigHandler:
	def __init__(self) -> None:
		self._parser: ArgumentParser = self._define_arguments()
		args: Arguments = self._parse_args()
		self._args = args

		config = self._parse_config()

		try:
			self._config = WizardConfig.from_config(config, args)
			self._config.version = self._get_version()
		except ValueError as err:
			warn(str(err))
			exit(1)

	@property
	def config(self) -> WizardConfig:
		return self._config

	@property
	def args(self) -> Arguments:
		return self._args

	def get_script(self) -> str:
		if script := self.args.script:
			return script

		if script := self.config.script:
			return script

		return 'guided'

	def print_help(self) -> None:
		self._parser.print_help()

	def _get_version(self) -> str:
		try:
			return version('nixwizard')
		except PackageNotFoundError:
			return 'nixwizard version not found'

	def _define_arguments(self) -> ArgumentParser:
		parser = ArgumentParser(formatter_class=argparse.ArgumentDefaultsHelpFormatter)
		parser.add_argument(
			'-v',
			'--version',
			action='version',
			default=False,
			version='%(prog)s ' + self._get_version(),
		)
		parser.add_argument(
			'--config',
			type=Path,
			nargs='?',
			default=None,
			help='JSON configuration file',
		)
		parser.add_argument(
			'--lsblk-json',
			type=Path,
			nargs='?',
			default=None,
			help='Read the block devices from a saved `lsblk --json --bytes` output instead of running lsblk',
		)
		parser.add_argument(
			'--device',
			type=str,
			nargs='?',
			default=None,
			help='Disk to partition, e.g. sda or /dev/nvme0n1',
		)
		parser.add_argument(
			'--fs-type',
			type=str,
			nargs='?',
			default=None,
			choices=fs_types(),
			help='Filesystem of the root partition (ext4 if not set in the configuration)',
		)
		parser.add_argument(
			'--output',
			type=Path,
			nargs='?',
			default=None,
			help='Directory the disko configuration is written to',
		)
		parser.add_argument(
			'--script',
			nargs='?',
			help='Script to run',
			type=str,
		)
		parser.add_argument(
			'--debug',
			action='store_true',
			default=False,
			help='Prints debug messages in addition to writing them to the log',
		)
		parser.add_argument(
			'--dry-run',
			'--dry_run',
			action='store_true',
			default=False,
			help='Shows the planned layout and configuration without writing anything',
		)
		parser.add_argument(
			'--log-dir',
			type=Path,
			nargs='?',
			default=None,
			help='Directory for the log files',
		)

		return parser

	def _parse_args(self) -> Arguments:
		argparse_args = vars(self._parser.parse_args())
		args: Arguments = Arguments(**argparse_args)

		if args.log_dir:
			logger.directory = args.log_dir

		if args.debug:
			logger.verbose = True

		return args

	def _parse_config(self) -> dict[str, Any]:
		config: dict[str, Any] = {}

		if self._args.config is not None:
			config_data = self._read_file(self._args.config)

			try:
				config.update(json.loads(config_data))
			except json.JSONDecodeError as err:
				error(f'Invalid JSON in {self._args.config}: {err}')
				exit(1)

		return self._cleanup_config(config)

	def _read_file(self, path: Path) -> str:
		if not path.exists():
			error(f'Could not find file {path}')
			exit(1)

		return path.read_text()

	def _cleanup_config(self, config: dict[str, Any]) -> dict[str, Any]:
		clean_args = {}
		for key, val in config.items():
			if isinstance(val, dict):
				val = self._cleanup_config(val)

			if val is not None:
				clean_args[key] = val

		return clean_args


@cache
def wizard_config_handler() -> WizardConfigHandler:
	"""
	The handler for the running process, the command line is parsed on the first call
	"""
	return WizardConfigHandler()
