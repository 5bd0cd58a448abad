"""NixOS installer - disk layout planning and disko configuration"""

import importlib
import sys
import traceback

from .lib.args import wizard_config_handler
from .lib.disk.ids import entry_ids, get_entry_id
from .lib.disk.layout import Disk
from .lib.disk.units import bytes_disko_cfg, bytes_readable, mb_to_sectors, parse_sectors
from .lib.disk.utils import get_all_disks, load_disks, parse_lsblk_output
from .lib.exceptions import (
	DiskError,
	LayoutError,
	NotFoundError,
	OverlapError,
	StatusTransitionError,
	ValidationError,
	WrongVariantError,
)
from .lib.models.device import DiskItem, FreeSpace, Partition, PartitionBuilder, PartStatus
from .lib.output import FormattedOutput, debug, error, info, log, logger, warn


def main() -> int:
	"""
	This can either be run as the installed application: nixwizard
	OR straight as a module: python -m nixwizard
	In any case we will be attempting to load the provided script to be run from the scripts/ folder
	"""
	handler = wizard_config_handler()

	if '--help' in sys.argv or '-h' in sys.argv:
		handler.print_help()
		return 0

	debug(f'nixwizard {handler.config.version} started with {handler.args}')

	script = handler.get_script()

	mod_name = f'nixwizard.scripts.{script}'
	# by loading the module we'll automatically run the script
	importlib.import_module(mod_name)

	return 0


def run_as_a_module() -> None:
	rc = 0
	exc = None

	try:
		rc = main()
	except Exception as e:
		exc = e
	finally:
		if exc:
			err = ''.join(traceback.format_exception(exc))
			error(err)

			text = (
				'nixwizard experienced the above error. If you think this is a bug, please report it\n'
				f'and include the log file "{logger.path}".\n'
			)

			warn(text)
			rc = 1

		exit(rc)


__all__ = [
	'Disk',
	'DiskError',
	'DiskItem',
	'FormattedOutput',
	'FreeSpace',
	'LayoutError',
	'NotFoundError',
	'OverlapError',
	'PartStatus',
	'Partition',
	'PartitionBuilder',
	'StatusTransitionError',
	'ValidationError',
	'WrongVariantError',
	'bytes_disko_cfg',
	'bytes_readable',
	'debug',
	'entry_ids',
	'error',
	'get_all_disks',
	'get_entry_id',
	'info',
	'load_disks',
	'log',
	'mb_to_sectors',
	'parse_lsblk_output',
	'parse_sectors',
	'warn',
	'wizard_config_handler',
]
