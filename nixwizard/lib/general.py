from __future__ import annotations

import json
import stat
import subprocess
import time
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from shutil import which
from typing import Any, override

from .exceptions import RequirementError, SysCallError
from .output import debug, error, logger


def locate_binary(name: str) -> str:
	if path := which(name):
		return path
	raise RequirementError(f'Binary {name} does not exist.')


def jsonify(obj: Any, safe: bool = True) -> Any:
	"""
	Converts objects into json.dumps() compatible nested dictionaries.
	Setting safe to True skips dictionary keys starting with a bang (!)
	"""

	compatible_types = str, int, float, bool
	if isinstance(obj, dict):
		return {
			key: jsonify(value, safe)
			for key, value in obj.items()
			if isinstance(key, compatible_types) and not (isinstance(key, str) and key.startswith('!') and safe)
		}
	if isinstance(obj, Enum):
		return obj.value
	if hasattr(obj, 'json'):
		# json() is a friendly name for json-helper, it should return
		# a dictionary representation of the object so that it can be
		# processed by the json library.
		return jsonify(obj.json(), safe)
	if isinstance(obj, datetime | date):
		return obj.isoformat()
	if isinstance(obj, list | set | tuple):
		return [jsonify(item, safe) for item in obj]
	if isinstance(obj, Path):
		return str(obj)
	if hasattr(obj, '__dict__'):
		return vars(obj)

	return obj


class JSON(json.JSONEncoder, json.JSONDecoder):
	"""
	A safe JSON encoder that will omit private information in dicts (starting with !)
	"""

	@override
	def encode(self, o: Any) -> str:
		return super().encode(jsonify(o))


def _log_cmd(cmd: list[str]) -> None:
	history_logfile = logger.directory / 'cmd_history.txt'

	change_perm = False
	if history_logfile.exists() is False:
		change_perm = True

	try:
		with history_logfile.open('a') as cmd_log:
			cmd_log.write(f'{time.time()} {cmd}\n')

		if change_perm:
			history_logfile.chmod(stat.S_IRUSR | stat.S_IWUSR | stat.S_IRGRP)
	except (PermissionError, FileNotFoundError):
		# If history_logfile does not exist, ignore the error
		pass


def run(
	cmd: list[str],
	input_data: bytes | None = None,
) -> subprocess.CompletedProcess[bytes]:
	"""
	Runs an external command to completion and returns its output.
	A non-zero exit code or a missing binary is raised as SysCallError
	"""
	_log_cmd(cmd)
	debug(f'Executing: {cmd}')

	try:
		return subprocess.run(
			cmd,
			input=input_data,
			stdout=subprocess.PIPE,
			stderr=subprocess.PIPE,
			check=True,
		)
	except FileNotFoundError as err:
		raise SysCallError(f'{cmd[0]} could not be found', exit_code=None) from err
	except subprocess.CalledProcessError as err:
		error(f'Command failed: {" ".join(cmd)} ({err.returncode})')
		raise SysCallError(
			f'{" ".join(cmd)} returned exit code {err.returncode}',
			exit_code=err.returncode,
			worker_log=err.stderr or b'',
		) from err
