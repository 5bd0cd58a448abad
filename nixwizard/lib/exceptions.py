class RequirementError(Exception):
	pass


class DiskError(Exception):
	pass


class SysCallError(Exception):
	def __init__(self, message: str, exit_code: int | None = None, worker_log: bytes = b'') -> None:
		super().__init__(message)
		self.message = message
		self.exit_code = exit_code
		self.worker_log = worker_log


class LayoutError(DiskError):
	"""
	Base for every failure raised by the layout engine.
	The layout is guaranteed to be untouched when one of these is raised.
	"""


class ValidationError(LayoutError, ValueError):
	pass


class OverlapError(LayoutError):
	pass


class StatusTransitionError(LayoutError):
	pass


class NotFoundError(LayoutError):
	def __init__(self, entry_id: int) -> None:
		super().__init__(f'No layout entry with id {entry_id}')
		self.entry_id = entry_id


class WrongVariantError(LayoutError):
	def __init__(self, entry_id: int) -> None:
		super().__init__(f'Layout entry with id {entry_id} is not a partition')
		self.entry_id = entry_id
