import itertools
import threading


class EntryIdAllocator:
	"""
	Hands out the ids used for partitions and free space regions.
	Ids are unique for the lifetime of the process and are never reused,
	the counter can be safely shared between threads.
	"""

	def __init__(self, start: int = 1) -> None:
		self._lock = threading.Lock()
		self._counter = itertools.count(start)

	def next_id(self) -> int:
		with self._lock:
			return next(self._counter)

	def reset(self, start: int = 1) -> None:
		# only meant for tests that assert exact ids
		with self._lock:
			self._counter = itertools.count(start)


entry_ids = EntryIdAllocator()


def get_entry_id() -> int:
	return entry_ids.next_id()
