"""Exceptions and small shared types used by all parts of the AppleSingle decoder."""

import enum
import typing


class InvalidAppleSingleError(Exception):
	"""Raised when data cannot be decoded as an AppleSingle container."""


class FormatMismatchError(InvalidAppleSingleError):
	"""Raised when the magic number or version in the file header is not the one for AppleSingle version 2."""


class TruncatedError(InvalidAppleSingleError, EOFError):
	"""Raised when the data ends before the header or one of the entries is complete."""


class OutOfOrderSegmentError(InvalidAppleSingleError):
	"""Raised when a forward-only stream would have to move backwards to reach the start of an entry.
	
	This indicates a structurally invalid entry table (for example overlapping entries), not a short file.
	"""


class MissingFieldError(InvalidAppleSingleError):
	"""Raised when an archive is built without one of its mandatory fields."""


class SubstructureError(InvalidAppleSingleError):
	"""Raised when a fixed-size metadata block (dates, Finder info, Mac info) could not be decoded."""


class EntryType(enum.IntEnum):
	"""Entry IDs defined by the AppleSingle/AppleDouble version 2 specification.
	
	IDs not listed here are valid, but their contents are not interpreted.
	"""
	
	data_fork = 1
	resource_fork = 2
	real_name = 3
	comment = 4
	icon_bw = 5
	icon_color = 6
	file_dates = 8
	finder_info = 9
	macintosh_file_info = 10
	prodos_file_info = 11
	msdos_file_info = 12
	afp_short_name = 13
	afp_file_info = 14
	afp_directory_id = 15
	
	@classmethod
	def lookup(cls, entry_id: int) -> typing.Optional["EntryType"]:
		"""Convert a raw entry ID to an EntryType, or None if the ID is not a known entry type."""
		
		try:
			return cls(entry_id)
		except ValueError:
			return None


class Segment(typing.NamedTuple):
	"""A single entry descriptor from the container's entry table."""
	
	id: int
	offset: int
	length: int
	
	@property
	def entry_type(self) -> typing.Optional[EntryType]:
		return EntryType.lookup(self.id)
	
	@property
	def end(self) -> int:
		"""Offset of the first byte after this entry's data."""
		
		return self.offset + self.length
	
	def describe(self) -> str:
		entry_type = self.entry_type
		name = f"entry {self.id}" if entry_type is None else entry_type.name
		return f"{name}: {self.length} bytes at offset {self.offset:#x} (up to {self.end:#x})"


class ForkKind(enum.Enum):
	data = "data"
	rsrc = "rsrc"
	other = "other"


class Fork(typing.NamedTuple):
	"""Identifies a byte stream entry (a fork or an uninterpreted entry) offered to a handler."""
	
	kind: ForkKind
	id: int
	
	@classmethod
	def for_segment(cls, segment: Segment) -> "Fork":
		entry_type = segment.entry_type
		if entry_type == EntryType.data_fork:
			return cls(ForkKind.data, segment.id)
		elif entry_type == EntryType.resource_fork:
			return cls(ForkKind.rsrc, segment.id)
		else:
			return cls(ForkKind.other, segment.id)
