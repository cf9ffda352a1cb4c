"""Timestamps as stored in the file dates entry of AppleSingle version 2 containers.

Unlike the classic Mac OS file system (which counts from 1904-01-01 in local time), AppleSingle version 2 stores all dates as signed 32-bit numbers of seconds relative to 2000-01-01T00:00:00Z.
"""

import datetime
import struct
import typing

from .common import SubstructureError

# Unix timestamp of 2000-01-01T00:00:00Z.
MAC_EPOCH = 946684800

# The file dates entry. Each date is a signed number of seconds since (or, if negative, before) MAC_EPOCH.
# 4 bytes: Creation date.
# 4 bytes: Modification date.
# 4 bytes: Last backup date.
# 4 bytes: Last access date.
STRUCT_FILE_DATES = struct.Struct(">iiii")


class Date(object):
	"""A timestamp from an AppleSingle file dates entry.
	
	The raw value is always available. Conversion to a calendar date may fail if the platform cannot represent the resulting time, in which case the string form falls back to the raw value.
	"""
	
	value: int
	
	def __init__(self, value: int) -> None:
		super().__init__()
		
		if not -0x80000000 <= value <= 0x7fffffff:
			raise ValueError(f"Date value does not fit into a signed 32-bit integer: {value}")
		
		self.value = value
	
	@property
	def unix_timestamp(self) -> int:
		return self.value + MAC_EPOCH
	
	def to_datetime(self) -> datetime.datetime:
		"""Convert this date to an aware datetime in UTC.
		
		:raise OverflowError: If the date is outside the range supported by the platform.
		:raise OSError: If the platform's time functions reject the date.
		"""
		
		return datetime.datetime.fromtimestamp(self.unix_timestamp, datetime.timezone.utc)
	
	def __eq__(self, other: object) -> bool:
		if not isinstance(other, Date):
			return NotImplemented
		return self.value == other.value
	
	def __hash__(self) -> int:
		return hash(self.value)
	
	def __str__(self) -> str:
		try:
			return self.to_datetime().isoformat()
		except (OverflowError, OSError, ValueError):
			return str(self.value)
	
	def __repr__(self) -> str:
		return f"{type(self).__qualname__}({self})"


class Dates(typing.NamedTuple):
	"""All the dates that the Finder records for a file."""
	
	create: Date
	modify: Date
	backup: Date
	access: Date
	
	@classmethod
	def parse(cls, data: bytes) -> "Dates":
		"""Parse a 16-byte file dates entry."""
		
		try:
			values = STRUCT_FILE_DATES.unpack(data)
		except struct.error as e:
			raise SubstructureError(f"Invalid file dates entry: {e}")
		return cls(*(Date(value) for value in values))
	
	def to_bytes(self) -> bytes:
		return STRUCT_FILE_DATES.pack(self.create.value, self.modify.value, self.backup.value, self.access.value)
