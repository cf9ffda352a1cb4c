"""Finder metadata structures: the Finder info entry (FInfo and FXInfo) and the Macintosh file info entry.

The layouts and flag bit numbers are those documented in Inside Macintosh: Macintosh Toolbox Essentials (Finder Interface chapter).
Bit numbers count from the least significant bit, i. e. bit 15 is the high bit of a 16-bit word.
"""

import struct
import typing
import warnings

from .common import SubstructureError

# Finder info (FInfo), the first 16 bytes of the Finder info entry.
# 4 bytes: File type code.
# 4 bytes: Creator code.
# 2 bytes: Finder flags.
# 2 bytes: Vertical coordinate of the icon in its window.
# 2 bytes: Horizontal coordinate of the icon in its window.
# 2 bytes: ID of the window (folder) that contains the file.
STRUCT_FINDER_INFO = struct.Struct(">4s4sHhhH")

# Extended Finder info (FXInfo), the optional second 16 bytes of the Finder info entry.
# 2 bytes: Icon ID.
# 6 bytes: Reserved.
# 1 byte: Script code of the file name, or 0 if unspecified.
# 1 byte: Extended Finder flags.
# 2 bytes: Comment ID.
# 4 bytes: Home directory ID ("put away" folder).
STRUCT_EXTENDED_FINDER_INFO = struct.Struct(">h6xbBhi")

# Macintosh file info entry.
# 4 bytes: File attribute bits. Only the two lowest bits are defined.
STRUCT_MAC_INFO = struct.Struct(">I")


class FinderFlags(object):
	"""The 16-bit Finder flags word (fdFlags).
	
	The flags are kept as the raw word. The accessors below read the documented bit positions.
	"""
	
	is_alias_mask = 1 << 15
	is_invisible_mask = 1 << 14
	has_bundle_mask = 1 << 13
	name_locked_mask = 1 << 12
	is_stationery_mask = 1 << 11
	has_custom_icon_mask = 1 << 10
	# Bit 9 is reserved.
	has_been_inited_mask = 1 << 8
	has_no_inits_mask = 1 << 7
	is_shared_mask = 1 << 6
	requires_switch_launch_mask = 1 << 5
	color_reserved_mask = 1 << 4
	color_mask = 0b111 << 1
	is_on_desktop_mask = 1 << 0
	
	value: int
	
	def __init__(self, value: int) -> None:
		super().__init__()
		
		if not 0 <= value <= 0xffff:
			raise ValueError(f"Finder flags must fit into an unsigned 16-bit integer: {value:#x}")
		
		self.value = value
	
	def _deprecated(self, name: str) -> None:
		warnings.warn(DeprecationWarning(f"The Finder flag {name} is no longer used by the Finder and should not be relied on."), stacklevel=3)
	
	@property
	def is_on_desktop(self) -> bool:
		self._deprecated("is_on_desktop")
		return bool(self.value & self.is_on_desktop_mask)
	
	@property
	def color(self) -> int:
		"""The three-bit label color index."""
		
		return (self.value & self.color_mask) >> 1
	
	@property
	def color_reserved(self) -> bool:
		self._deprecated("color_reserved")
		return bool(self.value & self.color_reserved_mask)
	
	@property
	def requires_switch_launch(self) -> bool:
		self._deprecated("requires_switch_launch")
		return bool(self.value & self.requires_switch_launch_mask)
	
	@property
	def is_shared(self) -> bool:
		return bool(self.value & self.is_shared_mask)
	
	@property
	def has_no_inits(self) -> bool:
		return bool(self.value & self.has_no_inits_mask)
	
	@property
	def has_been_inited(self) -> bool:
		return bool(self.value & self.has_been_inited_mask)
	
	@property
	def has_custom_icon(self) -> bool:
		return bool(self.value & self.has_custom_icon_mask)
	
	@property
	def is_stationery(self) -> bool:
		return bool(self.value & self.is_stationery_mask)
	
	@property
	def name_locked(self) -> bool:
		return bool(self.value & self.name_locked_mask)
	
	@property
	def has_bundle(self) -> bool:
		return bool(self.value & self.has_bundle_mask)
	
	@property
	def is_invisible(self) -> bool:
		return bool(self.value & self.is_invisible_mask)
	
	@property
	def is_alias(self) -> bool:
		return bool(self.value & self.is_alias_mask)
	
	def names(self) -> typing.List[str]:
		"""Get the names of all single-bit flags that are set, from the high bit down. The color is not included."""
		
		with warnings.catch_warnings():
			warnings.simplefilter("ignore", DeprecationWarning)
			return [name for name in _FINDER_FLAG_NAMES if getattr(self, name)]
	
	def __eq__(self, other: object) -> bool:
		if not isinstance(other, FinderFlags):
			return NotImplemented
		return self.value == other.value
	
	def __hash__(self) -> int:
		return hash(self.value)
	
	def __repr__(self) -> str:
		return f"{type(self).__qualname__}({self.value:#06x})"


_FINDER_FLAG_NAMES = [
	"is_alias",
	"is_invisible",
	"has_bundle",
	"name_locked",
	"is_stationery",
	"has_custom_icon",
	"has_been_inited",
	"has_no_inits",
	"is_shared",
	"requires_switch_launch",
	"color_reserved",
	"is_on_desktop",
]


class Point(typing.NamedTuple):
	"""A point in QuickDraw's coordinate system."""
	
	vertical: int
	horizontal: int


class FinderInfo(typing.NamedTuple):
	type: bytes
	creator: bytes
	flags: FinderFlags
	location: Point
	folder: int
	
	@classmethod
	def parse(cls, data: bytes) -> "FinderInfo":
		"""Parse the 16-byte FInfo structure."""
		
		try:
			file_type, creator, flags, v, h, folder = STRUCT_FINDER_INFO.unpack(data)
		except struct.error as e:
			raise SubstructureError(f"Invalid Finder info: {e}")
		return cls(file_type, creator, FinderFlags(flags), Point(v, h), folder)
	
	def to_bytes(self) -> bytes:
		return STRUCT_FINDER_INFO.pack(self.type, self.creator, self.flags.value, self.location.vertical, self.location.horizontal, self.folder)


class ExtendedFinderInfo(typing.NamedTuple):
	"""Rarely used additional Finder information (FXInfo)."""
	
	icon_id: int
	# None means that the Finder should use the current system script.
	filename_script: typing.Optional[int]
	extended_flags: int
	comment_id: int
	put_away_from: int
	
	@classmethod
	def parse(cls, data: bytes) -> "ExtendedFinderInfo":
		try:
			icon_id, script, extended_flags, comment_id, put_away_from = STRUCT_EXTENDED_FINDER_INFO.unpack(data)
		except struct.error as e:
			raise SubstructureError(f"Invalid extended Finder info: {e}")
		return cls(icon_id, script or None, extended_flags, comment_id, put_away_from)
	
	def to_bytes(self) -> bytes:
		return STRUCT_EXTENDED_FINDER_INFO.pack(self.icon_id, self.filename_script or 0, self.extended_flags, self.comment_id, self.put_away_from)


class MacInfo(object):
	"""The Macintosh file info entry: a 32-bit word of file attributes.
	
	Counting bits from the most significant end, bit 31 (the lowest bit) is the locked flag and bit 30 is the protected flag. All other bits are reserved.
	"""
	
	locked_mask = 1 << 0
	protected_mask = 1 << 1
	
	value: int
	
	@classmethod
	def parse(cls, data: bytes) -> "MacInfo":
		try:
			(value,) = STRUCT_MAC_INFO.unpack(data)
		except struct.error as e:
			raise SubstructureError(f"Invalid Macintosh file info: {e}")
		return cls(value)
	
	def __init__(self, value: int) -> None:
		super().__init__()
		
		if not 0 <= value <= 0xffffffff:
			raise ValueError(f"Macintosh file info must fit into an unsigned 32-bit integer: {value:#x}")
		
		self.value = value
	
	@property
	def is_locked(self) -> bool:
		return bool(self.value & self.locked_mask)
	
	@property
	def is_protected(self) -> bool:
		return bool(self.value & self.protected_mask)
	
	def to_bytes(self) -> bytes:
		return STRUCT_MAC_INFO.pack(self.value)
	
	def __eq__(self, other: object) -> bool:
		if not isinstance(other, MacInfo):
			return NotImplemented
		return self.value == other.value
	
	def __hash__(self) -> int:
		return hash(self.value)
	
	def __str__(self) -> str:
		parts = []
		if self.is_locked:
			parts.append("locked")
		if self.is_protected:
			parts.append("protected")
		return " | ".join(parts) or "(none)"
	
	def __repr__(self) -> str:
		return f"{type(self).__qualname__}({self.value:#010x})"
