"""Decoded AppleSingle archives and the builders that assemble them during decoding."""

import types
import typing

from . import _io_utils
from .common import MissingFieldError, Segment, TruncatedError
from .dates import Dates
from .finder import ExtendedFinderInfo, FinderInfo, MacInfo


class _EntryText(bytes):
	"""Base class for byte string entries that are usually, but not necessarily, text."""
	
	def __str__(self) -> str:
		try:
			return repr(self.decode("utf-8"))
		except UnicodeDecodeError:
			return bytes.__repr__(self)
	
	def __repr__(self) -> str:
		return f"{type(self).__qualname__}({self})"


class Filename(_EntryText):
	"""The file's real name, as stored in the real name entry."""


class Comment(_EntryText):
	"""The comment shown in the Finder's Get Info window."""


class Archive(object):
	"""The metadata decoded from an AppleSingle container.
	
	Archives are created by an :class:`ArchiveBuilder` at the end of decoding and are not modified afterwards.
	"""
	
	_format: str
	_finder_info: typing.Optional[FinderInfo]
	_extended_finder_info: typing.Optional[ExtendedFinderInfo]
	_mac_info: typing.Optional[MacInfo]
	_dates: typing.Optional[Dates]
	_name: typing.Optional[Filename]
	_comment: typing.Optional[Comment]
	
	def __init__(
		self,
		format: str,
		*,
		finder_info: typing.Optional[FinderInfo] = None,
		extended_finder_info: typing.Optional[ExtendedFinderInfo] = None,
		mac_info: typing.Optional[MacInfo] = None,
		dates: typing.Optional[Dates] = None,
		name: typing.Optional[Filename] = None,
		comment: typing.Optional[Comment] = None,
	) -> None:
		super().__init__()
		
		self._format = format
		self._finder_info = finder_info
		self._extended_finder_info = extended_finder_info
		self._mac_info = mac_info
		self._dates = dates
		self._name = name
		self._comment = comment
	
	@property
	def format(self) -> str:
		return self._format
	
	@property
	def finder_info(self) -> typing.Optional[FinderInfo]:
		return self._finder_info
	
	@property
	def extended_finder_info(self) -> typing.Optional[ExtendedFinderInfo]:
		return self._extended_finder_info
	
	@property
	def mac_info(self) -> typing.Optional[MacInfo]:
		return self._mac_info
	
	@property
	def dates(self) -> typing.Optional[Dates]:
		return self._dates
	
	@property
	def name(self) -> typing.Optional[Filename]:
		return self._name
	
	@property
	def comment(self) -> typing.Optional[Comment]:
		return self._comment
	
	def metadata(self) -> typing.Dict[str, typing.Any]:
		"""Get all metadata fields as a dict. Useful for comparing archives decoded in different ways."""
		
		return {
			"format": self.format,
			"name": self.name,
			"comment": self.comment,
			"dates": self.dates,
			"finder_info": self.finder_info,
			"extended_finder_info": self.extended_finder_info,
			"mac_info": self.mac_info,
		}
	
	def __repr__(self) -> str:
		return f"<{type(self).__qualname__} format {self.format!r}, name {self.name}, comment {self.comment}, dates {self.dates}, Finder info {self.finder_info}, Mac info {self.mac_info!r}>"


class SeekableArchive(Archive, typing.ContextManager["SeekableArchive"]):
	"""An archive decoded from a seekable stream, whose forks can be read after decoding has finished.
	
	The archive keeps using the stream it was decoded from. Every fork stream returned by this class reads from that same stream, so the underlying stream must stay open while fork streams are in use, and the underlying stream should not be read or seeked by other code at the same time.
	"""
	
	_stream: typing.BinaryIO
	_close_stream: bool
	_data_fork_segment: typing.Optional[Segment]
	_rsrc_fork_segment: typing.Optional[Segment]
	_other_segments: typing.Mapping[int, Segment]
	
	def __init__(
		self,
		format: str,
		stream: typing.BinaryIO,
		*,
		close: bool = False,
		data_fork_segment: typing.Optional[Segment] = None,
		rsrc_fork_segment: typing.Optional[Segment] = None,
		other_segments: typing.Optional[typing.Mapping[int, Segment]] = None,
		**kwargs: typing.Any,
	) -> None:
		super().__init__(format, **kwargs)
		
		self._stream = stream
		self._close_stream = close
		self._data_fork_segment = data_fork_segment
		self._rsrc_fork_segment = rsrc_fork_segment
		self._other_segments = dict(other_segments or {})
	
	@property
	def data_fork_segment(self) -> typing.Optional[Segment]:
		return self._data_fork_segment
	
	@property
	def rsrc_fork_segment(self) -> typing.Optional[Segment]:
		return self._rsrc_fork_segment
	
	@property
	def other_segments(self) -> typing.Mapping[int, Segment]:
		"""Entries that are neither forks nor decoded metadata (icons, ProDOS info, unknown IDs, ...), by entry ID."""
		
		return dict(self._other_segments)
	
	def _open_segment(self, segment: Segment) -> typing.BinaryIO:
		try:
			return _io_utils.SubStream(self._stream, segment.offset, segment.length)
		except EOFError as e:
			raise TruncatedError(str(e))
	
	def open_data_fork(self) -> typing.Optional[typing.BinaryIO]:
		"""Create a read-only, seekable stream over the data fork, or return None if the archive has no data fork.
		
		This method can be called any number of times. Opening a new fork stream invalidates the position of streams opened earlier, so only one fork stream should be read at a time.
		"""
		
		if self._data_fork_segment is None:
			return None
		return self._open_segment(self._data_fork_segment)
	
	def open_rsrc_fork(self) -> typing.Optional[typing.BinaryIO]:
		"""Create a read-only, seekable stream over the resource fork, or return None if the archive has no resource fork.
		
		See :meth:`open_data_fork` for restrictions.
		"""
		
		if self._rsrc_fork_segment is None:
			return None
		return self._open_segment(self._rsrc_fork_segment)
	
	def open_entry(self, entry_id: int) -> typing.BinaryIO:
		"""Create a read-only, seekable stream over one of the entries in :attr:`other_segments`.
		
		:raise KeyError: If there is no such entry.
		"""
		
		return self._open_segment(self._other_segments[entry_id])
	
	@property
	def data_fork(self) -> typing.Optional[bytes]:
		"""The complete data fork, or None if the archive has no data fork."""
		
		f = self.open_data_fork()
		if f is None:
			return None
		with f:
			return f.read()
	
	@property
	def rsrc_fork(self) -> typing.Optional[bytes]:
		"""The complete resource fork, or None if the archive has no resource fork."""
		
		f = self.open_rsrc_fork()
		if f is None:
			return None
		with f:
			return f.read()
	
	def close(self) -> None:
		"""Close this archive.
		
		If close=True was passed when this archive was created, the underlying stream's close method is called as well.
		"""
		
		if self._close_stream:
			self._stream.close()
	
	def __enter__(self) -> "SeekableArchive":
		return self
	
	def __exit__(
		self,
		exc_type: typing.Optional[typing.Type[BaseException]],
		exc_val: typing.Optional[BaseException],
		exc_tb: typing.Optional[types.TracebackType]
	) -> typing.Optional[bool]:
		self.close()
		return None


class ArchiveBuilder(object):
	"""Collects the fields of an archive while its container is being decoded.
	
	All setters overwrite previously set values.
	"""
	
	_format: typing.Optional[str]
	_fields: typing.Dict[str, typing.Any]
	
	def __init__(self) -> None:
		super().__init__()
		
		self._format = None
		self._fields = {}
	
	def format(self, format: str) -> "ArchiveBuilder":
		self._format = format
		return self
	
	def finder_info(self, finder_info: FinderInfo) -> "ArchiveBuilder":
		self._fields["finder_info"] = finder_info
		return self
	
	def extended_finder_info(self, extended_finder_info: ExtendedFinderInfo) -> "ArchiveBuilder":
		self._fields["extended_finder_info"] = extended_finder_info
		return self
	
	def mac_info(self, mac_info: MacInfo) -> "ArchiveBuilder":
		self._fields["mac_info"] = mac_info
		return self
	
	def dates(self, dates: Dates) -> "ArchiveBuilder":
		self._fields["dates"] = dates
		return self
	
	def name(self, name: Filename) -> "ArchiveBuilder":
		self._fields["name"] = name
		return self
	
	def comment(self, comment: Comment) -> "ArchiveBuilder":
		self._fields["comment"] = comment
		return self
	
	def _checked_format(self) -> str:
		if self._format is None:
			raise MissingFieldError("Archive format was never set")
		return self._format
	
	def build(self) -> Archive:
		"""Create the archive from the collected fields.
		
		:raise MissingFieldError: If no format was set.
		"""
		
		return Archive(self._checked_format(), **self._fields)


class SeekableArchiveBuilder(ArchiveBuilder):
	"""Builder for :class:`SeekableArchive`, which additionally records where the forks are stored."""
	
	_stream: typing.BinaryIO
	_close_stream: bool
	_data_fork_segment: typing.Optional[Segment]
	_rsrc_fork_segment: typing.Optional[Segment]
	_other_segments: typing.Dict[int, Segment]
	
	def __init__(self, stream: typing.BinaryIO, *, close: bool = False) -> None:
		super().__init__()
		
		self._stream = stream
		self._close_stream = close
		self._data_fork_segment = None
		self._rsrc_fork_segment = None
		self._other_segments = {}
	
	def data_fork(self, segment: Segment) -> "SeekableArchiveBuilder":
		self._data_fork_segment = segment
		return self
	
	def rsrc_fork(self, segment: Segment) -> "SeekableArchiveBuilder":
		self._rsrc_fork_segment = segment
		return self
	
	def other(self, segment: Segment) -> "SeekableArchiveBuilder":
		self._other_segments[segment.id] = segment
		return self
	
	def build(self) -> SeekableArchive:
		return SeekableArchive(
			self._checked_format(),
			self._stream,
			close=self._close_stream,
			data_fork_segment=self._data_fork_segment,
			rsrc_fork_segment=self._rsrc_fork_segment,
			other_segments=self._other_segments,
			**self._fields,
		)
