"""Decoder for AppleSingle containers.

AppleSingle (and its sibling format AppleDouble) is documented in "AppleSingle/AppleDouble Formats for Foreign Files Developer's Note" (Apple, 1990) and in RFC 1740.
Only version 2 AppleSingle containers are supported.

An AppleSingle container starts with a fixed header, followed by a table of entry descriptors. Each descriptor gives the ID, absolute offset and length of one entry. The entries themselves may be stored in any order after the table.

Two ways of decoding are provided, which share the same header parser and entry decoder:

* :func:`parse` reads the container in a single forward-only pass, which works with unseekable streams (pipes, sockets, stdin). Fork data is passed to sinks provided by a handler object as soon as it is encountered.
* :func:`parse_seekable` requires a seekable stream. It only decodes the metadata entries and returns a :class:`SeekableArchive` that can open the forks on demand afterwards.
"""

import io
import logging
import os
import shutil
import struct
import typing

from . import _io_utils
from .archive import Archive, ArchiveBuilder, Comment, Filename, SeekableArchive, SeekableArchiveBuilder
from .common import EntryType, Fork, ForkKind, FormatMismatchError, OutOfOrderSegmentError, Segment, SubstructureError, TruncatedError
from .dates import Dates, STRUCT_FILE_DATES
from .finder import ExtendedFinderInfo, FinderInfo, MacInfo, STRUCT_EXTENDED_FINDER_INFO, STRUCT_FINDER_INFO, STRUCT_MAC_INFO

logger = logging.getLogger(__name__)

FORMAT_NAME = "AppleSingle"

APPLESINGLE_MAGIC = 0x00051600
APPLESINGLE_VERSION_2 = 0x00020000

# File header, found at the start of the container.
# 4 bytes: Magic number. Always 0x00051600 for AppleSingle.
# 4 bytes: Version number. Always 0x00020000 for version 2.
# 16 bytes: Filler. Version 1 stored the home file system name here. Should be all zero in version 2, but is ignored.
# 2 bytes: Number of entries.
STRUCT_HEADER = struct.Struct(">II16sH")

# Entry descriptor, repeated once for every entry, immediately after the file header.
# 4 bytes: Entry ID. See EntryType for the known IDs.
# 4 bytes: Offset from the start of the container to the start of the entry's data.
# 4 bytes: Length of the entry's data.
STRUCT_ENTRY_DESCRIPTOR = struct.Struct(">III")


class ForkPayload(typing.NamedTuple):
	"""Decoded form of an entry that is not metadata: a stream over the entry's data, which has not been read yet."""
	
	fork: Fork
	stream: typing.BinaryIO


class FinderInfoEntry(typing.NamedTuple):
	"""Decoded form of a Finder info entry. The extended part is only present if the entry is 32 bytes or longer."""
	
	info: FinderInfo
	extended: typing.Optional[ExtendedFinderInfo]


Member = typing.Union[Filename, Comment, Dates, FinderInfoEntry, MacInfo, ForkPayload]


class SegmentTable(object):
	"""The table of entry descriptors read from the container header."""
	
	_segments: typing.Dict[int, Segment]
	
	def __init__(self) -> None:
		super().__init__()
		
		self._segments = {}
	
	def add(self, segment: Segment) -> None:
		"""Add an entry descriptor. A descriptor with the same ID as an earlier one replaces it."""
		
		previous = self._segments.get(segment.id)
		if previous is not None:
			logger.warning("Entry ID %d appears more than once in the entry table, ignoring the earlier descriptor (%s)", segment.id, previous.describe())
		self._segments[segment.id] = segment
	
	def __len__(self) -> int:
		return len(self._segments)
	
	def __contains__(self, entry_id: object) -> bool:
		return entry_id in self._segments
	
	def __getitem__(self, entry_id: int) -> Segment:
		return self._segments[entry_id]
	
	def by_offset(self) -> typing.List[Segment]:
		"""Get all descriptors sorted by ascending offset, which is the order in which a forward-only reader can visit them."""
		
		return sorted(self._segments.values(), key=lambda segment: segment.offset)
	
	def __repr__(self) -> str:
		return f"<{type(self).__qualname__} containing {len(self)} entries: {self.by_offset()}>"


def _stream_unpack(stream: typing.BinaryIO, st: struct.Struct) -> tuple:
	"""Unpack data from the stream according to the struct st, converting a premature EOF into TruncatedError."""
	
	try:
		return st.unpack(_io_utils.read_exact(stream, st.size))
	except EOFError as e:
		raise TruncatedError(str(e))


def read_header(stream: typing.BinaryIO) -> SegmentTable:
	"""Read the container header and entry table, starting at the current position of the stream (which should be the start of the container).
	
	Exactly ``26 + 12 * n`` bytes are read from the stream, where ``n`` is the number of entries.
	
	:raise FormatMismatchError: If the data is not an AppleSingle version 2 container.
	:raise TruncatedError: If the stream ends before the entry table is complete.
	"""
	
	magic, version, _filler, entry_count = _stream_unpack(stream, STRUCT_HEADER)
	
	if magic != APPLESINGLE_MAGIC:
		raise FormatMismatchError(f"Invalid magic number {magic:#010x}, expected {APPLESINGLE_MAGIC:#010x}")
	if version != APPLESINGLE_VERSION_2:
		raise FormatMismatchError(f"Unsupported version {version:#010x}, expected {APPLESINGLE_VERSION_2:#010x}")
	
	table = SegmentTable()
	for _ in range(entry_count):
		table.add(Segment(*_stream_unpack(stream, STRUCT_ENTRY_DESCRIPTOR)))
	
	logger.debug("Read entry table with %d descriptors (%d distinct IDs)", entry_count, len(table))
	return table


def _read_all(stream: typing.BinaryIO, segment: Segment) -> bytes:
	data = _io_utils.read_up_to(stream, segment.length)
	if len(data) != segment.length:
		raise TruncatedError(f"Entry {segment.id} should be {segment.length} bytes long, but only {len(data)} bytes could be read")
	return data


def _read_exact(stream: typing.BinaryIO, byte_count: int) -> bytes:
	try:
		return _io_utils.read_exact(stream, byte_count)
	except EOFError as e:
		raise TruncatedError(str(e))


def _read_struct_data(stream: typing.BinaryIO, segment: Segment, st: struct.Struct, what: str) -> bytes:
	if segment.length < st.size:
		raise SubstructureError(f"{what} entry must be at least {st.size} bytes long, not {segment.length}")
	return _read_exact(stream, st.size)


def decode_segment(segment: Segment, stream: typing.BinaryIO) -> Member:
	"""Decode a single entry.
	
	``stream`` must expose exactly the data of the entry, i. e. ``segment.length`` bytes, and must not allow reading past the end of the entry.
	
	Metadata entries are read and decoded immediately. Only the bytes belonging to the decoded structure are read, any further bytes remain unread in the stream. For fork entries and entries of unknown or uninterpreted types, nothing is read, and a :class:`ForkPayload` wrapping ``stream`` is returned.
	
	:raise SubstructureError: If a metadata entry is too short for its structure.
	:raise TruncatedError: If the stream ends before the entry's data is complete.
	"""
	
	entry_type = segment.entry_type
	
	if entry_type == EntryType.real_name:
		return Filename(_read_all(stream, segment))
	elif entry_type == EntryType.comment:
		return Comment(_read_all(stream, segment))
	elif entry_type == EntryType.finder_info:
		finder_info = FinderInfo.parse(_read_struct_data(stream, segment, STRUCT_FINDER_INFO, "Finder info"))
		if segment.length < STRUCT_FINDER_INFO.size + STRUCT_EXTENDED_FINDER_INFO.size:
			return FinderInfoEntry(finder_info, None)
		extended = ExtendedFinderInfo.parse(_read_exact(stream, STRUCT_EXTENDED_FINDER_INFO.size))
		return FinderInfoEntry(finder_info, extended)
	elif entry_type == EntryType.file_dates:
		return Dates.parse(_read_struct_data(stream, segment, STRUCT_FILE_DATES, "File dates"))
	elif entry_type == EntryType.macintosh_file_info:
		return MacInfo.parse(_read_struct_data(stream, segment, STRUCT_MAC_INFO, "Macintosh file info"))
	else:
		if entry_type is None:
			logger.debug("Entry ID %d is not a known entry type, treating its data as opaque", segment.id)
		return ForkPayload(Fork.for_segment(segment), stream)


def _fold_metadata(builder: ArchiveBuilder, member: Member) -> None:
	"""Store a decoded metadata entry in the builder."""
	
	if isinstance(member, Filename):
		builder.name(member)
	elif isinstance(member, Comment):
		builder.comment(member)
	elif isinstance(member, Dates):
		builder.dates(member)
	elif isinstance(member, FinderInfoEntry):
		builder.finder_info(member.info)
		if member.extended is not None:
			builder.extended_finder_info(member.extended)
	elif isinstance(member, MacInfo):
		builder.mac_info(member)
	else:
		raise AssertionError(f"Unhandled metadata member: {member!r}")


if typing.TYPE_CHECKING:
	class Handler(typing.Protocol):
		"""Protocol for objects that tell the streaming decoder where to put fork data."""
		
		def sink(self, fork: Fork) -> typing.Optional[typing.BinaryIO]:
			"""Return a writable binary stream for the given fork's data, or None to discard the data."""
			...


class DiscardHandler(object):
	"""A handler that discards all fork data."""
	
	def sink(self, fork: Fork) -> typing.Optional[typing.BinaryIO]:
		return None


class SinkHandler(object):
	"""A handler that sends fork data to fixed, previously opened streams.
	
	The streams are not closed by the handler.
	"""
	
	data: typing.Optional[typing.BinaryIO]
	rsrc: typing.Optional[typing.BinaryIO]
	other: typing.Mapping[int, typing.BinaryIO]
	
	def __init__(
		self,
		*,
		data: typing.Optional[typing.BinaryIO] = None,
		rsrc: typing.Optional[typing.BinaryIO] = None,
		other: typing.Optional[typing.Mapping[int, typing.BinaryIO]] = None,
	) -> None:
		super().__init__()
		
		self.data = data
		self.rsrc = rsrc
		self.other = dict(other or {})
	
	def sink(self, fork: Fork) -> typing.Optional[typing.BinaryIO]:
		if fork.kind == ForkKind.data:
			return self.data
		elif fork.kind == ForkKind.rsrc:
			return self.rsrc
		elif fork.kind == ForkKind.other:
			return self.other.get(fork.id)
		else:
			raise AssertionError(f"Unhandled fork kind: {fork.kind!r}")


class _CountingSink(object):
	"""Wraps a sink and counts the bytes written to it. Every write is completed, even if the sink only accepts part of the data at a time."""
	
	_wrapped: typing.BinaryIO
	count: int
	
	def __init__(self, wrapped: typing.BinaryIO) -> None:
		super().__init__()
		
		self._wrapped = wrapped
		self.count = 0
	
	def write(self, data: bytes) -> int:
		view = memoryview(data)
		while view:
			written = self._wrapped.write(view)
			if not written:
				raise OSError(f"Sink {self._wrapped!r} did not accept any data ({len(view)} bytes left to write)")
			self.count += written
			view = view[written:]
		return len(data)


def _deliver_fork(payload: ForkPayload, segment: Segment, handler: "Handler") -> None:
	"""Copy a fork to the sink that the handler provides for it, or discard it if there is none."""
	
	sink = handler.sink(payload.fork)
	if sink is None:
		logger.debug("Discarding %s", segment.describe())
		copied = _io_utils.discard(payload.stream)
	else:
		logger.debug("Copying %s to %r", segment.describe(), sink)
		counter = _CountingSink(sink)
		shutil.copyfileobj(payload.stream, counter)
		copied = counter.count
	
	if copied != segment.length:
		raise TruncatedError(f"Entry {segment.id} should be {segment.length} bytes long, but the stream ended after {copied} bytes")


def parse_segments(reader: _io_utils.CountingReader, segments: typing.Iterable[Segment], handler: "Handler") -> Archive:
	"""Decode the given entries from a forward-only reader, in the order in which they are given.
	
	This is the traversal part of :func:`parse`. The entries must be sorted by ascending offset and must not overlap, because the reader cannot move backwards.
	
	:raise OutOfOrderSegmentError: If an entry starts before the current position of the reader.
	"""
	
	builder = ArchiveBuilder()
	builder.format(FORMAT_NAME)
	
	for segment in segments:
		logger.debug("Visiting %s", segment.describe())
		try:
			reader.skip_to(segment.offset)
		except io.UnsupportedOperation as e:
			raise OutOfOrderSegmentError(f"Entry {segment.id} starts at offset {segment.offset}, but the stream is already at offset {reader.position}: {e}")
		except EOFError as e:
			raise TruncatedError(str(e))
		
		bounded = _io_utils.LimitedReader(reader, segment.length)
		member = decode_segment(segment, bounded)
		if isinstance(member, ForkPayload):
			_deliver_fork(member, segment, handler)
		else:
			_fold_metadata(builder, member)
			# Metadata entries may be longer than the structure that was decoded from them.
			_io_utils.discard(bounded)
		
		if bounded.remaining != 0:
			raise TruncatedError(f"Entry {segment.id} should be {segment.length} bytes long, but the stream ended {bounded.remaining} bytes early")
	
	return builder.build()


def parse(stream: typing.BinaryIO, handler: typing.Optional["Handler"] = None) -> Archive:
	"""Decode an AppleSingle container from a stream in a single forward-only pass.
	
	The stream does not need to be seekable and must be positioned at the start of the container. Entries are visited in order of their offsets. Whenever a fork (or any other entry that is not decoded as metadata) is encountered, ``handler.sink(fork)`` is called, and the entry's data is copied to the returned writable stream. If the handler returns None (or no handler is passed), the data is read and discarded.
	
	The returned archive does not contain the forks.
	
	:raise InvalidAppleSingleError: If the container is invalid or truncated. No partial archive is returned in that case.
	:raise OSError: If writing to a sink fails.
	"""
	
	if handler is None:
		handler = DiscardHandler()
	
	reader = _io_utils.CountingReader(stream)
	table = read_header(reader)
	return parse_segments(reader, table.by_offset(), handler)


def parse_seekable(stream: typing.BinaryIO, *, close: bool = False) -> SeekableArchive:
	"""Decode the metadata of an AppleSingle container from a seekable stream.
	
	The header is read from the stream's current position, which should be offset 0. Each entry is then read by seeking to its offset, so the entries may be stored in any order. Forks are not read; the returned :class:`SeekableArchive` can open them later, as often as needed.
	
	close controls whether the stream should be closed when the archive's close method is called. If decoding fails, the stream is closed immediately if close is True.
	
	:raise InvalidAppleSingleError: If the container is invalid or truncated.
	"""
	
	try:
		table = read_header(stream)
		builder = SeekableArchiveBuilder(stream, close=close)
		builder.format(FORMAT_NAME)
		
		for segment in table.by_offset():
			logger.debug("Visiting %s", segment.describe())
			try:
				bounded = _io_utils.SubStream(stream, segment.offset, segment.length)
			except EOFError as e:
				raise TruncatedError(str(e))
			
			with bounded:
				member = decode_segment(segment, bounded)
				if isinstance(member, ForkPayload):
					if member.fork.kind == ForkKind.data:
						builder.data_fork(segment)
					elif member.fork.kind == ForkKind.rsrc:
						builder.rsrc_fork(segment)
					else:
						builder.other(segment)
				else:
					_fold_metadata(builder, member)
		
		return builder.build()
	except BaseException:
		if close:
			stream.close()
		raise


# noinspection PyShadowingBuiltins
def open(filename: typing.Union[str, os.PathLike]) -> SeekableArchive:
	"""Open the AppleSingle file at the given path and decode its metadata.
	
	The returned archive owns the file and closes it when the archive is closed.
	"""
	
	return parse_seekable(io.open(filename, "rb"), close=True)
