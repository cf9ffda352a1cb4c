import contextlib
import datetime
import io
import pathlib
import struct
import sys
import tempfile
import typing
import unittest
import unittest.mock
import warnings

import applesingle
from applesingle import __main__ as cli
from applesingle import _io_utils, api, archive

MAGIC = 0x00051600
VERSION = 0x00020000

NAME = b"Read Me"
COMMENT = "A comment with non-ASCII text: Üñïçø∂é".encode("macroman")
DATES = applesingle.Dates(
	applesingle.Date(0),
	applesingle.Date(86400),
	applesingle.Date(-946684800),
	applesingle.Date(0x7fffffff),
)
FINDER_INFO = applesingle.FinderInfo(b"TEXT", b"ttxt", applesingle.FinderFlags(0x0100), applesingle.Point(-12, 34), 7)
EXTENDED_FINDER_INFO = applesingle.ExtendedFinderInfo(128, None, 0x80, 0, 42)
MAC_INFO = applesingle.MacInfo(0x00000002)
DATA_FORK = b"This is the data fork.\r" * 100
RSRC_FORK = bytes(range(256)) * 3
OTHER_ENTRY_ID = 0x12345678
OTHER_ENTRY = b"Entry of a type that nobody knows"


def make_raw_container(descriptors: typing.Sequence[typing.Tuple[int, int, int]], body: bytes, *, magic: int = MAGIC, version: int = VERSION) -> bytes:
	"""Assemble a container from explicit entry descriptors and the bytes that follow the entry table."""
	
	header = struct.pack(">II16sH", magic, version, bytes(16), len(descriptors))
	table = b"".join(struct.pack(">III", *descriptor) for descriptor in descriptors)
	return header + table + body


def make_container(entries: typing.Sequence[typing.Tuple[int, bytes]], *, data_order: typing.Optional[typing.Sequence[int]] = None, **kwargs: typing.Any) -> bytes:
	"""Assemble a container with the given entries. The entry data is stored in data_order (indices into entries), or in table order by default."""
	
	if data_order is None:
		data_order = range(len(entries))
	
	offset = 26 + 12 * len(entries)
	offsets = {}
	body = []
	for index in data_order:
		offsets[index] = offset
		body.append(entries[index][1])
		offset += len(entries[index][1])
	
	descriptors = [(entry_id, offsets[index], len(data)) for index, (entry_id, data) in enumerate(entries)]
	return make_raw_container(descriptors, b"".join(body), **kwargs)


FULL_ENTRIES = [
	(applesingle.EntryType.real_name, NAME),
	(applesingle.EntryType.comment, COMMENT),
	(applesingle.EntryType.file_dates, DATES.to_bytes()),
	(applesingle.EntryType.finder_info, FINDER_INFO.to_bytes() + EXTENDED_FINDER_INFO.to_bytes()),
	(applesingle.EntryType.macintosh_file_info, MAC_INFO.to_bytes()),
	(OTHER_ENTRY_ID, OTHER_ENTRY),
	(applesingle.EntryType.resource_fork, RSRC_FORK),
	(applesingle.EntryType.data_fork, DATA_FORK),
]


class UnseekableStreamWrapper(io.BufferedIOBase):
	_wrapped: typing.BinaryIO
	
	def __init__(self, wrapped: typing.BinaryIO) -> None:
		super().__init__()
		
		self._wrapped = wrapped
	
	def read(self, size: typing.Optional[int] = -1) -> bytes:
		return self._wrapped.read(size)


class FailingSink(io.RawIOBase):
	def writable(self) -> bool:
		return True
	
	def write(self, data: typing.Any) -> int:
		raise OSError("Disk full")



class TrickleStream(io.RawIOBase):
	"""An unseekable raw stream that returns at most a few bytes per read call, like a pipe or socket may."""
	
	_wrapped: typing.BinaryIO
	_chunk_size: int
	
	def __init__(self, data: bytes, chunk_size: int = 3) -> None:
		super().__init__()
		
		self._wrapped = io.BytesIO(data)
		self._chunk_size = chunk_size
	
	def readable(self) -> bool:
		return True
	
	def readinto(self, buffer: typing.Any) -> int:
		data = self._wrapped.read(min(len(buffer), self._chunk_size))
		buffer[:len(data)] = data
		return len(data)


class TrickleSink(io.RawIOBase):
	"""A raw sink that accepts at most chunk_size bytes per write call."""
	
	received: bytearray
	_chunk_size: int
	
	def __init__(self, chunk_size: int = 7) -> None:
		super().__init__()
		
		self.received = bytearray()
		self._chunk_size = chunk_size
	
	def writable(self) -> bool:
		return True
	
	def write(self, data: typing.Any) -> int:
		accepted = bytes(data[:self._chunk_size])
		self.received += accepted
		return len(accepted)


def parse_streaming(data: bytes) -> typing.Tuple[applesingle.Archive, typing.Dict[str, bytes]]:
	"""Decode data in streaming mode from an unseekable stream and capture all forks."""
	
	data_sink = io.BytesIO()
	rsrc_sink = io.BytesIO()
	other_sink = io.BytesIO()
	handler = applesingle.SinkHandler(data=data_sink, rsrc=rsrc_sink, other={OTHER_ENTRY_ID: other_sink})
	ar = applesingle.parse(UnseekableStreamWrapper(io.BytesIO(data)), handler)
	return ar, {"data": data_sink.getvalue(), "rsrc": rsrc_sink.getvalue(), "other": other_sink.getvalue()}


class DateTests(unittest.TestCase):
	def test_mac_epoch(self) -> None:
		self.assertEqual(applesingle.Date(0).to_datetime(), datetime.datetime(2000, 1, 1, tzinfo=datetime.timezone.utc))
		self.assertEqual(str(applesingle.Date(0)), "2000-01-01T00:00:00+00:00")
	
	def test_unix_epoch(self) -> None:
		date = applesingle.Date(-946684800)
		self.assertEqual(date.unix_timestamp, 0)
		self.assertEqual(date.to_datetime(), datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc))
	
	def test_parse_dates(self) -> None:
		dates = applesingle.Dates.parse(b"\x00\x00\x00\x00" b"\x00\x00\x00\x3c" b"\xff\xff\xff\xff" b"\x80\x00\x00\x00")
		self.assertEqual(dates.create, applesingle.Date(0))
		self.assertEqual(dates.modify, applesingle.Date(60))
		self.assertEqual(dates.backup, applesingle.Date(-1))
		self.assertEqual(dates.access, applesingle.Date(-0x80000000))
	
	def test_parse_dates_too_short(self) -> None:
		with self.assertRaises(applesingle.SubstructureError):
			applesingle.Dates.parse(bytes(15))
	
	def test_unrepresentable_date_falls_back_to_raw_value(self) -> None:
		date = applesingle.Date(12345)
		with unittest.mock.patch.object(applesingle.Date, "to_datetime", side_effect=OverflowError("out of range")):
			self.assertEqual(str(date), "12345")
		self.assertEqual(date.value, 12345)


class FinderInfoTests(unittest.TestCase):
	def test_alias_flag(self) -> None:
		flags = applesingle.FinderFlags(0x8000)
		self.assertTrue(flags.is_alias)
		self.assertEqual(flags.names(), ["is_alias"])
		self.assertEqual(flags.color, 0)
	
	def test_color(self) -> None:
		flags = applesingle.FinderFlags(0x000e)
		self.assertEqual(flags.color, 7)
		self.assertEqual(flags.names(), [])
	
	def test_high_byte_is_not_color(self) -> None:
		# The color field is in the low byte. These bits are the stationery, custom icon and reserved flags.
		flags = applesingle.FinderFlags(0x0e00)
		self.assertEqual(flags.color, 0)
		self.assertEqual(flags.names(), ["is_stationery", "has_custom_icon"])
	
	def test_all_flag_positions(self) -> None:
		expected = {
			"is_alias": 0x8000,
			"is_invisible": 0x4000,
			"has_bundle": 0x2000,
			"name_locked": 0x1000,
			"is_stationery": 0x0800,
			"has_custom_icon": 0x0400,
			"has_been_inited": 0x0100,
			"has_no_inits": 0x0080,
			"is_shared": 0x0040,
			"requires_switch_launch": 0x0020,
			"color_reserved": 0x0010,
			"is_on_desktop": 0x0001,
		}
		for name, value in expected.items():
			with self.subTest(flag=name):
				self.assertEqual(applesingle.FinderFlags(value).names(), [name])
		
		# The reserved bit is not reported as any flag.
		self.assertEqual(applesingle.FinderFlags(0x0200).names(), [])
	
	def test_deprecated_flags_warn(self) -> None:
		flags = applesingle.FinderFlags(0x0031)
		with self.assertWarns(DeprecationWarning):
			self.assertTrue(flags.is_on_desktop)
		with self.assertWarns(DeprecationWarning):
			self.assertTrue(flags.color_reserved)
		with self.assertWarns(DeprecationWarning):
			self.assertTrue(flags.requires_switch_launch)
		
		with warnings.catch_warnings():
			warnings.simplefilter("error")
			self.assertFalse(flags.is_shared)
	
	def test_parse_finder_info(self) -> None:
		finf = applesingle.FinderInfo.parse(b"APPLMACS\x24\x00\xff\xfe\x00\x10\x00\x05")
		self.assertEqual(finf.type, b"APPL")
		self.assertEqual(finf.creator, b"MACS")
		self.assertEqual(finf.flags, applesingle.FinderFlags(0x2400))
		self.assertTrue(finf.flags.has_bundle)
		self.assertTrue(finf.flags.has_custom_icon)
		self.assertEqual(finf.location, applesingle.Point(vertical=-2, horizontal=16))
		self.assertEqual(finf.folder, 5)
	
	def test_parse_finder_info_too_short(self) -> None:
		with self.assertRaises(applesingle.SubstructureError):
			applesingle.FinderInfo.parse(b"APPLMACS")
	
	def test_extended_finder_info(self) -> None:
		fxinf = applesingle.ExtendedFinderInfo.parse(b"\x00\x80" + bytes(6) + b"\x01\x02\x00\x03\x00\x00\x01\x00")
		self.assertEqual(fxinf.icon_id, 128)
		self.assertEqual(fxinf.filename_script, 1)
		self.assertEqual(fxinf.extended_flags, 2)
		self.assertEqual(fxinf.comment_id, 3)
		self.assertEqual(fxinf.put_away_from, 256)
		
		self.assertIsNone(applesingle.ExtendedFinderInfo.parse(bytes(16)).filename_script)
	
	def test_mac_info(self) -> None:
		self.assertTrue(applesingle.MacInfo.parse(b"\x00\x00\x00\x01").is_locked)
		self.assertFalse(applesingle.MacInfo.parse(b"\x00\x00\x00\x01").is_protected)
		self.assertTrue(applesingle.MacInfo.parse(b"\x00\x00\x00\x02").is_protected)
		self.assertFalse(applesingle.MacInfo.parse(b"\x00\x00\x00\x02").is_locked)
		self.assertFalse(applesingle.MacInfo.parse(b"\x80\x00\x00\x00").is_locked)
		
		with self.assertRaises(applesingle.SubstructureError):
			applesingle.MacInfo.parse(b"\x00\x00\x01")


class IOUtilsTests(unittest.TestCase):
	def test_limited_reader_stops_at_limit(self) -> None:
		stream = io.BytesIO(b"0123456789")
		limited = _io_utils.LimitedReader(stream, 4)
		self.assertEqual(limited.read(), b"0123")
		self.assertEqual(limited.read(), b"")
		self.assertEqual(stream.tell(), 4)
	
	def test_skip_to(self) -> None:
		reader = _io_utils.CountingReader(UnseekableStreamWrapper(io.BytesIO(b"0123456789")))
		reader.skip_to(3)
		self.assertEqual(reader.read(2), b"34")
		reader.skip_to(5)
		self.assertEqual(reader.position, 5)
		
		with self.assertRaises(io.UnsupportedOperation):
			reader.skip_to(4)
		with self.assertRaises(EOFError):
			reader.skip_to(11)
	
	def test_short_reads(self) -> None:
		self.assertEqual(_io_utils.read_exact(TrickleStream(b"0123456789"), 8), b"01234567")
		with self.assertRaises(EOFError):
			_io_utils.read_exact(TrickleStream(b"0123456789"), 11)
		
		stream = TrickleStream(b"0123456789")
		limited = _io_utils.LimitedReader(stream, 8)
		self.assertEqual(limited.read(6), b"012345")
		self.assertEqual(limited.read(), b"67")
		self.assertEqual(limited.remaining, 0)
		self.assertEqual(stream.read(), b"89")
	
	def test_substream_too_short(self) -> None:
		with self.assertRaises(EOFError):
			_io_utils.SubStream(io.BytesIO(b"0123"), 2, 3)


class HeaderTests(unittest.TestCase):
	def test_read_header(self) -> None:
		data = make_container(FULL_ENTRIES)
		stream = io.BytesIO(data)
		table = api.read_header(stream)
		
		self.assertEqual(stream.tell(), 26 + 12 * len(FULL_ENTRIES))
		self.assertEqual(len(table), len(FULL_ENTRIES))
		offsets = [segment.offset for segment in table.by_offset()]
		self.assertEqual(offsets, sorted(offsets))
		self.assertEqual(table[applesingle.EntryType.data_fork].length, len(DATA_FORK))
		
		self.assertIn(applesingle.EntryType.data_fork, table)
		self.assertNotIn(applesingle.EntryType.afp_file_info, table)
	
	def test_segment_end(self) -> None:
		segment = applesingle.Segment(applesingle.EntryType.real_name, 0x100, 0x20)
		self.assertEqual(segment.end, 0x120)
		self.assertEqual(segment.describe(), "real_name: 32 bytes at offset 0x100 (up to 0x120)")
		self.assertEqual(applesingle.Segment(99, 0, 1).describe(), "entry 99: 1 bytes at offset 0x0 (up to 0x1)")
	
	def test_by_offset_ignores_table_order(self) -> None:
		data = make_container(FULL_ENTRIES, data_order=list(reversed(range(len(FULL_ENTRIES)))))
		table = api.read_header(io.BytesIO(data))
		self.assertEqual([segment.id for segment in table.by_offset()], [entry_id for entry_id, _ in reversed(FULL_ENTRIES)])
	
	def test_bad_magic(self) -> None:
		with self.assertRaises(applesingle.FormatMismatchError):
			api.read_header(io.BytesIO(make_container([], magic=0x00051607)))
	
	def test_bad_version(self) -> None:
		with self.assertRaises(applesingle.FormatMismatchError):
			api.read_header(io.BytesIO(make_container([], version=0x00010000)))
	
	def test_truncated_header(self) -> None:
		data = make_container(FULL_ENTRIES)
		for length in (0, 8, 25, 26 + 12 * 3 + 5):
			with self.subTest(length=length):
				with self.assertRaises(applesingle.TruncatedError):
					api.read_header(io.BytesIO(data[:length]))
	
	def test_entry_type_lookup(self) -> None:
		self.assertEqual(applesingle.EntryType.lookup(9), applesingle.EntryType.finder_info)
		self.assertIsNone(applesingle.EntryType.lookup(7))
		self.assertIsNone(applesingle.EntryType.lookup(OTHER_ENTRY_ID))


class ArchiveBuilderTests(unittest.TestCase):
	def test_missing_format(self) -> None:
		builder = archive.ArchiveBuilder()
		builder.name(archive.Filename(NAME))
		with self.assertRaises(applesingle.MissingFieldError):
			builder.build()
	
	def test_optional_fields_default_to_none(self) -> None:
		ar = archive.ArchiveBuilder().format("AppleSingle").build()
		self.assertEqual(ar.format, "AppleSingle")
		self.assertIsNone(ar.name)
		self.assertIsNone(ar.comment)
		self.assertIsNone(ar.dates)
		self.assertIsNone(ar.finder_info)
		self.assertIsNone(ar.extended_finder_info)
		self.assertIsNone(ar.mac_info)
	
	def test_last_write_wins(self) -> None:
		ar = archive.ArchiveBuilder().format("AppleSingle").comment(archive.Comment(b"one")).comment(archive.Comment(b"two")).build()
		self.assertEqual(ar.comment, b"two")
	
	def test_entry_text_display(self) -> None:
		self.assertEqual(str(archive.Filename(b"Read Me")), "'Read Me'")
		self.assertEqual(str(archive.Comment(b"\xff\xfe")), "b'\\xff\\xfe'")


class StreamingParseTests(unittest.TestCase):
	def internal_test_full(self, ar: applesingle.Archive) -> None:
		self.assertEqual(ar.format, "AppleSingle")
		self.assertEqual(ar.name, NAME)
		self.assertEqual(ar.comment, COMMENT)
		self.assertEqual(ar.dates, DATES)
		self.assertEqual(ar.finder_info, FINDER_INFO)
		self.assertEqual(ar.extended_finder_info, EXTENDED_FINDER_INFO)
		self.assertEqual(ar.mac_info, MAC_INFO)
	
	def test_full(self) -> None:
		ar, forks = parse_streaming(make_container(FULL_ENTRIES))
		self.internal_test_full(ar)
		self.assertEqual(forks["data"], DATA_FORK)
		self.assertEqual(forks["rsrc"], RSRC_FORK)
		self.assertEqual(forks["other"], OTHER_ENTRY)
	
	def test_data_stored_in_reverse_order(self) -> None:
		ar, forks = parse_streaming(make_container(FULL_ENTRIES, data_order=list(reversed(range(len(FULL_ENTRIES))))))
		self.internal_test_full(ar)
		self.assertEqual(forks["data"], DATA_FORK)
		self.assertEqual(forks["rsrc"], RSRC_FORK)
	
	def test_without_handler(self) -> None:
		ar = applesingle.parse(UnseekableStreamWrapper(io.BytesIO(make_container(FULL_ENTRIES, data_order=[7, 6, 5, 4, 3, 2, 1, 0]))))
		self.internal_test_full(ar)
	
	def test_handler_is_asked_for_every_fork(self) -> None:
		forks = []
		
		class RecordingHandler(object):
			def sink(self, fork: applesingle.Fork) -> typing.Optional[typing.BinaryIO]:
				forks.append(fork)
				return None
		
		applesingle.parse(io.BytesIO(make_container(FULL_ENTRIES)), RecordingHandler())
		self.assertEqual(forks, [
			applesingle.Fork(applesingle.ForkKind.other, OTHER_ENTRY_ID),
			applesingle.Fork(applesingle.ForkKind.rsrc, 2),
			applesingle.Fork(applesingle.ForkKind.data, 1),
		])
	
	def test_entries_are_consumed_exactly(self) -> None:
		# Metadata entries longer than their structure, and gaps between entries.
		mac_info_entry = MAC_INFO.to_bytes() + b"padding!"
		body = b"gap" + mac_info_entry + b"more gap" + DATA_FORK + NAME
		start = 26 + 12 * 3
		descriptors = [
			(applesingle.EntryType.macintosh_file_info, start + 3, len(mac_info_entry)),
			(applesingle.EntryType.data_fork, start + 3 + len(mac_info_entry) + 8, len(DATA_FORK)),
			(applesingle.EntryType.real_name, start + len(body) - len(NAME), len(NAME)),
		]
		data = make_raw_container(descriptors, body)
		
		stream = io.BytesIO(data)
		sink = io.BytesIO()
		ar = applesingle.parse(UnseekableStreamWrapper(stream), applesingle.SinkHandler(data=sink))
		self.assertEqual(ar.mac_info, MAC_INFO)
		self.assertEqual(ar.name, NAME)
		self.assertEqual(sink.getvalue(), DATA_FORK)
		self.assertEqual(stream.tell(), len(data))
	
	def test_empty_fork(self) -> None:
		sink = io.BytesIO()
		ar = applesingle.parse(io.BytesIO(make_container([(applesingle.EntryType.data_fork, b""), (applesingle.EntryType.real_name, NAME)])), applesingle.SinkHandler(data=sink))
		self.assertEqual(sink.getvalue(), b"")
		self.assertEqual(ar.name, NAME)
	
	def test_out_of_order_segments(self) -> None:
		reader = _io_utils.CountingReader(io.BytesIO(make_container(FULL_ENTRIES)))
		table = api.read_header(reader)
		with self.assertRaises(applesingle.OutOfOrderSegmentError):
			api.parse_segments(reader, list(reversed(table.by_offset())), applesingle.DiscardHandler())
	
	def test_overlapping_segments(self) -> None:
		start = 26 + 12 * 2
		body = DATA_FORK
		descriptors = [
			(applesingle.EntryType.data_fork, start, len(DATA_FORK)),
			(applesingle.EntryType.comment, start + 5, 10),
		]
		data = make_raw_container(descriptors, body)
		
		with self.assertRaises(applesingle.OutOfOrderSegmentError):
			applesingle.parse(UnseekableStreamWrapper(io.BytesIO(data)))
		
		# Seekable decoding has no problem with overlapping entries.
		with applesingle.parse_seekable(io.BytesIO(data)) as ar:
			self.assertEqual(ar.comment, DATA_FORK[5:15])
			self.assertEqual(ar.data_fork, DATA_FORK)
	
	def test_truncated(self) -> None:
		data = make_container(FULL_ENTRIES)
		for cut in (1, len(DATA_FORK) + 1, len(data) - 26 - 12 * len(FULL_ENTRIES) - 1):
			with self.subTest(cut=cut):
				with self.assertRaises(applesingle.TruncatedError):
					parse_streaming(data[:-cut])
	
	def test_truncated_metadata_entry(self) -> None:
		data = make_container([(applesingle.EntryType.real_name, NAME)])
		with self.assertRaises(applesingle.TruncatedError):
			applesingle.parse(io.BytesIO(data[:-1]))
	
	def test_short_finder_info(self) -> None:
		data = make_container([(applesingle.EntryType.finder_info, FINDER_INFO.to_bytes()[:12])])
		with self.assertRaises(applesingle.SubstructureError):
			applesingle.parse(io.BytesIO(data))
	
	def test_finder_info_without_extended_part(self) -> None:
		ar = applesingle.parse(io.BytesIO(make_container([(applesingle.EntryType.finder_info, FINDER_INFO.to_bytes())])))
		self.assertEqual(ar.finder_info, FINDER_INFO)
		self.assertIsNone(ar.extended_finder_info)
	
	def test_duplicate_entry_ids(self) -> None:
		data = make_container([
			(applesingle.EntryType.real_name, b"first"),
			(applesingle.EntryType.real_name, b"second"),
		])
		with self.assertLogs("applesingle.api", level="WARNING"):
			ar = applesingle.parse(io.BytesIO(data))
		self.assertEqual(ar.name, b"second")
		
		# Also when the later descriptor's data is stored first.
		data = make_container([
			(applesingle.EntryType.real_name, b"first"),
			(applesingle.EntryType.real_name, b"second"),
		], data_order=[1, 0])
		with self.assertLogs("applesingle.api", level="WARNING"):
			ar = applesingle.parse(io.BytesIO(data))
		self.assertEqual(ar.name, b"second")
	
	def test_short_reads(self) -> None:
		data_sink = io.BytesIO()
		rsrc_sink = io.BytesIO()
		ar = applesingle.parse(TrickleStream(make_container(FULL_ENTRIES)), applesingle.SinkHandler(data=data_sink, rsrc=rsrc_sink))
		self.internal_test_full(ar)
		self.assertEqual(data_sink.getvalue(), DATA_FORK)
		self.assertEqual(rsrc_sink.getvalue(), RSRC_FORK)
	
	def test_partial_writes(self) -> None:
		sink = TrickleSink()
		applesingle.parse(io.BytesIO(make_container(FULL_ENTRIES)), applesingle.SinkHandler(data=sink))
		self.assertEqual(bytes(sink.received), DATA_FORK)
	
	def test_sink_accepting_nothing(self) -> None:
		with self.assertRaises(OSError):
			applesingle.parse(io.BytesIO(make_container(FULL_ENTRIES)), applesingle.SinkHandler(data=TrickleSink(chunk_size=0)))
	
	def test_sink_error_propagates(self) -> None:
		with self.assertRaises(OSError):
			applesingle.parse(io.BytesIO(make_container(FULL_ENTRIES)), applesingle.SinkHandler(data=FailingSink()))


class SeekableParseTests(unittest.TestCase):
	def test_full(self) -> None:
		with applesingle.parse_seekable(io.BytesIO(make_container(FULL_ENTRIES))) as ar:
			self.assertEqual(ar.name, NAME)
			self.assertEqual(ar.comment, COMMENT)
			self.assertEqual(ar.dates, DATES)
			self.assertEqual(ar.finder_info, FINDER_INFO)
			self.assertEqual(ar.extended_finder_info, EXTENDED_FINDER_INFO)
			self.assertEqual(ar.mac_info, MAC_INFO)
			self.assertEqual(ar.data_fork, DATA_FORK)
			self.assertEqual(ar.rsrc_fork, RSRC_FORK)
			self.assertEqual(list(ar.other_segments), [OTHER_ENTRY_ID])
			with ar.open_entry(OTHER_ENTRY_ID) as f:
				self.assertEqual(f.read(), OTHER_ENTRY)
	
	def test_forks_can_be_read_repeatedly(self) -> None:
		with applesingle.parse_seekable(io.BytesIO(make_container(FULL_ENTRIES))) as ar:
			for _ in range(3):
				with ar.open_rsrc_fork() as f:
					self.assertEqual(f.read(10), RSRC_FORK[:10])
					f.seek(-5, io.SEEK_END)
					self.assertEqual(f.read(), RSRC_FORK[-5:])
				with ar.open_data_fork() as f:
					self.assertEqual(f.read(), DATA_FORK)
	
	def test_missing_forks(self) -> None:
		with applesingle.parse_seekable(io.BytesIO(make_container([(applesingle.EntryType.real_name, NAME)]))) as ar:
			self.assertIsNone(ar.open_data_fork())
			self.assertIsNone(ar.open_rsrc_fork())
			self.assertIsNone(ar.data_fork)
			self.assertIsNone(ar.rsrc_fork)
			with self.assertRaises(KeyError):
				ar.open_entry(OTHER_ENTRY_ID)
	
	def test_truncated(self) -> None:
		data = make_container(FULL_ENTRIES)
		with self.assertRaises(applesingle.TruncatedError):
			applesingle.parse_seekable(io.BytesIO(data[:-1]))
	
	def test_close_on_error(self) -> None:
		stream = io.BytesIO(make_container([], magic=0))
		with self.assertRaises(applesingle.FormatMismatchError):
			applesingle.parse_seekable(stream, close=True)
		self.assertTrue(stream.closed)
	
	def test_streaming_and_seekable_agree(self) -> None:
		data = make_container(FULL_ENTRIES, data_order=[3, 7, 0, 5, 1, 6, 2, 4])
		streamed, forks = parse_streaming(data)
		with applesingle.parse_seekable(io.BytesIO(data)) as seeked:
			self.assertEqual(streamed.metadata(), seeked.metadata())
			self.assertEqual(forks["data"], seeked.data_fork)
			self.assertEqual(forks["rsrc"], seeked.rsrc_fork)
	
	def test_open_path(self) -> None:
		with tempfile.TemporaryDirectory() as tempdir:
			path = pathlib.Path(tempdir) / "file.as"
			path.write_bytes(make_container(FULL_ENTRIES))
			
			with applesingle.open(path) as ar:
				self.assertEqual(ar.name, NAME)
				self.assertEqual(ar.rsrc_fork, RSRC_FORK)


class CommandLineTests(unittest.TestCase):
	def run_cli(self, *args: str) -> typing.Tuple[int, str]:
		out = io.StringIO()
		with unittest.mock.patch.object(sys, "argv", ["applesingle", *args]):
			with contextlib.redirect_stdout(out), contextlib.redirect_stderr(io.StringIO()):
				with self.assertRaises(SystemExit) as cm:
					cli.main()
		return cm.exception.code, out.getvalue()
	
	def test_info_and_extract(self) -> None:
		with tempfile.TemporaryDirectory() as tempdir:
			path = pathlib.Path(tempdir) / "file.as"
			path.write_bytes(make_container(FULL_ENTRIES))
			
			status, output = self.run_cli("info", str(path))
			self.assertEqual(status, 0)
			self.assertIn('Real name: "Read Me"', output)
			self.assertIn("Type: 'TEXT'", output)
			self.assertIn("Created: 2000-01-01T00:00:00+00:00", output)
			self.assertIn("Macintosh file info: 0x00000002 (protected)", output)
			
			status, output = self.run_cli("list", str(path))
			self.assertEqual(status, 0)
			self.assertIn(f"{len(FULL_ENTRIES)} entries:", output)
			
			out_path = pathlib.Path(tempdir) / "file.rsrc"
			status, _ = self.run_cli("extract", "--fork", "rsrc", str(path), str(out_path))
			self.assertEqual(status, 0)
			self.assertEqual(out_path.read_bytes(), RSRC_FORK)
	
	def test_invalid_file(self) -> None:
		with tempfile.TemporaryDirectory() as tempdir:
			path = pathlib.Path(tempdir) / "junk"
			path.write_bytes(b"This is not an AppleSingle file at all.")
			
			status, _ = self.run_cli("info", str(path))
			self.assertEqual(status, 1)


if __name__ == "__main__":
	unittest.main()
