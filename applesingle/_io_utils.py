"""A collection of utility functions and classes related to IO streams. For internal use only."""

import io
import typing

# Chunk size used when data has to be read and thrown away.
_DISCARD_CHUNK_SIZE = io.DEFAULT_BUFFER_SIZE


def read_up_to(stream: typing.BinaryIO, byte_count: int) -> bytes:
	"""Read byte_count bytes from the stream, or fewer only if EOF is hit.
	
	Unlike a single read call, this keeps reading when the stream returns less data than requested, which raw streams (pipes, sockets) may do before EOF.
	"""
	
	chunks = []
	remaining = byte_count
	while remaining > 0:
		chunk = stream.read(remaining)
		if not chunk:
			break
		chunks.append(chunk)
		remaining -= len(chunk)
	return b"".join(chunks)


def read_exact(stream: typing.BinaryIO, byte_count: int) -> bytes:
	"""Read byte_count bytes from the stream and raise an exception if too few bytes are read (i. e. if EOF was hit prematurely).
	
	:param stream: The stream to read from.
	:param byte_count: The number of bytes to read.
	:return: The read data, which is exactly ``byte_count`` bytes long.
	:raise EOFError: If not enough data could be read from the stream.
	"""
	
	data = read_up_to(stream, byte_count)
	if len(data) != byte_count:
		raise EOFError(f"Attempted to read {byte_count} bytes of data, but only got {len(data)} bytes")
	return data


def discard(stream: typing.BinaryIO, byte_count: typing.Optional[int] = None) -> int:
	"""Read and throw away byte_count bytes from the stream, or everything up to EOF if byte_count is None.
	
	:return: The number of bytes that were actually discarded. This is less than ``byte_count`` only if EOF was hit.
	"""
	
	discarded = 0
	while byte_count is None or discarded < byte_count:
		if byte_count is None:
			chunk_size = _DISCARD_CHUNK_SIZE
		else:
			chunk_size = min(_DISCARD_CHUNK_SIZE, byte_count - discarded)
		chunk = stream.read(chunk_size)
		if not chunk:
			break
		discarded += len(chunk)
	return discarded


class CountingReader(io.BufferedIOBase, typing.BinaryIO):
	"""A forward-only reader that keeps track of how many bytes have been read from the wrapped stream.
	
	The wrapped stream is never seeked, so it does not need to be seekable.
	The wrapped stream is assumed to be positioned at offset 0 when the reader is created.
	"""
	
	_wrapped: typing.BinaryIO
	position: int
	
	def __init__(self, wrapped: typing.BinaryIO) -> None:
		super().__init__()
		
		self._wrapped = wrapped
		self.position = 0
	
	def readable(self) -> bool:
		return True
	
	def tell(self) -> int:
		return self.position
	
	def read(self, size: typing.Optional[int] = -1) -> bytes:
		if size is None or size < 0:
			data = self._wrapped.read()
		else:
			data = self._wrapped.read(size)
		self.position += len(data)
		return data
	
	def read1(self, size: int = -1) -> bytes:
		return self.read(size)
	
	def skip_to(self, offset: int) -> None:
		"""Move forward to the given absolute offset by reading and discarding data.
		
		:raise io.UnsupportedOperation: If the reader is already past ``offset``. The wrapped stream cannot be rewound.
		:raise EOFError: If the stream ends before ``offset`` is reached.
		"""
		
		if self.position > offset:
			raise io.UnsupportedOperation(f"Cannot move backwards from offset {self.position} to offset {offset} in a forward-only stream")
		
		missing = offset - self.position
		if missing and discard(self, missing) != missing:
			raise EOFError(f"Stream ended at offset {self.position} while skipping to offset {offset}")


class LimitedReader(io.BufferedIOBase, typing.BinaryIO):
	"""A forward-only read-only stream that exposes at most a fixed number of bytes from another stream.
	
	Reading never consumes data from the wrapped stream past the limit, even if the wrapped stream has more data.
	Closing a LimitedReader does not close the wrapped stream.
	"""
	
	_wrapped: typing.BinaryIO
	length: int
	remaining: int
	
	def __init__(self, wrapped: typing.BinaryIO, length: int) -> None:
		super().__init__()
		
		self._wrapped = wrapped
		self.length = length
		self.remaining = length
	
	def readable(self) -> bool:
		return True
	
	def tell(self) -> int:
		return self.length - self.remaining
	
	def read(self, size: typing.Optional[int] = -1) -> bytes:
		if size is None or size < 0 or size > self.remaining:
			size = self.remaining
		
		if size == 0:
			return b""
		
		data = read_up_to(self._wrapped, size)
		self.remaining -= len(data)
		return data
	
	def read1(self, size: int = -1) -> bytes:
		return self.read(size)


class SubStream(io.BufferedIOBase, typing.BinaryIO):
	"""A read-only stream that provides a view over a range of data from another stream."""
	
	_outer_stream: typing.BinaryIO
	_start_offset: int
	_length: int
	_seek_position: int
	
	def __init__(self, stream: typing.BinaryIO, start_offset: int, length: int) -> None:
		"""Create a new stream that exposes the specified range of data from ``stream``.
		
		:param stream: The underlying binary stream from which to read the data.
			The stream must be readable and seekable and contain at least ``start_offset + length`` bytes of data.
		:param start_offset: The absolute offset in the parent stream at which the data to expose starts.
			This offset will correspond to offset 0 in the new :class:`SubStream`.
		:param length: The length of the data to expose.
			This is the highest valid offset in the new :class:`SubStream`.
		:raise EOFError: If the parent stream is too short to contain the requested range.
		"""
		
		super().__init__()
		
		self._outer_stream = stream
		self._start_offset = start_offset
		self._length = length
		self._seek_position = 0
		
		outer_stream_length = self._outer_stream.seek(0, io.SEEK_END)
		if self._start_offset + self._length > outer_stream_length:
			raise EOFError(f"start_offset ({self._start_offset}) or length ({self._length}) too high: outer stream must be at least {self._start_offset + self._length} bytes long, but is only {outer_stream_length} bytes")
		
		self._outer_stream.seek(self._start_offset)
	
	def seekable(self) -> bool:
		return True
	
	def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
		if whence == io.SEEK_SET:
			if offset < 0:
				raise ValueError(f"Negative seek offset not allowed with SEEK_SET: {offset}")
			
			self._seek_position = offset
		elif whence == io.SEEK_CUR:
			self._seek_position += offset
		elif whence == io.SEEK_END:
			self._seek_position = self._length + offset
		else:
			raise ValueError(f"Invalid whence value: {whence}")
		
		self._seek_position = max(0, min(self._length, self._seek_position))
		
		return self._seek_position
	
	def tell(self) -> int:
		return self._seek_position
	
	def readable(self) -> bool:
		return True
	
	def read(self, size: typing.Optional[int] = -1) -> bytes:
		if size is None or size < 0 or size > self._length - self._seek_position:
			size = self._length - self._seek_position
		
		self._outer_stream.seek(self._start_offset + self._seek_position)
		res = self._outer_stream.read(size)
		self._seek_position += len(res)
		return res
	
	def read1(self, size: int = -1) -> bytes:
		return self.read(size)
