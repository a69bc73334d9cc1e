"""
Reader and writer for the SSH wire encoding used inside OpenSSH key containers: big-endian uint32 values and
strings prefixed with a uint32 length.
"""
import struct
from typing import Union

from keyforge.core.utils.secure_buffer import BytesLike, secure_wipe
from keyforge.exceptions import AllocationFailure, EncodingFailure, MalformedContainer

UINT32_MAX = 0xFFFFFFFF


class SSHBufferWriter:
    def __init__(self):
        self._buffer = bytearray()

    def __len__(self) -> int:
        return len(self._buffer)

    def __enter__(self) -> "SSHBufferWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.wipe()

    @property
    def buffer(self) -> bytearray:
        return self._buffer

    def put_raw(self, data: BytesLike) -> "SSHBufferWriter":
        try:
            self._buffer.extend(data)
        except MemoryError:
            raise AllocationFailure("Failed to grow the OpenSSH output buffer.") from None
        return self

    def put_uint32(self, value: int) -> "SSHBufferWriter":
        if not 0 <= value <= UINT32_MAX:
            raise EncodingFailure(f"Value {value} does not fit in a uint32 field.")
        return self.put_raw(struct.pack(">I", value))

    def put_string(self, data: Union[str, BytesLike]) -> "SSHBufferWriter":
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.put_uint32(len(data))
        return self.put_raw(data)

    def pad_to_block_size(self, block_size: int) -> "SSHBufferWriter":
        """Appends padding bytes 1, 2, 3, ... until the length is a multiple of `block_size`."""
        padding_length = -len(self._buffer) % block_size
        return self.put_raw(bytes(range(1, padding_length + 1)))

    def wipe(self):
        secure_wipe(self._buffer)


class SSHBufferReader:
    def __init__(self, data: BytesLike):
        self._data = memoryview(data)
        self._offset = 0

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def at_end(self) -> bool:
        return self.remaining == 0

    def get_raw(self, length: int) -> memoryview:
        if length < 0 or length > self.remaining:
            raise MalformedContainer(
                f"Truncated OpenSSH data: needed {length} bytes at offset {self._offset}, {self.remaining} left.")
        chunk = self._data[self._offset:self._offset + length]
        self._offset += length
        return chunk

    def get_uint32(self) -> int:
        return struct.unpack(">I", self.get_raw(4))[0]

    def get_string(self) -> memoryview:
        length = self.get_uint32()
        if length > self.remaining:
            raise MalformedContainer(
                f"Declared field length {length} overruns the buffer ({self.remaining} bytes left).")
        return self.get_raw(length)

    def get_text(self) -> str:
        try:
            return bytes(self.get_string()).decode("utf-8")
        except UnicodeDecodeError:
            raise MalformedContainer("OpenSSH text field is not valid UTF-8.") from None

    def get_remaining(self) -> memoryview:
        return self.get_raw(self.remaining)
