"""
Wipeable byte buffers for passphrases, derived key material and plaintext private key bytes.

Python `str` and `bytes` objects are immutable and cannot be cleared, so every secret the codec owns lives in a
`bytearray` held by a `SecretBuffer`. The buffer is zeroized when its `with` block exits, on success and on error.
"""
from contextlib import contextmanager
from typing import Iterator, Optional, Union

from keyforge.exceptions import AllocationFailure, BufferTooSmall

BytesLike = Union[bytes, bytearray, memoryview]


def secure_wipe(buffer: Optional[Union[bytearray, memoryview]]):
    """Overwrites a mutable buffer with zeros in place."""
    if buffer is None:
        return
    length = len(buffer)
    if length:
        buffer[:] = bytes(length)


class SecretBuffer:
    def __init__(self, data: BytesLike = b""):
        try:
            self._buffer = bytearray(data)
        except MemoryError:
            raise AllocationFailure("Failed to allocate a secure key buffer.") from None
        self._wiped = False

    def __enter__(self) -> "SecretBuffer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.wipe()

    def __len__(self) -> int:
        return len(self._buffer)

    def __bytes__(self) -> bytes:
        return bytes(self._buffer)

    def __repr__(self) -> str:
        return f"SecretBuffer(<{len(self._buffer)} bytes>)"

    def __copy__(self):
        raise TypeError("SecretBuffer cannot be copied.")

    def __deepcopy__(self, memo):
        raise TypeError("SecretBuffer cannot be copied.")

    @property
    def wiped(self) -> bool:
        return self._wiped

    def view(self, start: int = 0, end: Optional[int] = None) -> memoryview:
        """Zero-copy window into the secret, valid until the buffer is wiped."""
        return memoryview(self._buffer)[start:end]

    def extend(self, data: BytesLike):
        try:
            self._buffer.extend(data)
        except MemoryError:
            raise AllocationFailure("Failed to grow a secure key buffer.") from None

    def wipe(self):
        secure_wipe(self._buffer)
        self._wiped = True


@contextmanager
def secret_bytes(value: Optional[Union[str, BytesLike]], encoding: str = "utf-8") -> Iterator[SecretBuffer]:
    """
    Acquires a passphrase (or other secret) as a `SecretBuffer` and guarantees it is wiped when the block exits.
    """
    if value is None:
        data = b""
    elif isinstance(value, str):
        data = value.encode(encoding)
    else:
        data = value
    buffer = SecretBuffer(data)
    try:
        yield buffer
    finally:
        buffer.wipe()


def copy_into(data: BytesLike, output: Union[bytearray, memoryview]) -> int:
    """
    Copies `data` into a caller-provided fixed-size buffer and returns the number of bytes written.
    Raises `BufferTooSmall` (without touching `output`) when it cannot hold the data.
    """
    required = len(data)
    if len(output) < required:
        raise BufferTooSmall(required)
    output[:required] = data
    return required
