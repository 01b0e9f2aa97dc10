"""바이트 소스

범위 읽기(start, end)가 가능한 불변 바이트 열. 호출자가 소유하며,
코어는 읽기 호출 동안에만 사용하고 보관하지 않는다.
"""

import os
from pathlib import Path
from typing import Protocol, Union


class ByteSource(Protocol):
    """크기를 알고 있는 범위 읽기 가능한 바이트 소스"""

    @property
    def size(self) -> int:
        ...

    def read(self, start: int, end: int) -> bytes:
        ...


class BytesSource:
    """메모리 상의 bytes 를 감싸는 소스"""

    def __init__(self, data: bytes):
        self._data = bytes(data)

    @property
    def size(self) -> int:
        return len(self._data)

    def read(self, start: int, end: int) -> bytes:
        return self._data[max(start, 0):min(end, len(self._data))]

    def __repr__(self):
        return f"<BytesSource {self.size} bytes>"


class FileSource:
    """로컬 파일 소스

    읽기 요청마다 파일을 열고 닫는다 (핸들을 들고 있지 않음).
    크기는 생성 시점에 고정된다.
    """

    def __init__(self, path: Union[str, os.PathLike]):
        self.path = Path(path)
        if not self.path.is_file():
            raise FileNotFoundError(f"File not found: {self.path}")
        self._size = self.path.stat().st_size

    @property
    def size(self) -> int:
        return self._size

    def read(self, start: int, end: int) -> bytes:
        start = max(start, 0)
        end = min(end, self._size)
        if end <= start:
            return b""
        with open(self.path, "rb") as f:
            f.seek(start)
            return f.read(end - start)

    def __repr__(self):
        return f"<FileSource {self.path.name} ({self.size} bytes)>"
