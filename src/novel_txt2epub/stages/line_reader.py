"""스트리밍 라인 디코더

바이트 소스를 고정 크기 청크로 앞에서부터 읽어 증분 디코딩하고, 줄 단위로 돌려준다.
멀티바이트 문자나 CRLF 가 청크 경계에서 잘려도 결과는 청크 크기와 무관하다.
"""

import codecs
from collections import deque
from typing import Deque, Iterator, Optional, Union
from novel_txt2epub.stages.encoding import EncodingId
from novel_txt2epub.stages.source import ByteSource
from novel_txt2epub.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
BOM = "\ufeff"


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line


class LineStreamDecoder:
    """Pull 방식 라인 이터레이터

    `next_line()` 은 다음 라인을, 스트림이 끝나면 None 을 반환한다.
    새 청크가 필요할 때만 소스를 읽는다. 한 번만 순회 가능하며,
    다시 읽으려면 같은 소스로 새 인스턴스를 만든다.

    Example:
        >>> decoder = LineStreamDecoder(BytesSource(b"a\\r\\nb"), "utf-8")
        >>> list(decoder)
        ['a', 'b']
    """

    def __init__(
        self,
        source: ByteSource,
        encoding: Union[str, EncodingId],
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        """
        Args:
            source: 바이트 소스
            encoding: 인코딩 식별자
            chunk_size: 청크 크기 (바이트, 1 이상)

        Raises:
            UnsupportedEncoding: 열거형에 없는 인코딩
            ValueError: chunk_size < 1
        """
        self.encoding = EncodingId.parse(encoding)
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1: {chunk_size}")

        self.source = source
        self.chunk_size = chunk_size
        self._decoder = codecs.getincrementaldecoder(self.encoding.codec)(errors="replace")
        self._offset = 0
        self._buffer = ""
        self._pending: Deque[str] = deque()
        self._bom_checked = False
        self._exhausted = False
        self.lines_read = 0

    def _append(self, text: str) -> None:
        if not self._bom_checked and text:
            if text.startswith(BOM):
                text = text[1:]
            self._bom_checked = True
        self._buffer += text

    def _fill(self) -> bool:
        """다음 청크를 읽어 완성된 라인을 _pending 에 채움

        Returns:
            더 읽을 것이 남아 있으면 True
        """
        if self._offset < self.source.size:
            end = min(self._offset + self.chunk_size, self.source.size)
            chunk = self.source.read(self._offset, end)
            if not chunk:
                # 소스가 선언된 크기보다 짧음
                logger.warning(f"Source ended early at {self._offset}/{self.source.size} bytes")
                self._offset = self.source.size
                return self._fill()
            self._offset += len(chunk)
            self._append(self._decoder.decode(chunk))

            parts = self._buffer.split("\n")
            self._buffer = parts.pop()
            self._pending.extend(_strip_cr(part) for part in parts)
            return True

        # 소스 소진: 디코더 flush 후 남은 버퍼 처리
        self._append(self._decoder.decode(b"", final=True))
        if self._buffer:
            self._pending.extend(_strip_cr(part) for part in self._buffer.split("\n"))
        self._buffer = ""
        self._exhausted = True
        logger.debug(f"Decoded {self.source.size} bytes as {self.encoding.value}")
        return False

    def next_line(self) -> Optional[str]:
        """다음 라인 (스트림 끝이면 None)"""
        while not self._pending:
            if self._exhausted or not self._fill():
                if not self._pending:
                    return None
        self.lines_read += 1
        return self._pending.popleft()

    def __iter__(self) -> "LineStreamDecoder":
        return self

    def __next__(self) -> str:
        line = self.next_line()
        if line is None:
            raise StopIteration
        return line


def decode_lines(
    source: ByteSource,
    encoding: Union[str, EncodingId],
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> Iterator[str]:
    """소스를 라인 이터레이터로 변환 (호출마다 새 디코더)"""
    return LineStreamDecoder(source, encoding, chunk_size)
