"""변환 파이프라인 예외 정의

EmptyResult(챕터 0개)는 예외가 아니라 ConversionResult.is_empty 로 보고된다.
"""

from typing import Optional


class Txt2EpubError(Exception):
    """novel_txt2epub 예외의 공통 부모"""


class UnsupportedEncoding(Txt2EpubError, ValueError):
    """지원하지 않는 인코딩 식별자 (디코더 생성 시점에 발생)"""

    def __init__(self, encoding: str):
        self.encoding = encoding
        super().__init__(f"Unsupported encoding: {encoding!r}")


class InvalidPattern(Txt2EpubError, ValueError):
    """챕터 경계 정규식 컴파일 실패"""

    def __init__(self, pattern: str, cause: Optional[Exception] = None):
        self.pattern = pattern
        self.cause = cause
        super().__init__(f"Invalid Regex Pattern {pattern!r}: {cause}")


class FileTooLarge(Txt2EpubError):
    """입력 파일 크기 제한 초과"""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Input is too large: {size} bytes (limit {limit} bytes)")


class PackagingFailure(Txt2EpubError):
    """EPUB 아카이브 생성 중 예기치 못한 실패 (원인 예외는 __cause__ 로 연결)"""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(f"{message}: {cause}" if cause else message)
