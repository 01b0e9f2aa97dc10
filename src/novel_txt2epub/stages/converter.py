"""TXT → EPUB 변환 (호출자 계층)

크기 제한, 정규식 컴파일, 인코딩 결정, 미리보기 패스, 생성 패스를 묶는다.
미리보기와 생성은 각각 새 LineStreamDecoder 로 소스를 처음부터 다시 읽는다.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Union
from novel_txt2epub.errors import FileTooLarge, InvalidPattern
from novel_txt2epub.stages.chapter import BookMetadata, Chapter, ChapterBoundaryMatch, PREFACE_TITLE
from novel_txt2epub.stages.encoding import EncodingId, detect
from novel_txt2epub.stages.epub_packager import package
from novel_txt2epub.stages.line_reader import DEFAULT_CHUNK_SIZE, LineStreamDecoder
from novel_txt2epub.stages.segmenter import find_boundaries, is_boundary, segment
from novel_txt2epub.stages.source import ByteSource
from novel_txt2epub.utils.logger import get_logger

logger = get_logger(__name__)

MAX_FILE_SIZE = 50 * 1024 * 1024
DEFAULT_PREVIEW_LINES = 100

# Windows 금지 문자 포함
FORBIDDEN_FILENAME_CHARS = '<>:"/\\|?*'


@dataclass(frozen=True)
class PreviewLine:
    """미리보기 라인 (index 는 전체 라인 시퀀스 기준)"""
    index: int
    text: str
    is_boundary: bool = False


@dataclass
class PreviewResult:
    """미리보기 결과

    Attributes:
        encoding: 사용한 인코딩
        lines: 비어있지 않은 라인 (최대 limit 개)
        truncated: limit 이후에도 라인이 남아 있어 읽기를 멈췄는지
    """
    encoding: EncodingId
    lines: List[PreviewLine] = field(default_factory=list)
    truncated: bool = False

    @property
    def boundaries(self) -> List[ChapterBoundaryMatch]:
        return [ChapterBoundaryMatch(line.index, line.text) for line in self.lines if line.is_boundary]


@dataclass
class ConversionResult:
    """변환 결과

    챕터가 0개이면 archive 는 None 이고 is_empty 가 True (예외 아님).
    """
    encoding: EncodingId
    chapters: List[Chapter]
    archive: Optional[bytes] = None

    @property
    def is_empty(self) -> bool:
        return not self.chapters


def check_admission(source: ByteSource, max_bytes: int = MAX_FILE_SIZE) -> None:
    """입력 크기 제한 확인 (size < max_bytes 만 허용)

    Raises:
        FileTooLarge: 제한 이상
    """
    if source.size >= max_bytes:
        logger.error(f"Input rejected: {source.size} bytes >= {max_bytes} bytes")
        raise FileTooLarge(source.size, max_bytes)


def compile_pattern(pattern: str) -> "re.Pattern[str]":
    """경계 정규식 컴파일

    Raises:
        InvalidPattern: 빈 패턴 또는 정규식 문법 오류
    """
    if not pattern:
        raise InvalidPattern(pattern, ValueError("empty pattern"))
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidPattern(pattern, e) from e


def try_compile_pattern(pattern: Optional[str]) -> Optional["re.Pattern[str]"]:
    """미리보기용 컴파일: 잘못된 패턴은 '패턴 없음'(None)으로 되돌린다"""
    if not pattern:
        return None
    try:
        return compile_pattern(pattern)
    except InvalidPattern as e:
        logger.warning(f"Ignoring pattern for preview: {e}")
        return None


def resolve_encoding(
    source: ByteSource,
    requested: Union[str, EncodingId, None] = None,
    refine_with_chardet: bool = False,
    min_confidence: float = 0.7
) -> EncodingId:
    """사용할 인코딩 결정 (None/"auto" 이면 자동 감지, 아니면 지정값)

    Raises:
        UnsupportedEncoding: 열거형에 없는 지정값
    """
    if requested is None or (isinstance(requested, str) and requested.strip().lower() in ("", "auto")):
        return detect(source, refine_with_chardet, min_confidence)
    return EncodingId.parse(requested)


def preview(
    source: ByteSource,
    encoding: Union[str, EncodingId],
    pattern: Optional["re.Pattern[str]"] = None,
    limit: int = DEFAULT_PREVIEW_LINES,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> PreviewResult:
    """제한된 미리보기 패스

    비어있지 않은 라인을 limit 개 모은 뒤 다음 비어있지 않은 라인이 보이면
    더 읽지 않고 디코더를 버린다.

    Args:
        source: 바이트 소스
        encoding: 인코딩
        pattern: 경계 패턴 (None 이면 경계 표시 없음)
        limit: 최대 라인 수
        chunk_size: 디코더 청크 크기

    Returns:
        PreviewResult
    """
    decoder = LineStreamDecoder(source, encoding, chunk_size)
    result = PreviewResult(encoding=decoder.encoding)
    if limit <= 0:
        return result

    for index, line in enumerate(decoder):
        text = line.strip()
        if not text:
            continue
        # limit 개를 채운 뒤 비어있지 않은 라인이 하나 더 있으면 잘린 것
        if len(result.lines) >= limit:
            result.truncated = True
            break
        matched = pattern is not None and is_boundary(line, pattern)
        result.lines.append(PreviewLine(index, text, matched))

    logger.debug(f"Preview: {len(result.lines)} lines, {len(result.boundaries)} boundaries")
    return result


def list_boundaries(
    source: ByteSource,
    encoding: Union[str, EncodingId],
    pattern: "re.Pattern[str]",
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> List[ChapterBoundaryMatch]:
    """전체 패스로 모든 경계 라인 수집 (목차 확인용)"""
    return list(find_boundaries(LineStreamDecoder(source, encoding, chunk_size), pattern))


def build_chapters(
    source: ByteSource,
    encoding: Union[str, EncodingId],
    pattern: "re.Pattern[str]",
    preface_title: str = PREFACE_TITLE,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> List[Chapter]:
    """전체 패스: 새 디코더로 소스를 처음부터 읽어 챕터 분할"""
    decoder = LineStreamDecoder(source, encoding, chunk_size)
    chapters = segment(decoder, pattern, preface_title)
    logger.debug(f"Full pass read {decoder.lines_read} lines")
    return chapters


def convert(
    source: ByteSource,
    metadata: BookMetadata,
    pattern: str,
    encoding: Union[str, EncodingId, None] = None,
    *,
    language: str = "zh",
    css: Optional[str] = None,
    preface_title: str = PREFACE_TITLE,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_bytes: int = MAX_FILE_SIZE,
    refine_with_chardet: bool = False,
    min_confidence: float = 0.7,
    allow_empty: bool = False
) -> ConversionResult:
    """TXT 소스 → EPUB 아카이브

    Args:
        source: 바이트 소스
        metadata: 제목/작가
        pattern: 경계 정규식 문자열
        encoding: 인코딩 (None/"auto" 이면 자동 감지)
        allow_empty: 챕터 0개여도 아카이브를 생성

    Returns:
        ConversionResult (챕터 0개면 archive=None)

    Raises:
        FileTooLarge, InvalidPattern, UnsupportedEncoding, PackagingFailure
    """
    check_admission(source, max_bytes)
    compiled = compile_pattern(pattern)
    resolved = resolve_encoding(source, encoding, refine_with_chardet, min_confidence)

    logger.info(f"Converting: {metadata.title} (encoding={resolved.value}, pattern={pattern!r})")
    chapters = build_chapters(source, resolved, compiled, preface_title, chunk_size)

    result = ConversionResult(encoding=resolved, chapters=chapters)
    if result.is_empty and not allow_empty:
        logger.warning("No chapters found; EPUB not generated")
        return result

    result.archive = package(metadata, chapters, language=language, css=css)
    return result


def output_filename(title: str) -> str:
    """다운로드 파일명 `{title}.epub` (파일시스템 금지 문자 제거)"""
    safe_title = "".join(c for c in title if c not in FORBIDDEN_FILENAME_CHARS)
    safe_title = safe_title.strip()[:150] or "book"

    if safe_title.lower().endswith(".epub"):
        return safe_title
    return f"{safe_title}.epub"
