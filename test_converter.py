"""변환 파이프라인 테스트

크기 제한, 정규식 컴파일, 인코딩 결정, 미리보기 패스, 생성 패스, 빈 결과 처리 검증
"""

import io
import re
import sys
import zipfile
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from novel_txt2epub.errors import FileTooLarge, InvalidPattern, PackagingFailure, UnsupportedEncoding
from novel_txt2epub.stages import converter, epub_packager
from novel_txt2epub.stages.chapter import BookMetadata, Chapter, ChapterBoundaryMatch
from novel_txt2epub.stages.encoding import EncodingId
from novel_txt2epub.stages.source import BytesSource

PATTERN = r"^第.+章"

NOVEL = "\n".join([
    "书名：测试小说",
    "",
    "第一章 开始",
    "　　很久很久以前。",
    "",
    "第二章 继续",
    "　　后来发生了很多事。",
    "　　结束。",
])


class CountingSource(BytesSource):
    """read 호출 범위를 기록하는 소스"""

    def __init__(self, data: bytes):
        super().__init__(data)
        self.reads = []

    def read(self, start: int, end: int) -> bytes:
        self.reads.append((start, end))
        return super().read(start, end)


def test_convert_gbk_auto_detect():
    """GBK 파일 자동 감지 → 챕터 분할 → EPUB"""
    source = BytesSource(NOVEL.encode("gbk"))
    result = converter.convert(source, BookMetadata("测试小说", "佚名"), PATTERN)

    assert result.encoding == EncodingId.GBK
    assert not result.is_empty
    assert result.chapters == [
        Chapter(title="序言", content=["书名：测试小说"]),
        Chapter(title="第一章 开始", content=["很久很久以前。"]),
        Chapter(title="第二章 继续", content=["后来发生了很多事。", "结束。"]),
    ]

    archive = zipfile.ZipFile(io.BytesIO(result.archive))
    assert archive.namelist()[0] == "mimetype"
    assert "OEBPS/chapter2.xhtml" in archive.namelist()


def test_convert_encoding_override():
    """지정 인코딩은 감지보다 우선"""
    data = "\n".join(["第一章 はじめ", "こんにちは"]).encode("shift_jis")
    result = converter.convert(BytesSource(data), BookMetadata("本", "作者"), PATTERN, encoding="shift-jis")
    assert result.encoding == EncodingId.SHIFT_JIS
    assert result.chapters == [Chapter(title="第一章 はじめ", content=["こんにちは"])]


def test_convert_chunk_size_does_not_matter():
    data = NOVEL.encode("utf-8")
    expected = converter.convert(BytesSource(data), BookMetadata("书", "作者"), PATTERN, "utf-8").chapters
    for chunk_size in (1, 2, 3, 7):
        result = converter.convert(
            BytesSource(data), BookMetadata("书", "作者"), PATTERN, "utf-8", chunk_size=chunk_size
        )
        assert result.chapters == expected


def test_empty_result_is_reported_not_raised():
    """챕터 0개: archive 없음, is_empty"""
    source = BytesSource("第一章\n\n第二章\n".encode("utf-8"))
    result = converter.convert(source, BookMetadata("书", "作者"), PATTERN, "utf-8")
    assert result.is_empty
    assert result.chapters == []
    assert result.archive is None

    result = converter.convert(source, BookMetadata("书", "作者"), PATTERN, "utf-8", allow_empty=True)
    assert result.is_empty
    assert zipfile.ZipFile(io.BytesIO(result.archive)).namelist()[0] == "mimetype"


def test_invalid_pattern():
    """잘못된 정규식은 소스를 읽기 전에 InvalidPattern"""
    source = CountingSource("第一章\n内容".encode("utf-8"))
    with pytest.raises(InvalidPattern) as exc_info:
        converter.convert(source, BookMetadata("书", "作者"), "第(", "utf-8")
    assert exc_info.value.pattern == "第("
    assert isinstance(exc_info.value.__cause__, re.error)
    assert source.reads == []

    with pytest.raises(InvalidPattern):
        converter.compile_pattern("")


def test_try_compile_pattern():
    """미리보기용: 잘못된 패턴은 None"""
    assert converter.try_compile_pattern("第(") is None
    assert converter.try_compile_pattern(None) is None
    assert converter.try_compile_pattern("") is None
    assert converter.try_compile_pattern(PATTERN).pattern == PATTERN


def test_admission_control():
    """size >= 제한이면 거부"""
    source = BytesSource(b"0123456789")
    with pytest.raises(FileTooLarge):
        converter.check_admission(source, max_bytes=10)
    converter.check_admission(source, max_bytes=11)

    with pytest.raises(FileTooLarge):
        converter.convert(source, BookMetadata("书", "作者"), PATTERN, max_bytes=10)


def test_unsupported_encoding():
    source = BytesSource(b"abc")
    with pytest.raises(UnsupportedEncoding):
        converter.convert(source, BookMetadata("书", "作者"), PATTERN, encoding="latin-1")


def test_resolve_encoding():
    source = BytesSource(b"\xff\xfeA\x00")
    assert converter.resolve_encoding(source) == EncodingId.UTF_16LE
    assert converter.resolve_encoding(source, "auto") == EncodingId.UTF_16LE
    assert converter.resolve_encoding(source, "gbk") == EncodingId.GBK
    assert converter.resolve_encoding(source, EncodingId.BIG5) == EncodingId.BIG5


def test_packaging_failure_propagates(monkeypatch):
    """패키징 실패 시 결과 없이 PackagingFailure"""
    def boom(*args, **kwargs):
        raise OSError("no space left")

    monkeypatch.setattr(epub_packager, "write_epub", boom)
    source = BytesSource(NOVEL.encode("utf-8"))
    with pytest.raises(PackagingFailure) as exc_info:
        converter.convert(source, BookMetadata("书", "作者"), PATTERN, "utf-8")
    assert isinstance(exc_info.value.__cause__, OSError)


def test_preview_caps_non_blank_lines():
    """미리보기는 비어있지 않은 라인 limit 개에서 멈춤"""
    source = BytesSource(NOVEL.encode("utf-8"))
    result = converter.preview(source, "utf-8", converter.compile_pattern(PATTERN), limit=3)

    assert result.truncated
    assert [line.text for line in result.lines] == ["书名：测试小说", "第一章 开始", "很久很久以前。"]
    assert [line.index for line in result.lines] == [0, 2, 3]
    assert result.boundaries == [ChapterBoundaryMatch(index=2, text="第一章 开始")]


def test_preview_without_pattern():
    source = BytesSource(NOVEL.encode("utf-8"))
    result = converter.preview(source, "utf-8", None, limit=100)
    assert not result.truncated
    assert len(result.lines) == 6
    assert result.boundaries == []


def test_preview_exact_limit_is_not_truncated():
    """비어있지 않은 라인이 정확히 limit 개면 잘림 아님 (뒤따르는 빈 줄 무시)"""
    source = BytesSource("第一章\n内容A\n\n内容B\n\n\n".encode("utf-8"))
    result = converter.preview(source, "utf-8", converter.compile_pattern(PATTERN), limit=3)
    assert [line.text for line in result.lines] == ["第一章", "内容A", "内容B"]
    assert not result.truncated

    result = converter.preview(source, "utf-8", None, limit=2)
    assert [line.text for line in result.lines] == ["第一章", "内容A"]
    assert result.truncated


def test_preview_stops_reading_early():
    """상한에 도달하면 나머지 소스는 읽지 않음"""
    data = ("第一章\n" + "正文内容。\n" * 5000).encode("utf-8")
    source = CountingSource(data)
    result = converter.preview(source, "utf-8", converter.compile_pattern(PATTERN), limit=5, chunk_size=1024)

    assert len(result.lines) == 5
    assert len(source.reads) == 1
    assert source.reads[-1][1] < source.size


def test_preview_then_full_pass_use_fresh_decoders():
    """같은 소스에 대한 미리보기 후 전체 패스는 처음부터 다시 읽음"""
    source = CountingSource(NOVEL.encode("utf-8"))
    converter.preview(source, "utf-8", converter.compile_pattern(PATTERN), limit=1, chunk_size=4)
    preview_reads = len(source.reads)

    chapters = converter.build_chapters(source, "utf-8", converter.compile_pattern(PATTERN), chunk_size=4)
    assert source.reads[preview_reads][0] == 0
    assert [c.title for c in chapters] == ["序言", "第一章 开始", "第二章 继续"]


def test_list_boundaries():
    source = BytesSource(NOVEL.encode("utf-8"))
    matches = converter.list_boundaries(source, "utf-8", converter.compile_pattern(PATTERN))
    assert matches == [
        ChapterBoundaryMatch(index=2, text="第一章 开始"),
        ChapterBoundaryMatch(index=5, text="第二章 继续"),
    ]


def test_output_filename():
    assert converter.output_filename("测试小说") == "测试小说.epub"
    assert converter.output_filename('a/b:c*?"<>|') == "abc.epub"
    assert converter.output_filename("book.epub") == "book.epub"
    assert converter.output_filename("  ") == "book.epub"


if __name__ == "__main__":
    test_convert_gbk_auto_detect()
    test_convert_encoding_override()
    test_convert_chunk_size_does_not_matter()
    test_empty_result_is_reported_not_raised()
    test_invalid_pattern()
    test_try_compile_pattern()
    test_admission_control()
    test_unsupported_encoding()
    test_resolve_encoding()
    test_preview_caps_non_blank_lines()
    test_preview_without_pattern()
    test_preview_exact_limit_is_not_truncated()
    test_preview_stops_reading_early()
    test_preview_then_full_pass_use_fresh_decoders()
    test_list_boundaries()
    test_output_filename()
    print("✅ All converter tests passed!")
