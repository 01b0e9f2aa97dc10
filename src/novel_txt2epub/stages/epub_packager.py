"""EPUB Packager

EbookLib 기반 EPUB3 생성. OEBPS 폴더 구조, mimetype 무압축 첫 엔트리,
NCX + EPUB3 nav 목차, 챕터별 XHTML, 고정 CSS.
"""

import io
import re
import time
from typing import List, Optional, Sequence
from ebooklib import epub
from lxml import etree
from novel_txt2epub.errors import PackagingFailure
from novel_txt2epub.stages.chapter import BookMetadata, Chapter
from novel_txt2epub.stages.epub_templates import create_chapter_page, create_stylesheet, get_css
from novel_txt2epub.utils.logger import get_logger

logger = get_logger(__name__)

FOLDER_NAME = "OEBPS"

WRITE_OPTIONS = {
    "play_order": {"enabled": True, "start_from": 1},  # NCX playOrder 1부터
    "epub3_pages": False,  # EpubItem 챕터는 page-list 파싱 대상이 아님
    "raise_exceptions": True,
}

TITLE_PAGE_FILE = "title.xhtml"
TITLE_PAGE_UID = "titlepage"

# 직렬화된 XML 의 텍스트 노드 (태그 사이)
_TEXT_NODE = re.compile(rb">([^<]+)<")


def escape_quotes_in_text(document: bytes) -> bytes:
    """lxml 직렬화 결과의 텍스트 노드에서 '"', "'" 를 엔티티로 치환

    lxml 은 텍스트 노드에서 & < > 만 이스케이프한다. 속성값은 건드리지 않는다.
    """
    def _replace(match):
        text = match.group(1).replace(b'"', b"&quot;").replace(b"'", b"&apos;")
        return b">" + text + b"<"

    return _TEXT_NODE.sub(_replace, document)


class EscapingEpubWriter(epub.EpubWriter):
    """OPF, NCX, nav 문서의 텍스트를 5종 문자 모두 이스케이프해서 쓰는 writer"""

    def _write_opf_file(self, root):
        tree_str = etree.tostring(root, pretty_print=True, encoding="utf-8", xml_declaration=True)
        self.out.writestr(f"{self.book.FOLDER_NAME}/content.opf", escape_quotes_in_text(tree_str))

    def _get_ncx(self):
        return escape_quotes_in_text(super()._get_ncx())

    def _get_nav(self, item):
        return escape_quotes_in_text(super()._get_nav(item))


def write_epub(output, book: epub.EpubBook) -> None:
    """EscapingEpubWriter 로 아카이브 쓰기 (실패 시 예외 전파)"""
    writer = EscapingEpubWriter(output, book, WRITE_OPTIONS)
    writer.process()
    writer.write()


def chapter_file_name(index: int) -> str:
    """챕터 파일명 (0-based)"""
    return f"chapter{index}.xhtml"


def make_identifier() -> str:
    """현재 시각 기반 고유 식별자"""
    return f"urn:txt2epub:{int(time.time() * 1000)}"


def build_book(
    metadata: BookMetadata,
    chapters: Sequence[Chapter],
    language: str = "zh",
    css: Optional[str] = None
) -> epub.EpubBook:
    """EpubBook 구성 (메타데이터, 스타일, 챕터, 목차, spine)

    Args:
        metadata: 제목/작가
        chapters: 원문 순서의 챕터 목록
        language: dc:language
        css: 스타일시트 (None 이면 기본 CSS)

    Returns:
        쓰기 준비된 EpubBook
    """
    book = epub.EpubBook()
    book.FOLDER_NAME = FOLDER_NAME  # EbookLib 기본값 EPUB 대신 OEBPS

    book.set_identifier(make_identifier())
    book.set_title(metadata.title)
    book.set_language(language)
    if metadata.author:
        book.add_author(metadata.author)

    book.add_item(create_stylesheet(css if css is not None else get_css()))

    items: List[epub.EpubItem] = []
    toc: List[epub.Link] = []
    for i, chapter in enumerate(chapters):
        file_name = chapter_file_name(i)
        uid = f"chapter{i}"
        item = create_chapter_page(chapter.title, chapter.content, file_name, uid, lang=language)
        book.add_item(item)
        items.append(item)
        toc.append(epub.Link(file_name, chapter.title, uid))

    # 챕터가 없으면 제목 페이지 하나로 spine/목차를 채운다 (빈 spine 은 EPUB 3 에서 무효)
    if not items:
        item = create_chapter_page(metadata.title, [], TITLE_PAGE_FILE, TITLE_PAGE_UID, lang=language)
        book.add_item(item)
        items.append(item)
        toc.append(epub.Link(TITLE_PAGE_FILE, metadata.title, TITLE_PAGE_UID))

    book.toc = toc
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = items

    return book


def package(
    metadata: BookMetadata,
    chapters: Sequence[Chapter],
    language: str = "zh",
    css: Optional[str] = None
) -> bytes:
    """챕터 목록을 EPUB 아카이브 바이트로 패키징

    챕터가 0개여도 예외 없이 제목 페이지만 있는 아카이브를 만든다.

    Raises:
        PackagingFailure: 아카이브 생성 중 예기치 못한 실패
    """
    logger.info(f"Packaging EPUB: {metadata.title} ({len(chapters)} chapters)")
    try:
        book = build_book(metadata, chapters, language, css)
        buffer = io.BytesIO()
        write_epub(buffer, book)
    except Exception as e:
        logger.error(f"EPUB packaging failed: {e}")
        raise PackagingFailure("EPUB packaging failed", e) from e

    data = buffer.getvalue()
    if not data:
        raise PackagingFailure("EPUB writer produced no output")

    logger.info(f"✅ EPUB packaged: {len(data)} bytes")
    return data
