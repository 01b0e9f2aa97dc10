"""EPUB XHTML 템플릿 및 CSS 정의"""

from typing import Iterable
from xml.sax.saxutils import escape
from ebooklib import epub

# escape() 기본값(& < >)에 따옴표 두 종류 추가
_QUOTE_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def xml_escape(text: str) -> str:
    """XML 특수문자 5종(& < > " ') 이스케이프"""
    return escape(text, _QUOTE_ENTITIES)


def get_css() -> str:
    """고정 스타일시트 (세리프 본문, 들여쓰기 단락, 가운데 정렬 제목)"""
    return """body {
    font-family: "Songti SC", "SimSun", "Noto Serif CJK SC", serif;
    margin: 5%;
    line-height: 1.8;
    text-align: justify;
}

h1 {
    font-size: 1.5em;
    font-weight: bold;
    margin: 1.5em 0 1em 0;
    text-align: center;
    page-break-after: avoid;
}

p {
    margin: 0.4em 0;
    text-indent: 2em;
}
"""


def render_chapter(title: str, lines: Iterable[str], lang: str = "zh", css_href: str = "style.css") -> str:
    """챕터 XHTML 문서 (h1 제목 + 라인당 p 하나)"""
    safe_title = xml_escape(title)
    body_html = "\n".join(f"    <p>{xml_escape(line)}</p>" for line in lines)

    return f"""<?xml version='1.0' encoding='utf-8'?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops" xml:lang="{lang}" lang="{lang}">
<head>
    <title>{safe_title}</title>
    <link href="{css_href}" rel="stylesheet" type="text/css"/>
</head>
<body>
    <h1>{safe_title}</h1>
{body_html}
</body>
</html>"""


def create_chapter_page(
    title: str,
    lines: Iterable[str],
    file_name: str,
    uid: str,
    lang: str = "zh"
) -> epub.EpubItem:
    """챕터 본문 페이지 생성"""
    return epub.EpubItem(
        uid=uid,
        file_name=file_name,
        media_type="application/xhtml+xml",
        content=render_chapter(title, lines, lang)
    )


def create_stylesheet(content: str, file_name: str = "style.css") -> epub.EpubItem:
    """스타일시트 아이템 생성"""
    return epub.EpubItem(
        uid="style",
        file_name=file_name,
        media_type="text/css",
        content=content
    )
