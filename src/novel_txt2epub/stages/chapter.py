"""챕터 데이터 구조

분할 결과 챕터, 경계 매칭 정보, 책 메타데이터를 나타내는 데이터 클래스
"""

from dataclasses import dataclass, field
from typing import List


# 첫 경계 이전 본문을 담는 암묵적 챕터 제목
PREFACE_TITLE = "序言"


@dataclass
class Chapter:
    """소설의 한 챕터

    Attributes:
        title: 챕터 제목 (경계 라인을 trim 한 그대로, 또는 "序言")
        content: 본문 라인 목록 (trim 된 비어있지 않은 라인만)
    """
    title: str
    content: List[str] = field(default_factory=list)

    @property
    def length(self) -> int:
        """본문 글자 수"""
        return sum(len(line) for line in self.content)

    def __repr__(self):
        return f"<Chapter {self.title!r} ({len(self.content)} lines, {self.length} chars)>"


@dataclass(frozen=True)
class ChapterBoundaryMatch:
    """경계 패턴에 매칭된 라인

    Attributes:
        index: 전체 라인 시퀀스 내 0-based 위치
        text: trim 된 라인 텍스트
    """
    index: int
    text: str


@dataclass(frozen=True)
class BookMetadata:
    """책 메타데이터 (생성 1회 동안 불변)"""
    title: str
    author: str
