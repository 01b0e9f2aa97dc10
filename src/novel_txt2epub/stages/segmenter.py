"""Chapter Segmenter

Regex 경계 패턴으로 라인 시퀀스를 챕터 단위로 분할.
한 번의 순방향 순회, 상태는 현재 작성 중인 챕터 하나뿐이다.
"""

import re
from typing import Iterable, Iterator, List, Optional
from novel_txt2epub.stages.chapter import Chapter, ChapterBoundaryMatch, PREFACE_TITLE
from novel_txt2epub.utils.logger import get_logger

logger = get_logger(__name__)


def is_boundary(line: str, pattern: "re.Pattern[str]") -> bool:
    """라인 어디에든 매칭이 있으면 경계 (패턴이 ^ 를 쓰지 않는 한 앵커 없음)"""
    return pattern.search(line) is not None


def find_boundaries(
    lines: Iterable[str],
    pattern: "re.Pattern[str]"
) -> Iterator[ChapterBoundaryMatch]:
    """경계 라인 목록 (미리보기용)

    Args:
        lines: 라인 시퀀스
        pattern: 컴파일된 경계 패턴

    Yields:
        ChapterBoundaryMatch (0-based 라인 인덱스, trim 된 텍스트)
    """
    for index, line in enumerate(lines):
        if is_boundary(line, pattern):
            yield ChapterBoundaryMatch(index=index, text=line.strip())


def segment(
    lines: Iterable[str],
    pattern: "re.Pattern[str]",
    preface_title: str = PREFACE_TITLE
) -> List[Chapter]:
    """라인 시퀀스를 챕터 목록으로 분할

    - 경계 라인: 현재 챕터에 본문이 있으면 확정, 없으면 버리고 새 챕터 시작
    - 일반 라인: 열린 챕터가 없으면 서문 챕터를 열고, 비어있지 않은 라인만 본문에 추가
    - 끝: 본문이 있는 챕터만 확정

    Args:
        lines: 라인 시퀀스 (한 번만 순회)
        pattern: 컴파일된 경계 패턴 (유효성은 호출자가 보장)
        preface_title: 첫 경계 이전 본문을 담는 챕터 제목

    Returns:
        원문 순서의 챕터 목록 (0개일 수 있음)
    """
    chapters: List[Chapter] = []
    current: Optional[Chapter] = None
    discarded = 0

    for line in lines:
        if is_boundary(line, pattern):
            if current is not None:
                if current.content:
                    chapters.append(current)
                else:
                    discarded += 1
            current = Chapter(title=line.strip())
            continue

        if current is None:
            current = Chapter(title=preface_title)

        text = line.strip()
        if text:
            current.content.append(text)

    if current is not None:
        if current.content:
            chapters.append(current)
        else:
            discarded += 1

    if discarded:
        logger.debug(f"Discarded {discarded} chapter(s) without body text")
    logger.info(f"Segmented into {len(chapters)} chapters")
    return chapters
