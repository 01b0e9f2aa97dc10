"""인코딩 감지

BOM 확인 → 2바이트(GBK 계열) 휴리스틱 → 기본값 utf-8 순서로 판정.
설정에 따라 chardet 으로 보정할 수 있다 (기본 비활성).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
import chardet
from novel_txt2epub.errors import UnsupportedEncoding
from novel_txt2epub.stages.source import ByteSource
from novel_txt2epub.utils.logger import get_logger

logger = get_logger(__name__)


class EncodingId(str, Enum):
    """지원 인코딩 (닫힌 열거형)"""
    UTF_8 = "utf-8"
    UTF_16LE = "utf-16le"
    UTF_16BE = "utf-16be"
    GBK = "gbk"
    BIG5 = "big5"
    SHIFT_JIS = "shift-jis"
    EUC_KR = "euc-kr"

    @property
    def codec(self) -> str:
        """Python codecs 이름"""
        return _PYTHON_CODECS[self]

    @classmethod
    def parse(cls, value: Union[str, "EncodingId"]) -> "EncodingId":
        """문자열 → EncodingId (대소문자/구분자 무시)

        Raises:
            UnsupportedEncoding: 열거형에 없는 값
        """
        if isinstance(value, EncodingId):
            return value
        key = str(value).strip().lower().replace("_", "-")
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise UnsupportedEncoding(str(value)) from None


_PYTHON_CODECS = {
    EncodingId.UTF_8: "utf-8",
    EncodingId.UTF_16LE: "utf-16-le",
    EncodingId.UTF_16BE: "utf-16-be",
    EncodingId.GBK: "gbk",
    EncodingId.BIG5: "big5",
    EncodingId.SHIFT_JIS: "shift_jis",
    EncodingId.EUC_KR: "euc_kr",
}

_ALIASES = {
    "utf8": "utf-8",
    "utf-16-le": "utf-16le",
    "utf-16-be": "utf-16be",
    "shiftjis": "shift-jis",
    "sjis": "shift-jis",
    "euckr": "euc-kr",
}

# chardet 결과 → 열거형
_CHARDET_MAP = {
    "utf-8": EncodingId.UTF_8,
    "utf-8-sig": EncodingId.UTF_8,
    "ascii": EncodingId.UTF_8,
    "utf-16le": EncodingId.UTF_16LE,
    "utf-16be": EncodingId.UTF_16BE,
    "gb2312": EncodingId.GBK,
    "gbk": EncodingId.GBK,
    "gb18030": EncodingId.GBK,
    "big5": EncodingId.BIG5,
    "shift_jis": EncodingId.SHIFT_JIS,
    "cp932": EncodingId.SHIFT_JIS,
    "euc-kr": EncodingId.EUC_KR,
    "cp949": EncodingId.EUC_KR,
}

# 감지에 사용하는 최대 바이트 수
SAMPLE_SIZE = 4096
# 2바이트 휴리스틱 스캔 범위
SCAN_LIMIT = 1000
# GBK 판정 기준: 최소 lead byte 수, ASCII 대비 비율
MIN_DOUBLE_BYTE = 5
DOUBLE_BYTE_RATIO = 0.1

UTF8_BOM = b"\xef\xbb\xbf"
UTF16LE_BOM = b"\xff\xfe"
UTF16BE_BOM = b"\xfe\xff"


@dataclass(frozen=True)
class EncodingGuess:
    """감지 결과

    Attributes:
        encoding: 판정된 인코딩
        method: 판정 근거 (bom / heuristic / chardet / default)
        confidence: chardet 신뢰도 (chardet 을 쓰지 않았으면 None)
    """
    encoding: EncodingId
    method: str
    confidence: Optional[float] = None


def _scan_double_byte(sample: bytes) -> EncodingId:
    """GBK 계열 2바이트 문자 휴리스틱

    lead byte [0x81,0xFE] 다음에 trail byte [0x40,0xFE] 가 오면 GBK 유사 문자로 세고
    trail byte 는 건너뛴다. 마지막 바이트는 lookahead 를 위해 스캔하지 않는다.
    """
    limit = min(len(sample), SCAN_LIMIT) - 1
    ascii_count = 0
    double_count = 0
    i = 0
    while i < limit:
        byte = sample[i]
        if byte < 0x80:
            ascii_count += 1
        elif 0x81 <= byte <= 0xFE and 0x40 <= sample[i + 1] <= 0xFE:
            double_count += 1
            i += 1
        i += 1

    logger.debug(f"Double-byte scan: ascii={ascii_count}, gbk_like={double_count}")
    if double_count > MIN_DOUBLE_BYTE and double_count > ascii_count * DOUBLE_BYTE_RATIO:
        return EncodingId.GBK
    return EncodingId.UTF_8


def _check_bom(sample: bytes) -> Optional[EncodingId]:
    if sample.startswith(UTF8_BOM):
        return EncodingId.UTF_8
    if sample.startswith(UTF16LE_BOM):
        return EncodingId.UTF_16LE
    if sample.startswith(UTF16BE_BOM):
        return EncodingId.UTF_16BE
    return None


def _detect_with_chardet(sample: bytes, min_confidence: float) -> Optional[EncodingGuess]:
    """chardet 으로 판정 (신뢰도 미달 또는 열거형 밖이면 None)"""
    result = chardet.detect(sample)
    name = (result.get("encoding") or "").lower()
    confidence = result.get("confidence") or 0.0

    if confidence <= min_confidence:
        logger.debug(f"Low confidence encoding: {name} ({confidence:.2f})")
        return None

    encoding = _CHARDET_MAP.get(name)
    if encoding is None:
        logger.debug(f"chardet result outside supported set: {name} ({confidence:.2f})")
        return None

    return EncodingGuess(encoding, "chardet", confidence)


def detect_with_details(
    source: ByteSource,
    refine_with_chardet: bool = False,
    min_confidence: float = 0.7
) -> EncodingGuess:
    """인코딩 감지 (판정 근거 포함)

    Args:
        source: 바이트 소스 (앞 4096 바이트만 사용)
        refine_with_chardet: BOM 이 없을 때 chardet 결과를 우선 적용
        min_confidence: chardet 결과 채택 최소 신뢰도

    Returns:
        EncodingGuess
    """
    sample = source.read(0, min(source.size, SAMPLE_SIZE))

    bom = _check_bom(sample)
    if bom is not None:
        return EncodingGuess(bom, "bom")

    if refine_with_chardet and sample:
        guess = _detect_with_chardet(sample, min_confidence)
        if guess is not None:
            return guess

    heuristic = _scan_double_byte(sample)
    if heuristic is EncodingId.GBK:
        return EncodingGuess(heuristic, "heuristic")
    return EncodingGuess(EncodingId.UTF_8, "default")


def detect(
    source: ByteSource,
    refine_with_chardet: bool = False,
    min_confidence: float = 0.7
) -> EncodingId:
    """인코딩 감지 (항상 열거형 값을 반환하며 예외를 던지지 않음)"""
    guess = detect_with_details(source, refine_with_chardet, min_confidence)
    logger.info(f"Encoding detected: {guess.encoding.value} ({guess.method})")
    return guess.encoding
