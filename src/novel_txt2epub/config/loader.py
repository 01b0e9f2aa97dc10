"""설정 파일 로더 (YAML)

config.yml 을 읽어서 Python 객체로 변환
"""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field, asdict
from novel_txt2epub.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yml"


@dataclass
class PathsConfig:
    """경로 설정"""
    output_folder: str = "data/output"
    logs: str = "data/logs"


@dataclass
class DecodingConfig:
    """디코딩 옵션"""
    chunk_size: int = 65536
    default_encoding: str = "auto"


@dataclass
class DetectionConfig:
    """인코딩 감지 옵션"""
    refine_with_chardet: bool = False
    min_confidence: float = 0.7


@dataclass
class ChaptersConfig:
    """챕터 분할 옵션"""
    default_pattern: str = r"^\s*第[0-9零一二三四五六七八九十百千万两]+[章回节卷]"
    preface_title: str = "序言"
    preview_lines: int = 100


@dataclass
class EPUBConfig:
    """EPUB 생성 옵션"""
    language: str = "zh"
    css_template: str = ""
    max_file_size_mb: int = 50

    @property
    def max_file_size(self) -> int:
        """입력 파일 크기 제한 (바이트)"""
        return self.max_file_size_mb * 1024 * 1024


@dataclass
class LoggingConfig:
    """로깅 설정"""
    file_level: str = "DEBUG"
    console_level: str = "INFO"


@dataclass
class Config:
    """전체 설정"""
    paths: PathsConfig = field(default_factory=PathsConfig)
    decoding: DecodingConfig = field(default_factory=DecodingConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    chapters: ChaptersConfig = field(default_factory=ChaptersConfig)
    epub: EPUBConfig = field(default_factory=EPUBConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _from_dict(data: Dict[str, Any]) -> Config:
    """dict → Config (누락된 섹션/키는 기본값)"""
    data = data or {}
    return Config(
        paths=PathsConfig(**data.get("paths", {})),
        decoding=DecodingConfig(**data.get("decoding", {})),
        detection=DetectionConfig(**data.get("detection", {})),
        chapters=ChaptersConfig(**data.get("chapters", {})),
        epub=EPUBConfig(**data.get("epub", {})),
        logging=LoggingConfig(**data.get("logging", {}))
    )


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Config:
    """config.yml 로드

    Args:
        config_path: 설정 파일 경로

    Returns:
        Config 객체

    Raises:
        FileNotFoundError: 설정 파일이 없을 때
        yaml.YAMLError: YAML 파싱 에러
    """
    path = Path(config_path)
    if not path.exists():
        logger.error(f"Config file not found: {config_path}")
        raise FileNotFoundError(f"Config file not found: {config_path}")

    logger.debug(f"Loading config from: {config_path}")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    config = _from_dict(data)
    logger.info(f"✅ Config loaded: {config_path}")
    return config


def load_css_template(config: Config) -> Optional[str]:
    """CSS 템플릿 로드 (지정되지 않았거나 파일이 없으면 None → 기본 CSS 사용)"""
    css_path = config.epub.css_template
    if not css_path:
        return None

    path = Path(css_path)
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    logger.warning(f"CSS template not found: {css_path}, using default")
    return None


# 전역 설정 인스턴스 (싱글톤)
_config: Optional[Config] = None


def get_config() -> Config:
    """전역 설정 인스턴스 반환 (싱글톤)

    기본 경로에 설정 파일이 없으면 내장 기본값을 사용한다.

    Example:
        >>> from novel_txt2epub.config.loader import get_config
        >>> config = get_config()
        >>> print(config.decoding.chunk_size)
    """
    global _config
    if _config is None:
        if Path(DEFAULT_CONFIG_PATH).exists():
            _config = load_config(DEFAULT_CONFIG_PATH)
        else:
            logger.warning(f"Config file not found: {DEFAULT_CONFIG_PATH}, using defaults")
            _config = Config()
    return _config


def set_config(config: Optional[Config]) -> None:
    """전역 설정 교체 (None 이면 다음 get_config() 에서 다시 로드)"""
    global _config
    _config = config


def save_config(config: Config, config_path: str = DEFAULT_CONFIG_PATH) -> None:
    """config.yml 저장

    Args:
        config: Config 객체
        config_path: 설정 파일 경로
    """
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(asdict(config), f, allow_unicode=True, default_flow_style=False, sort_keys=False)

    logger.info(f"✅ Config saved: {config_path}")
