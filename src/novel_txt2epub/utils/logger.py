"""로깅 설정 모듈

모든 모듈에서 `from novel_txt2epub.utils.logger import get_logger` 로 사용.
핸들러는 CLI 진입 시 `setup_logging()` 으로 novel_txt2epub 패키지 로거에만 붙는다.
라이브러리로 임포트할 때는 파일/디렉토리를 만들지 않는다.
"""

import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional

PACKAGE_LOGGER = "novel_txt2epub"

# 기본 로그 디렉토리 (config.paths.logs 로 변경 가능)
LOG_DIR = Path("data/logs")

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
CONSOLE_FORMAT = "%(levelname)-8s | %(name)s | %(message)s"

# setup_logging() 전에는 아무것도 출력하지 않음
logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def _level(name: str) -> int:
    """레벨 이름 → logging 상수 (알 수 없는 이름은 ValueError)"""
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def setup_logging(
    level: str = "DEBUG",
    console_level: str = "INFO",
    log_dir: Optional[str] = None
) -> Path:
    """패키지 로거 설정: 날짜별 파일 + stdout

    Args:
        level: 파일 로그 레벨 (config.logging.file_level)
        console_level: 콘솔 로그 레벨 (config.logging.console_level)
        log_dir: 로그 디렉토리 (None 이면 data/logs)

    Returns:
        로그 파일 경로 (data/logs/YYYY-MM-DD.log)
    """
    directory = Path(log_dir) if log_dir else LOG_DIR
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / f"{datetime.now().strftime('%Y-%m-%d')}.log"

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(logging.DEBUG)
    package_logger.propagate = False

    # 재설정 시 중복 출력 방지
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(_level(level))
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    package_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(_level(console_level))
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    package_logger.addHandler(console_handler)

    package_logger.debug(f"Logging initialized: file={log_file}, level={level}")
    return log_file


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """로거 인스턴스 반환 (보통 __name__ 사용, 패키지 로거의 자식)"""
    return logging.getLogger(name or PACKAGE_LOGGER)
