"""CLI 테스트 스크립트"""

import io
import sys
import tempfile
import zipfile
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from typer.testing import CliRunner
from novel_txt2epub.cli import app
from novel_txt2epub.config.loader import Config, set_config

runner = CliRunner()

NOVEL = "序\n\n第一章 开始\n　　内容A\n第二章 继续\n　　内容B\n"


def _write_novel(tmp_path: Path, text: str = NOVEL, encoding: str = "gbk") -> Path:
    path = tmp_path / "novel.txt"
    path.write_bytes(text.encode(encoding))
    return path


def _config() -> Config:
    """로그는 임시 디렉토리로"""
    config = Config()
    config.paths.logs = tempfile.mkdtemp()
    return config


def _invoke(args):
    set_config(_config())
    try:
        return runner.invoke(app, args)
    finally:
        set_config(None)


def test_help():
    """도움말 테스트"""
    result = runner.invoke(app, ["--help"])
    print(result.stdout)
    assert result.exit_code == 0
    assert "convert" in result.stdout


def test_detect(tmp_path):
    result = _invoke(["detect", str(_write_novel(tmp_path, NOVEL * 5))])
    print(result.stdout)
    assert result.exit_code == 0
    assert "gbk" in result.stdout


def test_preview(tmp_path):
    result = _invoke(["preview", str(_write_novel(tmp_path)), "--pattern", "^第.+章", "--limit", "3"])
    print(result.stdout)
    assert result.exit_code == 0
    assert "第一章 开始" in result.stdout


def test_preview_with_invalid_pattern_falls_back(tmp_path):
    """잘못된 정규식은 패턴 없이 미리보기 (에러 아님)"""
    result = _invoke(["preview", str(_write_novel(tmp_path)), "--pattern", "第("])
    print(result.stdout)
    assert result.exit_code == 0


def test_toc(tmp_path):
    result = _invoke(["toc", str(_write_novel(tmp_path)), "--pattern", "^第.+章", "--encoding", "gbk"])
    print(result.stdout)
    assert result.exit_code == 0
    assert "第二章 继续" in result.stdout


def test_convert(tmp_path):
    """EPUB 파일 생성"""
    out_dir = tmp_path / "out"
    result = _invoke([
        "convert", str(_write_novel(tmp_path)),
        "--title", "测试书",
        "--author", "作者",
        "--pattern", "^第.+章",
        "--output", str(out_dir),
    ])
    print(result.stdout)
    assert result.exit_code == 0

    epub_path = out_dir / "测试书.epub"
    assert epub_path.exists()
    archive = zipfile.ZipFile(io.BytesIO(epub_path.read_bytes()))
    assert archive.namelist()[0] == "mimetype"
    assert "OEBPS/chapter2.xhtml" in archive.namelist()


def test_convert_empty_result_writes_nothing(tmp_path):
    """챕터 0개면 종료 코드 1, 파일 없음"""
    out_dir = tmp_path / "out"
    result = _invoke([
        "convert", str(_write_novel(tmp_path, "第一章\n第二章\n", "utf-8")),
        "--title", "空",
        "--pattern", "^第.+章",
        "--encoding", "utf-8",
        "--output", str(out_dir),
    ])
    assert result.exit_code == 1
    assert not (out_dir / "空.epub").exists()


def test_convert_invalid_pattern(tmp_path):
    out_dir = tmp_path / "out"
    result = _invoke([
        "convert", str(_write_novel(tmp_path)),
        "--title", "书",
        "--pattern", "第(",
        "--output", str(out_dir),
    ])
    assert result.exit_code == 1
    assert not out_dir.exists()


def test_convert_unsupported_encoding(tmp_path):
    result = _invoke([
        "convert", str(_write_novel(tmp_path)),
        "--title", "书",
        "--encoding", "latin-1",
        "--output", str(tmp_path / "out"),
    ])
    assert result.exit_code == 1


def test_file_too_large(tmp_path):
    """크기 제한 초과 파일은 디코딩 전에 거부"""
    config = _config()
    config.epub.max_file_size_mb = 0
    set_config(config)
    try:
        result = runner.invoke(app, ["detect", str(_write_novel(tmp_path))])
    finally:
        set_config(None)
    assert result.exit_code == 1


if __name__ == "__main__":
    print("Testing CLI...")
    test_help()
    print("\n✅ CLI tests passed!")
