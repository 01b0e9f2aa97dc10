"""CLI 인터페이스

Typer 기반 명령줄 인터페이스, Rich 기반 출력
"""

import typer
from pathlib import Path
from typing import NoReturn, Optional
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from novel_txt2epub.utils.logger import get_logger, setup_logging
from novel_txt2epub.config.loader import get_config, load_config, load_css_template, set_config
from novel_txt2epub.errors import Txt2EpubError
from novel_txt2epub.stages.chapter import BookMetadata
from novel_txt2epub.stages.encoding import detect_with_details
from novel_txt2epub.stages.source import FileSource
from novel_txt2epub.stages import converter

logger = get_logger(__name__)
console = Console()
app = typer.Typer(help="novel-txt2epub - 텍스트 소설을 챕터별 EPUB 으로 변환")


def _fail(message: str) -> NoReturn:
    """에러 패널 출력 후 종료 코드 1"""
    console.print(Panel.fit(f"❌ {escape(message)}", style="bold red"))
    raise typer.Exit(code=1)


def _open_source(file: Path) -> FileSource:
    """입력 파일 열기 + 크기 제한 확인"""
    config = get_config()
    source = FileSource(file)
    try:
        converter.check_admission(source, config.epub.max_file_size)
    except Txt2EpubError as e:
        _fail(str(e))
    return source


@app.callback()
def main(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="설정 파일 경로 (config.yml)")
):
    """설정 로드 및 로깅 초기화"""
    if config_path is not None:
        try:
            set_config(load_config(str(config_path)))
        except FileNotFoundError as e:
            _fail(str(e))

    config = get_config()
    setup_logging(config.logging.file_level, config.logging.console_level, config.paths.logs)


@app.command()
def detect(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="입력 TXT 파일")
):
    """인코딩 감지"""
    config = get_config()
    source = _open_source(file)
    guess = detect_with_details(
        source,
        refine_with_chardet=config.detection.refine_with_chardet,
        min_confidence=config.detection.min_confidence
    )

    table = Table(title="인코딩 감지 결과")
    table.add_column("항목", style="cyan")
    table.add_column("값", style="green")
    table.add_row("파일", file.name)
    table.add_row("크기", f"{source.size:,} bytes")
    table.add_row("인코딩", guess.encoding.value)
    table.add_row("근거", guess.method)
    table.add_row("신뢰도", f"{guess.confidence:.2f}" if guess.confidence is not None else "-")

    console.print(table)


@app.command()
def preview(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="입력 TXT 파일"),
    pattern: Optional[str] = typer.Option(None, "--pattern", "-p", help="챕터 경계 정규식"),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-e", help="인코딩 (기본: 자동 감지)"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="미리보기 라인 수")
):
    """미리보기: 앞부분 라인과 경계 매칭 표시"""
    config = get_config()
    source = _open_source(file)

    compiled = converter.try_compile_pattern(pattern if pattern is not None else config.chapters.default_pattern)
    if pattern and compiled is None:
        console.print(f"[yellow]⚠️  잘못된 정규식입니다. 패턴 없이 미리보기합니다: {escape(pattern)}[/yellow]")

    try:
        resolved = converter.resolve_encoding(
            source, encoding or config.decoding.default_encoding, config.detection.refine_with_chardet,
            config.detection.min_confidence
        )
        result = converter.preview(
            source,
            resolved,
            compiled,
            limit=limit or config.chapters.preview_lines,
            chunk_size=config.decoding.chunk_size
        )
    except Txt2EpubError as e:
        _fail(str(e))

    table = Table(title=f"미리보기 ({result.encoding.value})")
    table.add_column("#", style="dim", justify="right")
    table.add_column("라인")
    for line in result.lines:
        text = escape(line.text)
        if line.is_boundary:
            text = f"[bold green]{text}[/bold green]"
        table.add_row(str(line.index + 1), text)
    console.print(table)

    if result.truncated:
        console.print(f"[dim]... 처음 {len(result.lines)}줄만 표시[/dim]")
    console.print(f"\n📑 경계 매칭: [green]{len(result.boundaries)}[/green]개")


@app.command()
def toc(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="입력 TXT 파일"),
    pattern: Optional[str] = typer.Option(None, "--pattern", "-p", help="챕터 경계 정규식"),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-e", help="인코딩 (기본: 자동 감지)")
):
    """전체 파일의 챕터 경계 목록"""
    config = get_config()
    source = _open_source(file)

    try:
        compiled = converter.compile_pattern(pattern or config.chapters.default_pattern)
        resolved = converter.resolve_encoding(
            source, encoding or config.decoding.default_encoding, config.detection.refine_with_chardet,
            config.detection.min_confidence
        )
        boundaries = converter.list_boundaries(source, resolved, compiled, config.decoding.chunk_size)
    except Txt2EpubError as e:
        _fail(str(e))

    table = Table(title=f"챕터 경계 ({len(boundaries)}개)")
    table.add_column("라인", style="dim", justify="right")
    table.add_column("제목", style="green")
    for match in boundaries:
        table.add_row(str(match.index + 1), escape(match.text))
    console.print(table)


@app.command()
def convert(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="입력 TXT 파일"),
    title: str = typer.Option(..., "--title", "-t", help="책 제목"),
    author: str = typer.Option("", "--author", "-a", help="작가"),
    pattern: Optional[str] = typer.Option(None, "--pattern", "-p", help="챕터 경계 정규식"),
    encoding: Optional[str] = typer.Option(None, "--encoding", "-e", help="인코딩 (기본: 자동 감지)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="출력 폴더"),
    allow_empty: bool = typer.Option(False, "--allow-empty", help="챕터가 없어도 EPUB 생성")
):
    """TXT → EPUB 변환"""
    console.print(Panel.fit("📖 EPUB 생성", style="bold blue"))

    config = get_config()
    source = _open_source(file)
    metadata = BookMetadata(title=title, author=author)

    try:
        result = converter.convert(
            source,
            metadata,
            pattern or config.chapters.default_pattern,
            encoding or config.decoding.default_encoding,
            language=config.epub.language,
            css=load_css_template(config),
            preface_title=config.chapters.preface_title,
            chunk_size=config.decoding.chunk_size,
            max_bytes=config.epub.max_file_size,
            refine_with_chardet=config.detection.refine_with_chardet,
            min_confidence=config.detection.min_confidence,
            allow_empty=allow_empty
        )
    except Txt2EpubError as e:
        logger.error(f"Conversion failed: {e}")
        _fail(str(e))

    if result.archive is None:
        console.print("[yellow]⚠️  챕터를 찾지 못했습니다. 정규식을 확인하거나 --allow-empty 를 사용하세요.[/yellow]")
        raise typer.Exit(code=1)

    output_dir = output or Path(config.paths.output_folder)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / converter.output_filename(title)
    output_path.write_bytes(result.archive)

    # 결과 테이블
    table = Table(title="EPUB 생성 결과")
    table.add_column("항목", style="cyan")
    table.add_column("값", style="green")
    table.add_row("인코딩", result.encoding.value)
    table.add_row("챕터 수", str(len(result.chapters)))
    table.add_row("크기", f"{len(result.archive):,} bytes")
    table.add_row("출력", str(output_path))
    console.print(table)

    logger.info(f"✅ EPUB saved: {output_path}")
    console.print(f"\n✅ EPUB 파일이 생성되었습니다: [green]{output_path}[/green]")


if __name__ == "__main__":
    app()
