"""
cli/render.py - SizingResult 출력

테이블(rich) 또는 JSON 형식으로 결과를 출력합니다.

- 테이블: 요약 → 계정/구독별 → 리소스 타입별 (verbose면 상위 3개 리전) → 경고
- JSON: SizingResult.to_dict()를 들여쓰기 2칸으로 직렬화
"""

from __future__ import annotations

import io
import json
from pathlib import Path

from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from sizing.models import SizingResult

OUTPUT_FORMATS = ("table", "json")

# verbose 모드에서 타입별로 표시할 상위 위치 수
TOP_LOCATIONS = 3


def format_top_locations(pairs: list[tuple[str, int]]) -> str:
    """[("us-east-1", 5), ("eu-west-1", 2)] -> "us-east-1(5), eu-west-1(2)" """
    return ", ".join(f"{location}({count})" for location, count in pairs)


def build_summary(result: SizingResult) -> Table:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(justify="right")
    table.add_row("Provider", result.provider)
    table.add_row("Total Resources", f"{result.total_resources:,}")
    table.add_row("Accounts/Subscriptions", str(result.total_accounts))
    table.add_row("Resource Types", str(len(result.resource_counts)))
    table.add_row("Counting Policy", result.counting_policy)
    return table


def build_account_table(result: SizingResult) -> Table | None:
    """계정/구독별 집계 테이블 (rollup이 없으면 None)"""
    if not result.account_rollups:
        return None

    table = Table(title="Per Account/Subscription", show_header=True, header_style="bold magenta")
    table.add_column("Account")
    table.add_column("ID", style="dim")
    table.add_column("Status")
    table.add_column("Resources", justify="right")

    for rollup in result.account_rollups:
        table.add_row(rollup.name or rollup.id, rollup.id, rollup.status or "-", f"{rollup.resource_count:,}")
    return table


def build_resource_table(result: SizingResult, verbose: bool = False) -> Table:
    """리소스 타입별 테이블 (0개 타입은 생략, 카탈로그 순서)"""
    table = Table(title="Resource Breakdown", show_header=True, header_style="bold magenta")
    table.add_column("Resource Type")
    table.add_column("Category", style="dim")
    table.add_column("Count", justify="right")
    if verbose:
        table.add_column(f"Top {TOP_LOCATIONS} Locations")

    partial = set(result.partial_types)
    truncated = set(result.truncated_types)

    for rc in result.resource_counts:
        if rc.total_count <= 0:
            continue
        count = f"{rc.total_count:,}"
        if rc.type_key in partial or rc.type_key in truncated:
            count += " *"
        row = [rc.display_name, rc.category, count]
        if verbose:
            row.append(format_top_locations(rc.top_locations(TOP_LOCATIONS)))
        table.add_row(*row)

    return table


def build_warnings(result: SizingResult) -> list[Text]:
    """부분 집계/실패/잘림/취소 경고"""
    warnings: list[Text] = []
    if not result.complete:
        warnings.append(Text("! 실행이 취소되어 일부 리소스 타입만 집계되었습니다", style="yellow"))
    if result.failed_types:
        warnings.append(
            Text(f"! 집계 실패로 제외된 타입 ({len(result.failed_types)}): {', '.join(result.failed_types)}", style="red")
        )
    if result.partial_types:
        warnings.append(
            Text(
                f"* 일부 스코프 조회 실패로 과소 집계 가능 ({len(result.partial_types)}): "
                f"{', '.join(result.partial_types)}",
                style="yellow",
            )
        )
    if result.truncated_types:
        warnings.append(
            Text(
                f"* 페이지 상한 도달로 잘린 타입 ({len(result.truncated_types)}): {', '.join(result.truncated_types)}",
                style="yellow",
            )
        )
    return warnings


def build_report(result: SizingResult, verbose: bool = False) -> RenderableType:
    parts: list[RenderableType] = [Panel(build_summary(result), title="Cloud Sizing", expand=False)]

    account_table = build_account_table(result)
    if account_table is not None:
        parts.append(account_table)

    parts.append(build_resource_table(result, verbose))
    parts.extend(build_warnings(result))
    parts.append(Text(f"Timestamp: {result.timestamp.isoformat()}", style="dim"))
    return Group(*parts)


def render_table(result: SizingResult, console: Console, verbose: bool = False) -> None:
    console.print(build_report(result, verbose))


def render_table_text(result: SizingResult, verbose: bool = False, width: int = 120) -> str:
    """테이블 리포트를 일반 텍스트로 렌더링 (파일 저장용)"""
    buffer = io.StringIO()
    file_console = Console(file=buffer, width=width, color_system=None, force_terminal=False)
    render_table(result, file_console, verbose)
    return buffer.getvalue()


def to_json(result: SizingResult) -> str:
    return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)


def write_output(content: str, path: str | Path) -> Path:
    """결과를 파일로 저장 (상위 디렉토리 자동 생성)"""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content if content.endswith("\n") else content + "\n", encoding="utf-8")
    return output_path
