"""
cli/app.py - 메인 CLI 엔트리포인트

Click 기반의 CLI 애플리케이션 진입점입니다.

명령어 구조:
    cloud-sizing                                # 프로바이더 선택 프롬프트 (대화형 터미널)
    cloud-sizing -p aws                         # AWS 전체 리전 사이징
    cloud-sizing -p aws -r us-east-1 -r eu-west-1 --resource ec2:instance
    cloud-sizing -p azure --subscription <id> -f json -o result.json
    cloud-sizing -c sizing.yaml -v              # 설정 파일 + 상위 리전 표시
    cloud-sizing --version

설정 우선순위:
    CLI 옵션 > 환경 변수 (CLOUD_SIZING_*) > 설정 파일 > 기본값

종료 코드:
    0: 성공
    1: 실패 (인증/탐색 실패, 수집된 데이터 없음, 설정 오류)
    130: 사용자 중단 (Ctrl+C)
"""

from __future__ import annotations

import logging
import sys
from dataclasses import replace

import click
import questionary

from cli.console import console, get_logger, print_error, print_info, print_success, print_warning, setup_logging
from cli.render import OUTPUT_FORMATS, render_table, render_table_text, to_json, write_output
from providers import get_provider
from sizing import __version__
from sizing.config import (
    MAX_CONCURRENCY_LIMIT,
    SUPPORTED_PROVIDERS,
    ProviderConfig,
    SizingConfig,
    load_config_file,
)
from sizing.exceptions import SizingError, format_error_for_user
from sizing.models import SizingResult
from sizing.parallel import CancelToken

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130

PROVIDER_CHOICES = {
    "aws": "AWS (Amazon Web Services)",
    "azure": "Azure (Microsoft Azure)",
}


def prompt_provider() -> str | None:
    """프로바이더 선택 프롬프트 (취소 시 None)"""
    choices = [questionary.Choice(title=label, value=key) for key, label in PROVIDER_CHOICES.items()]
    return questionary.select("클라우드 프로바이더를 선택하세요:", choices=choices).ask()


def resolve_provider_name(option: str | None, configured: str, interactive: bool) -> str:
    """프로바이더 결정: 옵션 > 설정 파일 > 대화형 선택

    Raises:
        click.UsageError: 프로바이더를 결정할 수 없음
        KeyboardInterrupt: 대화형 선택 취소
    """
    if option:
        return option.lower()
    if configured:
        return configured
    if not interactive:
        raise click.UsageError("--provider를 지정하세요 (aws 또는 azure)")

    selected = prompt_provider()
    if not selected:
        raise KeyboardInterrupt
    return selected


def build_configs(
    config_path: str | None,
    profile: str | None,
    regions: tuple[str, ...],
    subscription: str | None,
    resources: tuple[str, ...],
    concurrency: int | None,
    max_pages: int | None,
    timeout: float | None,
) -> tuple[SizingConfig, ProviderConfig]:
    """설정 파일, 환경 변수, CLI 옵션을 합친 설정 생성"""
    if config_path:
        sizing_config, provider_config = load_config_file(config_path)
    else:
        sizing_config, provider_config = SizingConfig(), ProviderConfig()

    sizing_config = sizing_config.with_env().merge(
        concurrency_limit=concurrency,
        max_pagination_pages=max_pages,
        timeout=timeout,
    )

    provider_config = replace(
        provider_config,
        profile=profile or provider_config.profile,
        regions=list(regions) or provider_config.regions,
        resources=list(resources) or provider_config.resources,
        subscription_id=subscription or provider_config.subscription_id,
    )
    return sizing_config, provider_config


def run_sizing(
    provider_config: ProviderConfig,
    sizing_config: SizingConfig,
    cancel: CancelToken,
    logger: logging.Logger,
) -> SizingResult:
    """프로바이더 연결 후 전체 카운팅"""
    with get_provider(provider_config.provider, provider_config, logger=logger) as provider:
        provider.connect()
        print_success(f"{provider.display_name} 연결 완료: 계정 {len(provider.accounts)}개, 스코프 {len(provider.scopes)}개")
        return provider.count_resources(sizing_config, cancel=cancel)


def emit_result(result: SizingResult, output_format: str, output: str | None, verbose: bool) -> None:
    if output_format == "json":
        content = to_json(result)
        if output:
            path = write_output(content, output)
            print_success(f"결과 저장: {path}")
        else:
            click.echo(content)
        return

    render_table(result, console, verbose)
    if output:
        path = write_output(render_table_text(result, verbose), output)
        print_success(f"결과 저장: {path}")


@click.command(name="cloud-sizing")
@click.version_option(__version__, prog_name="cloud-sizing")
@click.option(
    "-p",
    "--provider",
    type=click.Choice(SUPPORTED_PROVIDERS, case_sensitive=False),
    default=None,
    help="클라우드 프로바이더 (생략 시 선택 프롬프트)",
)
@click.option(
    "-f", "--format", "output_format", type=click.Choice(OUTPUT_FORMATS), default="table", help="출력 형식"
)
@click.option("-o", "--output", type=click.Path(dir_okay=False), default=None, help="출력 파일 경로")
@click.option("-v", "--verbose", is_flag=True, help="상세 로그 + 타입별 상위 리전 표시")
@click.option(
    "-c", "--config", "config_path", type=click.Path(exists=True, dir_okay=False), default=None, help="설정 파일 (YAML)"
)
@click.option("--profile", default=None, help="AWS 프로파일")
@click.option("-r", "--region", "regions", multiple=True, help="AWS 리전 (다중 가능, 생략 시 활성화된 전체 리전)")
@click.option("--subscription", default=None, help="특정 Azure 구독 ID만 스캔")
@click.option("--resource", "resources", multiple=True, help="카운팅할 리소스 타입 키 (다중 가능)")
@click.option("--concurrency", type=click.IntRange(1, MAX_CONCURRENCY_LIMIT), default=None, help="동시 조회 리소스 타입 수 (기본: 5)")
@click.option("--max-pages", type=click.IntRange(min=1), default=None, help="Batched 조회 페이지 상한 (기본: 10)")
@click.option(
    "--timeout", type=click.FloatRange(min=0, min_open=True), default=None, help="전체 실행 제한 시간 (초)"
)
def cli(
    provider: str | None,
    output_format: str,
    output: str | None,
    verbose: bool,
    config_path: str | None,
    profile: str | None,
    regions: tuple[str, ...],
    subscription: str | None,
    resources: tuple[str, ...],
    concurrency: int | None,
    max_pages: int | None,
    timeout: float | None,
) -> None:
    """클라우드 리소스 사이징 (AWS / Azure)"""
    logger = setup_logging(verbose)
    cancel = CancelToken()

    try:
        sizing_config, provider_config = build_configs(
            config_path, profile, regions, subscription, resources, concurrency, max_pages, timeout
        )
        provider_config.provider = resolve_provider_name(
            provider, provider_config.provider, interactive=sys.stdin.isatty()
        )

        print_info(f"Selected cloud provider: {provider_config.provider.upper()}")
        result = run_sizing(provider_config, sizing_config, cancel, get_logger(provider_config.provider))
        emit_result(result, output_format, output, verbose)
    except KeyboardInterrupt:
        cancel.cancel()
        print_warning("사용자에 의해 중단되었습니다")
        raise SystemExit(EXIT_INTERRUPTED) from None
    except SizingError as e:
        logger.debug("사이징 실패", exc_info=True)
        print_error(format_error_for_user(e))
        raise SystemExit(EXIT_ERROR) from None
    except (OSError, ValueError) as e:
        # 출력 파일 쓰기 실패, 잘못된 스코프 등
        logger.debug("사이징 실패", exc_info=True)
        print_error(format_error_for_user(e))
        raise SystemExit(EXIT_ERROR) from None

    if not result.complete:
        print_warning("제한 시간 초과 또는 취소로 결과가 불완전합니다")


if __name__ == "__main__":
    cli()
