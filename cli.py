import asyncio
import sys
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

# 导入 collectors 以注册变更集来源
import core.collectors  # noqa: F401

from config.logic import load_and_merge_configs
from config.models import Config
from core.harness import CheckStatus, ValidationHarness
from core.pipeline import ContinuousAgent, RunResult
from utils.errors import AgentException
from utils.logger import setup_logger, logger


def apply_cli_overrides(config: Config, repository: Optional[str], document: Optional[str], source: Optional[str]) -> Config:
    """将CLI选项应用于加载的配置"""
    if repository:
        config.repository.repository = repository
        logger.info(f"使用 repository 覆盖配置: {repository}")
    if document:
        config.document.path = document
        config.synthesis.status_document = document
        logger.info(f"使用 document 覆盖配置: {document}")
    if source:
        config.source.type = source
        logger.info(f"使用 source 覆盖配置: {source}")
    return config


async def run_agent(config: Config, dry_run: bool) -> RunResult:
    """
    初始化并运行持续开发流水线
    """
    agent = ContinuousAgent(config)
    return await agent.run(dry_run=dry_run)


@click.group()
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="启用详细日志记录以进行调试",
)
@click.pass_context
def cli(ctx, verbose: bool):
    """
    持续编码代理：分析已合并的变更集，生成后续任务并维护 README 状态区块。
    """
    setup_logger(log_level="DEBUG" if verbose else "INFO")
    ctx.obj = {'verbose': verbose}


@cli.command("run")
@click.option(
    "-c", "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="自定义配置文件的路径",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="只分析和渲染，不写入任何产物或文档",
)
@click.option("--repository", type=str, help="覆盖目标仓库 (例如 'owner/name')")
@click.option("--document", type=click.Path(dir_okay=False), help="覆盖状态文档路径 (例如 'README.md')")
@click.option("--source", type=str, help="覆盖变更集来源 (例如 'github' 或 'static')")
@click.pass_context
def run(ctx, config_path: str, dry_run: bool, repository: str, document: str, source: str):
    """
    执行一次完整的代理运行。
    """
    console = Console()
    verbose = ctx.obj.get('verbose', False)

    try:
        config = load_and_merge_configs(custom_config_path=config_path)
        config = apply_cli_overrides(config, repository, document, source)

        with console.status("[bold green]正在分析变更集并生成任务...[/bold green]"):
            result = asyncio.run(run_agent(config, dry_run))
    except AgentException as e:
        logger.opt(exception=verbose).error(f"发生已知错误: {e}")
        console.print(f"[bold red]错误:[/bold red] {e}")
        sys.exit(1)
    except Exception as e:
        logger.opt(exception=e).error(f"发生未知错误: {e}")
        console.print(f"[bold red]发生未知错误:[/bold red] {e}")
        sys.exit(1)

    table = Table(title=f"生成的任务 ({len(result.tasks)})")
    table.add_column("ID", style="dim")
    table.add_column("类别")
    table.add_column("优先级")
    table.add_column("预计", justify="right")
    table.add_column("标题")
    for task in result.tasks:
        table.add_row(
            task.id,
            task.category.value,
            task.priority.value,
            f"{task.estimated_hours:g}h",
            task.title,
        )
    console.print(table)

    if result.analysis.error:
        console.print(f"[yellow]变更集分析降级:[/yellow] {result.analysis.error}")

    if dry_run:
        console.print(Panel(
            Markdown(result.section),
            title="[bold cyan]状态区块预览[/bold cyan]",
            border_style="cyan",
            expand=False,
        ))
        console.print("\n[yellow]当前为预览模式。要写入文档，请移除 '--dry-run' 参数。[/yellow]")
    elif result.document_updated:
        console.print(f"\n[bold green]✅ 已更新 {config.document.path}[/bold green]")
    else:
        console.print(f"\n[yellow]{config.document.path} 未被修改。[/yellow]")


@cli.command("validate")
@click.option(
    "-c", "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="自定义配置文件的路径",
)
@click.pass_context
def validate(ctx, config_path: str):
    """
    校验最近一次运行产生的产物与状态文档。
    """
    console = Console()
    verbose = ctx.obj.get('verbose', False)

    try:
        config = load_and_merge_configs(custom_config_path=config_path)
        report = ValidationHarness(config).run()
    except AgentException as e:
        logger.opt(exception=verbose).error(f"发生已知错误: {e}")
        console.print(f"[bold red]错误:[/bold red] {e}")
        sys.exit(1)

    styles = {CheckStatus.PASS: "green", CheckStatus.FAIL: "bold red", CheckStatus.WARN: "yellow"}
    table = Table(title="校验结果")
    table.add_column("结果")
    table.add_column("说明")
    for result in report.results:
        table.add_row(f"[{styles[result.status]}]{result.status.value}[/{styles[result.status]}]", escape(result.message))
    console.print(table)
    console.print(f"通过: {report.passed}  失败: {report.failed}  警告: {report.warnings}")

    if not report.ok:
        console.print("\n[bold red]🚨 部分校验未通过，请处理上述问题。[/bold red]")
        sys.exit(1)
    console.print("\n[bold green]🎉 所有关键校验均已通过。[/bold green]")


if __name__ == "__main__":
    cli()
