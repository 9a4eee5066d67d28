"""
命令行入口
读取项目统计并以表格或 JSON 输出，便于在没有图形界面的环境中检查稿件健康度。
"""
import asyncio
import json
import os
from dataclasses import asdict, replace

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from config import load_environment
from config import loader as config_loader
from core import logger as logger_config
from core.exceptions import StorageReadError
from infra.storage.sql_db import SqlStatsSource
from services.stats_service import StatsCollectionFacade

app = typer.Typer(help="Manuscript consistency and schedule analytics.")
console = Console()

PRIORITY_STYLES = {"high": "red", "medium": "yellow", "low": "blue"}


def _build_facade(project_id: str, db_path: str = None) -> StatsCollectionFacade:
    config = config_loader.get_config()
    db_path = db_path or os.getenv("NOVEL_STATS_DB") or config["storage"]["db_path"]
    return StatsCollectionFacade(SqlStatsSource(db_path), project_id, config.get("stats"))


@app.callback()
def main(log_level: str = typer.Option(None, "--log-level", help="覆盖 LOG_LEVEL")):
    load_environment()
    logger_config.setup_logging(level=log_level)


@app.command()
def report(project_id: str,
           db_path: str = typer.Option(None, "--db", help="SQLite 数据库路径"),
           as_json: bool = typer.Option(False, "--json", help="以 JSON 输出完整视图")):
    """刷新四项统计并输出仪表盘"""
    combined = asyncio.run(_build_facade(project_id, db_path).refresh())

    if as_json:
        payload = asdict(replace(combined, error=None))
        payload["error"] = str(combined.error) if combined.error else None
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))
    elif combined.summary is not None:
        summary = combined.summary
        console.print(f"[bold]{project_id}[/bold]  episodes {summary.total_episodes} · "
                      f"words {summary.total_word_count:,} · reserve {summary.reserve_episodes} · "
                      f"consistency {summary.consistency_score}")
        table = Table("priority", "action", "detail")
        for action in summary.next_actions:
            style = PRIORITY_STYLES.get(action.priority, "white")
            table.add_row(f"[{style}]{action.priority}[/{style}]", action.title, action.description)
        console.print(table)

    if combined.error:
        if not as_json:
            console.print(f"[red]load failed: {escape(str(combined.error))}[/red]")
        raise typer.Exit(code=1)


@app.command()
def consistency(project_id: str, db_path: str = typer.Option(None, "--db", help="SQLite 数据库路径")):
    """输出每个角色的一致性分数与警告"""
    try:
        analysis = asyncio.run(_build_facade(project_id, db_path).analyze())
    except StorageReadError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    table = Table("character", "overall", "speech", "appearance", "personality", "warnings")
    for result in analysis.characters:
        table.add_row(
            result.character_name,
            str(result.overall_score),
            str(result.scores.speech.score),
            str(result.scores.appearance.score),
            str(result.scores.personality.score),
            str(len(result.warnings)),
        )
    console.print(table)
    for warning in analysis.warnings:
        console.print(f"[{PRIORITY_STYLES.get(warning.severity, 'white')}]{warning.severity}[/] {warning.description}")


if __name__ == "__main__":
    app()
