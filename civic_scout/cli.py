# === FILE: civic_scout/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска краулера CivicScout через командную строку.

Команды:
  crawl     Запустить обход по конфигу и сохранить снимки и отчёты
  config    Показать текущую конфигурацию
  report    Показать сводку по сохранённому снимку
  records   Вывести записи из сохранённого снимка

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Команда crawl опции:
  --limit INT         Макс. число URL (override max_urls)
  --output DIR        Каталог для снимков (override output_dir)
  --html              Дополнительно сохранить HTML-отчёт
  --crawl-timeout SEC Таймаут всего обхода (секунд)

Пример:
  civic-scout --config configs/default.yaml crawl --limit 50 --html
"""
import asyncio
import json
import sys
from pathlib import Path

import click

from civic_scout import __version__
from civic_scout.aggregator import build_summary
from civic_scout.config import load_config
from civic_scout.engine import default_persister, start_crawl
from civic_scout.logger import init_logging
from civic_scout.models import DataType
from civic_scout.report.html_report import render_html
from civic_scout.storage import RecordStore

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='CivicScout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default='configs/default.yaml',
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stdout, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(name)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд CivicScout CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path


def _config(ctx):
    try:
        return load_config(ctx.obj['config_path'])
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.option('--limit', '-l', 'limit', type=click.IntRange(min=1), default=None,
              help='Макс. число URL для обхода (override max_urls)')
@click.option('--output', '-o', 'output_dir', default=None,
              type=click.Path(file_okay=False, path_type=Path),
              help='Каталог для снимков и отчётов (override output_dir)')
@click.option('--html', 'html_report', is_flag=True, help='Сохранить также HTML-отчёт')
@click.option('--crawl-timeout', 'crawl_timeout', type=float, default=None,
              help='Таймаут всего обхода (секунд)')
@click.pass_context
def crawl(ctx, limit, output_dir, html_report, crawl_timeout):
    """Запустить обход и сохранить результаты."""
    cfg = _config(ctx)
    overrides = {}
    if limit is not None:
        overrides['max_urls'] = limit
    if output_dir is not None:
        overrides['output_dir'] = output_dir
    if overrides:
        cfg = cfg.model_copy(update=overrides)

    click.echo(f'Starting crawl: {len(cfg.seed_urls)} seed(s) -> {cfg.output_dir}')
    persister = default_persister(cfg, html_report=html_report)
    try:
        if crawl_timeout:
            session = asyncio.run(
                asyncio.wait_for(start_crawl(cfg, persister), timeout=crawl_timeout)
            )
        else:
            session = asyncio.run(start_crawl(cfg, persister))
    except asyncio.TimeoutError:
        print_error(f'Обход не завершён за {crawl_timeout} секунд (частичные результаты сохранены)')
    except Exception as e:
        print_error(f'Ошибка при обходе: {e}')

    report = session.report
    click.echo(
        f'{session.state.value}: {report.total_results} result(s), '
        f'{report.failed_urls} failed, avg quality {round(report.average_quality * 100)}%'
    )
    if session.fatal_error is not None:
        print_error(f'Обход прерван: {session.fatal_error}')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = _config(ctx)
    click.echo(cfg.model_dump_json(indent=2))


@cli.command('report', context_settings=CONTEXT_SETTINGS)
@click.option('--output', '-o', 'output_dir', default=None,
              type=click.Path(file_okay=False, path_type=Path),
              help='Каталог со снимками (по умолчанию output_dir из конфига)')
@click.option('--html', 'html_output', default=None,
              type=click.Path(writable=True, dir_okay=False, path_type=Path),
              help='Сохранить HTML-отчёт в файл')
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.pass_context
def report(ctx, output_dir, html_output, pretty):
    """Собрать сводку по сохранённому снимку."""
    top_n = 10
    if output_dir is None:
        cfg = _config(ctx)
        output_dir, top_n = cfg.output_dir, cfg.top_n
    store = RecordStore(output_dir)
    try:
        summary = build_summary(store.get_records(), store.get_stats(), top_n)
    except (FileNotFoundError, ValueError, KeyError) as e:
        print_error(f'Ошибка чтения снимка: {e}')

    if html_output:
        try:
            saved = render_html(summary, html_output)
            click.echo(f'HTML report: {saved}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')
        return
    click.echo(summary.json(pretty=pretty))


@cli.command('records', context_settings=CONTEXT_SETTINGS)
@click.option('--output', '-o', 'output_dir', default=None,
              type=click.Path(file_okay=False, path_type=Path),
              help='Каталог со снимками (по умолчанию output_dir из конфига)')
@click.option('--type', '-t', 'data_type', default=None,
              type=click.Choice([d.value for d in DataType]),
              help='Фильтр по типу данных')
@click.option('--limit', '-l', 'limit', type=click.IntRange(min=0), default=None,
              help='Макс. число записей')
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.pass_context
def records(ctx, output_dir, data_type, limit, pretty):
    """Вывести сохранённые записи в JSON."""
    store = RecordStore(output_dir or _config(ctx).output_dir)
    try:
        items = store.get_records(data_type=data_type, limit=limit)
    except (FileNotFoundError, ValueError, KeyError) as e:
        print_error(f'Ошибка чтения снимка: {e}')
    indent = 2 if pretty else None
    click.echo(json.dumps([r.to_dict() for r in items], ensure_ascii=False, indent=indent))


if __name__ == "__main__":
    cli()
