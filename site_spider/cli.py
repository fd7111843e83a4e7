# === FILE: site_spider/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска краулера SiteSpider через командную строку.

Команды:
  crawl URL    Просканировать домен, начиная с URL (продолжает прерванный обход)
  pages DOMAIN Вывести страницы домена в JSON (пагинация, сортировка, фильтры)
  registry     Вывести реестр сканирований
  config       Показать текущую конфигурацию
  serve        Запустить HTTP API для чтения результатов

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Дополнительно:
  --version, -v       Показать версию SiteSpider

Пример:
  site_spider crawl https://example.com/ --concurrency 3
  site_spider pages example.com --sort-key responseTime --sort-direction descending --pretty
"""
import sys
import asyncio
import json
from pathlib import Path

import click
from aiohttp import web

from site_spider import __version__
from site_spider.api import create_app
from site_spider.config import load_config
from site_spider.engine import Engine
from site_spider.logger import DEFAULT_FORMAT, init_logging
from site_spider.storage.query import SORT_COLUMNS, SORT_DIRECTIONS, InvalidQueryError, StoreNotFoundError
from site_spider.storage.registry import ScanStatus
from site_spider.crawler.models import ContentType

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def print_json(data, pretty: bool):
    click.echo(json.dumps(data, ensure_ascii=False, indent=2 if pretty else None))


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteSpider, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
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
    default=DEFAULT_FORMAT,
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд SiteSpider CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--overwrite', is_flag=True, help='Удалить прежние результаты домена и начать заново')
@click.option(
    '--concurrency', '-n', 'concurrency',
    type=click.IntRange(min=1),
    default=None,
    help='Число одновременных запросов (override concurrency из конфига)'
)
@click.pass_context
def crawl(ctx, url, overwrite, concurrency):
    """Просканировать домен, начиная с URL."""
    cfg = ctx.obj['config']
    engine = Engine(cfg)
    click.echo(f'Starting crawl: {url}')
    try:
        status = asyncio.run(engine.crawl(url, overwrite=overwrite, concurrency=concurrency))
    except KeyboardInterrupt:
        print_error('Сканирование прервано, результаты сохранены и могут быть продолжены')
    except ValueError as e:
        print_error(f'Некорректный URL: {e}')
    except Exception as e:
        print_error(f'Ошибка при сканировании: {e}')

    session = next(iter(engine.sessions.values()))
    if status is not ScanStatus.COMPLETED:
        reason = session.error
        print_error(f'Сканирование завершилось со статусом {status.value}: {reason}')
    click.echo(f'Crawl {status.value}: {session.scanned_count} URLs processed, database {session.db_path}')


@cli.command('pages', context_settings=CONTEXT_SETTINGS)
@click.argument('domain')
@click.option('--page', type=click.IntRange(min=1), default=1, show_default=True, help='Номер страницы')
@click.option('--limit', type=click.IntRange(min=1), default=100, show_default=True, help='Размер страницы')
@click.option(
    '--sort-key', 'sort_key',
    type=click.Choice(list(SORT_COLUMNS)), default='url', show_default=True,
    help='Поле сортировки'
)
@click.option(
    '--sort-direction', 'sort_direction',
    type=click.Choice(list(SORT_DIRECTIONS)), default='ascending', show_default=True,
    help='Направление сортировки'
)
@click.option('--search', default=None, help='Подстрока в URL, title или description')
@click.option(
    '--content-type', 'content_type',
    type=click.Choice([c.value for c in ContentType]), default=None,
    help='Только страницы с этим типом'
)
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.pass_context
def pages(ctx, domain, page, limit, sort_key, sort_direction, search, content_type, pretty):
    """Вывести сохранённые страницы домена в JSON."""
    engine = Engine(ctx.obj['config'])
    try:
        listing = asyncio.run(
            engine.pages(
                domain,
                page=page,
                limit=limit,
                sort_key=sort_key,
                sort_direction=sort_direction,
                search=search,
                content_type=content_type,
            )
        )
    except StoreNotFoundError:
        print_error(f'Нет данных для домена {domain}')
    except InvalidQueryError as e:
        print_error(f'Некорректный запрос: {e}')
    print_json(listing.to_dict(), pretty)


@cli.command('registry', context_settings=CONTEXT_SETTINGS)
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.pass_context
def registry(ctx, pretty):
    """Вывести реестр сканирований (самые свежие первыми)."""
    engine = Engine(ctx.obj['config'])
    entries = asyncio.run(engine.sites())
    print_json([e.to_dict() for e in entries], pretty)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


@cli.command('serve', context_settings=CONTEXT_SETTINGS)
@click.option('--host', default='127.0.0.1', show_default=True, help='Адрес для HTTP API')
@click.option('--port', type=int, default=8080, show_default=True, help='Порт для HTTP API')
@click.pass_context
def serve(ctx, host, port):
    """Запустить HTTP API для чтения результатов."""
    web.run_app(create_app(ctx.obj['config']), host=host, port=port, print=click.echo)


if __name__ == "__main__":
    cli()
