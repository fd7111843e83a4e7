# File: tests/test_cli.py
"""Тесты для CLI (`site_spider/cli.py`) с использованием click.testing.CliRunner.
Проверяют команды `crawl`, `pages`, `registry`, `config`, `--version`, а также обработку ошибок.
"""
import asyncio
import json

import pytest
from click.testing import CliRunner
from site_spider.cli import cli
from site_spider.crawler.models import ContentType, PageRecord
from site_spider.crawler.session import CrawlSession
from site_spider.engine import Engine
from site_spider.logger import init_logging
from site_spider.storage.registry import ScanRegistry, ScanStatus
from site_spider.storage.site_store import SiteStore


@pytest.fixture(autouse=True)
def restore_logging():
    """CliRunner подменяет stdout, поэтому после каждого теста логгер настраивается заново."""
    yield
    init_logging()


@pytest.fixture()
def cfg_file(tmp_path):
    """Конфиг, который хранит базы во временном каталоге."""
    path = tmp_path / "config.yaml"
    path.write_text(
        f"user_agent: Agent/1.0\nconcurrency: 2\ntimeout: 1.0\ndatabases_dir: {tmp_path / 'dbs'}\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def populated(tmp_path, cfg_file):
    async def _fill():
        db = tmp_path / "dbs" / "example.com.db"
        async with await SiteStore.open(db) as store:
            await store.save_crawled_page(
                PageRecord("http://example.com/", ContentType.HTML_PAGE, 200, 40, meta_title="Home"),
                [("H1", "Home")],
                ["http://example.com/a"],
            )
            await store.save_page(PageRecord("http://example.com/a", ContentType.HTML_PAGE, 200, 10))
        registry = ScanRegistry(tmp_path / "dbs" / "sites_registry.db")
        await registry.upsert("example.com", "example.com", "http://example.com/", ScanStatus.COMPLETED)

    asyncio.run(_fill())
    return cfg_file


def invoke(*args):
    runner = CliRunner()
    return runner.invoke(cli, ["--log-level", "ERROR", *args])


def test_version_option():
    result = invoke("--version")
    assert result.exit_code == 0
    assert "SiteSpider" in result.output


def test_show_config(cfg_file, tmp_path):
    result = invoke("--config", str(cfg_file), "config")
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["user_agent"] == "Agent/1.0"
    assert data["concurrency"] == 2
    assert data["databases_dir"] == str(tmp_path / "dbs")


def test_bad_config(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("concurrency: -1\n", encoding="utf-8")
    result = invoke("--config", str(bad), "config")
    assert result.exit_code == 1
    assert "Ошибка загрузки конфигурации" in result.output


def test_pages_json(populated):
    result = invoke("--config", str(populated), "pages", "example.com", "--sort-key", "responseTime",
                    "--sort-direction", "descending")
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["total"] == 2
    assert [p["responseTime"] for p in data["pages"]] == [40, 10]
    assert data["pages"][1]["incomingLinks"] == ["http://example.com/"]


def test_pages_filters_and_pretty(populated):
    result = invoke("--config", str(populated), "pages", "example.com", "--search", "home", "--pretty")
    assert result.exit_code == 0
    assert "\n  " in result.output
    assert [p["url"] for p in json.loads(result.output)["pages"]] == ["http://example.com/"]


def test_pages_rejects_unknown_sort_key(populated):
    result = invoke("--config", str(populated), "pages", "example.com", "--sort-key", "id")
    assert result.exit_code == 2


def test_pages_unknown_domain(cfg_file):
    result = invoke("--config", str(cfg_file), "pages", "nowhere.net")
    assert result.exit_code == 1
    assert "Нет данных" in result.output


def test_registry(populated):
    result = invoke("--config", str(populated), "registry")
    assert result.exit_code == 0
    entries = json.loads(result.output)
    assert entries[0]["dbName"] == "example.com"
    assert entries[0]["status"] == "completed"


def test_crawl_invalid_url(cfg_file):
    result = invoke("--config", str(cfg_file), "crawl", "not-a-url")
    assert result.exit_code == 1
    assert "Некорректный URL" in result.output


def test_crawl_reports_status(cfg_file, monkeypatch):
    calls = {}

    async def fake_crawl(self, url, *, overwrite=False, concurrency=None, events=None):
        calls.update(url=url, overwrite=overwrite, concurrency=concurrency)
        session = CrawlSession(self.config, url, overwrite=overwrite, concurrency=concurrency)
        self.sessions[session.db_name] = session
        return ScanStatus.ERROR

    monkeypatch.setattr(Engine, "crawl", fake_crawl)
    result = invoke("--config", str(cfg_file), "crawl", "http://example.com/", "--overwrite", "-n", "3")
    assert result.exit_code == 1
    assert calls == {"url": "http://example.com/", "overwrite": True, "concurrency": 3}
    assert "error" in result.output
