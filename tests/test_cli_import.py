"""Tests for the CLI: ``import``, ``catalog``, ``db``, ``scrape`` and ``relay`` commands.

Uses Typer's CliRunner and redirects the workspace to ``tmp_path`` via
monkeypatch so nothing is written to ~/.catalog_import.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
import respx
from typer.testing import CliRunner

from catalog_import.pipeline.orchestrator import ImportPipeline
from catalog_import.pipeline.persistence import CatalogPersister
from cli.commands.imports import read_urls_file
from cli.main import app

runner = CliRunner()

_URL_A = "https://www.threadless.com/shop/@artist1/design/cool-tee/mens"
_URL_B = "https://www.threadless.com/shop/@artist2/design/fine-tee"
_BAD_URL = "https://evil.example/shop/@artist1/design/cool-tee"


@pytest.fixture(autouse=True)
def tmp_workspace(tmp_path, monkeypatch):
    """Redirect the workspace to a temp directory for every test."""
    monkeypatch.setattr("catalog_import.config.settings.workspace_dir", tmp_path)
    return tmp_path


@pytest.fixture()
def fake_build(storage, fake_fetcher, fake_images, make_page):
    pages = {_URL_A: make_page("Cool Tee"), _URL_B: make_page("Fine Tee")}

    def _build(conn, client, delay=None):
        return ImportPipeline(
            fake_fetcher(pages), CatalogPersister(conn, storage, fake_images()), delay=0
        )

    with patch("cli.commands.imports.build_pipeline", side_effect=_build) as m:
        yield m


# ---------------------------------------------------------------------------
# read_urls_file
# ---------------------------------------------------------------------------

class TestReadUrlsFile:
    def test_skips_blank_and_comment_lines(self, tmp_path: Path) -> None:
        path = tmp_path / "urls.txt"
        path.write_text(f"# batch one\n{_URL_A}\n\n   \n  {_URL_B}  \n#{_BAD_URL}\n")
        assert read_urls_file(path) == [_URL_A, _URL_B]


# ---------------------------------------------------------------------------
# import run
# ---------------------------------------------------------------------------

class TestImportRun:
    def test_imports_urls(self, fake_build) -> None:
        result = runner.invoke(app, ["import", "run", _URL_A, _URL_B])
        assert result.exit_code == 0, result.output
        assert "[START] Importing 2 address(es)" in result.output
        assert '[PERSIST] ✓ Added "Cool Tee"' in result.output
        assert "[DONE] Import complete. Success: 2, Skipped: 0, Failed: 0" in result.output

    def test_reads_urls_from_file(self, fake_build, tmp_path: Path) -> None:
        path = tmp_path / "urls.txt"
        path.write_text(f"# comment\n{_URL_A}\n\n{_URL_B}\n")
        result = runner.invoke(app, ["import", "run", "--file", str(path)])
        assert result.exit_code == 0, result.output
        assert "Importing 2 address(es)" in result.output

    def test_failure_exits_1_with_summary(self, fake_build) -> None:
        result = runner.invoke(app, ["import", "run", _URL_A, _BAD_URL])
        assert result.exit_code == 1
        assert "Failures:" in result.output
        assert _BAD_URL in result.output
        assert "[validation]" in result.output

    def test_duplicates_are_not_failures(self, fake_build) -> None:
        runner.invoke(app, ["import", "run", _URL_A])
        result = runner.invoke(app, ["import", "run", _URL_A])
        assert result.exit_code == 0, result.output
        assert "Skipped: 1" in result.output

    def test_no_urls(self) -> None:
        result = runner.invoke(app, ["import", "run"])
        assert result.exit_code == 1
        assert "No URLs provided" in result.output

    def test_missing_api_key(self, monkeypatch) -> None:
        monkeypatch.setattr("catalog_import.config.settings.unlocker_api_key", "")
        result = runner.invoke(app, ["import", "run", _URL_A])
        assert result.exit_code == 1
        assert "Configuration error" in result.output


# ---------------------------------------------------------------------------
# catalog list / db init
# ---------------------------------------------------------------------------

class TestCatalogList:
    def test_empty(self) -> None:
        result = runner.invoke(app, ["catalog", "list"])
        assert result.exit_code == 0
        assert "No entries found" in result.output

    def test_lists_imported_entries(self, fake_build) -> None:
        runner.invoke(app, ["import", "run", _URL_A])
        result = runner.invoke(app, ["catalog", "list"])
        assert result.exit_code == 0
        assert "'Cool Tee' by artist1" in result.output
        assert "[active]" in result.output
        assert "(0/100)" in result.output

    def test_unknown_status(self) -> None:
        result = runner.invoke(app, ["catalog", "list", "--status", "sold"])
        assert result.exit_code == 1


class TestDbInit:
    def test_creates_database(self, tmp_workspace: Path) -> None:
        result = runner.invoke(app, ["db", "init"])
        assert result.exit_code == 0
        assert (tmp_workspace / "catalog.db").exists()
        assert (tmp_workspace / "images").is_dir()
        assert "schema v1" in result.output


# ---------------------------------------------------------------------------
# scrape
# ---------------------------------------------------------------------------

class TestScrape:
    @respx.mock
    def test_prints_record(self, monkeypatch, make_page) -> None:
        monkeypatch.setattr("catalog_import.config.settings.unlocker_api_key", "k")
        monkeypatch.setattr(
            "catalog_import.config.settings.unlocker_api_url", "https://unlocker.test/request"
        )
        respx.post("https://unlocker.test/request").mock(
            return_value=httpx.Response(200, text=make_page("Cool Tee"))
        )
        result = runner.invoke(app, ["scrape", "--url", _URL_A])
        assert result.exit_code == 0, result.output
        assert "Title    : Cool Tee" in result.output
        assert "Creator  : artist1" in result.output
        assert "Item no. : 4016887" in result.output

    def test_invalid_url(self, monkeypatch) -> None:
        monkeypatch.setattr("catalog_import.config.settings.unlocker_api_key", "k")
        result = runner.invoke(app, ["scrape", "--url", _BAD_URL])
        assert result.exit_code == 1
        assert "Not a product page address" in result.output


# ---------------------------------------------------------------------------
# relay fetch
# ---------------------------------------------------------------------------

class TestRelayFetch:
    @respx.mock
    def test_writes_image(self, tmp_path: Path) -> None:
        respx.get("https://cdn.example/a.png").mock(
            return_value=httpx.Response(200, content=b"png", headers={"content-type": "image/png"})
        )
        out = tmp_path / "a.png"
        result = runner.invoke(app, ["relay", "fetch", "https://cdn.example/a.png", "--out", str(out)])
        assert result.exit_code == 0, result.output
        assert out.read_bytes() == b"png"

    @respx.mock
    def test_not_an_image(self, tmp_path: Path) -> None:
        respx.get("https://cdn.example/page").mock(
            return_value=httpx.Response(200, text="<html/>", headers={"content-type": "text/html"})
        )
        out = tmp_path / "x"
        result = runner.invoke(app, ["relay", "fetch", "https://cdn.example/page", "--out", str(out)])
        assert result.exit_code == 1
        assert "not_an_image" in result.output
        assert not out.exists()
