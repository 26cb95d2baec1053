"""Tests for the command-line front end and configuration."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest

from config import Config
from main import build_orchestrator, build_parser, main
from publisher.events import WebhookPublishHandler

POST_MD = textwrap.dedent("""\
    ---
    title: Hello World
    author: Alice
    categories: Python, News, python
    ---
    First paragraph of the post.
""")


@pytest.fixture()
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("PROJECT_ID", "site")
    monkeypatch.delenv("PUBLISH_WEBHOOK_URL", raising=False)
    monkeypatch.delenv("FORCE_LOWER_CASE_CATEGORIES", raising=False)
    return tmp_path / "data"


def _posts(data_dir: Path) -> list[dict]:
    path = data_dir / "projects" / "site" / "posts.json"
    return json.loads(path.read_text())["posts"]


class TestConfig:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch):
        for name in ("DATA_DIR", "FORCE_LOWER_CASE_CATEGORIES", "MESSAGES_PATH", "PROJECT_ID"):
            monkeypatch.delenv(name, raising=False)
        cfg = Config.from_env()
        assert cfg.project_id == "default"
        assert cfg.force_lower_case_categories
        assert cfg.messages_path is None
        assert cfg.projects_dir == Path("data") / "projects"

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("FORCE_LOWER_CASE_CATEGORIES", "no")
        monkeypatch.setenv("SCHEDULE_INTERVAL_MINUTES", "15")
        monkeypatch.setenv("MESSAGES_PATH", "/tmp/de.yaml")
        cfg = Config.from_env()
        assert not cfg.force_lower_case_categories
        assert cfg.schedule_interval_minutes == 15
        assert cfg.messages_path == Path("/tmp/de.yaml")

    def test_webhook_handler_only_when_configured(self, tmp_path: Path):
        plain = build_orchestrator(Config(data_dir=tmp_path))
        hooked = build_orchestrator(
            Config(data_dir=tmp_path, publish_webhook_url="https://hooks.example.com")
        )
        assert not any(isinstance(h, WebhookPublishHandler) for h in plain.store.handlers)
        assert any(isinstance(h, WebhookPublishHandler) for h in hooked.store.handlers)


class TestParser:
    def test_requires_an_action(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_edit_options(self):
        args = build_parser().parse_args(
            ["--edit", "p.md", "--mode", "later", "--pub-date", "2026-11-01T09:00"]
        )
        assert args.edit == Path("p.md")
        assert args.mode == "later"
        assert args.pub_date.hour == 9


class TestMain:
    def test_draft_then_publish(self, data_dir: Path, tmp_path: Path):
        md = tmp_path / "hello.md"
        md.write_text(POST_MD)

        assert main(["--edit", str(md)]) == 0
        [post] = _posts(data_dir)
        assert post["slug"] == "hello-world"
        assert post["is_published"] is False
        assert post["draft_content"] == "First paragraph of the post."
        assert post["categories"] == ["python", "news"]

        assert main(["--edit", str(md), "--mode", "now", "--post", "hello-world"]) == 0
        [post] = _posts(data_dir)
        assert post["is_published"] is True
        assert post["content"] == "First paragraph of the post."
        assert post["draft_content"] is None

        feed_files = list((data_dir / "published" / "site").glob("*/hello-world.html"))
        assert len(feed_files) == 1

        history = json.loads((data_dir / "projects" / "site" / "history.json").read_text())
        # The snapshot taken before publishing held the draft and was dropped
        assert history["history"] == []

    def test_unknown_post(self, data_dir: Path, tmp_path: Path):
        md = tmp_path / "hello.md"
        md.write_text(POST_MD)
        assert main(["--edit", str(md), "--post", "missing"]) == 1

    def test_slug_collision_fails(self, data_dir: Path, tmp_path: Path):
        first = tmp_path / "first.md"
        first.write_text(POST_MD)
        second = tmp_path / "second.md"
        second.write_text(POST_MD.replace("Hello World", "Another Post"))
        assert main(["--edit", str(first)]) == 0
        assert main(["--edit", str(second)]) == 0

        clash = tmp_path / "clash.md"
        clash.write_text(POST_MD.replace("title: Hello World", "title: X\nslug: hello-world"))
        assert main(["--edit", str(clash), "--post", "another-post"]) == 1
        assert {p["slug"] for p in _posts(data_dir)} == {"hello-world", "another-post"}

    def test_list(self, data_dir: Path, tmp_path: Path, capsys: pytest.CaptureFixture):
        md = tmp_path / "hello.md"
        md.write_text(POST_MD)
        main(["--edit", str(md), "--mode", "now"])
        capsys.readouterr()
        assert main(["--list"]) == 0
        out = capsys.readouterr().out
        assert "hello-world\tHello World\tpublished" in out
