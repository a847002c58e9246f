"""Integration tests for the CLI commands (build, check, list, show, init)"""

import json

import pytest
from typer.testing import CliRunner

from mdcollect.cli.cli import app


POST = """\
---
title: Hello World
publishDate: 2024-01-01
description: A first post
category: notes
tags: [intro]
thumbnail: /img/hello.png
author: Ada
---

# Hello

Short post.
"""

runner = CliRunner()


@pytest.fixture(name="project")
def project_fixture(tmp_path, monkeypatch):
    """A project directory with one post and no projects, used as the working directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MDCOLLECT_DB_URL", f"sqlite:///{tmp_path}/test.db")
    posts = tmp_path / "content" / "posts"
    posts.mkdir(parents=True)
    (tmp_path / "content" / "projects").mkdir()
    (posts / "Hello World.md").write_text(POST)
    return tmp_path


def test_build_cmd_exports_json(project):
    """build writes one JSON file per collection kind."""
    result = runner.invoke(app, ["build", "--out-dir", str(project / "dist")])
    assert result.exit_code == 0, result.output
    assert "posts: 1 record(s)" in result.output
    data = json.loads((project / "dist" / "posts.json").read_text())
    assert data[0]["slug"] == "hello-world"
    assert json.loads((project / "dist" / "projects.json").read_text()) == []


def test_build_cmd_uses_cache_on_second_run(project):
    """The second build compiles nothing new."""
    runner.invoke(app, ["build"])
    result = runner.invoke(app, ["build"])
    assert result.exit_code == 0, result.output
    assert "Compiled 0 body(ies), 1 from cache" in result.output


def test_build_cmd_no_cache(project):
    runner.invoke(app, ["build"])
    result = runner.invoke(app, ["build", "--no-cache"])
    assert "Compiled 1 body(ies), 0 from cache" in result.output


def test_build_cmd_reports_every_failure(project):
    """A failed build lists each bad document and exits 1 without exporting."""
    posts = project / "content" / "posts"
    (posts / "untitled.md").write_text(POST.replace("title: Hello World\n", ""))
    (posts / "broken.md").write_text("no front-matter\n")
    result = runner.invoke(app, ["build", "--out-dir", str(project / "dist")])
    assert result.exit_code == 1
    assert "untitled.md" in result.output
    assert "broken.md" in result.output
    assert "Build failed with 2 error(s)" in result.output
    assert not (project / "dist").exists()


def test_check_cmd(project):
    result = runner.invoke(app, ["check"])
    assert result.exit_code == 0, result.output
    assert "OK - 1 document(s) in 2 collection(s)" in result.output


def test_list_cmd(project):
    """list shows every configured kind with its directory and include glob."""
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "posts\tcontent/posts\t*.md" in result.output
    assert "projects\tcontent/projects\t*.md" in result.output


def test_show_cmd_lists_slugs(project):
    result = runner.invoke(app, ["show", "posts"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "hello-world"


def test_show_cmd_prints_record(project):
    """show KIND SLUG prints the record as JSON."""
    result = runner.invoke(app, ["show", "posts", "hello-world"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["title"] == "Hello World"
    assert data["readTime"] == "1 min read"


def test_show_cmd_missing_slug(project):
    result = runner.invoke(app, ["show", "posts", "nope"])
    assert result.exit_code == 1
    assert "No posts record with slug 'nope'" in result.output


def test_show_cmd_unknown_kind(project):
    result = runner.invoke(app, ["show", "recipes"])
    assert result.exit_code == 1
    assert "recipes" in result.output


def test_init_cmd(project):
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0
    assert "Database initialized at:" in result.output
    assert (project / "test.db").exists()


def test_init_cmd_reset(project):
    runner.invoke(app, ["build"])
    result = runner.invoke(app, ["init", "--reset"])
    assert result.exit_code == 0
    assert "Existing cache cleared." in result.output
    rebuilt = runner.invoke(app, ["build"])
    assert "Compiled 1 body(ies), 0 from cache" in rebuilt.output


def test_invalid_config_yaml(project):
    (project / "config.yaml").write_text("key: [unclosed\n")
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 1
    assert "Invalid config.yaml" in result.output
