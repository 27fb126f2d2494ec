from click.testing import CliRunner

from prismblog import __version__
from prismblog.cli import cli
from prismblog.errors import FetchError
from prismblog.generate import GenerationResult, Stage, TaskFailure
from prismblog.gitsync import CommitOutcome


def fake_generate(result=None, error=None, seen=None):
    async def generate_site(settings, transport=None):
        if seen is not None:
            seen["settings"] = settings
        if error is not None:
            raise error
        return result

    return generate_site


def result_with(outcome=None, failures=(), pages=3):
    return GenerationResult(
        stage=Stage.DONE,
        pages=[f"page-{i}.html" for i in range(pages)],
        failures=list(failures),
        outcome=outcome,
    )


def test_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_generate_publishes(monkeypatch, tmp_path):
    seen = {}
    outcome = CommitOutcome(changed=True, committed=True, pushed=True, message="Auto commit - x")
    monkeypatch.setattr(
        "prismblog.generate.generate_site", fake_generate(result_with(outcome), seen=seen)
    )
    result = CliRunner().invoke(
        cli, ["generate", "--project", str(tmp_path)], env={"HTML_OUTPUT_DIR": "site-out"}
    )
    assert result.exit_code == 0, result.output
    assert "Published 3 pages" in result.output
    assert seen["settings"].output_dir == tmp_path.resolve() / "site-out"


def test_generate_without_changes(monkeypatch, tmp_path):
    monkeypatch.setattr(
        "prismblog.generate.generate_site",
        fake_generate(result_with(CommitOutcome(changed=False))),
    )
    result = CliRunner().invoke(cli, ["generate", "--project", str(tmp_path)])
    assert result.exit_code == 0
    assert "no changes to publish" in result.output


def test_generate_reports_failures(monkeypatch, tmp_path):
    failures = [TaskFailure("page", "broken", "Permission denied")]
    monkeypatch.setattr(
        "prismblog.generate.generate_site", fake_generate(result_with(failures=failures))
    )
    result = CliRunner().invoke(cli, ["generate", "--project", str(tmp_path)])
    assert result.exit_code == 1
    assert "Failed page broken: Permission denied" in result.output
    assert "Site not published" in result.output


def test_generate_push_failure(monkeypatch, tmp_path):
    outcome = CommitOutcome(changed=True, committed=True, pushed=False)
    monkeypatch.setattr("prismblog.generate.generate_site", fake_generate(result_with(outcome)))
    result = CliRunner().invoke(cli, ["generate", "--project", str(tmp_path)])
    assert result.exit_code == 1
    assert "push failed" in result.output


def test_generate_fatal_error(monkeypatch, tmp_path):
    monkeypatch.setattr(
        "prismblog.generate.generate_site",
        fake_generate(error=FetchError("Could not reach Prismic API: timeout")),
    )
    result = CliRunner().invoke(cli, ["generate", "--project", str(tmp_path)])
    assert result.exit_code == 1
    assert "Generation failed:" in result.output
    assert "Could not reach Prismic API: timeout" in result.output


def test_invalid_config_is_a_usage_error(tmp_path):
    (tmp_path / "prismblog.yaml").write_text("api_timeout: soon\n", encoding="utf-8")
    result = CliRunner().invoke(cli, ["generate", "--project", str(tmp_path)])
    assert result.exit_code == 1
    assert "Invalid value for api_timeout" in result.output


def test_serve_applies_port(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    called = {}

    def fake_serve(settings):
        called["port"] = settings.port

    monkeypatch.setattr("prismblog.server.serve", fake_serve)
    result = CliRunner().invoke(cli, ["serve", "--port", "5050"], catch_exceptions=False)
    assert result.exit_code == 0
    assert called["port"] == 5050

    result = CliRunner().invoke(cli, ["serve"], env={"PORT": "4000"}, catch_exceptions=False)
    assert called["port"] == 4000


def test_module_main_entrypoint():
    from prismblog.__main__ import main

    assert callable(main)
