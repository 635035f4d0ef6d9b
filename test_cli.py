"""
Tests for the command-line front end.
"""
import io

import massResolve.cli as cli
from conftest import ScriptedPool, pool_factory_for
from massResolve.pipeline.driver import run_pipeline


def _patch_pipeline(monkeypatch, pool):
    async def fake_run_pipeline(cfg):
        return await run_pipeline(cfg, pool_factory=pool_factory_for(pool))

    monkeypatch.setattr(cli, "run_pipeline", fake_run_pipeline)


def test_missing_input_exits_cleanly(capsys):
    out = io.StringIO()
    assert cli.main([], out=out) == 0
    assert out.getvalue() == ""
    assert "Please check your input file." in capsys.readouterr().err


def test_results_written_to_stdout(monkeypatch, domains_file, scripted_pool):
    _patch_pipeline(monkeypatch, scripted_pool)
    out = io.StringIO()

    assert cli.main(["-i", str(domains_file), "-t", "2"], out=out) == 0
    lines = out.getvalue().splitlines()
    assert "example.com,93.184.216.34" in lines
    assert len(lines) == len(set(lines)) == 4


def test_only_ip_flag(monkeypatch, domains_file, scripted_pool):
    _patch_pipeline(monkeypatch, scripted_pool)
    out = io.StringIO()

    assert cli.main(["-i", str(domains_file), "--only-ip"], out=out) == 0
    assert sorted(out.getvalue().splitlines()) == ["203.0.114.10", "203.0.114.11", "93.184.216.34"]


def test_stats_go_to_stderr(monkeypatch, domains_file, capsys):
    _patch_pipeline(monkeypatch, ScriptedPool({}))
    out = io.StringIO()

    assert cli.main(["-i", str(domains_file), "--stats"], out=out) == 0
    assert out.getvalue() == ""
    err = capsys.readouterr().err
    assert "failed=6" in err
    assert "Every lookup failed" in err


def test_missing_resolver_file_is_fatal(domains_file, tmp_path, capsys):
    out = io.StringIO()
    code = cli.main(["-i", str(domains_file), "-r", str(tmp_path / "nope.txt")], out=out)

    assert code == 1
    assert out.getvalue() == ""
    assert "ConfigError" in capsys.readouterr().err


def test_pool_failure_is_fatal(monkeypatch, domains_file, capsys):
    _patch_pipeline(monkeypatch, None)
    assert cli.main(["-i", str(domains_file)], out=io.StringIO()) == 1
    assert "PoolConstructionError" in capsys.readouterr().err


def test_flags_override_config_file(tmp_path):
    cfg_file = tmp_path / "massresolve.yaml"
    cfg_file.write_text(
        "input_path: from-config.txt\n"
        "workers: 12\n"
        "dns:\n"
        "  timeout_seconds: 4.5\n"
        "  max_attempts: 5\n",
        encoding="utf-8",
    )
    args = cli.parse_args(["-c", str(cfg_file), "-t", "3", "--no-probe", "--only-ip"])
    cfg = cli.build_config(args)

    assert cfg.input_path == "from-config.txt"
    assert cfg.workers == 3
    assert cfg.only_addresses is True
    assert cfg.dns.timeout_seconds == 4.5
    assert cfg.dns.max_attempts == 5
    assert cfg.dns.probe_resolvers is False


def test_invalid_config_file(tmp_path, capsys):
    cfg_file = tmp_path / "bad.yaml"
    cfg_file.write_text("workers: 0\n", encoding="utf-8")
    assert cli.main(["-c", str(cfg_file)], out=io.StringIO()) == 1
    assert "Configuration error" in capsys.readouterr().err
