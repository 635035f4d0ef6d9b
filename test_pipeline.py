"""
End-to-end tests for the pipeline driver with a scripted resolver pool.
"""
import asyncio

import pytest

from conftest import ScriptedPool, StaticSource, pool_factory_for
from massResolve.config import ResolveConfig
from massResolve.errors import ConfigError, PoolConstructionError
from massResolve.pipeline.driver import run_pipeline
from massResolve.resolvers.sources import DEFAULT_RESOLVERS


def _run(cfg, pool, source=None, seen=None):
    return asyncio.run(run_pipeline(cfg, pool_factory=pool_factory_for(pool, seen), source=source))


def test_pipeline_outputs_name_address_pairs(domains_file, scripted_pool):
    result = _run(ResolveConfig(input_path=str(domains_file), workers=1), scripted_pool)

    assert result.lines == [
        "example.com,93.184.216.34",
        "multi.example.net,203.0.114.10",
        "multi.example.net,203.0.114.11",
        "internal.example.org,93.184.216.34",
    ]
    assert "internal.example.org,10.0.0.5" not in result.lines
    assert "internal.example.org,127.0.0.1" not in result.lines


def test_input_lowercased_and_blank_lines_skipped(domains_file, scripted_pool):
    result = _run(ResolveConfig(input_path=str(domains_file)), scripted_pool)

    submitted = [call[0] for call in scripted_pool.calls]
    assert submitted.count("example.com") == 2
    assert "Example.COM" not in submitted
    assert "" not in submitted
    assert result.lines.count("example.com,93.184.216.34") == 1
    assert result.stats.jobs == 6
    assert result.stats.failed == 1


def test_only_addresses_output(domains_file, scripted_pool):
    result = _run(ResolveConfig(input_path=str(domains_file), only_addresses=True, workers=1), scripted_pool)
    assert result.lines == ["93.184.216.34", "203.0.114.10", "203.0.114.11"]


def test_worker_count_does_not_change_output_set(domains_file):
    script = {
        "example.com": ["93.184.216.34"],
        "multi.example.net": ["203.0.114.10", "203.0.114.11"],
        "internal.example.org": ["10.0.0.5", "93.184.216.34"],
    }
    one = _run(ResolveConfig(input_path=str(domains_file), workers=1), ScriptedPool(script, jitter=0.01))
    many = _run(ResolveConfig(input_path=str(domains_file), workers=6), ScriptedPool(script, jitter=0.01))

    assert set(one.lines) == set(many.lines)
    assert len(many.lines) == len(set(many.lines))


def test_stats_account_for_every_answer(domains_file, scripted_pool):
    stats = _run(ResolveConfig(input_path=str(domains_file)), scripted_pool).stats

    assert stats.resolved + stats.failed == stats.jobs
    assert stats.answers == 1 + 1 + 3 + 3
    assert stats.rejected == 2
    assert stats.lines <= stats.answers - stats.rejected


def test_default_resolvers_passed_to_pool(domains_file, scripted_pool):
    seen = []
    _run(ResolveConfig(input_path=str(domains_file)), scripted_pool, seen=seen)
    assert seen == [DEFAULT_RESOLVERS]


def test_injected_source_used(domains_file, scripted_pool):
    source = StaticSource(["9.9.9.9:53"])
    seen = []
    _run(ResolveConfig(input_path=str(domains_file)), scripted_pool, source=source, seen=seen)
    assert source.fetched
    assert seen == [["9.9.9.9:53"]]


def test_missing_input_path_is_config_error(scripted_pool):
    with pytest.raises(ConfigError):
        _run(ResolveConfig(), scripted_pool)


def test_unreadable_input_file(tmp_path, scripted_pool):
    with pytest.raises(ConfigError):
        _run(ResolveConfig(input_path=str(tmp_path / "missing.txt")), scripted_pool)
    assert scripted_pool.calls == []


def test_missing_resolver_file_aborts_before_network(domains_file, tmp_path, scripted_pool):
    seen = []
    cfg = ResolveConfig(input_path=str(domains_file), resolver_file=str(tmp_path / "nope.txt"))
    with pytest.raises(ConfigError):
        _run(cfg, scripted_pool, seen=seen)

    assert seen == []
    assert scripted_pool.calls == []


def test_pool_construction_failure_is_fatal(domains_file):
    with pytest.raises(PoolConstructionError):
        _run(ResolveConfig(input_path=str(domains_file)), None)


def test_resolver_file_mode(domains_file, tmp_path, scripted_pool):
    resolvers = tmp_path / "resolvers.txt"
    resolvers.write_text("9.9.9.9:53\n149.112.112.112:53\n", encoding="utf-8")
    seen = []
    _run(ResolveConfig(input_path=str(domains_file), resolver_file=str(resolvers)), scripted_pool, seen=seen)
    assert seen == [["9.9.9.9:53", "149.112.112.112:53"]]


def test_undecodable_input_bytes_do_not_merge_into_other_names(tmp_path):
    path = tmp_path / "domains.txt"
    path.write_bytes(b"exa\xffmple.com\n")
    pool = ScriptedPool({"example.com": ["93.184.216.34"]})

    result = _run(ResolveConfig(input_path=str(path)), pool)

    assert [call[0] for call in pool.calls] == ["exa\ufffdmple.com"]
    assert result.lines == []
    assert result.stats.failed == 1
