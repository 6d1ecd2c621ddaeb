"""Tests for the agent config and one-shot polling."""

import json

import pytest

from metrics_agent.agent import Agent
from metrics_agent.config import AgentConfig, load_config
from metrics_agent.errors import ConfigError, ConfigErrorKind
from metrics_agent.sources import PrometheusCollector, RestCollector, SourceKind

from .conftest import FIXTURES, NGINX_PAGE, PROMETHEUS_PAGE, make_client


@pytest.fixture
def agent_yaml(tmp_path):
    """Agent config with a REST collector file and an inline Prometheus collector."""
    (tmp_path / "nginx.json").write_bytes((FIXTURES / "sample_config.json").read_bytes())
    path = tmp_path / "metrics-agent.yaml"
    path.write_text(
        "collectors:\n"
        "  - name: nginx\n"
        "    kind: REST\n"
        "    config: nginx.json\n"
        "  - name: node\n"
        "    kind: prometheus\n"
        "    inline:\n"
        "      source: http://localhost:9100/metrics\n"
        "      metrics_config:\n"
        "        - name: go_goroutines\n"
        "  - name: disabled\n"
        "    kind: REST\n"
        "    enabled: false\n"
        "timeout: 5\n"
        "log_level: DEBUG\n"
    )
    return path


class TestAgentConfig:
    """Test agent config loading."""

    def test_from_file(self, agent_yaml, monkeypatch):
        monkeypatch.delenv("METRICS_AGENT_LOG_LEVEL", raising=False)
        monkeypatch.delenv("METRICS_AGENT_TIMEOUT", raising=False)
        config = AgentConfig.from_file(agent_yaml)

        assert [c.name for c in config.collectors] == ["nginx", "node", "disabled"]
        assert config.collectors[0].kind == SourceKind.REST
        assert config.collectors[0].config_path == agent_yaml.parent / "nginx.json"
        assert config.collectors[1].kind == SourceKind.PROMETHEUS
        assert config.collectors[2].enabled is False
        assert config.timeout == 5
        assert config.log_level == "DEBUG"

    def test_entry_load(self, agent_yaml):
        config = AgentConfig.from_file(agent_yaml)
        assert config.collectors[0].load().endpoint == "http://localhost:8000/nginx_status"
        assert config.collectors[1].load().metrics[0].name == "go_goroutines"

    def test_entry_without_source(self, agent_yaml):
        config = AgentConfig.from_file(agent_yaml)
        with pytest.raises(ConfigError):
            config.collectors[2].load()

    def test_unsupported_kind(self):
        with pytest.raises(ConfigError) as exc:
            AgentConfig.from_dict({"collectors": [{"name": "x", "kind": "statsd"}]})
        assert exc.value.kind == ConfigErrorKind.UNSUPPORTED_SOURCE_KIND

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("collectors: [unclosed\n")
        with pytest.raises(ConfigError):
            AgentConfig.from_file(path)

    def test_env_overrides(self, agent_yaml, monkeypatch):
        monkeypatch.setenv("METRICS_AGENT_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("METRICS_AGENT_TIMEOUT", "2.5")
        config = AgentConfig.from_file(agent_yaml)
        assert config.log_level == "WARNING"
        assert config.timeout == 2.5

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("METRICS_AGENT_SOURCE", str(FIXTURES / "sample_config_prometheus.json"))
        monkeypatch.setenv("METRICS_AGENT_SOURCE_KIND", "Prometheus")
        config = AgentConfig.from_env()

        assert len(config.collectors) == 1
        assert config.collectors[0].name == "sample_config_prometheus"
        assert config.collectors[0].kind == SourceKind.PROMETHEUS

    def test_duplicate_names_rejected(self):
        inline = json.loads((FIXTURES / "sample_config_prometheus.json").read_text())
        with pytest.raises(ConfigError) as exc:
            AgentConfig.from_dict({"collectors": [
                {"kind": "Prometheus", "inline": inline},
                {"kind": "Prometheus", "inline": inline},
            ]})
        assert exc.value.kind == ConfigErrorKind.MALFORMED
        assert "Prometheus" in str(exc.value)

    def test_duplicate_explicit_names_rejected(self):
        path = str(FIXTURES / "sample_config.json")
        with pytest.raises(ConfigError):
            AgentConfig.from_dict({"collectors": [
                {"name": "nginx", "kind": "REST", "config": path},
                {"name": "nginx", "kind": "generic", "config": path, "enabled": False},
            ]})

    @pytest.mark.parametrize("settings", [
        {"timeout": "abc"},
        {"timeout": 0},
        {"timeout": True},
        {"max_workers": "2"},
        {"max_workers": 0},
        {"max_workers": 1.5},
        {"log_level": "LOUD"},
        {"log_level": 10},
    ])
    def test_invalid_settings_rejected(self, settings, monkeypatch):
        monkeypatch.delenv("METRICS_AGENT_LOG_LEVEL", raising=False)
        monkeypatch.delenv("METRICS_AGENT_TIMEOUT", raising=False)
        with pytest.raises(ConfigError) as exc:
            AgentConfig.from_dict({"collectors": [], **settings})
        assert exc.value.kind == ConfigErrorKind.MALFORMED

    def test_settings_coerced(self, monkeypatch):
        monkeypatch.delenv("METRICS_AGENT_LOG_LEVEL", raising=False)
        monkeypatch.delenv("METRICS_AGENT_TIMEOUT", raising=False)
        config = AgentConfig.from_dict({"timeout": "2.5", "max_workers": 4, "log_level": "debug"})
        assert config.timeout == 2.5
        assert config.max_workers == 4
        assert config.log_level == "DEBUG"

    def test_invalid_env_log_level(self, monkeypatch):
        monkeypatch.setenv("METRICS_AGENT_LOG_LEVEL", "chatty")
        with pytest.raises(ConfigError):
            AgentConfig.from_dict({})

    def test_load_config_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "nope.yaml"))


class TestAgent:
    """Test building and polling collectors."""

    def _agent(self, collectors, body, **kwargs) -> Agent:
        config = AgentConfig.from_dict({"collectors": collectors, **kwargs})
        agent = Agent(config, client=make_client(body))
        agent.setup()
        return agent

    def test_setup_builds_enabled_collectors(self, agent_yaml):
        agent = Agent(AgentConfig.from_file(agent_yaml), client=make_client(NGINX_PAGE))
        agent.setup()

        assert [c.name for c in agent.collectors] == ["nginx", "node"]
        assert isinstance(agent.collectors[0], RestCollector)
        assert isinstance(agent.collectors[1], PrometheusCollector)
        assert list(agent.accumulators) == ["node"]
        assert agent.failed == {}

    def test_setup_skips_invalid_collectors(self):
        agent = self._agent(
            [
                {"name": "good", "kind": "REST", "config": str(FIXTURES / "sample_config.json")},
                {"name": "empty", "kind": "REST", "inline": {"source": "http://x", "metrics_config": []}},
            ],
            NGINX_PAGE,
        )

        assert [c.name for c in agent.collectors] == ["good"]
        assert agent.failed["empty"].kind == ConfigErrorKind.EMPTY_METRIC_LIST

    def test_collect_once(self):
        agent = self._agent(
            [{"name": "nginx", "kind": "REST", "config": str(FIXTURES / "sample_config.json")}],
            NGINX_PAGE,
        )
        results = agent.collect_once()

        assert len(results) == 1
        assert results[0].success
        assert [s.value for s in results[0].samples] == [3, 0, 1, 2]

    def test_collect_once_parallel(self):
        collectors = [
            {"name": f"nginx-{i}", "kind": "REST", "config": str(FIXTURES / "sample_config.json")}
            for i in range(3)
        ]
        agent = self._agent(collectors, NGINX_PAGE, max_workers=3)
        results = agent.collect_once()

        assert [r.source for r in results] == ["nginx-0", "nginx-1", "nginx-2"]
        assert all(r.success for r in results)

    def test_prometheus_history_accumulates(self):
        inline = json.loads((FIXTURES / "sample_config_prometheus.json").read_text())
        agent = self._agent([{"name": "prom", "kind": "Prometheus", "inline": inline}], PROMETHEUS_PAGE)

        agent.collect_once()
        agent.collect_once()

        assert len(agent.accumulators["prom"]["go_goroutines"]) == 2

    def test_prometheus_histories_are_separate(self):
        inline = json.loads((FIXTURES / "sample_config_prometheus.json").read_text())
        agent = self._agent(
            [
                {"name": "prom-a", "kind": "Prometheus", "inline": inline},
                {"name": "prom-b", "kind": "Prometheus", "inline": inline},
            ],
            PROMETHEUS_PAGE,
            max_workers=2,
        )
        results = agent.collect_once()

        assert results[0].samples is not results[1].samples
        assert len(agent.accumulators["prom-a"]["go_goroutines"]) == 1
        assert len(agent.accumulators["prom-b"]["go_goroutines"]) == 1

    def test_discover(self):
        inline = json.loads((FIXTURES / "sample_config_prometheus.json").read_text())
        agent = self._agent([{"name": "prom", "kind": "Prometheus", "inline": inline}], PROMETHEUS_PAGE)

        discovered = agent.discover()
        assert [s.name for s in discovered["prom"]] == [
            "http_requests_total",
            "process_cpu_seconds_total",
            "go_goroutines",
        ]

    def test_health_check(self):
        agent = self._agent(
            [{"name": "nginx", "kind": "REST", "config": str(FIXTURES / "sample_config.json")}],
            NGINX_PAGE,
        )
        assert agent.health_check() == {"collectors": {"nginx": True}, "failed": []}
