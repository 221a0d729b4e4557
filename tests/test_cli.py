import json
import os
import shutil
from pathlib import Path

import pytest
from click.testing import CliRunner
from ruamel.yaml import YAML

from toscaconv import util
from toscaconv.__main__ import cli

EXAMPLES = Path(__file__).parent / "examples"
FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def project(tmp_path, monkeypatch):
    shutil.copytree(EXAMPLES, tmp_path / "project")
    monkeypatch.chdir(tmp_path / "project")
    monkeypatch.delenv("TOSCACONV_CONFIG", raising=False)
    monkeypatch.delenv("TOSCACONV_CATALOG", raising=False)
    return tmp_path / "project"


class TestConvert:
    def test_convert_yaml(self, project):
        runner = CliRunner()
        result = runner.invoke(cli, ["--quiet", "convert"], catch_exceptions=False)
        assert result.exit_code == 0, result.output

        doc = YAML(typ="safe").load(result.output)
        services = {s["name"]: s for s in doc["services"]}
        assert set(services) == {"Foo Application", "web", "db"}
        app = services["Foo Application"]
        assert app["type"] == "org.apache.brooklyn.entity.software.base.VanillaSoftwareProcess"
        assert app["brooklyn.config"]["install.command"] == "apt-get install foo\n"
        assert app["brooklyn.config"]["port"] == "8080"
        # catalog.yaml next to the template is used by default
        assert services["db"]["type"] == "org.apache.brooklyn.entity.database.mysql.MySqlNode"

    def test_convert_json_single_node(self, project):
        result = CliRunner().invoke(
            cli,
            ["--quiet", "convert", "service-template.yaml", "--node", "web", "--format", "json"],
        )
        assert result.exit_code == 0, result.output
        doc = json.loads(result.output)
        assert len(doc["services"]) == 1
        assert doc["services"][0]["brooklyn.config"]["tosca.node.type"] == "brooklyn.webserver:1.0"

    def test_unknown_node(self, project):
        result = CliRunner().invoke(cli, ["--quiet", "convert", "--node", "nope"])
        assert result.exit_code == 2
        assert "nope" in result.output

    def test_unsupported_lifecycle(self, project):
        Path("bad-template.yaml").write_text(
            "topology_template:\n"
            "  node_templates:\n"
            "    web:\n"
            "      type: brooklyn.webserver:1.0\n"
            "      interfaces:\n"
            "        standard:\n"
            "          create: scripts/install.sh\n"
        )
        result = CliRunner().invoke(cli, ["--quiet", "convert", "bad-template.yaml"])
        assert result.exit_code == 1
        assert "does not support the interface operations" in result.output

    def test_settings_file(self, project, monkeypatch):
        monkeypatch.syspath_prepend(str(FIXTURES))
        os.remove("catalog.yaml")
        Path("toscaconv.yaml").write_text(
            "base_dir: scripts\n"
            "noop_command: ':'\n"
            "resource_package: samplebundle\n"
            "catalog_pattern: 'classpath*:catalog/**/*.yaml'\n"
        )
        Path("template.yaml").write_text(
            "topology_template:\n"
            "  node_templates:\n"
            "    app:\n"
            "      type: my.Foo\n"
            "      interfaces:\n"
            "        standard:\n"
            "          create: install.sh\n"
            "          start: classpath:scripts/hello.sh\n"
            "    db:\n"
            "      type: bundle.database\n"
        )
        result = CliRunner().invoke(
            cli, ["--quiet", "convert", "template.yaml", "--format", "json"]
        )
        assert result.exit_code == 0, result.output
        app, db = json.loads(result.output)["services"]
        config = app["brooklyn.config"]
        assert config["install.command"] == "apt-get install foo\n"
        assert config["launch.command"] == "echo hello\n"
        assert config["stop.command"] == ":"
        assert db["type"] == "org.apache.brooklyn.entity.database.postgresql.PostgreSqlNode"

    def test_settings_class_packages(self, project, monkeypatch):
        monkeypatch.setattr(util, "_ClassRegistry", {})
        Path("template.yaml").write_text(
            "topology_template:\n"
            "  node_templates:\n"
            "    ordered:\n"
            "      type: collections.OrderedDict\n"
            "    counter:\n"
            "      type: collections.abc.Sized\n"
            "    other:\n"
            "      type: fractions.Fraction\n"
        )
        Path("toscaconv.yaml").write_text("class_packages: [collections]\n")
        result = CliRunner().invoke(
            cli, ["--quiet", "convert", "template.yaml", "--format", "json"]
        )
        assert result.exit_code == 0, result.output
        types = [s["type"] for s in json.loads(result.output)["services"]]
        assert types == [
            "collections.OrderedDict",
            "collections.abc.Sized",
            "org.apache.brooklyn.entity.software.base.VanillaSoftwareProcess",
        ]

    def test_invalid_settings(self, project):
        Path("toscaconv.yaml").write_text("unknown_key: 1\n")
        result = CliRunner().invoke(cli, ["--quiet", "convert"])
        assert result.exit_code == 1
        assert "JSON Schema validation failed" in result.output


def test_resources(monkeypatch):
    monkeypatch.syspath_prepend(str(FIXTURES))
    result = CliRunner().invoke(
        cli, ["--quiet", "resources", "classpath*:scripts/*.sh", "--package", "samplebundle"]
    )
    assert result.exit_code == 0, result.output
    assert result.output.strip().endswith("hello.sh")


def test_version():
    result = CliRunner().invoke(cli, ["version"])
    assert result.exit_code == 0
    assert result.output.startswith("toscaconv version ")
