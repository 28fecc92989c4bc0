"""Tests for the reskube command line interface."""

import pytest
from click.testing import CliRunner

from reskube.__main__ import cli


@pytest.fixture(autouse=True)
def _no_hadoop_conf_dir(monkeypatch):
    monkeypatch.delenv("HADOOP_CONF_DIR", raising=False)


@pytest.fixture
def runner():
    return CliRunner()


class TestStepsCommand:
    """Tests for `reskube steps`."""

    def test_lists_steps(self, runner):
        result = runner.invoke(
            cli, ["steps", "--main-class", "org.example.Main", "local:///opt/app.jar"]
        )
        assert result.exit_code == 0, result.output
        assert "BaseDriverConfigurationStep()" in result.output
        assert "DependencyResolutionStep()" in result.output
        assert "InitContainerBootstrapStep" not in result.output

    def test_java_application_needs_main_class(self, runner):
        result = runner.invoke(cli, ["steps", "local:///opt/app.jar"])
        assert result.exit_code != 0
        assert "--main-class" in result.output

    def test_invalid_conf(self, runner):
        result = runner.invoke(cli, ["steps", "--conf", "nonsense", "main.py"])
        assert result.exit_code != 0
        assert "key=value" in result.output

    def test_reserved_label(self, runner):
        result = runner.invoke(
            cli,
            ["steps", "--conf", "spark.kubernetes.driver.label.spark-app-id=x", "main.py"],
        )
        assert result.exit_code == 1
        assert "reserved" in result.output


class TestRenderCommand:
    """Tests for `reskube render`."""

    def test_render_python_application(self, runner, tmp_path):
        properties = tmp_path / "spark.yaml"
        properties.write_text(
            "spark.driver.memory: 2g\nspark.kubernetes.driverEnv.DEBUG: true\n"
        )
        result = runner.invoke(
            cli,
            [
                "render",
                "--app-name",
                "etl",
                "--properties-file",
                str(properties),
                "--conf",
                "spark.driver.memory=4g",
                "--py-files",
                "local:///opt/app/util.py",
                "local:///opt/app/main.py",
                "--",
                "--date",
                "2024-01-01",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "kind: Pod" in result.output
        assert "value: 4g" in result.output
        assert "name: PYSPARK_PRIMARY" in result.output
        assert "value: /opt/app/main.py" in result.output
        assert "value: 'true'" in result.output
        assert "--date 2024-01-01" in result.output
