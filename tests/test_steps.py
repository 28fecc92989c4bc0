"""Tests for the individual driver configuration steps."""

import base64

import pytest

from reskube import config, constants
from reskube.common.exceptions import ConfigurationValidationError, ReskubeError
from reskube.spec import KubernetesDriverSpec
from reskube.steps import (
    BaseDriverConfigurationStep,
    DependencyResolutionStep,
    DriverKubernetesCredentialsStep,
    InitContainerBootstrapStep,
    PythonStep,
)

PREFIX = "spark-pi-1"
LABELS = {"spark-app-id": "spark-1234", "spark-role": "driver"}


def _env(container):
    return {var.name: var.value for var in container.env or []}


def _base_step(conf=None, app_args=("100",)):
    return BaseDriverConfigurationStep(
        "spark-1234",
        PREFIX,
        LABELS,
        "Always",
        "spark-pi",
        "org.apache.spark.examples.SparkPi",
        app_args,
        conf or {},
    )


# ---------------------------------------------------------------------------
# BaseDriverConfigurationStep
# ---------------------------------------------------------------------------


class TestBaseDriverConfigurationStep:
    """Tests for the base driver pod and container."""

    def test_pod(self):
        conf = {"spark.kubernetes.driver.annotation.owner": "team-data"}
        spec = _base_step(conf).apply(KubernetesDriverSpec.initial(conf))
        pod = spec.driver_pod
        assert pod.metadata.name == f"{PREFIX}-driver"
        assert pod.metadata.labels == LABELS
        assert pod.metadata.annotations == {"owner": "team-data"}
        assert pod.spec.restart_policy == "Never"

    def test_no_annotations(self):
        spec = _base_step().apply(KubernetesDriverSpec.initial({}))
        assert spec.driver_pod.metadata.annotations is None

    def test_container(self):
        conf = {
            config.DRIVER_DOCKER_IMAGE: "spark:3.5",
            "spark.kubernetes.driverEnv.TZ": "UTC",
        }
        spec = _base_step(conf, app_args=("10", "20")).apply(KubernetesDriverSpec.initial(conf))
        container = spec.driver_container
        assert container.name == "spark-kubernetes-driver"
        assert container.image == "spark:3.5"
        assert container.image_pull_policy == "Always"
        assert _env(container) == {
            "TZ": "UTC",
            "SPARK_DRIVER_MEMORY": "1g",
            "SPARK_DRIVER_CLASS": "org.apache.spark.examples.SparkPi",
            "SPARK_DRIVER_ARGS": "10 20",
        }

    def test_default_resources(self):
        spec = _base_step().apply(KubernetesDriverSpec.initial({}))
        resources = spec.driver_container.resources
        assert resources.requests == {"cpu": "1", "memory": "1408Mi"}
        assert resources.limits == {"memory": "1408Mi"}

    def test_resources(self):
        conf = {
            config.DRIVER_CORES: "2",
            config.DRIVER_LIMIT_CORES: "3",
            config.DRIVER_MEMORY: "8g",
        }
        spec = _base_step(conf).apply(KubernetesDriverSpec.initial(conf))
        resources = spec.driver_container.resources
        # 10% overhead of 8192 MiB
        assert resources.requests == {"cpu": "2", "memory": "9011Mi"}
        assert resources.limits == {"memory": "9011Mi", "cpu": "3"}

    def test_explicit_memory_overhead(self):
        conf = {config.DRIVER_MEMORY: "512m", config.DRIVER_MEMORY_OVERHEAD: "1g"}
        spec = _base_step(conf).apply(KubernetesDriverSpec.initial(conf))
        assert spec.driver_container.resources.requests["memory"] == "1536Mi"

    def test_invalid_memory(self):
        with pytest.raises(ConfigurationValidationError, match="memory"):
            _base_step({config.DRIVER_MEMORY: "lots"})

    def test_driver_conf(self):
        spec = _base_step().apply(KubernetesDriverSpec.initial({"spark.app.name": "custom"}))
        assert spec.driver_spark_conf == {
            "spark.app.name": "custom",
            "spark.app.id": "spark-1234",
            "spark.kubernetes.driver.pod.name": f"{PREFIX}-driver",
            "spark.kubernetes.executor.podNamePrefix": PREFIX,
        }

    def test_input_is_unchanged(self):
        initial = KubernetesDriverSpec.initial({})
        _base_step().apply(initial)
        assert initial.driver_pod.metadata.name is None
        assert initial.driver_container.name == ""
        assert initial.driver_spark_conf == {}


# ---------------------------------------------------------------------------
# DriverKubernetesCredentialsStep
# ---------------------------------------------------------------------------


class TestDriverKubernetesCredentialsStep:
    """Tests for shipping API server credentials to the driver."""

    def test_nothing_to_mount(self):
        initial = KubernetesDriverSpec.initial({})
        spec = DriverKubernetesCredentialsStep({}, PREFIX).apply(initial)
        assert spec.other_kubernetes_resources == ()
        assert spec.driver_pod.spec.volumes is None

    def test_service_account(self):
        conf = {config.DRIVER_SERVICE_ACCOUNT_NAME: "spark"}
        spec = DriverKubernetesCredentialsStep(conf, PREFIX).apply(
            KubernetesDriverSpec.initial(conf)
        )
        assert spec.driver_pod.spec.service_account_name == "spark"

    def test_credentials_secret(self, tmp_path):
        ca_cert = tmp_path / "ca.crt"
        ca_cert.write_bytes(b"CERT")
        conf = {
            "spark.kubernetes.authenticate.driver.caCertFile": str(ca_cert),
            "spark.kubernetes.authenticate.driver.oauthToken": "s3cr3t",
        }
        spec = DriverKubernetesCredentialsStep(conf, PREFIX).apply(
            KubernetesDriverSpec.initial(conf)
        )

        (secret,) = spec.other_kubernetes_resources
        assert secret.metadata.name == f"{PREFIX}-kubernetes-credentials"
        assert base64.b64decode(secret.data["ca-cert"]) == b"CERT"
        assert base64.b64decode(secret.data["oauth-token"]) == b"s3cr3t"

        assert spec.driver_pod.spec.volumes[0].secret.secret_name == secret.metadata.name
        mount = spec.driver_container.volume_mounts[0]
        assert mount.mount_path == "/mnt/secrets/spark-kubernetes-credentials"

        driver_conf = spec.driver_spark_conf
        assert driver_conf["spark.kubernetes.authenticate.driver.mounted.caCertFile"] == (
            "/mnt/secrets/spark-kubernetes-credentials/ca-cert"
        )
        assert driver_conf["spark.kubernetes.authenticate.driver.mounted.oauthTokenFile"] == (
            "/mnt/secrets/spark-kubernetes-credentials/oauth-token"
        )
        assert driver_conf["spark.kubernetes.authenticate.driver.oauthToken"] == (
            constants.REDACTED_OAUTH_TOKEN
        )

    def test_mounted_and_submitted_file(self):
        conf = {
            "spark.kubernetes.authenticate.driver.clientKeyFile": "/a/key.pem",
            "spark.kubernetes.authenticate.driver.mounted.clientKeyFile": "/b/key.pem",
        }
        with pytest.raises(ConfigurationValidationError, match="clientKeyFile"):
            DriverKubernetesCredentialsStep(conf, PREFIX)

    def test_missing_file(self, tmp_path):
        conf = {"spark.kubernetes.authenticate.driver.clientCertFile": str(tmp_path / "nope")}
        step = DriverKubernetesCredentialsStep(conf, PREFIX)
        with pytest.raises(FileNotFoundError) as excinfo:
            step.apply(KubernetesDriverSpec.initial(conf))
        assert isinstance(excinfo.value, ReskubeError)


# ---------------------------------------------------------------------------
# DependencyResolutionStep
# ---------------------------------------------------------------------------


class TestDependencyResolutionStep:
    """Tests for resolving dependencies to their paths in the driver."""

    def test_resolution(self):
        step = DependencyResolutionStep(
            ["local:///opt/lib/a.jar", "hdfs://nn:8020/apps/b.jar"],
            ["https://example.com/data/c.txt", "/tmp/d.txt"],
            "/var/jars",
            "/var/files",
        )
        spec = step.apply(KubernetesDriverSpec.initial({}))
        assert spec.driver_spark_conf[config.SPARK_JARS] == "/opt/lib/a.jar,/var/jars/b.jar"
        assert spec.driver_spark_conf[config.SPARK_FILES] == "/var/files/c.txt,/var/files/d.txt"
        assert _env(spec.driver_container) == {
            "SPARK_MOUNTED_CLASSPATH": "/opt/lib/a.jar:/var/jars/b.jar"
        }

    def test_no_dependencies(self):
        initial = KubernetesDriverSpec.initial({"spark.master": "k8s://"})
        spec = DependencyResolutionStep([], [], "/var/jars", "/var/files").apply(initial)
        assert spec.driver_spark_conf == {"spark.master": "k8s://"}
        assert spec.driver_container.env is None


# ---------------------------------------------------------------------------
# InitContainerBootstrapStep
# ---------------------------------------------------------------------------


class TestInitContainerBootstrapStep:
    """Tests for downloading remote dependencies in an init-container."""

    @pytest.fixture
    def step(self):
        return InitContainerBootstrapStep(
            ["local:///opt/lib/a.jar", "hdfs://nn:8020/apps/b.jar"],
            ["s3a://bucket/c.txt"],
            "/var/jars",
            "/var/files",
            "IfNotPresent",
            PREFIX,
            {config.INIT_CONTAINER_IMAGE: "spark-init:3.5"},
        )

    def test_properties(self, step):
        assert step.properties == {
            config.JARS_DOWNLOAD_LOCATION: "/var/jars",
            config.FILES_DOWNLOAD_LOCATION: "/var/files",
            config.INIT_CONTAINER_REMOTE_JARS: "hdfs://nn:8020/apps/b.jar",
            config.INIT_CONTAINER_REMOTE_FILES: "s3a://bucket/c.txt",
        }

    def test_config_map(self, step):
        spec = step.apply(KubernetesDriverSpec.initial({}))
        (config_map,) = spec.other_kubernetes_resources
        assert config_map.metadata.name == f"{PREFIX}-init-config"
        properties = config_map.data["download-submitted-files"]
        assert "spark.kubernetes.initcontainer.remoteJars=hdfs://nn:8020/apps/b.jar\n" in properties
        assert spec.driver_spark_conf[config.INIT_CONTAINER_CONFIG_MAP] == f"{PREFIX}-init-config"
        assert spec.driver_spark_conf[config.INIT_CONTAINER_CONFIG_MAP_KEY_CONF] == (
            "download-submitted-files"
        )

    def test_init_container(self, step):
        spec = step.apply(KubernetesDriverSpec.initial({}))
        (init_container,) = spec.driver_pod.spec.init_containers
        assert init_container.name == "spark-init"
        assert init_container.image == "spark-init:3.5"
        assert init_container.args == ["/etc/spark-init/spark-init.properties"]
        assert [m.mount_path for m in init_container.volume_mounts] == [
            "/etc/spark-init",
            "/var/jars",
            "/var/files",
        ]
        volumes = {volume.name: volume for volume in spec.driver_pod.spec.volumes}
        assert volumes["download-jars-volume"].empty_dir is not None
        assert volumes["download-files-volume"].empty_dir is not None
        assert volumes["spark-init-properties"].config_map.name == f"{PREFIX}-init-config"

    def test_driver_container_shares_downloads(self, step):
        spec = step.apply(KubernetesDriverSpec.initial({}))
        assert [m.mount_path for m in spec.driver_container.volume_mounts] == [
            "/var/jars",
            "/var/files",
        ]


# ---------------------------------------------------------------------------
# PythonStep
# ---------------------------------------------------------------------------


class TestPythonStep:
    """Tests for the PySpark environment of the driver."""

    def test_primary_and_files(self):
        step = PythonStep(
            "hdfs://nn:8020/apps/main.py",
            ["local:///opt/lib/util.py", "s3a://bucket/extra.py"],
            "/var/files",
        )
        spec = step.apply(KubernetesDriverSpec.initial({}))
        assert _env(spec.driver_container) == {
            "PYSPARK_PRIMARY": "/var/files/main.py",
            "PYSPARK_FILES": "/opt/lib/util.py,/var/files/extra.py",
        }

    def test_no_extra_files(self):
        spec = PythonStep("local:///opt/app/main.py", [], "/var/files").apply(
            KubernetesDriverSpec.initial({})
        )
        assert _env(spec.driver_container) == {"PYSPARK_PRIMARY": "/opt/app/main.py"}
