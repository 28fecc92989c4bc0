#!/usr/bin/env python3
"""
Reskube
=======

Command line interface of `Reskube`, printing the configuration steps of a
driver submission or the Kubernetes resources they produce.

```bash
reskube -v steps --app-name spark-pi --main-class org.apache.spark.examples.SparkPi \
    local:///opt/spark/examples.jar 100
reskube render --conf spark.kubernetes.kerberos.enabled=true app.py
```
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import functools
import os
import pathlib
import uuid
from typing import Any

import msgspec
import rich_click as click
from rich.console import Console
from rich.table import Table
from rich.traceback import install

from . import LIBRARY_NAME, get_logger
from .common.exceptions import ReskubeError
from .common.logging import _LOG_LEVEL_ENV
from .hadoop.config import HADOOP_CONF_DIR_ENV
from .submission import JavaMainAppResource, PythonMainAppResource, SubmissionContext

# install rich traceback
install(show_locals=False, max_frames=5)

click.rich_click.USE_RICH_MARKUP = True

logger = get_logger(__name__)

_PYSPARK_MAIN_CLASS = "org.apache.spark.deploy.PythonRunner"


#
# validation functions
#
def _validate_conf(ctx, param, value):
    conf = {}
    for entry in value or ():
        key, sep, val = entry.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"'{entry}' is not a 'key=value' pair")
        conf[key] = val
    return conf


def _read_properties_file(path: pathlib.Path) -> dict[str, str]:
    properties: dict[str, Any] = msgspec.yaml.decode(path.read_bytes()) or {}
    if not isinstance(properties, dict):
        raise click.BadParameter(f"'{path}' doesn't hold a mapping of properties")
    return {
        str(key): str(value).lower() if isinstance(value, bool) else str(value)
        for key, value in properties.items()
    }


def _submission_options(func):
    """Options describing the submission, shared by all commands."""

    @click.argument("app_resource", type=str)
    @click.argument("app_args", nargs=-1, type=str)
    @click.option("-n", "--namespace", default="default", show_default=True, help="The namespace.")
    @click.option("--app-name", default="spark", show_default=True, help="The application name.")
    @click.option(
        "--main-class",
        default=None,
        help="The main class of a Java application, ignored for Python applications.",
    )
    @click.option(
        "--py-files",
        default="",
        help="Comma separated list of additional Python files.",
    )
    @click.option(
        "--conf",
        "conf",
        multiple=True,
        callback=_validate_conf,
        metavar="KEY=VALUE",
        help="A Spark property, can be passed multiple times.",
    )
    @click.option(
        "--properties-file",
        type=click.Path(exists=True, dir_okay=False, path_type=pathlib.Path),
        default=None,
        help="YAML file of Spark properties, `--conf` takes precedence.",
    )
    @functools.wraps(func)
    def wrapper(**kwargs):
        return func(_submission_context(**kwargs))

    return wrapper


def _submission_context(  # noqa: PLR0913
    app_resource: str,
    app_args: tuple[str, ...],
    namespace: str,
    app_name: str,
    main_class: str | None,
    py_files: str,
    conf: dict[str, str],
    properties_file: pathlib.Path | None,
) -> SubmissionContext:
    properties = _read_properties_file(properties_file) if properties_file else {}
    properties.update(conf)

    if app_resource.endswith(".py"):
        main_app_resource = PythonMainAppResource(app_resource)
        main_class = _PYSPARK_MAIN_CLASS
    else:
        if not main_class:
            raise click.UsageError("'--main-class' is required for Java applications")
        main_app_resource = JavaMainAppResource(app_resource)

    return SubmissionContext(
        namespace=namespace,
        kubernetes_app_id=f"spark-{uuid.uuid4().hex}",
        app_name=app_name,
        main_class=main_class,
        main_app_resource=main_app_resource,
        app_args=tuple(app_args),
        additional_python_files=tuple(f for f in py_files.split(",") if f),
        conf=properties,
    )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (can be passed multiple times)",
)
@click.option(
    "-c",
    "--hadoop-conf",
    type=click.Path(exists=True, file_okay=False, resolve_path=True, path_type=pathlib.Path),
    default=None,
    help=(
        "The path to the Hadoop configuration directory shipped to the driver. If "
        "not provided, the `HADOOP_CONF_DIR` environment variable is used."
    ),
)
@click.version_option(prog_name="reskube")
def cli(verbose: int, hadoop_conf: pathlib.Path | None):
    """
    Reskube builds the Kubernetes resources of a Spark driver: the driver pod,
    and the config maps and secrets it depends on, including Hadoop delegation
    tokens for Kerberized clusters.
    """
    if verbose > 0:
        os.environ[_LOG_LEVEL_ENV] = "INFO" if verbose == 1 else "DEBUG"
        get_logger(LIBRARY_NAME, log_level=os.environ[_LOG_LEVEL_ENV])

    if hadoop_conf:
        os.environ[HADOOP_CONF_DIR_ENV] = f"{hadoop_conf}"


@cli.command(name="steps", help="List the configuration steps of a submission")
@_submission_options
def steps(context: SubmissionContext):
    from .orchestrator import DriverConfigurationStepsOrchestrator

    try:
        _steps = DriverConfigurationStepsOrchestrator(context).get_all_configuration_steps()
    except ReskubeError as e:
        raise click.ClickException(str(e)) from e

    table = Table(
        show_header=True,
        header_style="bold deep_sky_blue1",
        box=None,
        title=f"Configuration steps of '{context.app_name}'",
        title_justify="left",
    )
    table.add_column("#", style="dim")
    table.add_column("Step", overflow="fold")
    for i, step in enumerate(_steps, start=1):
        table.add_row(str(i), repr(step))
    Console().print(table)


@cli.command(name="render", help="Render the Kubernetes resources of a submission as YAML")
@_submission_options
def render(context: SubmissionContext):
    from .client import build_driver_spec, render_resources

    try:
        spec = build_driver_spec(context)
    except ReskubeError as e:
        raise click.ClickException(str(e)) from e
    click.echo(render_resources(spec), nl=False)


if __name__ == "__main__":
    cli()
