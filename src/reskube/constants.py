#!/usr/bin/env python3
"""
constants.py
============

Names, labels, environment variables and mount paths of the driver pod.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

# labels
SPARK_APP_ID_LABEL = "spark-app-id"
SPARK_ROLE_LABEL = "spark-role"
SPARK_POD_DRIVER_ROLE = "driver"

# driver container
DRIVER_CONTAINER_NAME = "spark-kubernetes-driver"
DEFAULT_DRIVER_IMAGE = "spark-driver:latest"
ENV_DRIVER_MEMORY = "SPARK_DRIVER_MEMORY"
ENV_DRIVER_MAIN_CLASS = "SPARK_DRIVER_CLASS"
ENV_DRIVER_ARGS = "SPARK_DRIVER_ARGS"
ENV_MOUNTED_CLASSPATH = "SPARK_MOUNTED_CLASSPATH"
ENV_PYSPARK_PRIMARY = "PYSPARK_PRIMARY"
ENV_PYSPARK_FILES = "PYSPARK_FILES"
ENV_SPARK_USER = "SPARK_USER"
MEMORY_OVERHEAD_FACTOR = 0.10
MEMORY_OVERHEAD_MIN_MIB = 384
NO_RESOURCE = "spark-internal"

# kubernetes API credentials
DRIVER_CREDENTIALS_SECRET_VOLUME_NAME = "kubernetes-credentials"
DRIVER_CREDENTIALS_SECRETS_BASE_DIR = "/mnt/secrets/spark-kubernetes-credentials"
DRIVER_CREDENTIALS_CA_CERT_SECRET_NAME = "ca-cert"
DRIVER_CREDENTIALS_CLIENT_KEY_SECRET_NAME = "client-key"
DRIVER_CREDENTIALS_CLIENT_CERT_SECRET_NAME = "client-cert"
DRIVER_CREDENTIALS_OAUTH_TOKEN_SECRET_NAME = "oauth-token"
REDACTED_OAUTH_TOKEN = "<present_but_redacted>"

# init-container
INIT_CONTAINER_NAME = "spark-init"
DEFAULT_INIT_CONTAINER_IMAGE = "spark-init:latest"
INIT_CONTAINER_CONFIG_MAP_KEY = "download-submitted-files"
INIT_CONTAINER_PROPERTIES_FILE_DIR = "/etc/spark-init"
INIT_CONTAINER_PROPERTIES_FILE_NAME = "spark-init.properties"
INIT_CONTAINER_PROPERTIES_FILE_VOLUME = "spark-init-properties"
INIT_CONTAINER_DOWNLOAD_JARS_VOLUME_NAME = "download-jars-volume"
INIT_CONTAINER_DOWNLOAD_FILES_VOLUME_NAME = "download-files-volume"

# hadoop configuration
HADOOP_CONF_DIR_PATH = "/etc/hadoop/conf"
ENV_HADOOP_CONF_DIR = "HADOOP_CONF_DIR"
HADOOP_FILE_VOLUME = "hadoop-properties"

# kerberos
HADOOP_KERBEROS_SECRET_SUFFIX = "delegation-tokens"
HADOOP_KERBEROS_SECRET_VOLUME_NAME = "hadoop-secret"
SPARK_APP_HADOOP_CREDENTIALS_BASE_DIR = "/mnt/secrets/hadoop-credentials"
ENV_HADOOP_TOKEN_FILE_LOCATION = "HADOOP_TOKEN_FILE_LOCATION"
KERBEROS_SECRET_LABEL_PREFIX = "hadoop-tokens"
KERBEROS_REFRESH_LABEL_KEY = "refresh-hadoop-tokens"
KERBEROS_REFRESH_LABEL_VALUE = "yes"
