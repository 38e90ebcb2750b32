import os

from pydantic import ValidationError

from registry_reconciler.constants import (
    DEFAULT_APP_NAME,
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_EUREKA_APPS_PATH,
    DEFAULT_EUREKA_SERVER_URL,
    DEFAULT_HEARTBEAT_CRON,
    DEFAULT_INSTANCE_HEALTH_CHECK_PATH,
    DEFAULT_PASSWORD,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SERVER_HEALTH_CHECK_PATH,
    DEFAULT_USERNAME,
)
from registry_reconciler.errors import ConfigurationError
from registry_reconciler.types import BasicCredentials, ReconcilerSettings

# Reconciler service configuration
RECONCILER_HOST = os.getenv("RECONCILER_HOST", "0.0.0.0")
RECONCILER_PORT = int(os.getenv("RECONCILER_PORT", "8085"))

# HTTP client configuration
HTTP_CLIENT_CONNECT_TIMEOUT_SECONDS = os.getenv(
    "HTTP_CLIENT_CONNECT_TIMEOUT_SECONDS", str(DEFAULT_CONNECT_TIMEOUT_SECONDS)
)
HTTP_CLIENT_REQUEST_TIMEOUT_SECONDS = os.getenv(
    "HTTP_CLIENT_REQUEST_TIMEOUT_SECONDS", str(DEFAULT_REQUEST_TIMEOUT_SECONDS)
)

# Schedule (Spring-style six-field cron, five-field crontab also accepted)
HEARTBEAT_CRON = os.getenv("HEARTBEAT_CRON", DEFAULT_HEARTBEAT_CRON)

# Registry servers
EUREKA_SERVER_URL = os.getenv("EUREKA_SERVER_URL", DEFAULT_EUREKA_SERVER_URL)
EUREKA_APPS_PATH = os.getenv("EUREKA_APPS_PATH", DEFAULT_EUREKA_APPS_PATH)
EUREKA_SERVER_HEALTH_CHECK_URL = os.getenv(
    "EUREKA_SERVER_HEALTH_CHECK_URL", DEFAULT_SERVER_HEALTH_CHECK_PATH
)

# Monitored instances
SERVICE_INSTANCES = os.getenv("SERVICE_INSTANCES", "")
SERVICE_INSTANCES_APP_NAME = os.getenv("SERVICE_INSTANCES_APP_NAME", DEFAULT_APP_NAME)
SERVICE_INSTANCES_HEALTH_CHECK_URL = os.getenv(
    "SERVICE_INSTANCES_HEALTH_CHECK_URL", DEFAULT_INSTANCE_HEALTH_CHECK_PATH
)

# Credentials (server-facing and instance-facing)
SERVER_AUTHENTICATION_USERNAME = os.getenv(
    "SERVER_AUTHENTICATION_USERNAME", DEFAULT_USERNAME
)
SERVER_AUTHENTICATION_PASSWORD = os.getenv(
    "SERVER_AUTHENTICATION_PASSWORD", DEFAULT_PASSWORD
)
INSTANCE_AUTHENTICATION_USERNAME = os.getenv(
    "INSTANCE_AUTHENTICATION_USERNAME", DEFAULT_USERNAME
)
INSTANCE_AUTHENTICATION_PASSWORD = os.getenv(
    "INSTANCE_AUTHENTICATION_PASSWORD", DEFAULT_PASSWORD
)

# Logging Configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv(
    "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
LOG_FORMAT_TYPE = os.getenv("LOG_FORMAT_TYPE", "structured")  # "structured" or "simple"
LOG_ENABLE_CONSOLE = os.getenv("LOG_ENABLE_CONSOLE", "true").lower() == "true"
LOG_ENABLE_FILE = os.getenv("LOG_ENABLE_FILE", "false").lower() == "true"
LOG_FILE_PATH = os.getenv("LOG_FILE_PATH", "/var/log/registry-reconciler.log")


def load_settings() -> ReconcilerSettings:
    """Build the read-only settings from environment variables"""
    try:
        return ReconcilerSettings(
            connect_timeout_seconds=HTTP_CLIENT_CONNECT_TIMEOUT_SECONDS,
            request_timeout_seconds=HTTP_CLIENT_REQUEST_TIMEOUT_SECONDS,
            heartbeat_cron=HEARTBEAT_CRON,
            server_urls=EUREKA_SERVER_URL,
            instance_urls=SERVICE_INSTANCES,
            app_name=SERVICE_INSTANCES_APP_NAME,
            instance_health_check_path=SERVICE_INSTANCES_HEALTH_CHECK_URL,
            apps_path=EUREKA_APPS_PATH,
            server_health_check_path=EUREKA_SERVER_HEALTH_CHECK_URL,
            server_credentials=BasicCredentials(
                username=SERVER_AUTHENTICATION_USERNAME,
                password=SERVER_AUTHENTICATION_PASSWORD,
            ),
            instance_credentials=BasicCredentials(
                username=INSTANCE_AUTHENTICATION_USERNAME,
                password=INSTANCE_AUTHENTICATION_PASSWORD,
            ),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
