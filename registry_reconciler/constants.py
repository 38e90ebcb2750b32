# Registry Reconciler Constants
# All magic numbers and strings are defined here for maintainability

# HTTP Status Codes
HTTP_OK = 200
HTTP_NO_CONTENT = 204
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409

# HTTP Headers
AUTHORIZATION_HEADER = "Authorization"
CONTENT_TYPE_HEADER = "Content-Type"
CONTENT_TYPE_JSON = "application/json"
BASIC_PREFIX = "Basic "

# HTTP Methods
METHOD_GET = "GET"
METHOD_POST = "POST"
METHOD_PUT = "PUT"
METHOD_DELETE = "DELETE"

# Health body marker, matched case-insensitively as a plain substring
HEALTH_UP_MARKER = '"status":"up"'

# Eureka registration payload
INSTANCE_STATUS_UP = "UP"
DATA_CENTER_INFO_CLASS = "com.netflix.appinfo.InstanceInfo$DefaultDataCenterInfo"
DATA_CENTER_INFO_NAME = "MyOwn"
HEARTBEAT_STATUS_QUERY = "/status?value=UP"

# The server health endpoint lives on the server root, not under this segment
EUREKA_PATH_SEGMENT = "/eureka"

# Default Values
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10
DEFAULT_HEARTBEAT_CRON = "0 */5 * * * *"
DEFAULT_EUREKA_SERVER_URL = "http://localhost:8083/eureka"
DEFAULT_APP_NAME = "eureka-server"
DEFAULT_INSTANCE_HEALTH_CHECK_PATH = "/actuator/health"
DEFAULT_SERVER_HEALTH_CHECK_PATH = "/actuator/health"
DEFAULT_EUREKA_APPS_PATH = "/v2/apps/"
DEFAULT_USERNAME = "user"
DEFAULT_PASSWORD = "password"
# Port used in the instance key when a target URL omits one (http://host is keyed host:80)
DEFAULT_SCHEME_PORTS = {"http": 80, "https": 443}

# Outcome reasons
REASON_NO_AVAILABLE_SERVER = "no_available_server"
REASON_ALL_SERVERS_FAILED = "all_servers_failed"
REASON_MALFORMED_INSTANCE_TARGET = "malformed_instance_target"
REASON_UNEXPECTED_ERROR = "unexpected_error"

# Error Messages
ERROR_NO_CYCLE_YET = "No reconciliation cycle has completed yet"
ERROR_CYCLE_IN_FLIGHT = "A reconciliation cycle is already running"

# Log Messages
LOG_CYCLE_STARTED = "Reconciliation cycle {} started for {} instance(s)"
LOG_CYCLE_FINISHED = (
    "Reconciliation cycle {} finished: {} succeeded, {} skipped, {} failed"
)
LOG_CYCLE_SKIPPED = "Previous reconciliation cycle still running, skipping this tick"
LOG_SCHEDULER_STARTED = "Reconciliation scheduler started with cron '{}'"
LOG_SCHEDULER_STOPPED = "Reconciliation scheduler stopped"
LOG_SERVER_DOWN = "Server {} is down. Searching next server."
LOG_NO_AVAILABLE_SERVER = "No available Eureka servers found for instance {}"
LOG_INSTANCE_HEARTBEAT = "Instance {} is up and heartbeat sent."
LOG_INSTANCE_REGISTERED = "Instance {} is registered."
LOG_INSTANCE_DEREGISTERED = "Instance {} is down and deregistered."

# Redaction placeholder for the config endpoint
REDACTED = "******"
