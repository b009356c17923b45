"""
Centralised constants for the servectl project.

Every magic string that appears in more than one module should live here.
Container names, ports, paths and env var names are the contract between the
compiled workload and the images that run inside it; renaming any of them is a
breaking change.
"""

from enum import Enum


# ── Predictor runtime ────────────────────────────────────────────────────────

class PredictorType(str, Enum):
    TENSORFLOW = "tensorflow"
    ONNX = "onnx"
    PYTHON = "python"


PREDICTOR_TYPES: tuple[str, ...] = tuple(p.value for p in PredictorType)


class HardwareMode(str, Enum):
    NONE = "none"
    GPU = "gpu"
    INF = "inf"


# ── Container names ──────────────────────────────────────────────────────────

API_CONTAINER_NAME = "api"
TF_SERVING_CONTAINER_NAME = "serve"
NEURON_RTD_CONTAINER_NAME = "neuron-rtd"
REQUEST_MONITOR_CONTAINER_NAME = "request-monitor"
DOWNLOADER_CONTAINER_NAME = "downloader"


# ── Ports ────────────────────────────────────────────────────────────────────

DEFAULT_PORT = 8888
TF_BASE_SERVING_PORT = 9000
TF_SERVING_HOST = "localhost"


# ── Paths ────────────────────────────────────────────────────────────────────

EMPTY_DIR_VOLUME_NAME = "mnt"
EMPTY_DIR_MOUNT_PATH = "/mnt"
SPEC_CACHE_DIR = "/mnt/spec"
PROJECT_DIR = "/mnt/project"
MODEL_DIR = "/mnt/model"

NEURON_SOCK_VOLUME_NAME = "neuron-sock"
NEURON_SOCK_MOUNT_PATH = "/sock"
NEURON_RTD_SOCKET = "/sock/neuron.sock"

TF_SERVING_EMPTY_MODEL_CONFIG = "/etc/tfs/model_config_server.conf"
REQUEST_MONITOR_READINESS_FILE = "/request_monitor_ready.txt"
API_READINESS_FILE = "/mnt/workspace/api_readiness.txt"
API_LIVENESS_FILE = "/mnt/workspace/api_liveness.txt"

# seconds; the heartbeat is written every 5s, plus a 2s buffer
API_LIVENESS_STALE_PERIOD = 7


# ── Models ───────────────────────────────────────────────────────────────────

# name given to the model declared with the single `model:` shortcut
SINGLE_MODEL_NAME = "_cortex_default"
TF_MODEL_VERSION = "1"
DOWNLOADER_LAST_LOG = "downloading the {} serving image"


# ── Compute ──────────────────────────────────────────────────────────────────

REQUEST_MONITOR_CPU_REQUEST = "10m"
REQUEST_MONITOR_MEM_REQUEST = "10Mi"

NEURON_CORES_PER_INF = 4

# each Inferentia chip requires 128 HugePages of 2Mi each
HUGE_PAGES_PER_INF = 128
HUGE_PAGE_SIZE = 2 * 1024 * 1024
HUGE_PAGES_MEM_PER_INF = HUGE_PAGES_PER_INF * HUGE_PAGE_SIZE


class ResourceName:
    CPU = "cpu"
    MEMORY = "memory"
    GPU = "nvidia.com/gpu"
    INF = "aws.amazon.com/infa"
    HUGE_PAGES = "hugepages-2Mi"


# ── Label keys ───────────────────────────────────────────────────────────────

class Labels:
    API_NAME = "apiName"
    API_ID = "apiID"
    DEPLOYMENT_ID = "deploymentID"
    WORKLOAD = "workload"


ISTIO_EXCLUDE_OUTBOUND_ANNOTATION = "traffic.sidecar.istio.io/excludeOutboundIPRanges"


# ── Cluster wiring ───────────────────────────────────────────────────────────

ENV_VARS_CONFIG_MAP = "env-vars"
AWS_CREDENTIALS_SECRET = "aws-credentials"
APIS_GATEWAY = "apis-gateway"
PREDICT_REWRITE_PATH = "predict"
SERVICE_ACCOUNT_NAME = "default"

TOLERATION_KEYS: tuple[str, ...] = (
    Labels.WORKLOAD, ResourceName.GPU, ResourceName.INF,
)


# ── Naming ───────────────────────────────────────────────────────────────────

K8S_NAME_PREFIX = "api-"


def k8s_name(api_name: str) -> str:
    """Canonical name of every object compiled for an API."""
    return f"{K8S_NAME_PREFIX}{api_name}"
