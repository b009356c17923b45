"""api容器和serving容器的环境变量。

下面的变量名由serving镜像读取，改名会破坏所有基于它构建的镜像。
每次调用都会重新构建列表，顺序只取决于输入，因此未改变的API总是编译出相同的容器规格。
"""

import posixpath
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from kubernetes import client

from servectl.api.api_spec import APISpec
from servectl.api.cluster import ClusterContext
from servectl.constants import (
    PredictorType, API_CONTAINER_NAME, TF_SERVING_CONTAINER_NAME, DEFAULT_PORT, TF_BASE_SERVING_PORT,
    TF_SERVING_HOST, TF_SERVING_EMPTY_MODEL_CONFIG, SPEC_CACHE_DIR, PROJECT_DIR, MODEL_DIR,
    NEURON_RTD_SOCKET, NEURON_CORES_PER_INF,
)

# 在副本并发数之上额外预留的listen backlog
SO_MAX_CONN_BUFFER = 100

# api容器按名称加载声明模型的运行时
_NAMED_MODEL_RUNTIMES = (PredictorType.TENSORFLOW, PredictorType.PYTHON)

# 各运行时中与Inferentia runtime daemon通信的容器
_NEURON_CLIENT_CONTAINERS = {
    PredictorType.TENSORFLOW: TF_SERVING_CONTAINER_NAME,
    PredictorType.PYTHON: API_CONTAINER_NAME,
}


def _env(name: str, value) -> client.V1EnvVar:
    return client.V1EnvVar(name=name, value=str(value))


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def max_worker_concurrency(max_replica_concurrency: int, workers_per_replica: int) -> int:
    # 1个worker、1个线程时需要+1才能达到目标并发
    return 1 + round_half_up(Decimal(max_replica_concurrency) / Decimal(workers_per_replica))


def neuron_core_group_size(inf: int, workers_per_replica: int) -> int:
    return inf * NEURON_CORES_PER_INF // workers_per_replica


def _api_env_vars(api: APISpec, cluster: ClusterContext) -> List[client.V1EnvVar]:
    autoscaling = api.autoscaling
    env_vars = [
        client.V1EnvVar(
            name="HOST_IP",
            value_from=client.V1EnvVarSource(
                field_ref=client.V1ObjectFieldSelector(field_path="status.hostIP")
            )
        ),
        _env("CORTEX_WORKERS_PER_REPLICA", autoscaling.workers_per_replica),
        _env("CORTEX_THREADS_PER_WORKER", autoscaling.threads_per_worker),
        _env("CORTEX_MAX_REPLICA_CONCURRENCY", autoscaling.max_replica_concurrency),
        _env("CORTEX_MAX_WORKER_CONCURRENCY", max_worker_concurrency(
            autoscaling.max_replica_concurrency, autoscaling.workers_per_replica)),
        _env("CORTEX_SO_MAX_CONN", autoscaling.max_replica_concurrency + SO_MAX_CONN_BUFFER),
        _env("CORTEX_SERVING_PORT", DEFAULT_PORT),
        _env("CORTEX_API_SPEC", cluster.s3_path(api.key)),
        _env("CORTEX_CACHE_DIR", SPEC_CACHE_DIR),
        _env("CORTEX_PROJECT_DIR", PROJECT_DIR),
    ]

    if api.predictor.python_path is not None:
        env_vars.append(_env("PYTHON_PATH", posixpath.join(PROJECT_DIR, api.predictor.python_path.lstrip("/"))))

    if api.predictor.type in _NAMED_MODEL_RUNTIMES:
        env_vars.extend([
            _env("CORTEX_MODEL_DIR", MODEL_DIR),
            _env("CORTEX_MODELS", ",".join(api.model_names())),
        ])

    if api.predictor.type == PredictorType.TENSORFLOW:
        env_vars.extend([
            _env("CORTEX_TF_BASE_SERVING_PORT", TF_BASE_SERVING_PORT),
            _env("CORTEX_TF_SERVING_HOST", TF_SERVING_HOST),
        ])

    return env_vars


def _neuron_env_vars(api: APISpec, container: str) -> List[client.V1EnvVar]:
    predictor_type = api.predictor.type
    workers = api.autoscaling.workers_per_replica
    env_vars = []

    if _NEURON_CLIENT_CONTAINERS.get(predictor_type) == container:
        env_vars.extend([
            _env("NEURONCORE_GROUP_SIZES", neuron_core_group_size(api.compute.inf, workers)),
            _env("NEURON_RTD_ADDRESS", f"unix:{NEURON_RTD_SOCKET}"),
        ])

    if predictor_type == PredictorType.TENSORFLOW:
        if container == TF_SERVING_CONTAINER_NAME:
            env_vars.extend([
                _env("TF_WORKERS", workers),
                _env("CORTEX_TF_BASE_SERVING_PORT", TF_BASE_SERVING_PORT),
                _env("CORTEX_MODEL_DIR", MODEL_DIR),
                _env("TF_EMPTY_MODEL_CONFIG", TF_SERVING_EMPTY_MODEL_CONFIG),
            ])
        elif container == API_CONTAINER_NAME:
            env_vars.extend([
                _env("CORTEX_MULTIPLE_TF_SERVERS", "yes"),
                _env("CORTEX_ACTIVE_NEURON", "yes"),
            ])

    return env_vars


def build_env_vars(api: APISpec, container: str, cluster: ClusterContext) -> List[client.V1EnvVar]:
    """`container` 的环境变量，按容器看到的顺序排列。

    用户变量排在最前面，用户声明的保留变量名会被这里设置的值覆盖。
    """
    env_vars = [_env(name, value) for name, value in api.predictor.env.items()]
    env_vars.append(_env("CORTEX_PROVIDER", cluster.provider))

    if container == API_CONTAINER_NAME:
        env_vars.extend(_api_env_vars(api, cluster))

    if api.compute.inf > 0:
        env_vars.extend(_neuron_env_vars(api, container))

    return env_vars
